# ==================== TESTS/FACTORIES.PY ====================
import itertools
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from bookings.models import Reservation
from parking.models import MetroStation, ParkingLot, ParkingSlot
from rides.models import Driver, Vehicle
from users.models import CustomUser

NOW = datetime(2030, 1, 7, 9, 0, tzinfo=dt_timezone.utc)

_sequence = itertools.count(1)


def fixed_clock(moment=NOW):
    return lambda: moment


def make_user(username=None, **extra):
    username = username or f'commuter{next(_sequence)}'
    return CustomUser.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='testpass123',
        **extra
    )


def make_station(name='Rajiv Chowk', latitude=28.6328, longitude=77.2197):
    return MetroStation.objects.create(name=name, latitude=latitude, longitude=longitude)


def make_lot(station=None, name='Gate 1 Parking', total_slots=10, base_price_per_hour=50):
    station = station or make_station()
    return ParkingLot.objects.create(
        metro_station=station,
        name=name,
        latitude=station.latitude,
        longitude=station.longitude,
        total_slots=total_slots,
        base_price_per_hour=base_price_per_hour,
    )


def make_slots(lot, count, zone='A', status='available'):
    return [
        ParkingSlot.objects.create(lot=lot, slot_number=f'{zone}{i + 1}', zone=zone, status=status)
        for i in range(count)
    ]


def make_reservation(user, slot, start_time, hours=2, price=Decimal('100'), **extra):
    return Reservation.objects.create(
        user=user,
        parking_lot=slot.lot,
        parking_slot=slot,
        start_time=start_time,
        end_time=start_time + timedelta(hours=hours),
        price=price,
        **extra
    )


def make_vehicle(station, vehicle_type='cab', status='active', **extra):
    return Vehicle.objects.create(
        type=vehicle_type,
        registration_number=f'DL01AB{next(_sequence):04d}',
        model='Test Model',
        status=status,
        base_station=station,
        **extra
    )


def make_driver(vehicle, status='available', name=None):
    number = next(_sequence)
    return Driver.objects.create(
        name=name or f'Driver {number}',
        phone_number=f'+9198765{number:05d}',
        license_number=f'DL-{number:06d}',
        status=status,
        vehicle=vehicle,
    )
