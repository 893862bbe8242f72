# ==================== RIDES/SERVICES.PY ====================
import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from parking.models import MetroStation
from payments.models import Payment
from payments.services import LoyaltyService, PaymentService, WalletService
from utils.distance_calculator import DistanceCalculator
from utils.exceptions import (
    AlreadyPaid, DriverNotFound, DuplicateResource, InvalidRequest, InvalidSeatCount, InvalidState,
    NoAvailableVehicle, NoSuitableSharedRide, ResourceInUse, RideNotFound, StationNotFound,
    VehicleAlreadyAssigned, VehicleNotFound,
)
from utils.pricing import ride_fare
from .models import Driver, Ride, Vehicle

logger = logging.getLogger(__name__)

OPEN_RIDE_STATUSES = ('pending', 'active')


@dataclass
class RideRequest:
    vehicle_type: str
    seats: int
    is_shared: bool = False
    ride_type: str = 'on-demand'
    scheduled_time: Optional[object] = None
    pickup_name: str = ''
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    dropoff_name: str = ''
    dropoff_latitude: Optional[float] = None
    dropoff_longitude: Optional[float] = None


@dataclass
class Allocation:
    driver: Driver
    vehicle: Vehicle
    parent_ride: Optional[Ride] = None


@dataclass
class AvailabilityPreview:
    is_available: bool
    vehicle_type: str
    available_vehicles_count: int = 0
    shared_ride: Optional[Ride] = None
    remaining_seats: Optional[int] = None


@dataclass
class RideCancellationResult:
    ride: Ride
    refund_amount: Decimal


@dataclass
class RideCompletionResult:
    ride: Ride
    payment: Payment
    loyalty_points_awarded: int


def remaining_seats(ride):
    """Free seats on a parent ride's vehicle, counting every pooled ride"""
    return ride.vehicle.capacity - ride.booked_seats_total()


class RidePoolingMatcher:
    """Pick the driver and vehicle for a ride request.

    Shared requests join the first open parent ride with room; private
    requests claim a random available driver.
    """

    def __init__(self, clock=None, rng=None):
        self.clock = clock or timezone.now
        self.rng = rng or random.Random()

    @staticmethod
    def validate_seats(vehicle_type, seats):
        if vehicle_type not in Vehicle.CAPACITY_BY_TYPE:
            raise InvalidRequest(f'Invalid vehicle type: {vehicle_type}')

        capacity = Vehicle.default_capacity(vehicle_type)
        if seats is None or seats < 1 or seats > capacity:
            raise InvalidSeatCount(
                f'Invalid number of seats. Must be between 1 and {capacity} for {vehicle_type}'
            )
        return capacity

    def reference_time(self, request):
        if request.ride_type == 'scheduled':
            return request.scheduled_time
        return self.clock()

    def shared_candidates(self, request):
        """Open parent rides of the requested type inside the pooling window"""
        reference = self.reference_time(request)
        window = timedelta(minutes=settings.RIDE_POOLING_WINDOW_MINUTES)
        low, high = reference - window, reference + window

        return Ride.objects.filter(
            status='active',
            is_shared=True,
            parent_ride__isnull=True,
            vehicle__type=request.vehicle_type,
        ).filter(
            Q(ride_type='on-demand', start_time__range=(low, high))
            | Q(ride_type='scheduled', scheduled_time__range=(low, high))
        ).select_related('vehicle', 'driver').order_by('created_at', 'id')

    def eligible_drivers(self, vehicle_type):
        return Driver.objects.filter(
            status='available',
            vehicle__type=vehicle_type,
            vehicle__status='active',
        ).select_related('vehicle').order_by('id')

    def find_or_allocate(self, request):
        """Must run inside the caller's transaction"""
        self.validate_seats(request.vehicle_type, request.seats)
        if request.is_shared:
            return self._join_shared_ride(request)
        return self._claim_driver(request)

    def _join_shared_ride(self, request):
        for candidate in self.shared_candidates(request):
            # driver before ride, same order as cancel and complete
            Driver.objects.select_for_update().get(pk=candidate.driver_id)
            parent =Ride.objects.select_for_update().select_related('vehicle', 'driver').get(pk=candidate.pk)
            if parent.status != 'active':
                continue

            free = remaining_seats(parent)
            if free >= request.seats:
                logger.info(
                    f"Pooling {request.seats} seat(s) onto ride {parent.id} "
                    f"({free} free on {parent.vehicle.registration_number})"
                )
                return Allocation(parent.driver, parent.vehicle, parent)

        logger.warning(f"No shared {request.vehicle_type} ride with {request.seats} free seat(s)")
        raise NoSuitableSharedRide()

    def _claim_driver(self, request):
        candidates = list(self.eligible_drivers(request.vehicle_type))
        attempts = 0

        while candidates and attempts < settings.DRIVER_ALLOCATION_ATTEMPTS:
            driver = self.rng.choice(candidates)
            claimed = Driver.objects.filter(pk=driver.pk, status='available').update(status='on_ride')
            if claimed:
                driver.status = 'on_ride'
                logger.info(f"Driver {driver.id} ({driver.vehicle.registration_number}) allocated, now on_ride")
                return Allocation(driver, driver.vehicle)

            logger.warning(f"Driver {driver.id} was taken by a concurrent booking, retrying")
            candidates.remove(driver)
            attempts += 1

        raise NoAvailableVehicle(
            f'No available {request.vehicle_type} found. '
            f'Please try again later or choose a different vehicle type.'
        )

    def check_availability(self, request):
        """Read-only preview of what find_or_allocate would do"""
        self.validate_seats(request.vehicle_type, request.seats)

        if request.is_shared:
            for candidate in self.shared_candidates(request):
                free = remaining_seats(candidate)
                if free >= request.seats:
                    return AvailabilityPreview(True, request.vehicle_type, shared_ride=candidate, remaining_seats=free)
            return AvailabilityPreview(False, request.vehicle_type)

        count = self.eligible_drivers(request.vehicle_type).count()
        return AvailabilityPreview(count > 0, request.vehicle_type, available_vehicles_count=count)


class RideService:
    """Ride booking and state transitions.

    Locks are taken driver first, then ride, then wallet.
    """

    def __init__(self, clock=None, rng=None, matcher=None):
        self.clock = clock or timezone.now
        self.rng = rng or random.Random()
        self.matcher = matcher or RidePoolingMatcher(clock=self.clock, rng=self.rng)

    def get_for_user(self, ride_id, user):
        try:
            return Ride.objects.select_related('driver', 'vehicle').get(pk=ride_id, user=user)
        except Ride.DoesNotExist:
            raise RideNotFound()

    def _lock(self, ride_id, user):
        ride = self.get_for_user(ride_id, user)
        Driver.objects.select_for_update().get(pk=ride.driver_id)
        return Ride.objects.select_for_update().select_related('driver', 'vehicle').get(pk=ride.pk)

    @transaction.atomic
    def book(self, user, request):
        if request.ride_type not in dict(Ride.RIDE_TYPE_CHOICES):
            raise InvalidRequest(f'Invalid ride type: {request.ride_type}')
        if request.ride_type == 'scheduled' and request.scheduled_time is None:
            raise InvalidRequest('Scheduled time is required for scheduled rides.')
        self.matcher.validate_seats(request.vehicle_type, request.seats)

        distance = DistanceCalculator.get_distance_km(
            request.pickup_latitude, request.pickup_longitude,
            request.dropoff_latitude, request.dropoff_longitude,
        )
        if distance <= 0:
            raise InvalidRequest('Pickup and drop-off locations must be different.')

        allocation = self.matcher.find_or_allocate(request)
        fare = ride_fare(distance, allocation.vehicle.capacity, request.seats, request.is_shared)
        now = self.clock()

        ride = Ride.objects.create(
            user=user,
            driver=allocation.driver,
            vehicle=allocation.vehicle,
            parent_ride=allocation.parent_ride,
            pickup_name=request.pickup_name,
            pickup_latitude=request.pickup_latitude,
            pickup_longitude=request.pickup_longitude,
            dropoff_name=request.dropoff_name,
            dropoff_latitude=request.dropoff_latitude,
            dropoff_longitude=request.dropoff_longitude,
            distance=distance,
            ride_type=request.ride_type,
            scheduled_time=request.scheduled_time if request.ride_type == 'scheduled' else None,
            start_time=now if request.ride_type == 'on-demand' else None,
            seats_booked=request.seats,
            is_shared=request.is_shared,
            fare=fare,
            status='active',
        )
        logger.info(
            f"Ride {ride.id} booked by {user.username}: {request.vehicle_type}, {request.seats} seat(s), "
            f"{'shared' if request.is_shared else 'private'}, {distance:.2f} km, fare ₹{fare}"
            + (f", pooled onto ride {allocation.parent_ride.id}" if allocation.parent_ride else '')
        )
        return ride

    @transaction.atomic
    def cancel(self, ride_id, user):
        ride = self._lock(ride_id, user)
        if ride.status not in OPEN_RIDE_STATUSES:
            raise InvalidState('Only active or pending rides can be cancelled.')

        refund_amount = Decimal(0)
        if ride.payment_status == 'paid':
            started = ride.start_time is not None and ride.start_time <= self.clock()
            if not started:
                refund_amount = ride.fare
                WalletService.credit(
                    user, refund_amount, 'Full refund - ride cancelled before start', ride=ride,
                )
                ride.payment_status = 'refunded'

        ride.status = 'cancelled'
        ride.save(update_fields=['status', 'payment_status', 'updated_at'])
        self._release_driver(ride)

        logger.info(f"Ride {ride.id} cancelled by {user.username}, refund ₹{refund_amount}")
        return RideCancellationResult(ride, refund_amount)

    @transaction.atomic
    def complete(self, ride_id, user, payment_method='wallet', gateway_data=None):
        ride = self._lock(ride_id, user)
        if ride.payment_status == 'paid':
            raise AlreadyPaid('Payment has already been processed for this ride.')
        if ride.status != 'active':
            raise InvalidState('Only active rides can be completed.')

        payment = PaymentService.collect(
            user, ride.fare, payment_method, ride=ride, gateway_data=gateway_data,
        )

        ride.status = 'completed'
        ride.payment_status = 'paid'
        ride.end_time = self.clock()
        ride.save(update_fields=['status', 'payment_status', 'end_time', 'updated_at'])
        self._release_driver(ride)

        points = LoyaltyService.award(user, ride.fare, self.rng)
        logger.info(f"Ride {ride.id} completed, ₹{ride.fare} paid via {payment_method}")
        return RideCompletionResult(ride, payment, points)

    @transaction.atomic
    def update(self, ride_id, user, is_shared):
        """Toggle sharing on an active ride and re-price it"""
        ride = self.get_for_user(ride_id, user)
        ride = Ride.objects.select_for_update().select_related('vehicle').get(pk=ride.pk)
        if ride.status != 'active':
            raise InvalidState('Only active rides can be updated.')

        if ride.is_shared and not is_shared:
            if ride.parent_ride_id is not None:
                raise InvalidState('A pooled ride cannot be made private.')
            if ride.pooled_rides.filter(status__in=OPEN_RIDE_STATUSES).exists():
                raise InvalidState('Ride has other passengers pooled onto it and cannot be made private.')

        ride.is_shared = is_shared
        ride.fare = ride_fare(ride.distance, ride.vehicle.capacity, ride.seats_booked, is_shared)
        ride.save(update_fields=['is_shared', 'fare', 'updated_at'])

        logger.info(f"Ride {ride.id} set to {'shared' if is_shared else 'private'}, fare ₹{ride.fare}")
        return ride

    def _release_driver(self, ride):
        """Free the driver once the trip it governs has no other active ride"""
        if not ride.governs_trip:
            return False

        busy = Ride.objects.filter(driver_id=ride.driver_id, status='active').exclude(pk=ride.pk).exists()
        if busy:
            logger.info(f"Driver {ride.driver_id} stays on_ride: other active rides remain")
            return False

        released = Driver.objects.filter(pk=ride.driver_id, status='on_ride').update(status='available')
        if released:
            logger.info(f"Driver {ride.driver_id} released after ride {ride.id}")
        return bool(released)


class FleetService:
    """Admin changes to vehicles and drivers"""

    @staticmethod
    def get_vehicle(vehicle_id, lock=False):
        queryset = Vehicle.objects.select_for_update() if lock else Vehicle.objects
        try:
            return queryset.get(pk=vehicle_id)
        except Vehicle.DoesNotExist:
            raise VehicleNotFound()

    @staticmethod
    def get_driver(driver_id, lock=False):
        queryset = Driver.objects.select_for_update() if lock else Driver.objects
        try:
            return queryset.select_related('vehicle').get(pk=driver_id)
        except Driver.DoesNotExist:
            raise DriverNotFound()

    @staticmethod
    def _get_station(station_id):
        try:
            return MetroStation.objects.get(pk=station_id)
        except MetroStation.DoesNotExist:
            raise StationNotFound()

    # ---------- Vehicles ----------

    @staticmethod
    @transaction.atomic
    def create_vehicle(data):
        data = dict(data)
        if Vehicle.objects.filter(registration_number=data['registration_number']).exists():
            raise DuplicateResource('Vehicle with this registration number already exists.')

        data['base_station'] = FleetService._get_station(data.pop('base_station'))
        vehicle = Vehicle.objects.create(**data)
        logger.info(f"Vehicle {vehicle.registration_number} ({vehicle.type}, {vehicle.capacity} seats) created")
        return vehicle

    @staticmethod
    @transaction.atomic
    def update_vehicle(vehicle_id, data):
        vehicle = FleetService.get_vehicle(vehicle_id, lock=True)
        data = dict(data)

        registration = data.get('registration_number')
        if registration and registration != vehicle.registration_number:
            if Vehicle.objects.filter(registration_number=registration).exclude(pk=vehicle.pk).exists():
                raise DuplicateResource('Vehicle with this registration number already exists.')

        if 'base_station' in data:
            data['base_station'] = FleetService._get_station(data['base_station'])

        new_status = data.get('status')
        if new_status and new_status != 'active' and vehicle.status == 'active':
            driver = vehicle.assigned_driver
            if driver is not None and driver.status == 'on_ride':
                raise ResourceInUse('Cannot change status while the assigned driver is on a ride.')
            if vehicle.rides.filter(status__in=OPEN_RIDE_STATUSES).exists():
                raise ResourceInUse('Cannot change status while the vehicle has pending or active rides.')

        if 'type' in data and data['type'] != vehicle.type and 'capacity' not in data:
            data['capacity'] = Vehicle.default_capacity(data['type'])

        for attr, value in data.items():
            setattr(vehicle, attr, value)
        vehicle.save()
        logger.info(f"Vehicle {vehicle.id} updated: {', '.join(data)}")
        return vehicle

    @staticmethod
    @transaction.atomic
    def delete_vehicle(vehicle_id):
        vehicle = FleetService.get_vehicle(vehicle_id, lock=True)
        if vehicle.assigned_driver is not None:
            raise ResourceInUse('Cannot delete vehicle that is assigned to a driver.')
        if vehicle.rides.filter(status__in=OPEN_RIDE_STATUSES).exists():
            raise ResourceInUse('Cannot delete vehicle with pending or active rides.')
        if vehicle.rides.exists():
            raise ResourceInUse('Vehicle has ride history; set its status to inactive instead.')

        vehicle.delete()
        logger.info(f"Vehicle {vehicle_id} deleted")

    # ---------- Drivers ----------

    @staticmethod
    def _claimable_vehicle(vehicle_id, driver=None):
        vehicle = FleetService.get_vehicle(vehicle_id, lock=True)
        holder = vehicle.assigned_driver
        if holder is not None and (driver is None or holder.pk != driver.pk):
            raise VehicleAlreadyAssigned()
        return vehicle

    @staticmethod
    @transaction.atomic
    def create_driver(data):
        data = dict(data)
        if Driver.objects.filter(license_number=data['license_number']).exists():
            raise DuplicateResource('Driver with this license number already exists.')

        data['vehicle'] = FleetService._claimable_vehicle(data.pop('vehicle'))
        driver = Driver.objects.create(**data)
        logger.info(f"Driver {driver.id} ({driver.name}) created with vehicle {driver.vehicle.registration_number}")
        return driver

    @staticmethod
    @transaction.atomic
    def update_driver(driver_id, data):
        driver = FleetService.get_driver(driver_id, lock=True)
        data = dict(data)
        has_open_rides = driver.rides.filter(status__in=OPEN_RIDE_STATUSES).exists()

        license_number = data.get('license_number')
        if license_number and license_number != driver.license_number:
            if Driver.objects.filter(license_number=license_number).exclude(pk=driver.pk).exists():
                raise DuplicateResource('Driver with this license number already exists.')

        if 'vehicle' in data:
            vehicle = FleetService._claimable_vehicle(data['vehicle'], driver)
            if vehicle.pk != driver.vehicle_id and has_open_rides:
                raise ResourceInUse('Cannot reassign the vehicle of a driver with pending or active rides.')
            data['vehicle'] = vehicle

        if data.get('status') == 'offline' and driver.status == 'on_ride' and has_open_rides:
            raise InvalidState('Cannot set driver offline while on an active ride.')

        for attr, value in data.items():
            setattr(driver, attr, value)
        driver.save()
        logger.info(f"Driver {driver.id} updated: {', '.join(data)}")
        return driver

    @staticmethod
    @transaction.atomic
    def delete_driver(driver_id):
        driver = FleetService.get_driver(driver_id, lock=True)
        if driver.rides.filter(status__in=OPEN_RIDE_STATUSES).exists():
            raise ResourceInUse('Cannot delete driver with pending or active rides.')
        if driver.rides.exists():
            raise ResourceInUse('Driver has ride history; set their status to offline instead.')

        driver.delete()
        logger.info(f"Driver {driver_id} deleted")
