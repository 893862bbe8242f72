# ==================== PARKING/SERVICES.PY ====================
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction

from bookings.models import Reservation
from users.models import FrequentStation
from utils.exceptions import (
    BookingConflict, DuplicateResource, InvalidRequest, InvalidState, InvalidTimeWindow,
    LotNotFound, ResourceInUse, SlotLotMismatch, SlotNotFound, SlotUnavailable, StationNotFound,
)
from utils.overlap import filter_overlapping, overlaps
from utils.pricing import duration_hours, parking_price, price_multiplier
from .models import MetroStation, ParkingLot, ParkingSlot, TimeRestriction

logger = logging.getLogger(__name__)

BLOCKING_SLOT_STATUSES = ('maintenance', 'occupied')


@dataclass
class SlotAvailability:
    slot_id: int
    slot_number: str
    zone: str
    status: str
    available: bool
    reason: Optional[str] = None
    description: str = ''


@dataclass
class LotAvailability:
    lot_id: int
    start_time: object
    end_time: object
    slots: List[SlotAvailability] = field(default_factory=list)

    @property
    def total_count(self):
        return len(self.slots)

    @property
    def available_count(self):
        return sum(1 for slot in self.slots if slot.available)

    @property
    def availability_percentage(self):
        if not self.slots:
            return 0.0
        return self.available_count / self.total_count * 100

    @property
    def price_multiplier(self):
        return price_multiplier(self.availability_percentage)

    def by_zone(self):
        """Slots grouped by zone, zones sorted by name"""
        zones = OrderedDict()
        for slot in sorted(self.slots, key=lambda s: s.zone):
            zones.setdefault(slot.zone, []).append(slot)
        return zones


def validate_window(start_time, end_time):
    if start_time is None or end_time is None or start_time >= end_time:
        raise InvalidTimeWindow()


def slot_block_reason(slot, start_time, end_time, restrictions, reserved):
    """First reason the slot cannot be used for the window, or ``(None, '')``.

    Checked in order: maintenance status, time restrictions, active
    reservations.
    """
    if slot.status == 'maintenance':
        return 'maintenance', ''

    for restriction in restrictions:
        if overlaps(start_time, end_time, restriction.start_time, restriction.end_time):
            return restriction.reason, restriction.description

    if reserved:
        return 'reserved', ''

    return None, ''


class SlotAllocator:
    """Availability checks and atomic slot reservation"""

    def _get_lot(self, lot_id):
        try:
            return ParkingLot.objects.select_related('metro_station').get(pk=lot_id)
        except ParkingLot.DoesNotExist:
            raise LotNotFound()

    def check_availability(self, lot_id, start_time, end_time):
        validate_window(start_time, end_time)
        lot = self._get_lot(lot_id)

        slots = list(lot.slots.order_by('id').prefetch_related('time_restrictions'))
        reserved_ids = set(
            filter_overlapping(
                Reservation.objects.filter(parking_slot__lot=lot, status='active'),
                start_time, end_time,
            ).values_list('parking_slot_id', flat=True)
        )

        result = LotAvailability(lot_id=lot.id, start_time=start_time, end_time=end_time)
        for slot in slots:
            reason, description = slot_block_reason(
                slot, start_time, end_time,
                slot.time_restrictions.all(),
                slot.id in reserved_ids,
            )
            result.slots.append(SlotAvailability(
                slot_id=slot.id,
                slot_number=slot.slot_number,
                zone=slot.zone,
                status=slot.status,
                available=reason is None,
                reason=reason,
                description=description,
            ))
        return result

    def check_slot_availability(self, slot_id, start_time, end_time):
        validate_window(start_time, end_time)
        try:
            slot = ParkingSlot.objects.get(pk=slot_id)
        except ParkingSlot.DoesNotExist:
            raise SlotNotFound()
        return self._slot_availability(slot, start_time, end_time)

    def _slot_availability(self, slot, start_time, end_time, exclude_reservation=None):
        reservations = Reservation.objects.filter(parking_slot=slot, status='active')
        if exclude_reservation is not None:
            reservations = reservations.exclude(pk=exclude_reservation.pk)
        reserved = filter_overlapping(reservations, start_time, end_time).exists()

        reason, description = slot_block_reason(
            slot, start_time, end_time, slot.time_restrictions.all(), reserved,
        )
        return SlotAvailability(
            slot_id=slot.id,
            slot_number=slot.slot_number,
            zone=slot.zone,
            status=slot.status,
            available=reason is None,
            reason=reason,
            description=description,
        )

    def quote(self, lot, start_time, end_time):
        """Price for the window at the lot's live contention level"""
        availability = self.check_availability(lot.id, start_time, end_time)
        multiplier = availability.price_multiplier
        price = parking_price(lot.base_price_per_hour, multiplier, duration_hours(start_time, end_time))
        return price, multiplier

    @transaction.atomic
    def reserve(self, lot_id, slot_id, start_time, end_time, user):
        validate_window(start_time, end_time)
        lot = self._get_lot(lot_id)

        # Serializes every reservation write on this slot
        try:
            slot = ParkingSlot.objects.select_for_update().get(pk=slot_id)
        except ParkingSlot.DoesNotExist:
            raise SlotNotFound()

        if slot.lot_id != lot.id:
            raise SlotLotMismatch()

        availability = self._slot_availability(slot, start_time, end_time)
        if not availability.available:
            logger.warning(
                f"Reservation refused for slot {slot.id} ({availability.reason}) "
                f"{start_time} - {end_time} by {user.username}"
            )
            raise SlotUnavailable(reason=availability.reason)

        price, multiplier = self.quote(lot, start_time, end_time)

        reservation = Reservation.objects.create(
            user=user,
            parking_lot=lot,
            parking_slot=slot,
            start_time=start_time,
            end_time=end_time,
            price=price,
        )
        FrequentStation.record_visit(user, lot.metro_station)

        logger.info(
            f"Reservation {reservation.id} created: slot {slot.slot_number} at {lot.name} "
            f"{start_time} - {end_time}, price ₹{price} (x{multiplier}) for {user.username}"
        )
        return reservation


class ParkingInventoryService:
    """Admin changes to stations, lots, slots and time restrictions"""

    @staticmethod
    def get_station(station_id):
        try:
            return MetroStation.objects.get(pk=station_id)
        except MetroStation.DoesNotExist:
            raise StationNotFound()

    @staticmethod
    def get_lot(lot_id, lock=False):
        queryset = ParkingLot.objects.select_for_update() if lock else ParkingLot.objects
        try:
            return queryset.get(pk=lot_id)
        except ParkingLot.DoesNotExist:
            raise LotNotFound()

    @staticmethod
    def get_slot(slot_id, lock=False):
        queryset = ParkingSlot.objects.select_for_update() if lock else ParkingSlot.objects
        try:
            return queryset.get(pk=slot_id)
        except ParkingSlot.DoesNotExist:
            raise SlotNotFound()

    # ---------- Stations ----------

    @staticmethod
    @transaction.atomic
    def delete_station(station_id):
        station = ParkingInventoryService.get_station(station_id)
        if station.parking_lots.exists():
            raise ResourceInUse('Cannot delete metro station with associated parking lots.')
        if station.vehicles.exists():
            raise ResourceInUse('Cannot delete metro station that is the base station of vehicles.')

        station.delete()
        logger.info(f"Metro station {station_id} deleted")

    # ---------- Lots ----------

    @staticmethod
    @transaction.atomic
    def create_lot(data):
        data = dict(data)
        data['metro_station'] = ParkingInventoryService.get_station(data.pop('metro_station'))
        lot = ParkingLot.objects.create(**data)
        logger.info(f"Parking lot created: {lot.id} ({lot.name}) at {lot.metro_station.name}")
        return lot

    @staticmethod
    @transaction.atomic
    def update_lot(lot_id, data):
        lot = ParkingInventoryService.get_lot(lot_id, lock=True)
        data = dict(data)

        if 'metro_station' in data:
            data['metro_station'] = ParkingInventoryService.get_station(data['metro_station'])

        occupied = lot.refresh_occupancy()
        if 'total_slots' in data and data['total_slots'] < occupied:
            raise InvalidState(f'Total slots cannot be less than occupied slots ({occupied}).')

        for attr, value in data.items():
            setattr(lot, attr, value)
        lot.save()
        logger.info(f"Parking lot {lot.id} updated: {', '.join(data)}")
        return lot

    @staticmethod
    @transaction.atomic
    def delete_lot(lot_id):
        lot = ParkingInventoryService.get_lot(lot_id, lock=True)
        if lot.reservations.filter(status='active').exists():
            raise ResourceInUse('Cannot delete parking lot with active reservations.')

        lot.delete()
        logger.info(f"Parking lot {lot_id} deleted with its slots")

    # ---------- Slots ----------

    @staticmethod
    @transaction.atomic
    def create_slot(data):
        data = dict(data)
        lot = ParkingInventoryService.get_lot(data.pop('lot'), lock=True)
        if lot.slots.filter(slot_number=data['slot_number']).exists():
            raise DuplicateResource('Slot number already exists in this parking lot.')

        slot = ParkingSlot.objects.create(lot=lot, **data)
        logger.info(f"Parking slot {slot.slot_number} created in lot {lot.id}")
        return slot

    @staticmethod
    @transaction.atomic
    def bulk_create_slots(lot_id, zone, start_number, count):
        """Create ``count`` slots numbered ``zone + (start_number + i)``"""
        lot = ParkingInventoryService.get_lot(lot_id, lock=True)
        numbers = [f'{zone}{start_number + i}' for i in range(count)]

        existing = list(lot.slots.filter(slot_number__in=numbers).values_list('slot_number', flat=True))
        if existing:
            raise DuplicateResource(f"Slot numbers already exist: {', '.join(sorted(existing))}")

        slots = [ParkingSlot.objects.create(lot=lot, slot_number=number, zone=zone) for number in numbers]
        logger.info(f"Created {len(slots)} slots in zone {zone} of lot {lot.id}")
        return slots

    @staticmethod
    @transaction.atomic
    def update_slot(slot_id, data):
        slot = ParkingInventoryService.get_slot(slot_id, lock=True)
        data = dict(data)

        new_number = data.get('slot_number')
        if new_number and new_number != slot.slot_number:
            if ParkingSlot.objects.filter(lot_id=slot.lot_id, slot_number=new_number).exclude(pk=slot.pk).exists():
                raise DuplicateResource('Slot number already exists in this parking lot.')

        new_status = data.get('status')
        if new_status and new_status != slot.status and new_status in BLOCKING_SLOT_STATUSES:
            if slot.reservations.filter(status='active').exists():
                logger.warning(f"Slot {slot.id} status change to {new_status} refused: active reservations")
                raise ResourceInUse(f'Cannot change slot status to {new_status} while it has active reservations.')

            if new_status == 'occupied':
                lot = ParkingInventoryService.get_lot(slot.lot_id, lock=True)
                if lot.refresh_occupancy() >= lot.total_slots:
                    raise InvalidState('Parking lot is already fully occupied.')

        for attr, value in data.items():
            setattr(slot, attr, value)
        slot.save()
        logger.info(f"Parking slot {slot.id} updated: {', '.join(data)}")
        return slot

    @staticmethod
    @transaction.atomic
    def delete_slot(slot_id):
        slot = ParkingInventoryService.get_slot(slot_id, lock=True)
        if slot.reservations.filter(status='active').exists():
            raise ResourceInUse('Cannot delete parking slot with active reservations.')

        slot.delete()
        logger.info(f"Parking slot {slot_id} deleted")

    # ---------- Time restrictions ----------

    @staticmethod
    @transaction.atomic
    def add_restriction(slot_id, start_time, end_time, reason='maintenance', description=''):
        validate_window(start_time, end_time)
        slot = ParkingInventoryService.get_slot(slot_id, lock=True)

        clashing = filter_overlapping(slot.reservations.filter(status='active'), start_time, end_time)
        if clashing.exists():
            logger.warning(f"Time restriction on slot {slot.id} refused: overlaps active reservations")
            raise BookingConflict('Time restriction overlaps existing reservations.')

        restriction = TimeRestriction.objects.create(
            slot=slot,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
            description=description,
        )
        logger.info(f"Time restriction {restriction.id} ({reason}) added to slot {slot.id}: {start_time} - {end_time}")
        return restriction

    @staticmethod
    @transaction.atomic
    def remove_restriction(slot_id, index):
        """Remove the restriction at ``index`` in insertion order"""
        slot = ParkingInventoryService.get_slot(slot_id, lock=True)
        restrictions = list(slot.time_restrictions.order_by('id'))

        if index < 0 or index >= len(restrictions):
            raise InvalidRequest('Invalid restriction index.')

        restriction = restrictions[index]
        restriction.delete()
        logger.info(f"Time restriction {index} removed from slot {slot.id}")
        return slot
