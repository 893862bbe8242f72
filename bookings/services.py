# ==================== BOOKINGS/SERVICES.PY ====================
import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from parking.models import ParkingSlot
from payments.models import Payment
from payments.services import LoyaltyService, PaymentService, WalletService
from utils.exceptions import (
    AlreadyPaid, InvalidAmendment, InvalidState, ReservationNotFound,
)
from utils.overlap import filter_overlapping
from utils.pricing import duration_hours, round_amount
from .models import Reservation

logger = logging.getLogger(__name__)

REFUND_FULL = 'full'
REFUND_PARTIAL = 'partial'
REFUND_NONE = 'none'

REFUND_DESCRIPTIONS = {
    REFUND_FULL: 'Full refund - cancelled more than {minutes} minutes before arrival',
    REFUND_PARTIAL: 'Partial refund (50%) - cancelled less than {minutes} minutes before arrival',
    REFUND_NONE: 'No refund - cancelled after arrival time',
}


def cancellation_refund(price, start_time, now):
    """Refund owed when a paid reservation is cancelled at ``now``.

    Returns ``(amount, reason)``. At least RESERVATION_FULL_REFUND_MINUTES of
    notice refunds everything, any notice refunds half, none after start.
    """
    minutes_before_start = (start_time - now).total_seconds() / 60

    if minutes_before_start >= settings.RESERVATION_FULL_REFUND_MINUTES:
        return round_amount(price), REFUND_FULL
    if minutes_before_start >= 0:
        return round_amount(Decimal(price) * Decimal('0.5')), REFUND_PARTIAL
    return Decimal(0), REFUND_NONE


def amendment_refund(price, original_start, original_end, new_start, new_end):
    """Half the hourly rate for every hour given back"""
    original_hours = duration_hours(original_start, original_end)
    new_hours = duration_hours(new_start, new_end)
    hourly = Decimal(price) / original_hours
    return round_amount(Decimal('0.5') * hourly * (original_hours - new_hours))


@dataclass
class CancellationResult:
    reservation: Reservation
    refund_amount: Decimal
    refund_reason: Optional[str]


@dataclass
class PaymentResult:
    reservation: Reservation
    payment: Payment
    loyalty_points_awarded: int


@dataclass
class AmendmentResult:
    reservation: Reservation
    refund_amount: Decimal


class ReservationService:
    """State transitions of an existing reservation.

    Locks are always taken slot first, then reservation, then wallet.
    """

    def __init__(self, clock=None, rng=None):
        self.clock = clock or timezone.now
        self.rng = rng or random.Random()

    def get_for_user(self, reservation_id, user):
        try:
            return Reservation.objects.select_related('parking_lot', 'parking_slot').get(pk=reservation_id, user=user)
        except Reservation.DoesNotExist:
            raise ReservationNotFound()

    def _lock(self, reservation_id, user):
        """Lock the reservation's slot, then the reservation itself"""
        reservation = self.get_for_user(reservation_id, user)
        ParkingSlot.objects.select_for_update().get(pk=reservation.parking_slot_id)
        return Reservation.objects.select_for_update().get(pk=reservation.pk)

    @transaction.atomic
    def cancel(self, reservation_id, user):
        reservation = self._lock(reservation_id, user)
        if reservation.status != 'active':
            raise InvalidState('Only active reservations can be cancelled.')

        refund_amount, refund_reason = Decimal(0), None
        if reservation.payment_status == 'paid':
            refund_amount, refund_reason = cancellation_refund(
                reservation.price, reservation.start_time, self.clock()
            )
            if refund_amount > 0:
                WalletService.credit(
                    user, refund_amount,
                    REFUND_DESCRIPTIONS[refund_reason].format(minutes=settings.RESERVATION_FULL_REFUND_MINUTES),
                    reservation=reservation,
                )
                reservation.payment_status = 'refunded'

        reservation.status = 'cancelled'
        reservation.save(update_fields=['status', 'payment_status', 'updated_at'])

        logger.info(
            f"Reservation {reservation.id} cancelled by {user.username}, "
            f"refund ₹{refund_amount} ({refund_reason or 'unpaid'})"
        )
        return CancellationResult(reservation, refund_amount, refund_reason)

    @transaction.atomic
    def pay(self, reservation_id, user, payment_method='wallet', gateway_data=None):
        reservation = self.get_for_user(reservation_id, user)
        reservation = Reservation.objects.select_for_update().get(pk=reservation.pk)

        if reservation.payment_status != 'pending':
            raise AlreadyPaid('Payment has already been completed for this reservation.')
        if reservation.status != 'active':
            raise InvalidState('Only active reservations can be paid.')

        payment = PaymentService.collect(
            user, reservation.price, payment_method,
            reservation=reservation, gateway_data=gateway_data,
        )
        reservation.payment_status = 'paid'
        reservation.save(update_fields=['payment_status', 'updated_at'])

        points = LoyaltyService.award(user, reservation.price, self.rng)
        logger.info(f"Reservation {reservation.id} paid via {payment_method}: ₹{reservation.price}")
        return PaymentResult(reservation, payment, points)

    @transaction.atomic
    def amend(self, reservation_id, user, new_start=None, new_end=None):
        """Shrink the reservation window and refund half the freed time"""
        if new_start is None and new_end is None:
            raise InvalidAmendment('New start time or end time is required.')

        reservation = self._lock(reservation_id, user)
        if reservation.status != 'active':
            raise InvalidAmendment('Only active reservations can be updated.')
        if reservation.payment_status != 'paid':
            raise InvalidAmendment('Only paid reservations can be updated.')

        original_start, original_end = reservation.start_time, reservation.end_time
        new_start = new_start or original_start
        new_end = new_end or original_end

        if new_start < original_start:
            raise InvalidAmendment('New start time cannot be earlier than original start time.')
        if new_end > original_end:
            raise InvalidAmendment('New end time cannot be later than original end time.')
        if new_start >= new_end:
            raise InvalidAmendment('Start time must be before end time.')
        if new_end - new_start >= original_end - original_start:
            raise InvalidAmendment('New duration must be shorter than original duration.')

        others = Reservation.objects.filter(
            parking_slot_id=reservation.parking_slot_id, status='active',
        ).exclude(pk=reservation.pk)
        if filter_overlapping(others, new_start, new_end).exists():
            raise InvalidAmendment('The new time conflicts with another reservation.')

        refund_amount = amendment_refund(reservation.price, original_start, original_end, new_start, new_end)

        # price stays equal to the amount paid minus refunds
        reservation.start_time = new_start
        reservation.end_time = new_end
        reservation.price = reservation.price - refund_amount
        reservation.save(update_fields=['start_time', 'end_time', 'price', 'updated_at'])

        if refund_amount > 0:
            WalletService.credit(
                user, refund_amount, 'Partial refund for reservation time update',
                reservation=reservation,
            )

        logger.info(
            f"Reservation {reservation.id} shortened to {new_start} - {new_end}, refund ₹{refund_amount}"
        )
        return AmendmentResult(reservation, refund_amount)

    @transaction.atomic
    def release_stale_pending(self, ttl_minutes):
        """Cancel unpaid reservations created more than ``ttl_minutes`` ago"""
        cutoff = self.clock() - timedelta(minutes=ttl_minutes)
        stale = Reservation.objects.select_for_update().filter(
            status='active', payment_status='pending', created_at__lt=cutoff,
        )
        released = 0
        for reservation in stale:
            reservation.status = 'cancelled'
            reservation.save(update_fields=['status', 'updated_at'])
            released += 1
            logger.info(f"Released unpaid reservation {reservation.id} on slot {reservation.parking_slot_id}")
        return released
