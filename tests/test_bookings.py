import threading
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings, skipUnlessDBFeature

from bookings.models import Reservation
from bookings.services import (
    REFUND_FULL, REFUND_NONE, REFUND_PARTIAL, ReservationService, amendment_refund, cancellation_refund,
)
from bookings.tasks import release_stale_pending_reservations
from parking.services import SlotAllocator
from payments.models import Payment, WalletTransaction
from payments.services import WalletService
from utils.exceptions import (
    AlreadyPaid, InsufficientBalance, InvalidAmendment, InvalidState, ReservationNotFound, SlotUnavailable,
)
from .factories import NOW, fixed_clock, make_lot, make_reservation, make_slots, make_user

START = NOW + timedelta(hours=3)


class RefundPolicyTestCase(TestCase):
    def test_refund_tiers(self):
        price = Decimal('100')
        self.assertEqual(cancellation_refund(price, START, START - timedelta(hours=2)), (Decimal('100'), REFUND_FULL))
        self.assertEqual(cancellation_refund(price, START, START - timedelta(minutes=30)), (Decimal('100'), REFUND_FULL))
        self.assertEqual(cancellation_refund(price, START, START - timedelta(minutes=29)), (Decimal('50'), REFUND_PARTIAL))
        self.assertEqual(cancellation_refund(price, START, START), (Decimal('50'), REFUND_PARTIAL))
        self.assertEqual(cancellation_refund(price, START, START + timedelta(minutes=1)), (Decimal('0'), REFUND_NONE))

    def test_refund_never_grows_closer_to_start(self):
        price = Decimal('115')
        refunds = [
            cancellation_refund(price, START, START - timedelta(minutes=minutes))[0]
            for minutes in range(120, -30, -5)
        ]
        self.assertEqual(refunds, sorted(refunds, reverse=True))

    def test_partial_refund_rounds_half_up(self):
        self.assertEqual(cancellation_refund(Decimal('115'), START, START)[0], Decimal('58'))

    def test_amendment_refund_is_half_of_freed_time(self):
        refund = amendment_refund(
            Decimal('100'), START, START + timedelta(hours=2), START, START + timedelta(hours=1)
        )
        self.assertEqual(refund, Decimal('25'))


class ReservationLifecycleTestCase(TestCase):
    def setUp(self):
        self.user = make_user()
        self.lot = make_lot(base_price_per_hour=50)
        self.slot = make_slots(self.lot, 1)[0]
        self.reservation = make_reservation(self.user, self.slot, START, hours=2, price=Decimal('100'))
        self.rng = mock.Mock()
        self.rng.randint.return_value = 10

    def service(self, now=NOW):
        return ReservationService(clock=fixed_clock(now), rng=self.rng)

    def pay(self):
        WalletService.deposit(self.user, 500)
        return self.service().pay(self.reservation.id, self.user)

    def test_other_users_reservation_is_not_found(self):
        with self.assertRaises(ReservationNotFound):
            self.service().cancel(self.reservation.id, make_user())

    def test_pay_from_wallet(self):
        result = self.pay()

        self.assertEqual(result.reservation.payment_status, 'paid')
        self.assertEqual(result.payment.status, 'completed')
        self.assertEqual(result.payment.payment_method, 'wallet')
        self.assertEqual(result.loyalty_points_awarded, 10)

        wallet = WalletService.get_or_create_wallet(self.user)
        self.assertEqual(wallet.balance, Decimal('400'))
        self.assertEqual(wallet.loyalty_points, 10)
        self.rng.randint.assert_called_once_with(5, 15)

    def test_pay_twice(self):
        self.pay()
        with self.assertRaises(AlreadyPaid):
            self.service().pay(self.reservation.id, self.user)
        self.assertEqual(Payment.objects.filter(reservation=self.reservation).count(), 1)

    def test_pay_with_insufficient_balance(self):
        WalletService.deposit(self.user, 50)

        with self.assertRaises(InsufficientBalance):
            self.service().pay(self.reservation.id, self.user)

        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.payment_status, 'pending')
        self.assertEqual(WalletService.get_or_create_wallet(self.user).balance, Decimal('50'))

    def test_cancelled_reservation_cannot_be_paid(self):
        self.service().cancel(self.reservation.id, self.user)
        with self.assertRaises(InvalidState):
            self.service().pay(self.reservation.id, self.user)

    def test_cancel_unpaid(self):
        result = self.service().cancel(self.reservation.id, self.user)

        self.assertEqual(result.reservation.status, 'cancelled')
        self.assertEqual(result.refund_amount, Decimal('0'))
        self.assertIsNone(result.refund_reason)
        self.assertFalse(WalletTransaction.objects.filter(transaction_type='refund').exists())

    def test_cancel_early_refunds_everything(self):
        self.pay()
        result = self.service(START - timedelta(hours=1)).cancel(self.reservation.id, self.user)

        self.assertEqual(result.refund_amount, Decimal('100'))
        self.assertEqual(result.refund_reason, REFUND_FULL)
        self.assertEqual(result.reservation.payment_status, 'refunded')
        self.assertEqual(WalletService.get_or_create_wallet(self.user).balance, Decimal('500'))

    def test_cancel_late_refunds_half(self):
        self.pay()
        result = self.service(START - timedelta(minutes=10)).cancel(self.reservation.id, self.user)

        self.assertEqual(result.refund_amount, Decimal('50'))
        self.assertEqual(result.refund_reason, REFUND_PARTIAL)
        refund = WalletTransaction.objects.get(transaction_type='refund')
        self.assertEqual(refund.amount, Decimal('50'))
        self.assertEqual(refund.reservation_id, self.reservation.id)

    def test_cancel_after_start_refunds_nothing(self):
        self.pay()
        result = self.service(START + timedelta(minutes=5)).cancel(self.reservation.id, self.user)

        self.assertEqual(result.refund_amount, Decimal('0'))
        self.assertEqual(result.refund_reason, REFUND_NONE)
        self.assertEqual(result.reservation.status, 'cancelled')
        self.assertEqual(result.reservation.payment_status, 'paid')

    def test_cancel_twice(self):
        self.service().cancel(self.reservation.id, self.user)
        with self.assertRaises(InvalidState):
            self.service().cancel(self.reservation.id, self.user)

    def test_cancelled_slot_can_be_reserved_again(self):
        self.service().cancel(self.reservation.id, self.user)
        again = SlotAllocator().reserve(
            self.lot.id, self.slot.id, START, START + timedelta(hours=2), make_user()
        )
        self.assertEqual(again.status, 'active')

    def test_shorten_reservation(self):
        self.pay()
        result = self.service().amend(self.reservation.id, self.user, new_end=START + timedelta(hours=1))

        self.assertEqual(result.refund_amount, Decimal('25'))
        self.assertEqual(result.reservation.end_time, START + timedelta(hours=1))
        self.assertEqual(result.reservation.price, Decimal('75'))
        self.assertEqual(WalletService.get_or_create_wallet(self.user).balance, Decimal('425'))

    def test_cancel_after_shortening_refunds_only_what_is_left(self):
        self.pay()
        self.service().amend(self.reservation.id, self.user, new_end=START + timedelta(hours=1))

        result = self.service(START - timedelta(hours=1)).cancel(self.reservation.id, self.user)

        self.assertEqual(result.refund_amount, Decimal('75'))
        refunded = sum(
            WalletTransaction.objects.filter(transaction_type='refund').values_list('amount', flat=True)
        )
        self.assertEqual(refunded, Decimal('100'))
        self.assertEqual(WalletService.get_or_create_wallet(self.user).balance, Decimal('500'))

    def test_late_cancel_after_shortening(self):
        self.pay()
        self.service().amend(self.reservation.id, self.user, new_end=START + timedelta(hours=1))

        result = self.service(START - timedelta(minutes=10)).cancel(self.reservation.id, self.user)

        self.assertEqual(result.refund_amount, Decimal('38'))
        self.assertEqual(WalletService.get_or_create_wallet(self.user).balance, Decimal('463'))

    def test_amend_rejections(self):
        with self.assertRaises(InvalidAmendment):
            self.service().amend(self.reservation.id, self.user, new_end=START + timedelta(hours=1))

        self.pay()
        service = self.service()
        with self.assertRaises(InvalidAmendment):
            service.amend(self.reservation.id, self.user)
        with self.assertRaises(InvalidAmendment):
            service.amend(self.reservation.id, self.user, new_end=START + timedelta(hours=3))
        with self.assertRaises(InvalidAmendment):
            service.amend(self.reservation.id, self.user, new_start=START - timedelta(hours=1))
        with self.assertRaises(InvalidAmendment):
            service.amend(self.reservation.id, self.user, new_start=START + timedelta(hours=2))
        with self.assertRaises(InvalidAmendment):
            service.amend(self.reservation.id, self.user, new_start=START, new_end=START + timedelta(hours=2))

    @override_settings(PENDING_RESERVATION_TTL_MINUTES=30)
    def test_release_stale_pending(self):
        paid = make_reservation(self.user, self.slot, START + timedelta(hours=4), payment_status='paid')
        fresh = make_reservation(self.user, self.slot, START + timedelta(hours=8))
        Reservation.objects.filter(pk__in=[self.reservation.pk, paid.pk]).update(created_at=NOW - timedelta(hours=1))
        Reservation.objects.filter(pk=fresh.pk).update(created_at=NOW)

        released = self.service().release_stale_pending(30)

        self.assertEqual(released, 1)
        self.reservation.refresh_from_db()
        paid.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(self.reservation.status, 'cancelled')
        self.assertEqual(paid.status, 'active')
        self.assertEqual(fresh.status, 'active')

    @override_settings(PENDING_RESERVATION_TTL_MINUTES=0)
    def test_release_task_disabled_by_default(self):
        self.assertEqual(release_stale_pending_reservations(), 0)
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, 'active')


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentReservationTestCase(TransactionTestCase):
    def test_one_winner_per_slot(self):
        lot = make_lot()
        slot = make_slots(lot, 1)[0]
        users = [make_user() for _ in range(4)]
        outcomes = []
        barrier = threading.Barrier(len(users))

        def attempt(user):
            try:
                barrier.wait()
                SlotAllocator().reserve(lot.id, slot.id, START, START + timedelta(hours=2), user)
                outcomes.append('reserved')
            except SlotUnavailable:
                outcomes.append('refused')
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(user,)) for user in users]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count('reserved'), 1)
        self.assertEqual(outcomes.count('refused'), len(users) - 1)
        self.assertEqual(Reservation.objects.filter(parking_slot=slot, status='active').count(), 1)
