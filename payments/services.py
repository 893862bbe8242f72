# ==================== PAYMENTS/SERVICES.PY ====================
import logging
import random
from decimal import Decimal

import razorpay
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from utils.exceptions import InvalidRequest, InsufficientBalance, PaymentFailed
from utils.pricing import loyalty_points, round_amount
from .models import Wallet, WalletTransaction, Payment

logger = logging.getLogger(__name__)


class RazorpayService:
    """Razorpay payment gateway integration"""

    def __init__(self):
        self.client = razorpay.Client(
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
        )

    def create_order(self, amount, receipt, notes=None):
        """Create Razorpay order"""
        order_data = {
            'amount': int(Decimal(amount) * 100),  # Amount in paise
            'currency': settings.RAZORPAY_CURRENCY,
            'receipt': receipt,
            'notes': notes or {},
        }

        try:
            razorpay_order = self.client.order.create(data=order_data)
        except Exception as e:
            logger.error(f"Error creating Razorpay order for {receipt}: {str(e)}")
            raise PaymentFailed(f"Failed to create order: {str(e)}")

        logger.info(f"Razorpay order created: {razorpay_order['id']} for {receipt}")
        return razorpay_order

    def verify_payment(self, razorpay_order_id, razorpay_payment_id, razorpay_signature):
        """Verify Razorpay payment signature"""
        try:
            self.client.utility.verify_payment_signature({
                'razorpay_order_id': razorpay_order_id,
                'razorpay_payment_id': razorpay_payment_id,
                'razorpay_signature': razorpay_signature
            })
            logger.info(f"Payment verified: {razorpay_payment_id}")
            return True

        except razorpay.errors.SignatureVerificationError:
            logger.error(f"Signature verification failed for payment: {razorpay_payment_id}")
            return False


class WalletService:
    """Wallet ledger: every balance change writes a WalletTransaction"""

    @staticmethod
    def get_or_create_wallet(user):
        wallet, created = Wallet.objects.get_or_create(user=user)
        if created:
            logger.info(f"Wallet created for {user.username}")
        return wallet

    @staticmethod
    def _locked_wallet(user):
        WalletService.get_or_create_wallet(user)
        return Wallet.objects.select_for_update().get(user=user)

    @staticmethod
    @transaction.atomic
    def deposit(user, amount, description='Wallet top-up'):
        amount = Decimal(str(amount))
        if amount <= 0:
            raise InvalidRequest('Amount must be positive.')

        wallet = WalletService._locked_wallet(user)
        wallet.balance += amount
        wallet.save(update_fields=['balance', 'updated_at'])

        WalletTransaction.objects.create(
            wallet=wallet,
            transaction_type='deposit',
            amount=amount,
            description=description,
        )
        logger.info(f"Deposit of ₹{amount} to {user.username}'s wallet, balance ₹{wallet.balance}")
        return wallet

    @staticmethod
    @transaction.atomic
    def debit(user, amount, description, reservation=None, ride=None):
        """Take ``amount`` from the wallet or raise InsufficientBalance"""
        amount = Decimal(str(amount))
        wallet = WalletService._locked_wallet(user)

        if wallet.balance < amount:
            logger.warning(
                f"Insufficient balance for {user.username}: needs ₹{amount}, has ₹{wallet.balance}"
            )
            raise InsufficientBalance()

        wallet.balance -= amount
        wallet.save(update_fields=['balance', 'updated_at'])

        WalletTransaction.objects.create(
            wallet=wallet,
            transaction_type='payment',
            amount=-amount,
            description=description,
            reservation=reservation,
            ride=ride,
        )
        logger.info(f"Debited ₹{amount} from {user.username}: {description}")
        return wallet

    @staticmethod
    @transaction.atomic
    def credit(user, amount, description, reservation=None, ride=None, transaction_type='refund'):
        amount = Decimal(str(amount))
        wallet = WalletService._locked_wallet(user)

        wallet.balance += amount
        wallet.save(update_fields=['balance', 'updated_at'])

        WalletTransaction.objects.create(
            wallet=wallet,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            reservation=reservation,
            ride=ride,
        )
        logger.info(f"Credited ₹{amount} to {user.username}: {description}")
        return wallet

    @staticmethod
    @transaction.atomic
    def add_loyalty_points(user, points):
        wallet = WalletService._locked_wallet(user)
        wallet.loyalty_points += points
        wallet.save(update_fields=['loyalty_points', 'updated_at'])
        return wallet

    @staticmethod
    @transaction.atomic
    def redeem_loyalty_points(user):
        """Convert every point into balance at LOYALTY_REDEMPTION_RATE.

        Returns ``(wallet, amount_added, points_redeemed)``.
        """
        wallet = WalletService._locked_wallet(user)
        points = wallet.loyalty_points
        if points <= 0:
            raise InvalidRequest('No loyalty points to redeem.')

        amount = round_amount(Decimal(points) * Decimal(str(settings.LOYALTY_REDEMPTION_RATE)))
        wallet.balance += amount
        wallet.loyalty_points = 0
        wallet.save(update_fields=['balance', 'loyalty_points', 'updated_at'])

        WalletTransaction.objects.create(
            wallet=wallet,
            transaction_type='loyalty_redemption',
            amount=amount,
            description=f'Redeemed {points} loyalty points',
        )
        logger.info(f"{user.username} redeemed {points} points for ₹{amount}")
        return wallet, amount, points


class LoyaltyService:
    """Bonus points on every successful payment"""

    @staticmethod
    def award(user, amount, rng=None):
        rng = rng or random
        percent = rng.randint(settings.LOYALTY_MIN_PERCENT, settings.LOYALTY_MAX_PERCENT)
        points = loyalty_points(amount, percent)
        if points:
            WalletService.add_loyalty_points(user, points)
        logger.info(f"Awarded {points} loyalty points ({percent}%) to {user.username}")
        return points


class PaymentService:
    """Charge a user for a reservation or a ride.

    ``wallet`` debits the ledger; ``razorpay`` settles the order opened by
    ``create_order`` for the same booking and amount, once the client-completed
    checkout signature verifies. Either way a completed Payment row
    is written. Callers run this inside their own transaction so the charge
    and the booking status change commit together.
    """

    METHODS = ('wallet', 'razorpay')

    @staticmethod
    def collect(user, amount, method='wallet', reservation=None, ride=None, gateway_data=None):
        if method not in PaymentService.METHODS:
            raise InvalidRequest(f'Unsupported payment method: {method}')

        target = f'reservation {reservation.id}' if reservation is not None else f'ride {ride.id}'

        if method == 'wallet':
            WalletService.debit(
                user, amount, f'Payment for {target}',
                reservation=reservation, ride=ride,
            )
            payment = Payment.objects.create(
                user=user,
                reservation=reservation,
                ride=ride,
                amount=amount,
                payment_method='wallet',
                status='completed',
            )
        else:
            payment = PaymentService._collect_razorpay(user, amount, reservation, ride, gateway_data or {})

        logger.info(f"Payment {payment.id} of ₹{amount} via {method} completed for {target}")
        return payment

    @staticmethod
    def _collect_razorpay(user, amount, reservation, ride, gateway_data):
        order_id = gateway_data.get('razorpay_order_id')
        payment_id = gateway_data.get('razorpay_payment_id')
        signature = gateway_data.get('razorpay_signature')
        if not (order_id and payment_id and signature):
            raise InvalidRequest('razorpay_order_id, razorpay_payment_id and razorpay_signature are required.')

        if Payment.objects.filter(razorpay_payment_id=payment_id).exists():
            raise PaymentFailed('This gateway payment has already been used.')

        payment = Payment.objects.select_for_update().filter(
            user=user,
            razorpay_order_id=order_id,
            status='initiated',
        ).first()
        if payment is None:
            logger.warning(f"Razorpay order {order_id} has no open payment for {user.username}")
            raise PaymentFailed('No open payment order found for this checkout.')

        # the order settles only the booking and amount it was opened for
        target_matches = (
            payment.reservation_id == (reservation.id if reservation is not None else None)
            and payment.ride_id == (ride.id if ride is not None else None)
        )
        if not target_matches or payment.amount != Decimal(str(amount)):
            logger.warning(
                f"Razorpay order {order_id} opened for ₹{payment.amount} "
                f"(reservation {payment.reservation_id}, ride {payment.ride_id}) cannot settle ₹{amount}"
            )
            raise PaymentFailed('Payment order does not match this booking or amount.')

        if not RazorpayService().verify_payment(order_id, payment_id, signature):
            raise PaymentFailed('Payment verification failed.')

        payment.razorpay_payment_id = payment_id
        payment.status = 'completed'
        payment.save()
        return payment

    @staticmethod
    def create_order(user, amount, reservation=None, ride=None):
        """Open a Razorpay order the client completes before paying"""
        target = f'reservation_{reservation.id}' if reservation is not None else f'ride_{ride.id}'
        receipt = f'{target}_{int(timezone.now().timestamp())}'

        razorpay_order = RazorpayService().create_order(
            amount, receipt, notes={'user': user.username, 'target': target},
        )
        payment = Payment.objects.create(
            user=user,
            reservation=reservation,
            ride=ride,
            amount=amount,
            payment_method='razorpay',
            status='initiated',
            razorpay_order_id=razorpay_order['id'],
        )
        return payment, razorpay_order
