# ==================== PAYMENTS/MODELS.PY ====================
from django.db import models
from django.core.validators import MinValueValidator
import logging

logger = logging.getLogger(__name__)


class Wallet(models.Model):
    """User wallet: spendable balance plus loyalty points"""
    user = models.OneToOneField(
        'users.CustomUser',
        on_delete=models.CASCADE,
        related_name='wallet'
    )
    balance = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)]
    )
    loyalty_points = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username} - Balance: ₹{self.balance} | Points: {self.loyalty_points}"


class WalletTransaction(models.Model):
    """Ledger line; amount is signed (payments are negative)"""
    TRANSACTION_TYPE_CHOICES = (
        ('deposit', 'Deposit'),
        ('payment', 'Payment'),
        ('refund', 'Refund'),
        ('loyalty_redemption', 'Loyalty Redemption'),
    )

    wallet = models.ForeignKey(Wallet, on_delete=models.CASCADE, related_name='transactions')
    transaction_type = models.CharField(max_length=30, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    description = models.CharField(max_length=500)

    reservation = models.ForeignKey(
        'bookings.Reservation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='wallet_transactions'
    )
    ride = models.ForeignKey(
        'rides.Ride',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='wallet_transactions'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['wallet', 'created_at']),
        ]

    def __str__(self):
        return f"{self.wallet.user.username} - {self.transaction_type} - ₹{self.amount}"


class Payment(models.Model):
    """Successful charge for a reservation or a ride"""
    STATUS_CHOICES = (
        ('initiated', 'Initiated'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    )

    PAYMENT_METHOD_CHOICES = (
        ('wallet', 'Wallet'),
        ('razorpay', 'Razorpay'),
    )

    user = models.ForeignKey(
        'users.CustomUser',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    reservation = models.ForeignKey(
        'bookings.Reservation',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='payments'
    )
    ride = models.ForeignKey(
        'rides.Ride',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='payments'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='initiated')

    # Razorpay
    razorpay_order_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    razorpay_payment_id = models.CharField(max_length=100, null=True, blank=True, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['payment_method']),
        ]

    def __str__(self):
        target = f"reservation {self.reservation_id}" if self.reservation_id else f"ride {self.ride_id}"
        return f"Payment {self.id} - {target} - {self.status}"
