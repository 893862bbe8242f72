import secrets

from django.db import models
from users.models import CustomUser
from parking.models import ParkingLot, ParkingSlot


def generate_qr_code():
    """Opaque token, unrelated to the primary key"""
    return secrets.token_hex(16)


class Reservation(models.Model):
    STATUS_CHOICES = (
        ('active', 'Active'),
        ('cancelled', 'Cancelled'),
        ('completed', 'Completed'),
    )
    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
    )

    # Relations
    user = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='reservations')
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='reservations')
    parking_slot = models.ForeignKey(ParkingSlot, on_delete=models.CASCADE, related_name='reservations')

    qr_code = models.CharField(max_length=64, unique=True, default=generate_qr_code, editable=False)

    # Window, half-open [start_time, end_time)
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    price = models.DecimalField(max_digits=10, decimal_places=2)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['parking_slot', 'start_time', 'end_time']),
        ]

    def __str__(self):
        return f"Reservation {self.id} - {self.user.username} at {self.parking_slot}"

    @property
    def duration_hours(self):
        return (self.end_time - self.start_time).total_seconds() / 3600
