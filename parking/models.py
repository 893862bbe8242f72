from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class MetroStation(models.Model):
    name = models.CharField(max_length=200)
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class ParkingLot(models.Model):
    metro_station = models.ForeignKey(MetroStation, on_delete=models.PROTECT, related_name='parking_lots')

    name = models.CharField(max_length=200)
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])

    # Capacity
    total_slots = models.PositiveIntegerField()
    occupied_slots = models.PositiveIntegerField(default=0)  # cache of slots in 'occupied' status

    # Pricing
    base_price_per_hour = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=settings.PARKING_BASE_PRICE_PER_HOUR,
        validators=[MinValueValidator(0)],
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['metro_station']),
        ]

    def __str__(self):
        return f"{self.name} ({self.metro_station.name})"

    @property
    def slot_ids(self):
        return list(self.slots.order_by('id').values_list('id', flat=True))

    def refresh_occupancy(self):
        """Recount occupied slots into the cached counter"""
        self.occupied_slots = self.slots.filter(status='occupied').count()
        ParkingLot.objects.filter(pk=self.pk).update(occupied_slots=self.occupied_slots)
        return self.occupied_slots


class ParkingSlot(models.Model):
    STATUS_CHOICES = (
        ('available', 'Available'),
        ('occupied', 'Occupied'),
        ('maintenance', 'Maintenance'),
    )

    lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='slots')
    slot_number = models.CharField(max_length=20)
    zone = models.CharField(max_length=20, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['zone', 'slot_number']
        unique_together = ('lot', 'slot_number')

    def __str__(self):
        return f"{self.slot_number} ({self.lot.name})"


class TimeRestriction(models.Model):
    """Admin blackout window on a slot, independent of reservations"""
    REASON_CHOICES = (
        ('maintenance', 'Maintenance'),
        ('reserved', 'Reserved'),
        ('other', 'Other'),
    )

    slot = models.ForeignKey(ParkingSlot, on_delete=models.CASCADE, related_name='time_restrictions')
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    reason = models.CharField(max_length=20, choices=REASON_CHOICES, default='maintenance')
    description = models.CharField(max_length=500, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        # insertion order decides which restriction is reported first
        ordering = ['id']

    def __str__(self):
        return f"{self.get_reason_display()} on {self.slot.slot_number}: {self.start_time} - {self.end_time}"
