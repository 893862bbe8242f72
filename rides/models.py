from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from phonenumber_field.modelfields import PhoneNumberField

from bookings.models import generate_qr_code
from parking.models import MetroStation
from users.models import CustomUser


class Vehicle(models.Model):
    TYPE_CHOICES = (
        ('e-rickshaw', 'E-Rickshaw'),
        ('cab', 'Cab'),
        ('shuttle', 'Shuttle'),
    )
    STATUS_CHOICES = (
        ('active', 'Active'),
        ('maintenance', 'Maintenance'),
        ('inactive', 'Inactive'),
    )
    CAPACITY_BY_TYPE = {
        'e-rickshaw': 3,
        'cab': 4,
        'shuttle': 8,
    }

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    registration_number = models.CharField(max_length=50, unique=True, db_index=True)
    model = models.CharField(max_length=100)
    capacity = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    base_station = models.ForeignKey(MetroStation, on_delete=models.PROTECT, related_name='vehicles')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['type', 'registration_number']

    def __str__(self):
        return f"{self.registration_number} ({self.get_type_display()})"

    @classmethod
    def default_capacity(cls, vehicle_type):
        return cls.CAPACITY_BY_TYPE.get(vehicle_type, 1)

    @property
    def assigned_driver(self):
        """Driver holding this vehicle; Driver.vehicle is the source of truth"""
        try:
            return self.driver
        except Driver.DoesNotExist:
            return None

    def save(self, *args, **kwargs):
        if not self.capacity:
            self.capacity = self.default_capacity(self.type)
        super().save(*args, **kwargs)


class Driver(models.Model):
    STATUS_CHOICES = (
        ('available', 'Available'),
        ('on_ride', 'On Ride'),
        ('offline', 'Offline'),
    )

    name = models.CharField(max_length=200)
    phone_number = PhoneNumberField()
    license_number = models.CharField(max_length=50, unique=True)
    rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=5,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available', db_index=True)
    vehicle = models.OneToOneField(Vehicle, on_delete=models.PROTECT, related_name='driver')

    # Last known position
    current_latitude = models.FloatField(default=0)
    current_longitude = models.FloatField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.license_number})"


class Ride(models.Model):
    RIDE_TYPE_CHOICES = (
        ('on-demand', 'On Demand'),
        ('scheduled', 'Scheduled'),
    )
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    )
    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
    )

    # Relations
    user = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='rides')
    driver = models.ForeignKey(Driver, on_delete=models.PROTECT, related_name='rides')
    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name='rides')
    parent_ride = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='pooled_rides'
    )

    # Route
    pickup_name = models.CharField(max_length=200)
    pickup_latitude = models.FloatField()
    pickup_longitude = models.FloatField()
    dropoff_name = models.CharField(max_length=200)
    dropoff_latitude = models.FloatField()
    dropoff_longitude = models.FloatField()
    distance = models.FloatField()  # In kilometers

    # Timing
    ride_type = models.CharField(max_length=20, choices=RIDE_TYPE_CHOICES)
    scheduled_time = models.DateTimeField(null=True, blank=True)
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    # Seats & fare
    seats_booked = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    is_shared = models.BooleanField(default=False)
    fare = models.DecimalField(max_digits=10, decimal_places=2)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    qr_code = models.CharField(max_length=64, unique=True, default=generate_qr_code, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['driver', 'status']),
            models.Index(fields=['status', 'is_shared']),
        ]

    def __str__(self):
        return f"Ride {self.id} - {self.pickup_name} to {self.dropoff_name}"

    @property
    def governs_trip(self):
        """Parent or private rides drive driver availability; pooled children never do"""
        return not self.is_shared or self.parent_ride_id is None

    def booked_seats_total(self):
        """Seats booked on this ride plus every ride pooled onto it"""
        pooled = self.pooled_rides.aggregate(total=models.Sum('seats_booked'))['total'] or 0
        return self.seats_booked + pooled
