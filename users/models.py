from django.db import models
from django.db.models import F
from django.contrib.auth.models import AbstractUser
from phonenumber_field.modelfields import PhoneNumberField


class CustomUser(AbstractUser):
    LAST_MILE_MODE_CHOICES = (
        ('cab', 'Cab'),
        ('shuttle', 'Shuttle'),
        ('e-rickshaw', 'E-Rickshaw'),
    )

    phone_number = PhoneNumberField(unique=True, null=True, blank=True)

    # Preferences
    default_metro_station = models.ForeignKey(
        'parking.MetroStation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    last_mile_mode = models.CharField(max_length=20, choices=LAST_MILE_MODE_CHOICES, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.username


class FrequentStation(models.Model):
    """Metro stations a user parks at, with a visit counter"""
    user = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='frequent_stations')
    station = models.ForeignKey('parking.MetroStation', on_delete=models.CASCADE, related_name='frequent_visitors')
    visit_count = models.PositiveIntegerField(default=1)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('user', 'station')
        ordering = ['-visit_count', 'station__name']

    def __str__(self):
        return f"{self.user.username} - {self.station.name} ({self.visit_count})"

    @classmethod
    def record_visit(cls, user, station):
        """Increment the visit counter, or start it at 1"""
        updated = cls.objects.filter(user=user, station=station).update(visit_count=F('visit_count') + 1)
        if not updated:
            cls.objects.create(user=user, station=station, visit_count=1)
