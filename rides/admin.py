from django.contrib import admin
from .models import Driver, Ride, Vehicle


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['registration_number', 'type', 'model', 'capacity', 'status', 'base_station']
    list_filter = ['type', 'status', 'base_station']
    search_fields = ['registration_number', 'model']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ['name', 'license_number', 'phone_number', 'rating', 'status', 'vehicle']
    list_filter = ['status']
    search_fields = ['name', 'license_number', 'vehicle__registration_number']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'driver', 'vehicle', 'ride_type', 'seats_booked', 'is_shared',
                    'fare', 'status', 'payment_status', 'parent_ride', 'created_at']
    list_filter = ['status', 'payment_status', 'ride_type', 'is_shared']
    search_fields = ['user__username', 'driver__name', 'vehicle__registration_number', 'qr_code']
    readonly_fields = ['qr_code', 'created_at', 'updated_at']
    raw_id_fields = ['parent_ride']
