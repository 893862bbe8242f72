# ==================== RIDES/SERIALIZERS.PY ====================
from rest_framework import serializers
from phonenumber_field.serializerfields import PhoneNumberField
from .models import Driver, Ride, Vehicle


class VehicleSerializer(serializers.ModelSerializer):
    base_station_name = serializers.CharField(source='base_station.name', read_only=True)
    driver = serializers.SerializerMethodField()

    class Meta:
        model = Vehicle
        fields = ['id', 'type', 'registration_number', 'model', 'capacity', 'status',
                  'base_station', 'base_station_name', 'driver', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_driver(self, obj):
        driver = obj.assigned_driver
        if driver is None:
            return None
        return {'id': driver.id, 'name': driver.name, 'status': driver.status}


class VehicleWriteSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Vehicle.TYPE_CHOICES)
    registration_number = serializers.CharField(max_length=50)
    model = serializers.CharField(max_length=100)
    capacity = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=Vehicle.STATUS_CHOICES, required=False)
    base_station = serializers.IntegerField()


class DriverSerializer(serializers.ModelSerializer):
    vehicle = VehicleSerializer(read_only=True)

    class Meta:
        model = Driver
        fields = ['id', 'name', 'phone_number', 'license_number', 'rating', 'status', 'vehicle',
                  'current_latitude', 'current_longitude', 'created_at', 'updated_at']
        read_only_fields = fields


class DriverWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone_number = PhoneNumberField()
    license_number = serializers.CharField(max_length=50)
    rating = serializers.DecimalField(max_digits=3, decimal_places=2, min_value=1, max_value=5, required=False)
    status = serializers.ChoiceField(choices=Driver.STATUS_CHOICES, required=False)
    vehicle = serializers.IntegerField()
    current_latitude = serializers.FloatField(min_value=-90, max_value=90, required=False)
    current_longitude = serializers.FloatField(min_value=-180, max_value=180, required=False)


class RideSerializer(serializers.ModelSerializer):
    driver_name = serializers.CharField(source='driver.name', read_only=True)
    driver_rating = serializers.DecimalField(source='driver.rating', max_digits=3, decimal_places=2, read_only=True)
    vehicle_type = serializers.CharField(source='vehicle.type', read_only=True)
    vehicle_registration_number = serializers.CharField(source='vehicle.registration_number', read_only=True)

    class Meta:
        model = Ride
        fields = ['id', 'driver', 'driver_name', 'driver_rating', 'vehicle', 'vehicle_type',
                  'vehicle_registration_number', 'parent_ride',
                  'pickup_name', 'pickup_latitude', 'pickup_longitude',
                  'dropoff_name', 'dropoff_latitude', 'dropoff_longitude', 'distance',
                  'ride_type', 'scheduled_time', 'start_time', 'end_time',
                  'seats_booked', 'is_shared', 'fare', 'status', 'payment_status', 'qr_code',
                  'created_at', 'updated_at']
        read_only_fields = fields


class LocationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


class RideBookingSerializer(serializers.Serializer):
    pickup = LocationSerializer()
    dropoff = LocationSerializer()
    ride_type = serializers.ChoiceField(choices=Ride.RIDE_TYPE_CHOICES)
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)
    vehicle_type = serializers.ChoiceField(choices=Vehicle.TYPE_CHOICES)
    seats = serializers.IntegerField()
    is_shared = serializers.BooleanField(default=False)

    def validate(self, data):
        if data['ride_type'] == 'scheduled' and not data.get('scheduled_time'):
            raise serializers.ValidationError({'scheduled_time': 'Scheduled time is required for scheduled rides'})
        return data


class RideAvailabilitySerializer(serializers.Serializer):
    vehicle_type = serializers.ChoiceField(choices=Vehicle.TYPE_CHOICES)
    seats = serializers.IntegerField()
    is_shared = serializers.BooleanField(default=False)
    ride_type = serializers.ChoiceField(choices=Ride.RIDE_TYPE_CHOICES, default='on-demand')
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, data):
        if data['ride_type'] == 'scheduled' and not data.get('scheduled_time'):
            raise serializers.ValidationError({'scheduled_time': 'Scheduled time is required for scheduled rides'})
        return data


class RideUpdateSerializer(serializers.Serializer):
    is_shared = serializers.BooleanField()
