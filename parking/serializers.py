# ==================== PARKING/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import MetroStation, ParkingLot, ParkingSlot, TimeRestriction


class MetroStationSerializer(serializers.ModelSerializer):
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = MetroStation
        fields = ['id', 'name', 'latitude', 'longitude', 'distance_km', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_distance_km(self, obj):
        """Set only on results of a nearby search"""
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None


class TimeRestrictionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TimeRestriction
        fields = ['id', 'start_time', 'end_time', 'reason', 'description']


class ParkingSlotSerializer(serializers.ModelSerializer):
    time_restrictions = TimeRestrictionSerializer(many=True, read_only=True)

    class Meta:
        model = ParkingSlot
        fields = ['id', 'lot', 'slot_number', 'zone', 'status', 'time_restrictions', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ParkingSlotWriteSerializer(serializers.Serializer):
    """Lot is an id so unknown lots surface as LotNotFound"""
    lot = serializers.IntegerField()
    slot_number = serializers.CharField(max_length=20)
    zone = serializers.CharField(max_length=20)
    status = serializers.ChoiceField(choices=ParkingSlot.STATUS_CHOICES, required=False)


class ParkingSlotUpdateSerializer(serializers.Serializer):
    slot_number = serializers.CharField(max_length=20, required=False)
    zone = serializers.CharField(max_length=20, required=False)
    status = serializers.ChoiceField(choices=ParkingSlot.STATUS_CHOICES, required=False)


class BulkSlotCreateSerializer(serializers.Serializer):
    lot = serializers.IntegerField()
    zone = serializers.CharField(max_length=10)
    start_number = serializers.IntegerField(min_value=0)
    count = serializers.IntegerField(min_value=1, max_value=500)


class TimeRestrictionCreateSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    reason = serializers.ChoiceField(choices=TimeRestriction.REASON_CHOICES, default='maintenance')
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class ParkingLotSerializer(serializers.ModelSerializer):
    metro_station_name = serializers.CharField(source='metro_station.name', read_only=True)
    slot_ids = serializers.ReadOnlyField()

    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'metro_station', 'metro_station_name', 'latitude', 'longitude',
                  'total_slots', 'occupied_slots', 'base_price_per_hour', 'slot_ids',
                  'created_at', 'updated_at']
        read_only_fields = ['occupied_slots', 'created_at', 'updated_at']


class ParkingLotWriteSerializer(serializers.Serializer):
    """Station is an id so unknown stations surface as StationNotFound"""
    name = serializers.CharField(max_length=200)
    metro_station = serializers.IntegerField()
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    total_slots = serializers.IntegerField(min_value=0)
    base_price_per_hour = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


class AvailabilityQuerySerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()


class SlotAvailabilitySerializer(serializers.Serializer):
    slot_id = serializers.IntegerField()
    slot_number = serializers.CharField()
    zone = serializers.CharField()
    status = serializers.CharField()
    available = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    description = serializers.CharField(allow_blank=True)


class LotAvailabilitySerializer(serializers.Serializer):
    lot_id = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    total_count = serializers.IntegerField()
    available_count = serializers.IntegerField()
    availability_percentage = serializers.FloatField()
    price_multiplier = serializers.DecimalField(max_digits=4, decimal_places=2)
    zones = serializers.SerializerMethodField()

    def get_zones(self, obj):
        return {
            zone: SlotAvailabilitySerializer(slots, many=True).data
            for zone, slots in obj.by_zone().items()
        }
