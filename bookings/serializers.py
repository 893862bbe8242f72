# ==================== BOOKINGS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import Reservation


class ReservationSerializer(serializers.ModelSerializer):
    parking_lot_name = serializers.CharField(source='parking_lot.name', read_only=True)
    slot_number = serializers.CharField(source='parking_slot.slot_number', read_only=True)
    zone = serializers.CharField(source='parking_slot.zone', read_only=True)
    duration_hours = serializers.ReadOnlyField()

    class Meta:
        model = Reservation
        fields = ['id', 'parking_lot', 'parking_lot_name', 'parking_slot', 'slot_number', 'zone',
                  'qr_code', 'start_time', 'end_time', 'duration_hours', 'status', 'payment_status',
                  'price', 'created_at', 'updated_at']
        read_only_fields = fields


class ReservationCreateSerializer(serializers.Serializer):
    parking_lot = serializers.IntegerField()
    parking_slot = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, data):
        if data['start_time'] >= data['end_time']:
            raise serializers.ValidationError({'end_time': 'End time must be after start time'})
        return data


class ReservationAmendSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)

    def validate(self, data):
        if not data:
            raise serializers.ValidationError('New start time or end time is required')
        return data
