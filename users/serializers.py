# ==================== USERS/SERIALIZERS.PY ====================
from rest_framework import serializers
from django.contrib.auth import authenticate
from parking.models import MetroStation
from .models import CustomUser, FrequentStation


class UserRegistrationSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = CustomUser
        fields = ['username', 'email', 'first_name', 'last_name', 'phone_number', 'password', 'password_confirm']

    def validate(self, data):
        if data['password'] != data['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords do not match"})
        return data

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = CustomUser.objects.create_user(password=password, **validated_data)
        return user


class UserLoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data['username'], password=data['password'])
        if not user:
            raise serializers.ValidationError("Invalid credentials")
        data['user'] = user
        return data


class FrequentStationSerializer(serializers.ModelSerializer):
    station_id = serializers.IntegerField(source='station.id', read_only=True)
    station_name = serializers.CharField(source='station.name', read_only=True)

    class Meta:
        model = FrequentStation
        fields = ['station_id', 'station_name', 'visit_count']


class UserProfileSerializer(serializers.ModelSerializer):
    default_metro_station = serializers.PrimaryKeyRelatedField(
        queryset=MetroStation.objects.all(), allow_null=True, required=False
    )
    frequent_stations = FrequentStationSerializer(many=True, read_only=True)
    wallet_balance = serializers.SerializerMethodField()
    loyalty_points = serializers.SerializerMethodField()

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone_number',
                  'default_metro_station', 'last_mile_mode', 'frequent_stations',
                  'wallet_balance', 'loyalty_points', 'is_staff']
        read_only_fields = ['username', 'is_staff']

    def get_wallet_balance(self, obj):
        wallet = getattr(obj, 'wallet', None)
        return str(wallet.balance) if wallet else '0.00'

    def get_loyalty_points(self, obj):
        wallet = getattr(obj, 'wallet', None)
        return wallet.loyalty_points if wallet else 0
