# ==================== RIDES/VIEWS.PY ====================
from rest_framework import viewsets, mixins, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from parking.services import ParkingInventoryService
from payments.serializers import PaymentMethodSerializer, PaymentSerializer
from .models import Driver, Ride, Vehicle
from .serializers import (
    DriverSerializer, DriverWriteSerializer, RideAvailabilitySerializer, RideBookingSerializer,
    RideSerializer, RideUpdateSerializer, VehicleSerializer, VehicleWriteSerializer,
)
from .services import FleetService, RideRequest, RideService


def ride_request_from(data):
    pickup = data.get('pickup') or {}
    dropoff = data.get('dropoff') or {}
    return RideRequest(
        vehicle_type=data['vehicle_type'],
        seats=data['seats'],
        is_shared=data['is_shared'],
        ride_type=data['ride_type'],
        scheduled_time=data.get('scheduled_time'),
        pickup_name=pickup.get('name', ''),
        pickup_latitude=pickup.get('latitude'),
        pickup_longitude=pickup.get('longitude'),
        dropoff_name=dropoff.get('name', ''),
        dropoff_latitude=dropoff.get('latitude'),
        dropoff_longitude=dropoff.get('longitude'),
    )


class RideViewSet(mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  viewsets.GenericViewSet):
    """Ride booking and lifecycle for the signed-in user"""

    serializer_class = RideSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_status', 'is_shared', 'ride_type']
    ordering_fields = ['created_at', 'fare']
    ordering = ['-created_at']

    def get_queryset(self):
        return Ride.objects.filter(user=self.request.user).select_related('driver', 'vehicle')

    def create(self, request, *args, **kwargs):
        """Book a ride

        Body: {
            "pickup": {"name": "...", "latitude": 28.61, "longitude": 77.20},
            "dropoff": {"name": "...", "latitude": 28.63, "longitude": 77.22},
            "ride_type": "on-demand|scheduled",
            "scheduled_time": null,
            "vehicle_type": "e-rickshaw|cab|shuttle",
            "seats": 2,
            "is_shared": true
        }
        """
        serializer = RideBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ride = RideService().book(request.user, ride_request_from(serializer.validated_data))
        return Response(RideSerializer(ride).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Switch sharing on or off; the fare is recomputed

        Body: {"is_shared": true}
        """
        serializer = RideUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ride = RideService().update(kwargs['pk'], request.user, serializer.validated_data['is_shared'])
        return Response(RideSerializer(ride).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    @action(detail=False, methods=['get'], url_path='check-availability')
    def check_availability(self, request):
        """Example: /api/v1/rides/check-availability/?vehicle_type=cab&seats=2&is_shared=true"""
        serializer = RideAvailabilitySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        preview = RideService().matcher.check_availability(ride_request_from(serializer.validated_data))
        body = {
            'is_available': preview.is_available,
            'vehicle_type': preview.vehicle_type,
        }
        if serializer.validated_data['is_shared']:
            body['shared_ride_available'] = preview.shared_ride is not None
            if preview.shared_ride is not None:
                body['shared_ride'] = {
                    'ride_id': preview.shared_ride.id,
                    'driver': {'id': preview.shared_ride.driver.id, 'name': preview.shared_ride.driver.name},
                    'vehicle': VehicleSerializer(preview.shared_ride.vehicle).data,
                    'remaining_seats': preview.remaining_seats,
                }
        else:
            body['available_vehicles_count'] = preview.available_vehicles_count
        return Response(body)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        result = RideService().cancel(pk, request.user)
        return Response({
            'message': 'Ride cancelled successfully',
            'ride': RideSerializer(result.ride).data,
            'refund_amount': str(result.refund_amount),
        })

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """Complete a ride and pay its fare

        Body: {"payment_method": "wallet"} or razorpay checkout fields
        """
        serializer = PaymentMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RideService().complete(
            pk, request.user,
            payment_method=serializer.validated_data['payment_method'],
            gateway_data=serializer.gateway_data(),
        )
        return Response({
            'message': 'Ride completed and payment processed successfully',
            'ride': RideSerializer(result.ride).data,
            'payment': PaymentSerializer(result.payment).data,
            'loyalty_points_awarded': result.loyalty_points_awarded,
        })


class VehicleViewSet(viewsets.ModelViewSet):
    """Fleet vehicles (staff only)"""

    queryset = Vehicle.objects.select_related('base_station', 'driver').all()
    serializer_class = VehicleSerializer
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['type', 'status', 'base_station']
    search_fields = ['registration_number', 'model']

    def create(self, request, *args, **kwargs):
        serializer = VehicleWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = FleetService.create_vehicle(serializer.validated_data)
        return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = VehicleWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        vehicle = FleetService.update_vehicle(kwargs['pk'], serializer.validated_data)
        return Response(VehicleSerializer(vehicle).data)

    def destroy(self, request, *args, **kwargs):
        FleetService.delete_vehicle(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path=r'by-station/(?P<station_id>\d+)')
    def by_station(self, request, station_id=None):
        station = ParkingInventoryService.get_station(station_id)
        vehicles = self.get_queryset().filter(base_station=station)
        return Response(self.get_serializer(vehicles, many=True).data)


class DriverViewSet(viewsets.ModelViewSet):
    """Drivers and their vehicle assignment (staff only)"""

    queryset = Driver.objects.select_related('vehicle', 'vehicle__base_station').all()
    serializer_class = DriverSerializer
    permission_classes = [permissions.IsAdminUser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['status']
    search_fields = ['name', 'license_number']

    def create(self, request, *args, **kwargs):
        serializer = DriverWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        driver = FleetService.create_driver(serializer.validated_data)
        return Response(DriverSerializer(driver).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = DriverWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        driver = FleetService.update_driver(kwargs['pk'], serializer.validated_data)
        return Response(DriverSerializer(driver).data)

    def destroy(self, request, *args, **kwargs):
        FleetService.delete_driver(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)
