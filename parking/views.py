# ============================= PARKING VIEWS =============================
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from utils.distance_calculator import DistanceCalculator
from utils.permissions import IsAdminOrReadOnly
from .filters import ParkingLotFilter, ParkingSlotFilter
from .models import MetroStation, ParkingLot, ParkingSlot
from .serializers import (
    AvailabilityQuerySerializer,
    BulkSlotCreateSerializer,
    LotAvailabilitySerializer,
    MetroStationSerializer,
    ParkingLotSerializer,
    ParkingLotWriteSerializer,
    ParkingSlotSerializer,
    ParkingSlotUpdateSerializer,
    ParkingSlotWriteSerializer,
    SlotAvailabilitySerializer,
    TimeRestrictionCreateSerializer,
)
from .services import ParkingInventoryService, SlotAllocator

NEARBY_DEFAULT_RADIUS_KM = 10
SEARCH_LIMIT = 10


class MetroStationViewSet(viewsets.ModelViewSet):
    """Metro station catalogue; changes are staff only"""

    queryset = MetroStation.objects.all()
    serializer_class = MetroStationSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def destroy(self, request, *args, **kwargs):
        ParkingInventoryService.delete_station(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def search(self, request):
        """Search stations by name (case-insensitive, max 10)

        Example: /api/v1/metro-stations/search/?query=central
        """
        query = request.query_params.get('query', '').strip()
        if not query:
            return Response(
                {'error': 'Search query is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        stations = MetroStation.objects.filter(name__icontains=query)[:SEARCH_LIMIT]
        serializer = self.get_serializer(stations, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """Stations within a radius, nearest first (max 10)

        Example: /api/v1/metro-stations/nearby/?lat=28.6139&lng=77.2090&radius=10
        """
        try:
            latitude = float(request.query_params.get('lat'))
            longitude = float(request.query_params.get('lng'))
            radius = float(request.query_params.get('radius', NEARBY_DEFAULT_RADIUS_KM))
        except (TypeError, ValueError):
            return Response(
                {'error': 'Invalid latitude, longitude, or radius'},
                status=status.HTTP_400_BAD_REQUEST
            )

        stations = DistanceCalculator.nearest(
            MetroStation.objects.all(), latitude, longitude, radius, limit=SEARCH_LIMIT
        )
        serializer = self.get_serializer(stations, many=True)
        return Response(serializer.data)


class ParkingLotViewSet(viewsets.ModelViewSet):
    """Parking lots, their slots and live availability"""

    queryset = ParkingLot.objects.select_related('metro_station').all()
    serializer_class = ParkingLotSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ParkingLotFilter
    search_fields = ['name', 'metro_station__name']
    ordering_fields = ['name', 'base_price_per_hour', 'created_at']
    ordering = ['name']

    def create(self, request, *args, **kwargs):
        serializer = ParkingLotWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lot = ParkingInventoryService.create_lot(serializer.validated_data)
        return Response(ParkingLotSerializer(lot).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = ParkingLotWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        lot = ParkingInventoryService.update_lot(kwargs['pk'], serializer.validated_data)
        return Response(ParkingLotSerializer(lot).data)

    def destroy(self, request, *args, **kwargs):
        ParkingInventoryService.delete_lot(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path=r'by-station/(?P<station_id>\d+)')
    def by_station(self, request, station_id=None):
        station = ParkingInventoryService.get_station(station_id)
        lots = self.get_queryset().filter(metro_station=station)
        serializer = self.get_serializer(lots, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def slots(self, request, pk=None):
        """Slots of the lot grouped by zone"""
        lot = self.get_object()
        zones = {}
        for slot in lot.slots.prefetch_related('time_restrictions').order_by('zone', 'id'):
            zones.setdefault(slot.zone, []).append(ParkingSlotSerializer(slot).data)

        return Response({
            'lot_id': lot.id,
            'zone_names': sorted(zones),
            'zones': zones,
        })

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        """Per-slot availability and price multiplier for a window

        Example: /api/v1/parking-lots/1/availability/?start_time=...&end_time=...
        """
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        availability = SlotAllocator().check_availability(
            pk, query.validated_data['start_time'], query.validated_data['end_time']
        )
        return Response(LotAvailabilitySerializer(availability).data)


class ParkingSlotViewSet(viewsets.ModelViewSet):
    """Slot inventory and time restrictions; changes are staff only"""

    queryset = ParkingSlot.objects.select_related('lot').prefetch_related('time_restrictions')
    serializer_class = ParkingSlotSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ParkingSlotFilter
    ordering_fields = ['zone', 'slot_number']
    ordering = ['zone', 'slot_number']

    def create(self, request, *args, **kwargs):
        serializer = ParkingSlotWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        slot = ParkingInventoryService.create_slot(serializer.validated_data)
        return Response(ParkingSlotSerializer(slot).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        kwargs.pop('partial', False)
        serializer = ParkingSlotUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        slot = ParkingInventoryService.update_slot(kwargs['pk'], serializer.validated_data)
        return Response(ParkingSlotSerializer(slot).data)

    def destroy(self, request, *args, **kwargs):
        ParkingInventoryService.delete_slot(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='bulk-create')
    def bulk_create(self, request):
        """Create ``count`` slots numbered zone + (start_number + i)

        Body: {"lot": 1, "zone": "A", "start_number": 1, "count": 10}
        """
        serializer = BulkSlotCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        slots = ParkingInventoryService.bulk_create_slots(
            data['lot'], data['zone'], data['start_number'], data['count']
        )
        return Response(
            {
                'message': f'{len(slots)} slots created successfully',
                'slots': ParkingSlotSerializer(slots, many=True).data,
            },
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        availability = SlotAllocator().check_slot_availability(
            pk, query.validated_data['start_time'], query.validated_data['end_time']
        )
        return Response(SlotAvailabilitySerializer(availability).data)

    @action(detail=True, methods=['post'])
    def restrictions(self, request, pk=None):
        """Add a time restriction

        Body: {"start_time": "...", "end_time": "...", "reason": "maintenance", "description": ""}
        """
        serializer = TimeRestrictionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ParkingInventoryService.add_restriction(pk, **serializer.validated_data)
        slot = self.get_queryset().get(pk=pk)
        return Response(ParkingSlotSerializer(slot).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'restrictions/(?P<index>\d+)')
    def remove_restriction(self, request, pk=None, index=None):
        ParkingInventoryService.remove_restriction(pk, int(index))
        slot = self.get_queryset().get(pk=pk)
        return Response(ParkingSlotSerializer(slot).data)
