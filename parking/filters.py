# ============================= PARKING/FILTERS.PY =============================
import django_filters
from .models import ParkingLot, ParkingSlot


class ParkingLotFilter(django_filters.FilterSet):
    """Filtering for parking lots"""

    metro_station = django_filters.NumberFilter(field_name='metro_station_id')
    price_max = django_filters.NumberFilter(
        field_name='base_price_per_hour',
        lookup_expr='lte',
        label='Maximum Price Per Hour'
    )

    class Meta:
        model = ParkingLot
        fields = ['metro_station', 'price_max']


class ParkingSlotFilter(django_filters.FilterSet):
    lot = django_filters.NumberFilter(field_name='lot_id')
    zone = django_filters.CharFilter(field_name='zone', lookup_expr='iexact')

    class Meta:
        model = ParkingSlot
        fields = ['lot', 'zone', 'status']
