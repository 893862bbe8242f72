# ==================== PARKING/ADMIN.PY ====================
from django.contrib import admin
from .models import MetroStation, ParkingLot, ParkingSlot, TimeRestriction


class TimeRestrictionInline(admin.TabularInline):
    model = TimeRestriction
    extra = 0


@admin.register(MetroStation)
class MetroStationAdmin(admin.ModelAdmin):
    list_display = ['name', 'latitude', 'longitude', 'created_at']
    search_fields = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(ParkingLot)
class ParkingLotAdmin(admin.ModelAdmin):
    list_display = ['name', 'metro_station', 'total_slots', 'occupied_slots', 'base_price_per_hour', 'created_at']
    list_filter = ['metro_station']
    search_fields = ['name', 'metro_station__name']
    readonly_fields = ['occupied_slots', 'created_at', 'updated_at']
    fieldsets = (
        ('Basic Info', {'fields': ('name', 'metro_station')}),
        ('Location', {'fields': ('latitude', 'longitude')}),
        ('Capacity & Pricing', {'fields': ('total_slots', 'occupied_slots', 'base_price_per_hour')}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(ParkingSlot)
class ParkingSlotAdmin(admin.ModelAdmin):
    list_display = ['slot_number', 'lot', 'zone', 'status', 'created_at']
    list_filter = ['status', 'zone', 'lot']
    search_fields = ['slot_number', 'lot__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TimeRestrictionInline]
