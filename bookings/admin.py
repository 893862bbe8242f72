# ==================== BOOKINGS/ADMIN.PY ====================
from django.contrib import admin
from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'parking_lot', 'parking_slot', 'status', 'payment_status',
                    'start_time', 'end_time', 'price', 'created_at']
    list_filter = ['status', 'payment_status', 'created_at']
    search_fields = ['user__username', 'parking_lot__name', 'parking_slot__slot_number', 'qr_code']
    readonly_fields = ['qr_code', 'created_at', 'updated_at']
