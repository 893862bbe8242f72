# ==================== USERS/ADMIN.PY ====================
from django.contrib import admin
from .models import CustomUser, FrequentStation


class FrequentStationInline(admin.TabularInline):
    model = FrequentStation
    extra = 0
    readonly_fields = ['updated_at']


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['username', 'email', 'phone_number', 'default_metro_station', 'last_mile_mode', 'created_at']
    list_filter = ['last_mile_mode', 'is_staff', 'created_at']
    search_fields = ['username', 'email', 'phone_number']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [FrequentStationInline]
