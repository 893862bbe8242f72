# ==================== PARKING/SIGNALS.PY (Django Signals) ====================
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from .models import ParkingLot, ParkingSlot
import logging

logger = logging.getLogger(__name__)


@receiver(post_save, sender=ParkingSlot)
@receiver(post_delete, sender=ParkingSlot)
def refresh_lot_occupancy(sender, instance, **kwargs):
    """Keep ParkingLot.occupied_slots in step with slot statuses"""
    lot = ParkingLot.objects.filter(pk=instance.lot_id).first()
    if lot is None:
        return

    previous = lot.occupied_slots
    if lot.refresh_occupancy() != previous:
        logger.info(f"Lot {lot.id} occupancy changed: {previous} -> {lot.occupied_slots}")
