# ==================== BOOKINGS/TASKS.PY (CELERY TASKS) ====================
from celery import shared_task
from django.conf import settings
import logging

from .services import ReservationService

logger = logging.getLogger(__name__)


@shared_task
def release_stale_pending_reservations():
    """Cancel reservations left unpaid longer than PENDING_RESERVATION_TTL_MINUTES"""
    ttl = settings.PENDING_RESERVATION_TTL_MINUTES
    if ttl <= 0:
        logger.info("Stale reservation release is disabled")
        return 0

    released = ReservationService().release_stale_pending(ttl)
    logger.info(f"Released {released} unpaid reservations older than {ttl} minutes")
    return released
