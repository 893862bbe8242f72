# ==================== PARKANDRIDE/CELERY.PY ====================
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'parkandride.settings')

app = Celery('parkandride')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
