# config/celery.py
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("foodshare")

# All CELERY_* keys in Django settings configure the worker and beat
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
