"""Celery configuration."""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.dev"),
)

app = Celery("comisiones")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "commissions-calculate-pending-sales": {
        "task": "commissions.tasks.calculate_pending_sales",
        "schedule": crontab(minute=0, hour="*"),  # Every hour
    },
}
