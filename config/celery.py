import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("rentals")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Derived unit statuses (occupied / available) - every hour
    "sync-unit-statuses": {
        "task": "units.sync_unit_statuses",
        "schedule": crontab(minute=5),
    },
}

app.conf.timezone = os.environ.get("DJANGO_TIME_ZONE", "Asia/Riyadh")
