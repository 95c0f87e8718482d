from celery import Celery
from celery.schedules import crontab

from osc_portal.core.config import settings

# Create Celery app
celery_app = Celery(
    "osc_portal",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "osc_portal.tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    result_expires=86400,  # 24 hours
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery beat schedule for periodic tasks
celery_app.conf.beat_schedule = {}

if settings.audit_auto_cleanup and settings.audit_retention_days > 0:
    celery_app.conf.beat_schedule["purge-audit-logs"] = {
        "task": "osc_portal.tasks.purge_audit_logs",
        "schedule": crontab(hour=2, minute=0),
        "args": [settings.audit_retention_days],
    }
