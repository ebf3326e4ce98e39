"""Celery application configuration."""

from celery import Celery

from filehost.config import get_settings

settings = get_settings()

app = Celery(
    "filehost",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["filehost.tasks.storage_sweep"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes max per task
    task_soft_time_limit=540,
    beat_schedule={
        "sweep-orphaned-uploads": {
            "task": "filehost.tasks.storage_sweep.sweep_orphaned_uploads",
            "schedule": 3600.0,  # hourly
        },
    },
)
