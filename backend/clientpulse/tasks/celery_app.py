"""Celery application configuration."""
from celery import Celery
from celery.schedules import crontab

from clientpulse.config import get_settings

settings = get_settings()

celery_app = Celery(
    "clientpulse",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "clientpulse.tasks.refresh",
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
    task_time_limit=3600,  # 1 hour max for a bulk run
    task_soft_time_limit=3000,  # 50 minutes soft limit
    # One worker process keeps generation load sequential across companies
    worker_concurrency=1,
    beat_schedule={
        "refresh-all-companies-daily": {
            "task": "clientpulse.tasks.refresh.refresh_all_companies_task",
            "schedule": crontab(hour=settings.refresh_hour, minute=0),
        },
    },
)
