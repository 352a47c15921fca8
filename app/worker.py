"""Celery worker configuration.

Periodic jobs:
- Expire stale seat holds
- Complete departed trips
- Prune rate-limit records
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings
from app.core.immutability import register_immutability_enforcement
from app.core.logging_config import setup_logging

setup_logging()
register_immutability_enforcement()

# Create Celery app
celery_app = Celery(
    "tripseat_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # Soft limit at 4 minutes

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Retry settings
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Cancel expired holds every minute
        "expire-stale-holds": {
            "task": "app.tasks.expire_stale_holds",
            "schedule": crontab(minute="*"),
        },
        # Complete departed trips every 15 minutes
        "complete-departed-trips": {
            "task": "app.tasks.complete_departed_trips",
            "schedule": crontab(minute="*/15"),
        },
        # Prune rate-limit records hourly
        "prune-rate-limits": {
            "task": "app.tasks.cleanup_rate_limits",
            "schedule": crontab(minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
