"""Celery application configuration."""
from celery import Celery

from xlsmart.config import get_settings

settings = get_settings()

celery_app = Celery(
    "xlsmart_pipeline",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["xlsmart.tasks.pipeline_tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # One AI run per worker slot; runs are long and rate limited by the proxy
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)
