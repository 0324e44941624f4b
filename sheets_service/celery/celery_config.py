"""
Celery Configuration Module

This module configures Celery for background sheet generation
with Redis as message broker and result backend.
"""

from celery import Celery
from dotenv import load_dotenv
from sheets_service.cache_db.redis_config import get_redis_url
import logging

# Load environment variables from a .env file so workers pick up DB credentials
load_dotenv()

logger = logging.getLogger("app_logger")

# Get Redis URL
redis_url = get_redis_url()

# Create Celery app
celery_app = Celery(
    "registration_sheets_service",
    broker=redis_url,
    backend=redis_url,
    include=[
        "sheets_service.celery.tasks.sheet_tasks",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Sao_Paulo",
    enable_utc=True,
    task_track_started=True,
    # a large opportunity renders hundreds of sheets
    task_time_limit=3600,
    task_soft_time_limit=3300,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,
    worker_pool="threads",
    worker_concurrency=2,
    task_default_queue="sheets_queue",
    task_queues={
        "sheets_queue": {
            "exchange": "sheets_queue",
            "routing_key": "sheets_queue",
        }
    },
)

logger.info("Celery app configured successfully")
