"""
Celery Worker Entry Point

This module is the entry point for running Celery workers.

Usage:
    celery -A celery_worker worker --loglevel=info --pool=threads --concurrency=2 -Q sheets_queue
"""

from sheets_service.celery import celery_app

# This allows Celery to discover the app
if __name__ == "__main__":
    celery_app.start()
