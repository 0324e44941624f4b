from sheets_service.celery.celery_config import celery_app
from sheets_service.api.dependencies.progress import report_progress
from sheets_service.core.exceptions import SheetGenerationError
from sheets_service.services.sheet_generator import SheetGenerator

from celery import Task
import asyncio
import logging
from typing import Optional

logger = logging.getLogger("app_logger")

_generator: Optional[SheetGenerator] = None


def get_generator() -> SheetGenerator:
    """One generator (and cache) per worker process."""
    global _generator
    if _generator is None:
        _generator = SheetGenerator()
    return _generator


class CallbackTask(Task):
    """Base task with callback for status updates"""

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"Task {task_id} completed successfully")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Task {task_id} failed: {str(exc)}")


@celery_app.task(bind=True, base=CallbackTask, name="generate_sheets_task", queue="sheets_queue")
def generate_sheets_task(self, parent_id: int):
    task_id = self.request.id

    last_percent = [0]

    def on_progress(done: int, total: int):
        # rendering covers 10..95%, zip and bookkeeping the rest
        percent = 10 + int(85 * done / total) if total else 95
        if percent == last_percent[0]:
            return
        last_percent[0] = percent
        # called on the event loop thread; the redis write goes to the default pool,
        # which asyncio.run drains before SUCCESS is reported
        asyncio.get_running_loop().run_in_executor(
            None, report_progress, task_id, "PROGRESS", percent, f"{done}/{total} sheets rendered"
        )

    try:
        report_progress(task_id, "STARTED", 5, f"Loading data for parent {parent_id}")

        result = asyncio.run(get_generator().generate(parent_id, progress=on_progress))

        report_progress(task_id, "SUCCESS", 100, f"{len(result.files)} sheets generated")
        return {
            "task_id": task_id,
            "status": "SUCCESS",
            "parent_id": parent_id,
            "files": result.files,
            "failed": result.failed,
            "zip_file": result.zip_file,
            "metrics": result.metrics.model_dump(),
        }

    except SheetGenerationError as e:
        logger.error(f"Sheet generation task error for parent {parent_id}: {e}")
        report_progress(task_id, "FAILURE", 0, f"Error: {str(e)}", error=str(e))
        raise
    except Exception as e:
        logger.error(f"Unexpected sheet generation error for parent {parent_id}: {e}", exc_info=True)
        report_progress(task_id, "FAILURE", 0, "Unexpected error", error=str(e))
        raise
