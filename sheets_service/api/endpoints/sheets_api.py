"""
Registration Sheet API Endpoints

Thin HTTP surface over the sheet generator: list parent opportunities, run a
generation inline or in the background, follow progress, download results and
administer the cache.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import os

from sheets_service.api.dependencies.progress import get_progress, report_progress
from sheets_service.cache_db import SheetCache, build_cache
from sheets_service.core.exceptions import (
    BatchFetchError,
    NoApplicantsFoundError,
    NoRelevantPhasesError,
    SheetGenerationError,
)
from sheets_service.database_layer.db_config import get_db
from sheets_service.schemas.sheets import GenerationSummary, ParentOpportunity, StatusMessage, TaskAccepted
from sheets_service.services.phases import list_parents
from sheets_service.services.sheet_generator import SheetGenerator

logger = logging.getLogger("app_logger")

router = APIRouter(prefix="/sheets", tags=["sheets"])

MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".zip": "application/zip",
}

_cache: Optional[SheetCache] = None
_generator: Optional[SheetGenerator] = None


def get_sheet_cache() -> SheetCache:
    """Process-wide cache, built on first use."""
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


def get_sheet_generator(cache: SheetCache = Depends(get_sheet_cache)) -> SheetGenerator:
    global _generator
    if _generator is None:
        _generator = SheetGenerator(cache=cache)
    return _generator


def _to_http_error(e: SheetGenerationError) -> HTTPException:
    if isinstance(e, (NoRelevantPhasesError, NoApplicantsFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, BatchFetchError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.get("/parents", response_model=List[ParentOpportunity])
def get_parents(db: Session = Depends(get_db), cache: SheetCache = Depends(get_sheet_cache)):
    return list_parents(db, cache)


@router.post("/generate/{parent_id}", response_model=GenerationSummary)
async def generate_sheets(parent_id: int, generator: SheetGenerator = Depends(get_sheet_generator)):
    """
    Generate every registration sheet of a parent opportunity and wait for the result.
    """
    try:
        result = await generator.generate(parent_id)
    except SheetGenerationError as e:
        logger.error(f"Sheet generation failed for parent_id={parent_id}: {e}")
        raise _to_http_error(e)

    return GenerationSummary(
        parent_id=result.parent_id,
        pool_phase_id=result.pool_phase_id,
        applicants=len(result.documents) + len(result.failed),
        files=result.files,
        failed=result.failed,
        zip_file=result.zip_file,
        metrics=result.metrics,
    )


@router.post("/generate/{parent_id}/async", response_model=TaskAccepted)
def generate_sheets_async(parent_id: int):
    """
    Queue a background generation and return the Celery task id.
    """
    from sheets_service.celery.tasks.sheet_tasks import generate_sheets_task

    try:
        task = generate_sheets_task.delay(parent_id)
    except Exception as e:
        logger.error(f"[CELERY ERROR] Failed to queue task: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to queue task: {str(e)}")

    logger.info(f"[CELERY] Sheet generation queued for parent_id={parent_id}: {task.id}")
    report_progress(task.id, "PENDING", 0, f"Queued generation for parent {parent_id}")
    return TaskAccepted(task_id=task.id, status="PENDING")


@router.get("/progress/{task_id}")
def get_task_progress(task_id: str):
    progress = get_progress(task_id)
    if not progress:
        raise HTTPException(404, "Invalid or expired task_id")
    return progress


@router.get("/downloads/{filename}")
def download_file(filename: str, generator: SheetGenerator = Depends(get_sheet_generator)):
    """
    Serve a generated sheet or zip from the output directory.
    """
    if os.path.basename(filename) != filename or filename.startswith("."):
        raise HTTPException(status_code=400, detail="Invalid file name")

    output_dir = os.path.realpath(generator.output_dir)
    file_path = os.path.realpath(os.path.join(output_dir, filename))
    if os.path.dirname(file_path) != output_dir:
        raise HTTPException(status_code=400, detail="Invalid file name")
    if not os.path.isfile(file_path):
        raise HTTPException(status_code=404, detail="File not found")

    media_type = MEDIA_TYPES.get(os.path.splitext(filename)[1].lower(), "application/octet-stream")
    return FileResponse(path=file_path, media_type=media_type, filename=filename)


@router.post("/cache/clear", response_model=StatusMessage)
def clear_cache(cache: SheetCache = Depends(get_sheet_cache)):
    cache.clear()
    return StatusMessage(status="success", message="Cache cleared")


@router.get("/stats")
def get_stats(
    generator: SheetGenerator = Depends(get_sheet_generator),
    cache: SheetCache = Depends(get_sheet_cache),
):
    last_run = generator.last_metrics.model_dump() if generator.last_metrics else None
    return {"last_run": last_run, "cache": cache.stats()}
