import redis
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sheets_service.cache_db import get_redis_client

logger = logging.getLogger("app_logger")

PROGRESS_TTL = 3600

_client: Optional[redis.Redis] = None


def _redis() -> Optional[redis.Redis]:
    """Connect on first use; None while Redis is unreachable."""
    global _client
    if _client is None:
        try:
            _client = get_redis_client()
        except Exception as e:
            logger.error(f"Redis initialization error: {e}")
            return None
    return _client


def report_progress(task_id: str, status: str, progress: int, message: str = "", task_type: str = "sheets", error: str = None):
    """
    Store task progress in Redis as JSON with error handling.
    """
    if not task_id or not isinstance(task_id, str):
        logger.error("Invalid task_id provided to report_progress")
        return False

    if not isinstance(progress, int) or progress < 0 or progress > 100:
        logger.error(f"Invalid percent value: {progress}")
        return False

    data = {
        "task_id": task_id,
        "status": status,
        "progress": progress,
        "message": message or "",
        "type": task_type,
        "error": error,
        "updated_at": datetime.now(timezone.utc).isoformat()
    }

    client = _redis()
    if client is None:
        logger.error("Redis not available, cannot store progress")
        return False

    try:
        client.set(f"task:{task_id}", json.dumps(data), ex=PROGRESS_TTL)
        logger.debug(f"Progress stored for task {task_id}: {status} - {progress}%")
        return True
    except redis.RedisError as e:
        logger.error(f"Redis error storing progress for task {task_id}: {e}")
        return False


def get_progress(task_id: str) -> Optional[Dict[str, Any]]:
    """
    Get progress from Redis with error handling.
    """
    if not task_id or not isinstance(task_id, str):
        logger.error("Invalid task_id provided to get_progress")
        return None

    client = _redis()
    if client is None:
        logger.error("Redis not available, cannot retrieve progress")
        return None

    try:
        data = client.get(f"task:{task_id}")
        if data:
            return json.loads(data)
        logger.debug(f"No progress data found for task {task_id}")
        return None
    except redis.RedisError as e:
        logger.error(f"Redis error retrieving progress for task {task_id}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"JSON decode error for task {task_id}: {e}")
        return None
