"""
Two-tier cache used by the sheet generator.

Redis is consulted first when configured; any miss or Redis error falls back to an
in-process store. Writes always land in the in-process store, so it keeps serving
when Redis is unreachable. Values are stored as JSON in both tiers, which keeps
cached objects immutable from the caller's point of view.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import redis

from sheets_service.core import settings
from sheets_service.cache_db.redis_config import get_redis_client

logger = logging.getLogger("app_logger")


def _normalize_part(part: Any) -> str:
    if isinstance(part, (list, tuple, set, frozenset)):
        ids = sorted({int(x) for x in part})
        return ",".join(str(x) for x in ids)
    return str(part)


def cache_key(prefix: str, *parts: Any) -> str:
    """
    Build a deterministic cache key.

    Id collections are de-duplicated and sorted numerically, so [3, 1] and
    (1, 3, 3) produce the same key.
    """
    if not parts:
        return prefix
    return ":".join([prefix] + [_normalize_part(p) for p in parts])


CACHE_NAMESPACE = "sheets_cache:"


class SheetCache:
    """
    Key/value cache with per-key TTL.

    Args:
        redis_client: optional Redis client (decode_responses=True). None means
            local-only operation.
        namespace: prefix of every key written to Redis. The Redis DB is shared with
            the Celery broker and task progress records, so clear() only removes
            keys under this prefix.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, namespace: str = CACHE_NAMESPACE):
        self._redis = redis_client
        self.namespace = namespace
        self._local: Dict[str, Tuple[Optional[float], str]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _redis_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    @property
    def redis_enabled(self) -> bool:
        return self._redis is not None

    def _local_get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._local.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._local[key]
                return None
            return payload

    def get(self, key: str) -> Any:
        payload = None
        if self._redis is not None:
            try:
                payload = self._redis.get(self._redis_key(key))
            except redis.RedisError as e:
                logger.warning(f"Redis get error for {key}, using local cache: {e}")
        if payload is None:
            payload = self._local_get(key)
        with self._lock:
            if payload is None:
                self.misses += 1
            else:
                self.hits += 1
        if payload is None:
            return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl: Optional[int] = 3600) -> None:
        payload = json.dumps(value)
        if self._redis is not None:
            try:
                if ttl:
                    self._redis.setex(self._redis_key(key), ttl, payload)
                else:
                    self._redis.set(self._redis_key(key), payload)
            except redis.RedisError as e:
                logger.warning(f"Redis set error for {key}, keeping local copy only: {e}")
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._local[key] = (expires_at, payload)

    def get_or_compute(self, key: str, supplier: Callable[[], Any], ttl: Optional[int] = 3600) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = supplier()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        if self._redis is not None:
            try:
                self._redis.delete(self._redis_key(key))
            except redis.RedisError as e:
                logger.warning(f"Redis delete error for {key}: {e}")
        with self._lock:
            self._local.pop(key, None)

    def clear(self) -> None:
        if self._redis is not None:
            try:
                keys = list(self._redis.scan_iter(match=f"{self.namespace}*", count=500))
                if keys:
                    self._redis.delete(*keys)
            except redis.RedisError as e:
                logger.warning(f"Redis clear error: {e}")
        with self._lock:
            self._local.clear()
            self.hits = 0
            self.misses = 0
        logger.info("Sheet cache cleared")

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "local_entries": len(self._local),
                "redis_enabled": self.redis_enabled,
                "hits": self.hits,
                "misses": self.misses,
            }


def build_cache() -> SheetCache:
    """Create the process-wide cache, with a Redis tier when USE_REDIS is set and reachable."""
    if not settings.USE_REDIS:
        logger.info("USE_REDIS disabled, sheet cache running in local mode")
        return SheetCache()
    try:
        return SheetCache(get_redis_client())
    except Exception as e:
        logger.warning(f"Redis unavailable, sheet cache running in local mode: {e}")
        return SheetCache()
