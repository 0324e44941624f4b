from .redis_config import get_redis_client, get_redis_url
from .sheet_cache import SheetCache, build_cache, cache_key

__all__ = ["get_redis_client", "get_redis_url", "SheetCache", "build_cache", "cache_key"]
