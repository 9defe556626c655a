"""
Redis caching for the read-only catalog (locations, theaters, occasions, cakes, add-ons, coupons)
Fails open: when Redis is down every lookup is a miss and the database answers
"""
import json
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional

from . import config
from .redis_client import get_redis_client

logger = logging.getLogger(__name__)

# Seconds to wait before trying to reconnect after a failed connection
RECONNECT_INTERVAL = 60


class Cache:
    """Redis cache wrapper with automatic JSON serialization"""

    def __init__(self):
        self.redis_client = None
        self._retry_after = 0.0

    def _get_client(self):
        """Lazy load Redis client"""
        if not config.CACHE_ENABLED:
            return None
        if self.redis_client is None:
            if time.time() < self._retry_after:
                return None
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                self._retry_after = time.time() + RECONNECT_INTERVAL
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set value in cache with TTL"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'catalog:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache()


def cached(key_prefix: str, ttl: Optional[int] = None, key_builder: Optional[Callable] = None):
    """
    Decorator to cache JSON-serializable function results

    Args:
        key_prefix: Prefix for cache key (e.g., 'catalog:locations')
        ttl: Time to live in seconds (defaults to CATALOG_CACHE_TTL)
        key_builder: Optional function to build cache key from function args

    Example:
        @cached(key_prefix='catalog:theaters', key_builder=lambda self, loc_id: f"catalog:theaters:{loc_id}")
        def list_theaters(self, loc_id: str) -> list[dict]:
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = key_builder(*args, **kwargs) if key_builder else key_prefix

            cached_value = cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            result = func(*args, **kwargs)
            if result is not None:
                cache.set(cache_key, result, ttl or config.CATALOG_CACHE_TTL)

            return result

        return wrapper

    return decorator


def invalidate_catalog_cache() -> int:
    """Drop every cached catalog response"""
    return cache.delete_pattern("catalog:*")
