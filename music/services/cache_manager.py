from typing import Any, Callable, Dict, Optional
from django.core.cache import cache
from django.conf import settings
import logging

from music.cache_utils import params_key
from music.utils.monitoring import ProviderMetrics

logger = logging.getLogger("music")


class CacheManager:
    """Short fixed-TTL memoisation for upstream catalog responses."""

    # Cache key prefixes
    PREFIXES = {
        'search': 'music:search',
        'trending': 'music:trending',
        'categories': 'music:categories',
        'recommendations': 'music:recs',
        'genre': 'music:genre',
        'track': 'music:track',
    }

    DEFAULT_TIMEOUT = 3600  # 1 hour

    @classmethod
    def timeout(cls) -> int:
        return int(getattr(settings, "MUSIC_CACHE_TTL", cls.DEFAULT_TIMEOUT))

    @classmethod
    def generate_cache_key(cls, operation: str, params: Dict[str, Any]) -> str:
        """
        Generate a cache key for an operation and its parameters.

        Args:
            operation: One of PREFIXES (unknown names are used verbatim)
            params: Call parameters, serialised with sorted keys

        Returns:
            Generated cache key
        """
        prefix = cls.PREFIXES.get(operation, operation)
        return params_key(prefix, params)

    @staticmethod
    def get(key: str) -> Any:
        try:
            value = cache.get(key)
            ProviderMetrics.log_cache_hit(key, value is not None)
            return value
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    @staticmethod
    def set(key: str, value: Any, timeout: Optional[int] = None):
        try:
            cache.set(key, value, timeout)
            logger.debug(f"Cache set: {key} (timeout: {timeout}s)")
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")

    @staticmethod
    def delete(key: str):
        try:
            cache.delete(key)
            logger.debug(f"Cache delete: {key}")
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")

    @classmethod
    def memoize(cls,
                operation: str,
                params: Dict[str, Any],
                producer: Callable[[], Any],
                timeout: Optional[int] = None) -> Any:
        """
        Return the cached value for ``(operation, params)`` or compute it.

        Empty results (None, empty list / tuple) are returned but not
        stored, so a failed upstream call is retried on the next request.
        Concurrent misses may both fill the key; last write wins.
        """
        key = cls.generate_cache_key(operation, params)
        value = cls.get(key)
        if value is not None:
            return value

        value = producer()
        if value:
            cls.set(key, value, timeout if timeout is not None else cls.timeout())
        return value
