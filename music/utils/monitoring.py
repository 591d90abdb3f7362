import time
import logging
from functools import wraps
from typing import Callable, Any, Optional
from django.core.cache import cache

logger = logging.getLogger("music")


class PerformanceMonitor:
    """Timing of upstream calls (Spotify, Jamendo, iTunes)."""

    @staticmethod
    def track_api_call(api_name: str, endpoint: str) -> Callable:
        """
        Decorator: time one upstream call and keep its outcome under
        ``api:<api>:<endpoint>``. The upstream HTTP status of a failed call
        (``UpstreamError.status`` or spotipy's ``http_status``) is recorded
        with it; exceptions always propagate.
        """
        metric_key = f"api:{api_name}:{endpoint}"

        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs) -> Any:
                started = time.time()
                outcome = {"success": False, "error": None, "status": None}
                try:
                    result = func(*args, **kwargs)
                    outcome["success"] = True
                    return result
                except Exception as e:
                    outcome["error"] = str(e)
                    outcome["status"] = getattr(e, "status", None) or getattr(e, "http_status", None)
                    logger.error(f"{api_name}:{endpoint} failed (status {outcome['status']}): {e}")
                    raise
                finally:
                    elapsed = time.time() - started
                    logger.info(
                        f"API Call: {api_name}:{endpoint} | "
                        f"Time: {elapsed:.3f}s | Success: {outcome['success']}"
                    )

                    previous = cache.get(metric_key) or {}
                    failures = previous.get("failures", 0) + (0 if outcome["success"] else 1)
                    cache.set(
                        metric_key,
                        {**outcome, "execution_time": elapsed, "failures": failures},
                        timeout=3600,
                    )

            return wrapper
        return decorator


class ProviderMetrics:
    """Track facade operation metrics per active service."""

    @staticmethod
    def log_operation(service: str, operation: str, item_count: int, execution_time: float):
        logger.info(
            f"Music operation | Service: {service} | "
            f"Operation: {operation} | Items: {item_count} | "
            f"Time: {execution_time:.3f}s"
        )

        metric_key = f"music:{service}:{operation}"
        cache.set(
            metric_key,
            {
                "item_count": item_count,
                "execution_time": execution_time,
            },
            timeout=86400,  # 24 hours
        )

    @staticmethod
    def log_cache_hit(cache_key: str, hit: bool):
        """Log cache hit/miss events."""
        status = "HIT" if hit else "MISS"
        logger.debug(f"Cache {status}: {cache_key}")

        metric_key = f"cache:hitrate:{':'.join(cache_key.split(':')[:2])}"
        current = cache.get(metric_key, {"hits": 0, "misses": 0})
        if hit:
            current["hits"] += 1
        else:
            current["misses"] += 1
        cache.set(metric_key, current, timeout=3600)


class ErrorTracker:
    """Provider failures and upstream throttling, kept in the cache for inspection."""

    MAX_RECENT = 100

    @classmethod
    def log_error(cls, error_type: str, error_msg: str, context: Optional[dict] = None):
        context = context or {}
        logger.error(f"{error_type}: {error_msg} | {context}")

        metric_key = f"error:{error_type}"
        recent = cache.get(metric_key, [])
        recent.append({
            "message": error_msg,
            "context": context,
            "timestamp": time.time(),
        })
        cache.set(metric_key, recent[-cls.MAX_RECENT:], timeout=86400)

    @staticmethod
    def recent_errors(error_type: str) -> list:
        return cache.get(f"error:{error_type}", [])

    @staticmethod
    def log_api_rate_limit(api_name: str, retry_after: Optional[int] = None):
        """Upstream answered 429 (or iTunes' 403); remembered until it may retry."""
        logger.warning(f"{api_name} rate limited, retry after {retry_after or '?'}s")

        metric_key = f"ratelimit:{api_name}"
        previous = cache.get(metric_key) or {}
        cache.set(metric_key, {
            "timestamp": time.time(),
            "retry_after": retry_after,
            "hits": previous.get("hits", 0) + 1,
        }, timeout=retry_after or 600)
