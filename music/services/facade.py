import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence

from music.providers.base import (
    DEFAULT_LIMITS,
    MusicProvider,
    clamp_limit,
    clamp_offset,
    seeds_or_default,
)
from music.providers.types import (
    ProviderHealth,
    SearchResult,
    SourceProvider,
    Track,
)
from music.services.selector import VALID_MODES, SwitchResult
from music.utils.monitoring import ErrorTracker, ProviderMetrics

logger = logging.getLogger("music")


def _serialize(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def _count(value: Any) -> int:
    if isinstance(value, SearchResult):
        return len(value.tracks)
    if isinstance(value, (list, tuple)):
        return len(value)
    return 0 if value is None else 1


@dataclass
class FacadeResult:
    """Provider payload plus the metadata envelope; ``error`` set on failure."""
    data: Any
    meta: Dict[str, Any]
    error: Optional[Dict[str, str]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"data": _serialize(self.data), "meta": self.meta}
        if self.error:
            payload["error"] = self.error
        return payload


def placeholder_track(track_id: str) -> Track:
    """Stand-in returned when the active provider cannot look tracks up."""
    return Track(
        id=track_id,
        title=f"Demo Track {track_id}",
        artist="Demo Artist",
        album="Demo Album",
        duration_seconds=180 + random.randrange(120),
        cover_url=f"https://picsum.photos/300/300?random={track_id}",
        external_url="https://open.spotify.com",
        popularity=50 + random.randrange(50),
        genre="Pop",
        source_provider=SourceProvider.FALLBACK,
    )


class MusicFacade:
    """
    Single entry point for music data, independent of the active provider.

    Every operation is timed and wrapped: a provider fault becomes an
    empty/default payload plus an ``error`` dict. HTTP status mapping is
    left to the API views.
    """

    def __init__(self, selector):
        self.selector = selector

    # ------------------------------------------------------------------
    def _dispatch(self,
                  operation: str,
                  call: Callable[[MusicProvider], Any],
                  default: Any,
                  **params) -> FacadeResult:
        start_time = time.time()
        error = None
        try:
            provider = self.selector.active()
            data = call(provider)
        except Exception as e:  # noqa: BLE001
            data = default
            error = {
                "error": f"{operation} failed",
                "message": str(e) or e.__class__.__name__,
            }
            ErrorTracker.log_error(
                "provider_failure",
                str(e),
                {"operation": operation, "service": self.selector.service_type, **params},
            )

        execution_time = time.time() - start_time
        service = self.selector.service_type
        ProviderMetrics.log_operation(service, operation, _count(data), execution_time)

        meta = {
            "service": service,
            "operation": operation,
            "response_time_ms": round(execution_time * 1000, 1),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **params,
        }
        return FacadeResult(data=data, meta=meta, error=error)

    # ------------------------------------------------------------------
    def search(self, query: str, limit: Optional[int] = None, offset: int = 0) -> FacadeResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["search"])
        offset = clamp_offset(offset)
        query = (query or "").strip()
        return self._dispatch(
            "search",
            lambda p: p.search(query, limit, offset),
            SearchResult.empty(),
            query=query,
            limit=limit,
            offset=offset,
        )

    def get_trending(self, limit: Optional[int] = None) -> FacadeResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["trending"])
        return self._dispatch("trending", lambda p: p.get_trending(limit), [], limit=limit)

    def get_categories(self, limit: Optional[int] = None) -> FacadeResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["categories"])
        return self._dispatch("categories", lambda p: p.get_categories(limit), [], limit=limit)

    def get_recommendations(self,
                            genres: Optional[Sequence[str]] = None,
                            limit: Optional[int] = None) -> FacadeResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["recommendations"])
        seeds = seeds_or_default(genres)
        return self._dispatch(
            "recommendations",
            lambda p: p.get_recommendations(seeds, limit),
            [],
            seed_genres=seeds,
            limit=limit,
        )

    def get_track_details(self, track_id: str) -> FacadeResult:
        def lookup(provider: MusicProvider) -> Optional[Track]:
            if not provider.capabilities.track_details:
                logger.debug(f"{provider.name} has no track lookup, using placeholder")
                return placeholder_track(track_id)
            return provider.get_track_details(track_id)

        return self._dispatch("track_details", lookup, None, track_id=track_id)

    def health_check(self) -> FacadeResult:
        def check(provider: MusicProvider) -> Dict[str, Any]:
            health: ProviderHealth = provider.health_check()
            return {
                **health.to_dict(),
                "service": self.selector.service_info().to_dict(),
            }

        return self._dispatch("health", check, {"status": "degraded", "message": "health check failed"})

    def get_service_info(self) -> FacadeResult:
        def info(provider: MusicProvider) -> Dict[str, Any]:
            selector = self.selector
            return {
                "current": selector.service_info().to_dict(),
                "environment": {
                    "demo_mode": getattr(selector, "use_demo_mode", False),
                    "spotify_configured": getattr(selector, "credentials_configured", False),
                },
                "switching": {
                    "available": list(VALID_MODES),
                    "current": selector.service_type,
                    "can_switch": hasattr(selector, "switch_mode"),
                },
                "fallback_reason": getattr(selector, "fallback_reason", None),
            }

        return self._dispatch("service_info", info, {})

    def switch_mode(self, target: str) -> SwitchResult:
        """Validation errors (InvalidModeError, missing credentials) propagate."""
        result = self.selector.switch_mode(target)
        logger.info(f"Mode switch to {target!r}: {result.message}")
        return result

