# music/providers/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from music.exceptions import UnsupportedOperation
from music.providers.types import (
    Category,
    ProviderCapabilities,
    ProviderHealth,
    SearchResult,
    Track,
)

DEFAULT_SEED_GENRES = ("pop", "rock")
MIN_QUERY_LENGTH = 2

DEFAULT_LIMITS = {
    "search": 20,
    "trending": 50,
    "categories": 20,
    "recommendations": 20,
}
MAX_LIMIT = 50
MAX_OFFSET = 1000


def clamp_limit(limit, default: int, maximum: int = MAX_LIMIT) -> int:
    """
    Normalise a caller supplied *limit*.

    None, junk or values <= 0 fall back to *default*; anything above
    *maximum* is capped.

    >>> clamp_limit(0, 20), clamp_limit(500, 20), clamp_limit("7", 20)
    (20, 50, 7)
    """
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return min(default, maximum)
    if value <= 0:
        return min(default, maximum)
    return min(value, maximum)


def clamp_offset(offset, maximum: int = MAX_OFFSET) -> int:
    """Page start; None, junk or negative values mean the first page."""
    try:
        value = int(offset)
    except (TypeError, ValueError):
        return 0
    return min(max(0, value), maximum)


def seeds_or_default(seed_genres: Optional[Sequence[str]]) -> List[str]:
    seeds = [g.strip() for g in (seed_genres or []) if g and g.strip()]
    return seeds or list(DEFAULT_SEED_GENRES)


class MusicProvider(ABC):
    """
    Capability contract every music data source implements.

    List operations soft-fail: an upstream error yields an empty sequence,
    never an exception. ``get_track_details`` is optional and advertised
    through ``capabilities.track_details``.
    """

    #: identifier used in service metadata ("spotify", "jamendo+itunes", "demo")
    name: str = "base"
    capabilities = ProviderCapabilities()

    @abstractmethod
    def search(self, query: str, limit: int = DEFAULT_LIMITS["search"],
               offset: int = 0) -> SearchResult:
        ...

    @abstractmethod
    def get_trending(self, limit: int = DEFAULT_LIMITS["trending"]) -> List[Track]:
        ...

    @abstractmethod
    def get_categories(self, limit: int = DEFAULT_LIMITS["categories"]) -> List[Category]:
        ...

    @abstractmethod
    def get_recommendations(
        self,
        seed_genres: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMITS["recommendations"],
    ) -> List[Track]:
        ...

    def get_track_details(self, track_id: str) -> Optional[Track]:
        raise UnsupportedOperation(f"{self.name} does not support track details")

    @abstractmethod
    def health_check(self) -> ProviderHealth:
        ...
