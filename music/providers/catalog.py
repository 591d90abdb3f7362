# music/providers/catalog.py
"""
Live aggregate provider: Jamendo + iTunes
─────────────────────────────────────────
search fans out to both catalogues at once (≈70 % Jamendo / 30 % iTunes),
joins, concatenates Jamendo first and truncates. A failing branch only
contributes an empty list.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from music import itunes, jamendo
from music.exceptions import MusicServiceError
from music.providers.base import (
    DEFAULT_LIMITS,
    MusicProvider,
    clamp_limit,
    clamp_offset,
    seeds_or_default,
)
from music.providers.types import (
    Category,
    ProviderCapabilities,
    ProviderHealth,
    SearchResult,
    Track,
)

logger = logging.getLogger(__name__)

JAMENDO_SHARE = 0.7
ITUNES_SHARE = 0.3
# deepest merged position a page may reach (iTunes caps a search at 200)
MAX_WINDOW = 200

GENRES = (
    ("pop", "Pop"),
    ("rock", "Rock"),
    ("electronic", "Electronic"),
    ("hiphop", "Hip-Hop"),
    ("jazz", "Jazz"),
    ("classical", "Classical"),
    ("metal", "Metal"),
    ("folk", "Folk"),
    ("ambient", "Ambient"),
    ("soundtrack", "Soundtrack"),
)


def split_limit(limit: int) -> tuple:
    """(jamendo, itunes) shares of *limit*, each rounded up."""
    return math.ceil(limit * JAMENDO_SHARE), math.ceil(limit * ITUNES_SHARE)


def _isolated(label: str, fn: Callable[[], List[Track]]) -> List[Track]:
    try:
        return list(fn())
    except MusicServiceError as exc:
        logger.warning(f"{label} branch failed: {exc}")
    except Exception as exc:  # noqa: BLE001
        logger.exception(f"{label} branch crashed: {exc}")
    return []


class CatalogProvider(MusicProvider):
    """Free catalogues. Full-length Jamendo streams, iTunes 30-sec previews."""

    name = "jamendo+itunes"
    capabilities = ProviderCapabilities(real_time_data=True, preview_playback=True)

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None):
        # shared pool, two slots per in-flight search
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="catalog")

    def search(self, query: str, limit: int = DEFAULT_LIMITS["search"],
               offset: int = 0) -> SearchResult:
        """
        One page of the merged result list.

        Both catalogues are asked for their share of ``offset + limit``
        tracks; the page is sliced from the merged list.
        """
        limit = clamp_limit(limit, DEFAULT_LIMITS["search"])
        offset = min(clamp_offset(offset), MAX_WINDOW - limit)
        jamendo_limit, itunes_limit = split_limit(offset + limit)

        jamendo_future = self._executor.submit(
            _isolated, "jamendo", lambda: jamendo.search_tracks(query, jamendo_limit)
        )
        itunes_future = self._executor.submit(
            _isolated, "itunes", lambda: itunes.search_tracks(query, itunes_limit)
        )
        # _isolated never raises, so both results are always present
        combined = jamendo_future.result() + itunes_future.result()

        return SearchResult(
            tracks=tuple(combined[offset:offset + limit]),
            total=len(combined),
            has_next=len(combined) > offset + limit,
            has_previous=offset > 0,
        )

    def get_trending(self, limit: int = DEFAULT_LIMITS["trending"]) -> List[Track]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["trending"])
        return _isolated("jamendo", lambda: jamendo.popular_tracks(limit))[:limit]

    def get_categories(self, limit: int = DEFAULT_LIMITS["categories"]) -> List[Category]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["categories"])
        return [
            Category(id=gid, name=name, image_url=None)
            for gid, name in GENRES[:limit]
        ]

    def get_recommendations(
        self,
        seed_genres: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMITS["recommendations"],
    ) -> List[Track]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["recommendations"])
        seeds = seeds_or_default(seed_genres)
        return _isolated("jamendo", lambda: jamendo.tracks_by_tags(seeds, limit))[:limit]

    def health_check(self) -> ProviderHealth:
        try:
            jamendo.ping()
        except MusicServiceError as exc:
            return ProviderHealth.degraded(str(exc))
        return ProviderHealth.healthy("Jamendo reachable")
