# music/providers/spotify.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

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
from music.spotify import SpotifyClient, format_track, format_tracks

logger = logging.getLogger(__name__)

# Spotify has no public "trending" endpoint; these terms match nearly
# everything and stand in for one.
TRENDING_TERMS = ("a", "the", "love", "song", "music")
TRENDING_BATCH = 10


class SpotifyProvider(MusicProvider):
    """Spotify Web API through a client-credentials lease."""

    name = "spotify"
    capabilities = ProviderCapabilities(
        track_details=True,
        real_time_data=True,
        preview_playback=True,
    )

    def __init__(self, client: SpotifyClient):
        self.client = client

    def search(self, query: str, limit: int = DEFAULT_LIMITS["search"],
               offset: int = 0) -> SearchResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["search"])
        offset = clamp_offset(offset)
        try:
            data = self.client.search(query, limit, offset)
        except MusicServiceError as exc:
            logger.warning(f"Spotify search failed for {query!r}: {exc}")
            return SearchResult.empty()

        page = data.get("tracks") or {}
        tracks = format_tracks(page.get("items"))[:limit]
        logger.debug(f"Spotify search {query!r}: {len(tracks)} of {page.get('total', 0)}")
        return SearchResult(
            tracks=tuple(tracks),
            total=int(page.get("total") or 0),
            has_next=page.get("next") is not None,
            has_previous=page.get("previous") is not None,
        )

    def get_trending(self, limit: int = DEFAULT_LIMITS["trending"]) -> List[Track]:
        """
        Approximate trending by running broad searches.

        Results are de-duplicated by id across batches and collection stops
        as soon as *limit* unique tracks exist. Known limitation: ordering
        is Spotify's relevance ranking, not a chart.
        """
        limit = clamp_limit(limit, DEFAULT_LIMITS["trending"])
        seen = set()
        unique: List[Track] = []

        for term in TRENDING_TERMS:
            try:
                data = self.client.search(term, TRENDING_BATCH)
            except MusicServiceError as exc:
                logger.info(f"Trending batch {term!r} failed: {exc}")
                if getattr(exc, "status", None) == 429:
                    break  # rate limited: later batches would fail too
                continue

            for track in format_tracks((data.get("tracks") or {}).get("items")):
                if track.id in seen:
                    continue
                seen.add(track.id)
                unique.append(track)
                if len(unique) >= limit:
                    return unique

        if not unique:
            logger.error("Spotify trending produced no tracks at all")
        return unique

    def get_categories(self, limit: int = DEFAULT_LIMITS["categories"]) -> List[Category]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["categories"])
        try:
            data = self.client.categories(limit)
        except MusicServiceError as exc:
            logger.warning(f"Spotify categories failed: {exc}")
            return []

        categories = []
        for item in (data.get("categories") or {}).get("items") or []:
            if not item or not item.get("id"):
                continue
            icons = item.get("icons") or []
            categories.append(Category(
                id=item["id"],
                name=item.get("name") or "",
                image_url=icons[0].get("url") if icons else None,
            ))
        return categories[:limit]

    def get_recommendations(
        self,
        seed_genres: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMITS["recommendations"],
    ) -> List[Track]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["recommendations"])
        seeds = seeds_or_default(seed_genres)
        try:
            data = self.client.recommendations(seeds, limit)
        except MusicServiceError as exc:
            logger.warning(f"Spotify recommendations failed for {seeds}: {exc}")
            return []
        return format_tracks(data.get("tracks"))[:limit]

    def get_track_details(self, track_id: str) -> Optional[Track]:
        try:
            return format_track(self.client.track(track_id))
        except MusicServiceError as exc:
            logger.warning(f"Spotify track {track_id} failed: {exc}")
            return None

    def health_check(self) -> ProviderHealth:
        try:
            self.client.ensure_token()
        except MusicServiceError as exc:
            return ProviderHealth.degraded(str(exc))
        return ProviderHealth.healthy("Spotify API connection healthy")
