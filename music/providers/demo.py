# music/providers/demo.py
"""
Demo provider – works without API keys.

Tracks are generated from a fixed (title, artist, album) catalogue, cycled
to satisfy any limit. Duration / popularity / genre are randomised per call,
titles and ids are stable: the n-th generated track is always ``demo_<n>``.
"""
from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

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
    SourceProvider,
    Track,
)

logger = logging.getLogger(__name__)

CATALOGUE = (
    ("Shape of You", "Ed Sheeran", "÷ (Divide)"),
    ("Blinding Lights", "The Weeknd", "After Hours"),
    ("Watermelon Sugar", "Harry Styles", "Fine Line"),
    ("Good 4 U", "Olivia Rodrigo", "SOUR"),
    ("Levitating", "Dua Lipa", "Future Nostalgia"),
    ("Stay", "The Kid LAROI", "F*CK LOVE 3"),
    ("Heat Waves", "Glass Animals", "Dreamland"),
    ("As It Was", "Harry Styles", "Harrys House"),
    ("Anti-Hero", "Taylor Swift", "Midnights"),
    ("Flowers", "Miley Cyrus", "Endless Summer Vacation"),
    ("Unholy", "Sam Smith", "Gloria"),
    ("Bad Habit", "Steve Lacy", "Gemini Rights"),
    ("About Damn Time", "Lizzo", "About Damn Time"),
    ("Running Up That Hill", "Kate Bush", "Hounds of Love"),
    ("Glimpse of Us", "Joji", "Glimpse of Us"),
    ("Left and Right", "Charlie Puth", "Left and Right"),
    ("First Class", "Jack Harlow", "Come Home The Kids Miss You"),
    ("Break My Soul", "Beyoncé", "Renaissance"),
    ("Sunroof", "Nicky Youre", "Sunroof"),
    ("Late Night Talking", "Harry Styles", "Harrys House"),
)

GENRES = ("Pop", "Rock", "Hip-Hop", "Electronic", "Indie")

CATEGORIES = (
    ("pop", "Pop"),
    ("rock", "Rock"),
    ("hip-hop", "Hip-Hop"),
    ("electronic", "Electronic"),
    ("indie", "Indie"),
    ("r-b", "R&B"),
    ("country", "Country"),
    ("jazz", "Jazz"),
)

SEARCH_POOL = 100
RECOMMENDATION_POOL = 50


class DemoProvider(MusicProvider):
    """Synthetic catalogue for development and automatic fallback."""

    name = "demo"
    capabilities = ProviderCapabilities(track_details=True)

    def __init__(self, source: SourceProvider = SourceProvider.DEMO,
                 rng: Optional[random.Random] = None):
        self.source = source
        self._rng = rng or random.Random()

    # ---- generation -------------------------------------------------
    def _make_track(self, index: int) -> Track:
        """Track number *index* (0-based) of the cycled catalogue."""
        rng = self._rng
        title, artist, album = CATALOGUE[index % len(CATALOGUE)]
        number = index + 1
        return Track(
            id=f"demo_{number}",
            title=title,
            artist=artist,
            album=album,
            duration_seconds=180 + rng.randrange(120),
            cover_url=f"https://picsum.photos/300/300?random={number}&blur=1",
            external_url="https://open.spotify.com",
            popularity=70 + rng.randrange(30),
            explicit=rng.random() > 0.8,
            genre=rng.choice(GENRES),
            release_date=f"202{rng.randrange(4)}-{rng.randrange(1, 13):02d}-01",
            artist_id=f"artist_{index % 10}",
            album_id=f"album_{index % 15}",
            source_provider=self.source,
        )

    def _generate(self, count: int) -> List[Track]:
        return [self._make_track(i) for i in range(count)]

    # ---- capability set ---------------------------------------------
    def get_trending(self, limit: int = DEFAULT_LIMITS["trending"]) -> List[Track]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["trending"])
        tracks = self._generate(limit)
        logger.debug(f"Generated {len(tracks)} demo tracks")
        return tracks

    def search(self, query: str, limit: int = DEFAULT_LIMITS["search"],
               offset: int = 0) -> SearchResult:
        limit = clamp_limit(limit, DEFAULT_LIMITS["search"])
        offset = clamp_offset(offset)
        needle = (query or "").strip().lower()
        matches = [
            t for t in self._generate(SEARCH_POOL)
            if needle in t.title.lower()
            or needle in t.artist.lower()
            or needle in t.album.lower()
        ]
        logger.debug(f"Demo search {query!r}: {len(matches)} matches")
        return SearchResult(
            tracks=tuple(matches[offset:offset + limit]),
            total=len(matches),
            has_next=len(matches) > offset + limit,
            has_previous=offset > 0,
        )

    def get_categories(self, limit: int = DEFAULT_LIMITS["categories"]) -> List[Category]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["categories"])
        return [
            Category(id=cid, name=name, image_url=f"https://picsum.photos/300/300?random=cat{i}")
            for i, (cid, name) in enumerate(CATEGORIES[:limit], start=1)
        ]

    def get_recommendations(
        self,
        seed_genres: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMITS["recommendations"],
    ) -> List[Track]:
        limit = clamp_limit(limit, DEFAULT_LIMITS["recommendations"])
        logger.debug(f"Demo recommendations for {', '.join(seeds_or_default(seed_genres))}")
        return self._generate(RECOMMENDATION_POOL)[:limit]

    def get_track_details(self, track_id: str) -> Optional[Track]:
        prefix, _, number = (track_id or "").partition("_")
        if prefix != "demo" or not number.isdigit() or int(number) < 1:
            return None
        return self._make_track(int(number) - 1)

    def health_check(self) -> ProviderHealth:
        return ProviderHealth.healthy("Demo Music Service - No API keys required!")
