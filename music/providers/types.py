# music/providers/types.py
"""
Provider-neutral value objects
──────────────────────────────
・Track / Category / SearchResult are built fresh per request
・to_dict() gives the JSON shape used by the REST layer
・nothing here is mutated after construction (frozen dataclasses)
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

PLACEHOLDER_COVER = "https://via.placeholder.com/300x300/1db954/ffffff?text=%E2%99%AA"
UNKNOWN_GENRE = "Unknown"


class SourceProvider(str, Enum):
    SPOTIFY = "spotify"
    JAMENDO = "jamendo"
    ITUNES = "itunes"
    DEMO = "demo"
    FALLBACK = "fallback"


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"


def truncate_seconds(value: Any, *, millis: bool = False) -> int:
    """Whole seconds from a ms / s field. Truncates, never rounds; junk -> 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if millis:
        number /= 1000
    return max(0, int(number))


def clamp_popularity(value: Any) -> int:
    try:
        return min(100, max(0, int(value)))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Track:
    id: str
    title: str
    artist: str
    album: str
    duration_seconds: int
    source_provider: SourceProvider
    audio_preview_url: Optional[str] = None
    cover_url: str = PLACEHOLDER_COVER
    genre: str = UNKNOWN_GENRE
    external_url: str = ""
    popularity: int = 0
    explicit: bool = False
    release_date: Optional[str] = None
    artist_id: Optional[str] = None
    album_id: Optional[str] = None
    isrc: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source_provider"] = self.source_provider.value
        return data


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SearchResult:
    tracks: Tuple[Track, ...] = ()
    total: int = 0
    has_next: bool = False
    has_previous: bool = False

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracks": [t.to_dict() for t in self.tracks],
            "total": self.total,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
        }


@dataclass(frozen=True)
class ProviderHealth:
    """Result of one health-check call; never cached."""
    status: HealthStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is HealthStatus.OK

    @classmethod
    def healthy(cls, message: str = "") -> "ProviderHealth":
        return cls(HealthStatus.OK, message)

    @classmethod
    def degraded(cls, reason: str) -> "ProviderHealth":
        return cls(HealthStatus.DEGRADED, reason)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "message": self.message}


@dataclass(frozen=True)
class ProviderCapabilities:
    search: bool = True
    trending: bool = True
    categories: bool = True
    recommendations: bool = True
    track_details: bool = False
    real_time_data: bool = False
    preview_playback: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class ServiceInfo:
    type: str
    name: str
    description: str
    mode: str
    features: List[str] = field(default_factory=list)
    capabilities: ProviderCapabilities = field(default_factory=ProviderCapabilities)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["capabilities"] = self.capabilities.to_dict()
        return data
