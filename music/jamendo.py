# music/jamendo.py
"""
Jamendo v3 API wrapper
Docs: https://developer.jamendo.com/v3.0

Free catalogue: full-length MP3 streams, no OAuth, client_id only.
Functions raise UpstreamError; the catalog provider decides how to degrade.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import requests
from django.conf import settings

from .exceptions import UpstreamError
from .providers.types import (
    PLACEHOLDER_COVER,
    SourceProvider,
    Track,
    UNKNOWN_GENRE,
    truncate_seconds,
)
from .services.cache_manager import CacheManager
from .utils.monitoring import ErrorTracker, PerformanceMonitor

JAMENDO_ROOT = getattr(settings, "JAMENDO_ROOT", "https://api.jamendo.com/v3.0")

# the fields every tracks/ call asks for
_TRACK_PARAMS = {
    "include": "musicinfo",
    "audioformat": "mp32",
    "imagesize": "300",
}


@PerformanceMonitor.track_api_call("jamendo", "tracks")
def _get(endpoint: str, params: Optional[Dict] = None) -> Dict:
    query = {
        "client_id": getattr(settings, "JAMENDO_CLIENT_ID", ""),
        "format": "json",
        **(params or {}),
    }
    try:
        res = requests.get(
            f"{JAMENDO_ROOT}/{endpoint}/",
            params=query,
            timeout=getattr(settings, "MUSIC_HTTP_TIMEOUT", 10),
        )
        if res.status_code == 429:
            retry = res.headers.get("Retry-After")
            ErrorTracker.log_api_rate_limit("jamendo", int(retry) if retry and retry.isdigit() else None)
            raise UpstreamError("jamendo", "rate limited", 429)
        res.raise_for_status()
        data = res.json()
    except requests.exceptions.RequestException as exc:
        status = getattr(exc.response, "status_code", None)
        raise UpstreamError("jamendo", str(exc), status) from exc
    except ValueError as exc:  # body is not JSON
        raise UpstreamError("jamendo", f"malformed response: {exc}") from exc

    headers = data.get("headers") or {}
    if headers.get("status") == "failed":
        raise UpstreamError("jamendo", headers.get("error_message") or "request failed")
    return data


def _results(data: Dict, *, genre: Optional[str] = None) -> List[Track]:
    tracks = []
    for raw in data.get("results") or []:
        track = _normalize_track(raw, genre=genre)
        if track is not None:
            tracks.append(track)
    return tracks


# ------------------------------------------------------------
def search_tracks(query: str, limit: int = 15) -> List[Track]:
    """Free-text search over track / artist / album names."""
    params = {"search": query, "limit": limit}
    return CacheManager.memoize(
        "search",
        {"provider": "jamendo", **params},
        lambda: _results(_get("tracks", {**_TRACK_PARAMS, **params})),
    )


def popular_tracks(limit: int = 20) -> List[Track]:
    """Tracks ordered by all-time popularity (used as "trending")."""
    params = {"order": "popularity_total", "limit": limit}
    return CacheManager.memoize(
        "trending",
        {"provider": "jamendo", **params},
        lambda: _results(_get("tracks", {**_TRACK_PARAMS, **params})),
    )


def tracks_by_tags(tags: Sequence[str], limit: int = 20) -> List[Track]:
    """Popular tracks carrying any of *tags* (genre seeds)."""
    joined = "+".join(t.strip().lower() for t in tags if t.strip())
    params = {"tags": joined, "order": "popularity_total", "limit": limit}
    genre = tags[0].strip().title() if len(tags) == 1 else None
    return CacheManager.memoize(
        "genre",
        {"provider": "jamendo", **params},
        lambda: _results(_get("tracks", {**_TRACK_PARAMS, **params}), genre=genre),
    )


def ping() -> None:
    """Cheapest possible round trip; raises UpstreamError when unreachable."""
    _get("tracks", {"limit": 1})


# ------------------------------------------------------------
def _normalize_track(t: Dict, *, genre: Optional[str] = None) -> Optional[Track]:
    if not t or t.get("id") in (None, ""):
        return None
    genres = ((t.get("musicinfo") or {}).get("tags") or {}).get("genres") or []
    return Track(
        id=f"jamendo_{t['id']}",
        title=t.get("name") or "",
        artist=t.get("artist_name") or "",
        album=t.get("album_name") or "",
        duration_seconds=truncate_seconds(t.get("duration")),
        audio_preview_url=t.get("audio") or None,
        cover_url=t.get("album_image") or t.get("image") or PLACEHOLDER_COVER,
        genre=genre or (str(genres[0]).title() if genres else UNKNOWN_GENRE),
        external_url=t.get("shareurl") or "",
        release_date=t.get("releasedate"),
        artist_id=str(t["artist_id"]) if t.get("artist_id") else None,
        album_id=str(t["album_id"]) if t.get("album_id") else None,
        source_provider=SourceProvider.JAMENDO,
    )
