"""
iTunes Search helper
────────────────────
・song search with 30-sec preview URLs
・artwork is upgraded from 100x100 to 300x300
・results (never failures) are cached through CacheManager
"""
from __future__ import annotations

from typing import Dict, List, Optional

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

ITUNES_API = "https://itunes.apple.com/search"
ITUNES_MAX_LIMIT = 200


@PerformanceMonitor.track_api_call("itunes", "search")
def _search(term: str, limit: int, country: str) -> Dict:
    try:
        resp = requests.get(
            ITUNES_API,
            params=dict(term=term, media="music", entity="song", limit=limit, country=country),
            headers={"User-Agent": "Mozilla/5.0"},
            timeout=getattr(settings, "MUSIC_HTTP_TIMEOUT", 10),
        )
        # iTunes answers bursts with 403 instead of 429
        if resp.status_code in (403, 429):
            ErrorTracker.log_api_rate_limit("itunes")
            raise UpstreamError("itunes", "rate limited", resp.status_code)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.RequestException as exc:
        status = getattr(exc.response, "status_code", None)
        raise UpstreamError("itunes", str(exc), status) from exc
    except ValueError as exc:
        raise UpstreamError("itunes", f"malformed response: {exc}") from exc


def search_tracks(term: str, limit: int = 10, *, country: str = "us") -> List[Track]:
    """
    Search songs for *term* (e.g. "Adele Hello") and return normalised tracks.
    Raises UpstreamError on network / HTTP / JSON failures.
    """
    limit = max(1, min(limit, ITUNES_MAX_LIMIT))

    def fetch() -> List[Track]:
        items = _search(term, limit, country).get("results") or []
        tracks = [_normalize_track(t) for t in items]
        return [t for t in tracks if t is not None]

    return CacheManager.memoize(
        "search",
        {"provider": "itunes", "term": term.lower(), "limit": limit, "country": country},
        fetch,
    )


# ------------------------------------------------------------
def _artwork(url: Optional[str]) -> str:
    if not url:
        return PLACEHOLDER_COVER
    return url.replace("100x100", "300x300")


def _normalize_track(t: Dict) -> Optional[Track]:
    # collections / music videos slip through even with entity=song
    if not t or not t.get("trackId") or t.get("kind") not in (None, "song"):
        return None
    return Track(
        id=f"itunes_{t['trackId']}",
        title=t.get("trackName") or "",
        artist=t.get("artistName") or "",
        album=t.get("collectionName") or "",
        duration_seconds=truncate_seconds(t.get("trackTimeMillis"), millis=True),
        audio_preview_url=t.get("previewUrl") or None,
        cover_url=_artwork(t.get("artworkUrl100")),
        genre=t.get("primaryGenreName") or UNKNOWN_GENRE,
        external_url=t.get("trackViewUrl") or "",
        explicit=t.get("trackExplicitness") == "explicit",
        release_date=t.get("releaseDate"),
        artist_id=str(t["artistId"]) if t.get("artistId") else None,
        album_id=str(t["collectionId"]) if t.get("collectionId") else None,
        source_provider=SourceProvider.ITUNES,
    )
