"""
Light-weight Spotify helper
───────────────────────────
・client-credentials flow (Spotipy) behind a CredentialLease
・lease is re-acquired when it expires or when Spotify answers 401
・every call carries a bounded timeout; errors surface as UpstreamError
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Final, List, Optional, Sequence

import requests
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyClientCredentials

from .exceptions import ProviderAuthError, ProviderConfigurationError, UpstreamError
from .providers.types import (
    PLACEHOLDER_COVER,
    SourceProvider,
    Track,
    UNKNOWN_GENRE,
    clamp_popularity,
    truncate_seconds,
)
from .utils.monitoring import ErrorTracker, PerformanceMonitor

_log = logging.getLogger(__name__)

EXPIRY_MARGIN: Final[float] = 30.0  # seconds shaved off the stated expiry
MAX_SEED_GENRES: Final[int] = 5

TokenFetcher = Callable[[], Dict[str, Any]]


# ────────────────────────────────────────────────────────────────────
# Credential lease
# ────────────────────────────────────────────────────────────────────
class CredentialLease:
    """
    Bearer token plus its expiry, independent of any HTTP client.

    *fetch* performs the client-credentials exchange and returns a dict with
    ``access_token`` and either ``expires_at`` (epoch seconds) or
    ``expires_in``. Overlapping refreshes are harmless: the last one wins.
    """

    def __init__(self, fetch: TokenFetcher, *, margin: float = EXPIRY_MARGIN,
                 clock: Callable[[], float] = time.time):
        self._fetch = fetch
        self._margin = margin
        self._clock = clock
        self.token: Optional[str] = None
        self.expires_at: float = 0.0

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return bool(self.token) and self.expires_at - now > self._margin

    def refresh(self) -> str:
        try:
            data = self._fetch()
        except Exception as exc:  # noqa: BLE001
            self.invalidate()
            raise ProviderAuthError("spotify", f"token exchange failed: {exc}") from exc

        token = (data or {}).get("access_token")
        if not token:
            self.invalidate()
            raise ProviderAuthError("spotify", "token exchange returned no access_token")

        if data.get("expires_at"):
            expires_at = float(data["expires_at"])
        else:
            expires_at = self._clock() + float(data.get("expires_in", 3600))

        self.token, self.expires_at = token, expires_at
        _log.info("Spotify token acquired, valid for %.0fs", expires_at - self._clock())
        return token

    def invalidate(self) -> None:
        self.token, self.expires_at = None, 0.0

    def bearer(self, now: Optional[float] = None) -> str:
        """Current token, refreshing first when missing or about to expire."""
        if self.is_valid(now):
            return self.token  # type: ignore[return-value]
        return self.refresh()


def client_credentials_fetcher(client_id: str, client_secret: str,
                               *, timeout: float = 10) -> TokenFetcher:
    """Token exchange through Spotipy; the token lives only in memory."""
    auth: Optional[SpotifyClientCredentials] = None

    def fetch() -> Dict[str, Any]:
        nonlocal auth
        if auth is None:
            # built on first use: spotipy rejects empty credentials eagerly
            auth = SpotifyClientCredentials(
                client_id=client_id,
                client_secret=client_secret,
                requests_timeout=timeout,
                cache_handler=MemoryCacheHandler(),
            )
        # check_cache=False: the lease decides when a new token is needed
        return auth.get_access_token(as_dict=True, check_cache=False)

    return fetch


# ────────────────────────────────────────────────────────────────────
# API client
# ────────────────────────────────────────────────────────────────────
class SpotifyClient:
    """Thin wrapper over spotipy.Spotify that owns the credential lease."""

    def __init__(
        self,
        client_id: str = "",
        client_secret: str = "",
        *,
        market: str = "US",
        timeout: float = 10,
        lease: Optional[CredentialLease] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.configured = bool(client_id and client_secret) or lease is not None
        self.market = market
        self.lease = lease or CredentialLease(
            client_credentials_fetcher(client_id, client_secret, timeout=timeout)
        )
        # plain session: spotipy's own retry adapter would sleep out a
        # 429's Retry-After, unbounded by requests_timeout
        self._session = requests.Session()
        self._client_factory = client_factory or (
            lambda token: spotipy.Spotify(
                auth=token, requests_session=self._session, requests_timeout=timeout
            )
        )
        self._sp: Any = None
        self._sp_token: Optional[str] = None

    def _client(self) -> Any:
        token = self.lease.bearer()
        if self._sp is None or self._sp_token != token:
            self._sp, self._sp_token = self._client_factory(token), token
        return self._sp

    def ensure_token(self) -> str:
        if not self.configured:
            raise ProviderConfigurationError(
                "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET are not set"
            )
        return self.lease.bearer()

    def _call(self, endpoint: str, fn: Callable[[Any], Any]) -> Any:
        self.ensure_token()
        tracked = PerformanceMonitor.track_api_call("spotify", endpoint)(fn)
        try:
            try:
                return tracked(self._client())
            except spotipy.SpotifyException as exc:
                if exc.http_status != 401:
                    raise
                # token revoked or expired early -> one fresh lease, one retry
                _log.info("Spotify 401 on %s, refreshing token", endpoint)
                self.lease.invalidate()
                return tracked(self._client())
        except spotipy.SpotifyException as exc:
            if exc.http_status == 429:
                retry = (exc.headers or {}).get("Retry-After")
                ErrorTracker.log_api_rate_limit("spotify", int(retry) if str(retry).isdigit() else None)
            if exc.http_status == 401:
                self.lease.invalidate()
                raise ProviderAuthError("spotify", exc.msg, 401) from exc
            raise UpstreamError("spotify", f"{endpoint}: {exc.msg}", exc.http_status) from exc
        except requests.exceptions.RequestException as exc:
            raise UpstreamError("spotify", f"{endpoint}: {exc}") from exc

    # ---- endpoints --------------------------------------------------
    def search(self, query: str, limit: int, offset: int = 0) -> Dict:
        return self._call(
            "search",
            lambda sp: sp.search(q=query, limit=limit, offset=offset, type="track", market=self.market),
        )

    def categories(self, limit: int) -> Dict:
        return self._call("categories", lambda sp: sp.categories(country=self.market, limit=limit))

    def recommendations(self, seed_genres: Sequence[str], limit: int) -> Dict:
        seeds = list(seed_genres)[:MAX_SEED_GENRES]
        return self._call(
            "recommendations",
            lambda sp: sp.recommendations(seed_genres=seeds, limit=limit, country=self.market),
        )

    def track(self, track_id: str) -> Dict:
        return self._call("tracks", lambda sp: sp.track(track_id, market=self.market))


# ────────────────────────────────────────────────────────────────────
# Normalisation
# ────────────────────────────────────────────────────────────────────
def format_track(item: Optional[Dict]) -> Optional[Track]:
    """Spotify track object -> Track; None for null / id-less items."""
    if not item or not item.get("id"):
        return None
    album = item.get("album") or {}
    artists: List[Dict] = item.get("artists") or []
    images = album.get("images") or []
    genres = album.get("genres") or []
    return Track(
        id=item["id"],
        title=item.get("name") or "",
        artist=", ".join(a.get("name", "") for a in artists if a),
        album=album.get("name") or "",
        duration_seconds=truncate_seconds(item.get("duration_ms"), millis=True),
        audio_preview_url=item.get("preview_url") or None,
        cover_url=(images[0].get("url") if images else None) or PLACEHOLDER_COVER,
        genre=genres[0] if genres else UNKNOWN_GENRE,
        external_url=(item.get("external_urls") or {}).get("spotify", ""),
        popularity=clamp_popularity(item.get("popularity") or 0),
        explicit=bool(item.get("explicit")),
        release_date=album.get("release_date"),
        artist_id=artists[0].get("id") if artists else None,
        album_id=album.get("id"),
        isrc=(item.get("external_ids") or {}).get("isrc"),
        source_provider=SourceProvider.SPOTIFY,
    )


def format_tracks(items: Optional[Sequence[Optional[Dict]]]) -> List[Track]:
    tracks = [format_track(item) for item in items or []]
    return [t for t in tracks if t is not None]
