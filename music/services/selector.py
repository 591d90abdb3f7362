"""
Provider selection
──────────────────
LIVE (Spotify) / DEMO / FALLBACK state machine.

One ProviderSelector is built at start-up (see MusicConfig.ready) and shared
by every request; activation is lazy so importing the app never touches the
network.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from music.exceptions import (
    InvalidModeError,
    MusicServiceError,
    ProviderConfigurationError,
)
from music.providers.base import MusicProvider
from music.providers.demo import DemoProvider
from music.providers.types import ServiceInfo, SourceProvider

logger = logging.getLogger("music")


class ServiceMode(Enum):
    LIVE = "spotify"
    DEMO = "demo"
    FALLBACK = "demo-fallback"


VALID_MODES = (ServiceMode.DEMO.value, ServiceMode.LIVE.value)

_SERVICE_DETAILS = {
    ServiceMode.DEMO: {
        "name": "Demo Music Service",
        "description": "Development mode with curated sample data",
        "features": ["Instant response", "No API limits", "100% uptime"],
        "mode": "Development",
    },
    ServiceMode.LIVE: {
        "name": "Spotify Web API",
        "description": "Real-time music data from millions of songs",
        "features": ["Real tracks", "30-second previews", "Live data"],
        "mode": "Production",
    },
    ServiceMode.FALLBACK: {
        "name": "Demo Service (Auto-Fallback)",
        "description": "Automatic failover when external APIs unavailable",
        "features": ["Always available", "Graceful degradation", "Error resilience"],
        "mode": "Resilient",
    },
}


@dataclass(frozen=True)
class SwitchResult:
    success: bool
    previous: Optional[str]
    current: str
    message: str

    def to_dict(self):
        return {
            "success": self.success,
            "previous": self.previous,
            "current": self.current,
            "message": self.message,
        }


class ProviderSelector:
    """
    Owns the currently active provider.

    Args:
        use_demo_mode: start in DEMO instead of trying Spotify
        live_provider: Spotify provider, None when it cannot be built
        credentials_configured: both Spotify credentials are present
    """

    def __init__(
        self,
        *,
        use_demo_mode: bool,
        live_provider: Optional[MusicProvider] = None,
        credentials_configured: bool = False,
        demo_provider: Optional[MusicProvider] = None,
        fallback_provider: Optional[MusicProvider] = None,
    ):
        self.use_demo_mode = use_demo_mode
        self.credentials_configured = credentials_configured
        self._live = live_provider
        self._demo = demo_provider or DemoProvider(SourceProvider.DEMO)
        self._fallback = fallback_provider or DemoProvider(SourceProvider.FALLBACK)
        self._lock = threading.RLock()
        self._mode: Optional[ServiceMode] = None
        self._provider: Optional[MusicProvider] = None
        self.fallback_reason: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "ProviderSelector":
        from music.providers.spotify import SpotifyProvider
        from music.spotify import SpotifyClient

        client_id = getattr(settings, "SPOTIFY_CLIENT_ID", "")
        client_secret = getattr(settings, "SPOTIFY_CLIENT_SECRET", "")
        configured = bool(client_id and client_secret)

        live = None
        if configured:
            live = SpotifyProvider(SpotifyClient(
                client_id,
                client_secret,
                market=getattr(settings, "SPOTIFY_MARKET", "US"),
                timeout=getattr(settings, "MUSIC_HTTP_TIMEOUT", 10),
            ))
        else:
            logger.warning("SPOTIFY_CLIENT_ID / SECRET not set; live mode unavailable")

        return cls(
            use_demo_mode=bool(getattr(settings, "USE_DEMO_MODE", False)),
            live_provider=live,
            credentials_configured=configured,
        )

    # ---- state --------------------------------------------------------
    @property
    def mode(self) -> Optional[ServiceMode]:
        return self._mode

    @property
    def service_type(self) -> str:
        return self._mode.value if self._mode else "uninitialized"

    def _set(self, mode: ServiceMode, reason: Optional[str] = None) -> None:
        previous = self._mode
        self._mode = mode
        self._provider = {
            ServiceMode.LIVE: self._live,
            ServiceMode.DEMO: self._demo,
            ServiceMode.FALLBACK: self._fallback,
        }[mode]
        self.fallback_reason = reason if mode is ServiceMode.FALLBACK else None
        logger.info(
            f"Music service: {previous.value if previous else '-'} -> {mode.value}"
            + (f" ({reason})" if reason else "")
        )

    def _activate_live(self) -> None:
        """Raise unless Spotify is configured and healthy."""
        if self._live is None or not self.credentials_configured:
            raise ProviderConfigurationError(
                "Spotify credentials missing from environment", valid_modes=("demo",)
            )
        health = self._live.health_check()
        if not health.ok:
            raise MusicServiceError(f"Spotify health check failed: {health.message}")

    def activate(self) -> ServiceMode:
        """Pick the initial state. Never raises: failures land in FALLBACK."""
        with self._lock:
            if self.use_demo_mode:
                self._set(ServiceMode.DEMO)
                return self._mode

            try:
                self._activate_live()
            except Exception as exc:  # noqa: BLE001
                logger.error(f"Spotify activation failed: {exc}")
                self._set(ServiceMode.FALLBACK, str(exc))
            else:
                self._set(ServiceMode.LIVE)
            return self._mode

    def active(self) -> MusicProvider:
        if self._provider is None:
            self.activate()
        return self._provider

    # ---- manual switching ---------------------------------------------
    def switch_mode(self, target: str) -> SwitchResult:
        """
        Switch to ``demo`` or ``spotify``.

        Requesting the current mode is a successful no-op. Unknown targets
        raise InvalidModeError; ``spotify`` without credentials raises
        ProviderConfigurationError and leaves the state untouched. A failing
        Spotify health check demotes to FALLBACK and reports success=False.
        """
        normalized = (target or "").strip().lower()
        if normalized not in VALID_MODES:
            raise InvalidModeError(
                f"Invalid mode {target!r}; valid modes: {', '.join(VALID_MODES)}",
                valid_modes=VALID_MODES,
            )

        with self._lock:
            previous = self._mode.value if self._mode else None
            wanted = ServiceMode(normalized)

            if self._mode is wanted:
                return SwitchResult(True, previous, wanted.value, f"Already in {wanted.value} mode")

            if wanted is ServiceMode.DEMO:
                self._set(ServiceMode.DEMO)
                return SwitchResult(True, previous, self._mode.value,
                                    f"Switched from {previous or '-'} to demo mode")

            try:
                self._activate_live()
            except ProviderConfigurationError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.error(f"Switch to spotify failed: {exc}")
                self._set(ServiceMode.FALLBACK, str(exc))
                return SwitchResult(False, previous, self._mode.value,
                                    f"Spotify unavailable, serving fallback data: {exc}")

            self._set(ServiceMode.LIVE)
            return SwitchResult(True, previous, self._mode.value,
                                f"Switched from {previous or '-'} to spotify mode")

    # ---- metadata -----------------------------------------------------
    def service_info(self) -> ServiceInfo:
        provider = self.active()
        details = _SERVICE_DETAILS[self._mode]
        return ServiceInfo(
            type=self._mode.value,
            name=details["name"],
            description=details["description"],
            mode=details["mode"],
            features=list(details["features"]),
            capabilities=provider.capabilities,
        )


class PinnedSelector:
    """Selector stand-in that always serves one provider (no switching)."""

    def __init__(self, provider: MusicProvider, service_type: Optional[str] = None):
        self._provider = provider
        self.service_type = service_type or provider.name

    def active(self) -> MusicProvider:
        return self._provider

    def service_info(self) -> ServiceInfo:
        return ServiceInfo(
            type=self.service_type,
            name=self._provider.name,
            description="Fixed provider",
            mode="Live",
            capabilities=self._provider.capabilities,
        )
