# music/exceptions.py
"""
Error taxonomy for the music provider layer.

Upstream / auth errors are absorbed inside providers; configuration errors
are raised to the caller so the REST layer can answer with a 400.
"""
from __future__ import annotations

from typing import Iterable, Tuple


class MusicServiceError(Exception):
    """Base class for every error raised by the music package."""


class UpstreamError(MusicServiceError):
    """Network error, timeout, rate limit or malformed upstream payload."""

    def __init__(self, provider: str, message: str, status: int | None = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class ProviderAuthError(UpstreamError):
    """Token exchange failed or the bearer credential was rejected."""


class ProviderConfigurationError(MusicServiceError):
    """Bad mode value or missing credentials for the requested mode."""

    def __init__(self, message: str, valid_modes: Iterable[str] = ()):
        super().__init__(message)
        self.valid_modes: Tuple[str, ...] = tuple(valid_modes)


class InvalidModeError(ProviderConfigurationError, ValueError):
    """switch_mode() was given a target outside the valid set."""


class UnsupportedOperation(MusicServiceError):
    """The provider does not implement an optional capability."""
