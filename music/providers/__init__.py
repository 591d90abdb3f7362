"""
Music provider abstraction.

Concrete providers (spotify, catalog, demo) import the upstream clients, so
they are not imported here; use the submodules directly.
"""
from music.providers.base import MusicProvider, clamp_limit  # noqa: F401
from music.providers.types import (  # noqa: F401
    Category,
    ProviderCapabilities,
    ProviderHealth,
    SearchResult,
    ServiceInfo,
    SourceProvider,
    Track,
)
