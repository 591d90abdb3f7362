from django.apps import AppConfig
from django.conf import settings


class MusicConfig(AppConfig):
    """
    Builds the music facades once per process.

    Views reach them through ``apps.get_app_config("music")``; the selector
    behind ``facade`` is the single owner of the active-provider state.
    """

    name = "music"
    verbose_name = "Music providers"

    def ready(self):
        from music.providers.catalog import CatalogProvider
        from music.services.facade import MusicFacade
        from music.services.selector import PinnedSelector, ProviderSelector

        self.selector = ProviderSelector.from_settings(settings)
        self.facade = MusicFacade(self.selector)
        self.catalog = MusicFacade(PinnedSelector(CatalogProvider(), "catalog"))
