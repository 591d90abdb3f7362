from django.urls import include, path

from music.api.views import api_health

urlpatterns = [
    path("api/music/", include("music.api.urls")),
    path("api/search/", include("music.urls")),
    path("api/health/", api_health, name="api-health"),
]
