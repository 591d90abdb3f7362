from django.urls import path
from music.api import views

app_name = "search"

# Mode-independent search over the free catalogues
urlpatterns = [
    path("songs/", views.CatalogSearchAPIView.as_view(), name="songs"),
    path("suggestions/", views.search_suggestions, name="suggestions"),
]
