from django.urls import path
from music.api.views import (
    CategoriesAPIView,
    HealthAPIView,
    RecommendationsAPIView,
    SearchAPIView,
    ServiceInfoAPIView,
    SwitchModeAPIView,
    TrackDetailAPIView,
    TrendingAPIView,
)

app_name = 'music_api'

urlpatterns = [
    # Service state
    path('health/', HealthAPIView.as_view(), name='health'),
    path('service-info/', ServiceInfoAPIView.as_view(), name='service-info'),
    path('switch-mode/', SwitchModeAPIView.as_view(), name='switch-mode'),

    # Catalogue
    path('search/', SearchAPIView.as_view(), name='search'),
    path('trending/', TrendingAPIView.as_view(), name='trending'),
    path('categories/', CategoriesAPIView.as_view(), name='categories'),
    path('recommendations/',
         RecommendationsAPIView.as_view(),
         name='recommendations'),
    path('track/<str:track_id>/',
         TrackDetailAPIView.as_view(),
         name='track-detail'),
]
