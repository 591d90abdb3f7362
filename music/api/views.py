"""
Music API endpoints
Thin HTTP layer over MusicFacade: parse + validate query parameters, call the
facade, map its result / error to a status code.
"""
import logging
from datetime import datetime, timezone

from django.apps import apps
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework.views import APIView

from music.api.serializers import (
    LimitSerializer,
    ModeSwitchSerializer,
    RecommendationQuerySerializer,
    SearchQuerySerializer,
    SuggestionQuerySerializer,
)
from music.exceptions import ProviderConfigurationError
from music.services.facade import FacadeResult

logger = logging.getLogger("music")

SUGGESTIONS = [
    "Coldplay", "Ed Sheeran", "The Beatles", "Queen", "Adele",
    "Taylor Swift", "Bruno Mars", "Eminem", "Drake", "Rihanna",
]
MAX_SUGGESTIONS = 5


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _bad_request(serializer) -> Response:
    return Response(
        {"error": "Invalid request", "details": serializer.errors, "timestamp": _now()},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _respond(result: FacadeResult, key: str) -> Response:
    """
    Wrap facade output as ``{<key>: data, "meta": {...}}``.

    Provider failures still carry the (empty) payload, with the error
    merged in and a 502 status.
    """
    payload = result.to_dict()
    body = {key: payload["data"], "meta": payload["meta"]}
    if isinstance(body[key], dict) and key == "tracks":
        # search results: flatten the SearchResult fields next to tracks
        body.update({k: v for k, v in body[key].items() if k != "tracks"})
        body[key] = body[key]["tracks"]
    if result.error:
        body.update(result.error)
        return Response(body, status=status.HTTP_502_BAD_GATEWAY)
    return Response(body)


class MusicAPIView(APIView):
    """Base view: resolves the process-wide facades from the app config."""

    facade_name = "facade"

    @property
    def facade(self):
        return getattr(apps.get_app_config("music"), self.facade_name)


class HealthAPIView(MusicAPIView):
    def get(self, request):
        result = self.facade.health_check()
        return _respond(result, "health")


class ServiceInfoAPIView(MusicAPIView):
    def get(self, request):
        return _respond(self.facade.get_service_info(), "service_info")


class SwitchModeAPIView(MusicAPIView):
    def post(self, request):
        """
        Switch the active provider.

        POST /api/music/switch-mode/
        {"mode": "demo" | "spotify"}
        """
        serializer = ModeSwitchSerializer(data=request.data)
        if not serializer.is_valid():
            return _bad_request(serializer)

        selector = self.facade.selector
        try:
            result = self.facade.switch_mode(serializer.validated_data["mode"])
        except ProviderConfigurationError as exc:
            logger.warning(f"Mode switch rejected: {exc}")
            return Response(
                {
                    "error": "Invalid mode",
                    "message": str(exc),
                    "valid_modes": list(exc.valid_modes),
                    "current": selector.service_type,
                    "timestamp": _now(),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        body = {
            **result.to_dict(),
            "service": selector.service_info().to_dict(),
            "timestamp": _now(),
        }
        return Response(body, status=status.HTTP_200_OK if result.success else status.HTTP_502_BAD_GATEWAY)


class SearchAPIView(MusicAPIView):
    def get(self, request):
        serializer = SearchQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return _bad_request(serializer)
        data = serializer.validated_data
        result = self.facade.search(data["q"], data["limit"], data["offset"])
        return _respond(result, "tracks")


class TrendingAPIView(MusicAPIView):
    def get(self, request):
        serializer = LimitSerializer(data=request.query_params)
        if not serializer.is_valid():
            return _bad_request(serializer)
        return _respond(self.facade.get_trending(serializer.validated_data["limit"]), "tracks")


class CategoriesAPIView(MusicAPIView):
    def get(self, request):
        serializer = LimitSerializer(data=request.query_params)
        if not serializer.is_valid():
            return _bad_request(serializer)
        return _respond(self.facade.get_categories(serializer.validated_data["limit"]), "categories")


class RecommendationsAPIView(MusicAPIView):
    def get(self, request):
        serializer = RecommendationQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return _bad_request(serializer)
        data = serializer.validated_data
        result = self.facade.get_recommendations(data["genres"], data["limit"])
        return _respond(result, "tracks")


class TrackDetailAPIView(MusicAPIView):
    def get(self, request, track_id):
        result = self.facade.get_track_details(track_id)
        if result.ok and result.data is None:
            return Response(
                {
                    "error": "Track not found",
                    "message": "The requested track could not be found",
                    "track_id": track_id,
                    "service": result.meta["service"],
                },
                status=status.HTTP_404_NOT_FOUND,
            )
        return _respond(result, "track")


class CatalogSearchAPIView(SearchAPIView):
    """Free-catalogue search (Jamendo + iTunes), independent of the mode."""

    facade_name = "catalog"


@api_view(["GET"])
def search_suggestions(request):
    """Autocomplete over a fixed list of popular artists."""
    serializer = SuggestionQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    q = serializer.validated_data["q"].strip().lower()
    if len(q) < 2:
        return Response([])
    return Response([s for s in SUGGESTIONS if q in s.lower()][:MAX_SUGGESTIONS])


@api_view(["GET"])
def api_health(request):
    """Process liveness; does not touch any provider."""
    selector = apps.get_app_config("music").selector
    return Response({
        "status": "OK",
        "message": "TuneStream API is running",
        "music_service": selector.service_type,
        "timestamp": _now(),
    })
