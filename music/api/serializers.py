from rest_framework import serializers

from music.providers.base import MAX_OFFSET, MIN_QUERY_LENGTH


class LimitSerializer(serializers.Serializer):
    # 0 / missing -> provider default; the facade clamps the upper bound
    limit = serializers.IntegerField(required=False, default=0, min_value=0, max_value=1000)


class SearchQuerySerializer(LimitSerializer):
    offset = serializers.IntegerField(required=False, default=0, min_value=0, max_value=MAX_OFFSET)
    q = serializers.CharField(
        min_length=MIN_QUERY_LENGTH,
        trim_whitespace=True,
        error_messages={
            "required": "Query parameter 'q' is required",
            "blank": "Search query is required and cannot be empty",
            "min_length": f"Query must be at least {MIN_QUERY_LENGTH} characters long",
        },
    )


class RecommendationQuerySerializer(LimitSerializer):
    genres = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_genres(self, value):
        return [g.strip() for g in value.split(",") if g.strip()]


class ModeSwitchSerializer(serializers.Serializer):
    # left as free text so the selector reports the valid set itself
    mode = serializers.CharField(trim_whitespace=True)


class SuggestionQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, default="")


class TrackSerializer(serializers.Serializer):
    """Documents the Track JSON shape; views emit Track.to_dict() directly."""
    id = serializers.CharField()
    title = serializers.CharField(allow_blank=True)
    artist = serializers.CharField(allow_blank=True)
    album = serializers.CharField(allow_blank=True)
    duration_seconds = serializers.IntegerField(min_value=0)
    audio_preview_url = serializers.URLField(allow_null=True)
    cover_url = serializers.URLField()
    genre = serializers.CharField()
    external_url = serializers.CharField(allow_blank=True)
    popularity = serializers.IntegerField(min_value=0, max_value=100)
    explicit = serializers.BooleanField()
    source_provider = serializers.ChoiceField(
        choices=["spotify", "jamendo", "itunes", "demo", "fallback"]
    )
