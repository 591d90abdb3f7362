from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.test import SimpleTestCase

from music import itunes, jamendo
from music.exceptions import UpstreamError
from music.providers.catalog import CatalogProvider, split_limit
from music.providers.types import PLACEHOLDER_COVER, SourceProvider
from music.tests.factories import TrackFactory, itunes_track_payload, jamendo_track_payload


def _response(status=200, payload=None, headers=None):
    res = MagicMock()
    res.status_code = status
    res.headers = headers or {}
    res.json.return_value = payload if payload is not None else {}
    if status >= 400:
        res.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status} error", response=res
        )
    return res


class TestCatalogSearch(SimpleTestCase):
    """Concurrent Jamendo + iTunes fan-out."""

    def setUp(self):
        cache.clear()
        self.provider = CatalogProvider()

    def test_split_limit_rounds_up(self):
        self.assertEqual(split_limit(20), (14, 6))
        self.assertEqual(split_limit(10), (7, 3))
        self.assertEqual(split_limit(1), (1, 1))

    @patch("music.itunes.search_tracks")
    @patch("music.jamendo.search_tracks")
    def test_jamendo_first_then_truncated(self, jamendo_search, itunes_search):
        jamendo_search.return_value = TrackFactory.build_batch(7, source_provider=SourceProvider.JAMENDO)
        itunes_search.return_value = TrackFactory.build_batch(3, source_provider=SourceProvider.ITUNES)

        result = self.provider.search("adele", 8)

        jamendo_search.assert_called_once_with("adele", 6)
        itunes_search.assert_called_once_with("adele", 3)
        sources = [t.source_provider for t in result.tracks]
        self.assertEqual(sources, [SourceProvider.JAMENDO] * 7 + [SourceProvider.ITUNES])
        self.assertEqual(result.total, 10)
        self.assertTrue(result.has_next)
        self.assertFalse(result.has_previous)

    @patch("music.itunes.search_tracks")
    @patch("music.jamendo.search_tracks")
    def test_partial_failure_keeps_other_branch(self, jamendo_search, itunes_search):
        jamendo_search.side_effect = UpstreamError("jamendo", "timeout")
        itunes_search.return_value = TrackFactory.build_batch(3, source_provider=SourceProvider.ITUNES)

        result = self.provider.search("adele", 10)

        self.assertEqual(len(result.tracks), 3)
        self.assertTrue(all(t.source_provider is SourceProvider.ITUNES for t in result.tracks))
        self.assertFalse(result.has_next)

    @patch("music.itunes.search_tracks")
    @patch("music.jamendo.search_tracks")
    def test_both_branches_failing_is_empty(self, jamendo_search, itunes_search):
        jamendo_search.side_effect = UpstreamError("jamendo", "down")
        itunes_search.side_effect = RuntimeError("unexpected")

        result = self.provider.search("adele", 10)

        self.assertEqual(result.tracks, ())
        self.assertEqual(result.total, 0)

    @patch("music.itunes.search_tracks")
    @patch("music.jamendo.search_tracks")
    def test_offset_pages_through_merged_list(self, jamendo_search, itunes_search):
        jamendo_tracks = TrackFactory.build_batch(14, source_provider=SourceProvider.JAMENDO)
        itunes_tracks = TrackFactory.build_batch(6, source_provider=SourceProvider.ITUNES)
        jamendo_search.return_value = jamendo_tracks
        itunes_search.return_value = itunes_tracks

        result = self.provider.search("adele", 10, offset=10)

        # window of 20 split 70/30
        jamendo_search.assert_called_once_with("adele", 14)
        itunes_search.assert_called_once_with("adele", 6)
        self.assertEqual(list(result.tracks), jamendo_tracks[10:] + itunes_tracks)
        self.assertTrue(result.has_previous)
        self.assertFalse(result.has_next)

    @patch("music.jamendo.popular_tracks")
    def test_trending_soft_fails(self, popular):
        popular.side_effect = UpstreamError("jamendo", "down")
        self.assertEqual(self.provider.get_trending(5), [])

    @patch("music.jamendo.tracks_by_tags")
    def test_recommendations_use_seed_tags(self, by_tags):
        by_tags.return_value = TrackFactory.build_batch(4)
        tracks = self.provider.get_recommendations(None, 3)

        by_tags.assert_called_once_with(["pop", "rock"], 3)
        self.assertEqual(len(tracks), 3)

    def test_categories_are_fixed_genres(self):
        categories = self.provider.get_categories(3)
        self.assertEqual([c.id for c in categories], ["pop", "rock", "electronic"])

    @patch("music.jamendo.ping")
    def test_health(self, ping):
        self.assertTrue(self.provider.health_check().ok)
        ping.side_effect = UpstreamError("jamendo", "unreachable")
        self.assertFalse(self.provider.health_check().ok)


class TestJamendo(SimpleTestCase):

    def setUp(self):
        cache.clear()

    @patch("music.jamendo.requests.get")
    def test_search_normalises_and_caches(self, get):
        get.return_value = _response(payload={
            "headers": {"status": "success"},
            "results": [jamendo_track_payload(1234), {"id": ""}],
        })

        first = jamendo.search_tracks("chill", 5)
        second = jamendo.search_tracks("chill", 5)

        self.assertEqual(get.call_count, 1)
        self.assertEqual(first, second)
        track = first[0]
        self.assertEqual(len(first), 1)
        self.assertEqual(track.id, "jamendo_1234")
        self.assertEqual(track.duration_seconds, 245)
        self.assertEqual(track.genre, "Electronic")
        self.assertEqual(track.source_provider, SourceProvider.JAMENDO)
        self.assertEqual(get.call_args.kwargs["params"]["search"], "chill")

    @patch("music.jamendo.requests.get")
    def test_failed_status_header(self, get):
        get.return_value = _response(payload={
            "headers": {"status": "failed", "error_message": "bad client_id"},
        })
        with self.assertRaises(UpstreamError):
            jamendo.popular_tracks(5)

    @patch("music.jamendo.requests.get")
    def test_rate_limit_and_timeout(self, get):
        get.return_value = _response(status=429, headers={"Retry-After": "5"})
        with self.assertRaises(UpstreamError) as ctx:
            jamendo.search_tracks("x1", 5)
        self.assertEqual(ctx.exception.status, 429)

        get.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(UpstreamError):
            jamendo.search_tracks("x2", 5)

    @patch("music.jamendo.requests.get")
    def test_empty_results_not_cached(self, get):
        get.return_value = _response(payload={"headers": {"status": "success"}, "results": []})

        jamendo.tracks_by_tags(["jazz"], 5)
        jamendo.tracks_by_tags(["jazz"], 5)

        self.assertEqual(get.call_count, 2)
        self.assertEqual(get.call_args.kwargs["params"]["tags"], "jazz")


class TestItunes(SimpleTestCase):

    def setUp(self):
        cache.clear()

    @patch("music.itunes.requests.get")
    def test_search_normalises(self, get):
        get.return_value = _response(payload={"results": [
            itunes_track_payload(99, trackExplicitness="explicit"),
            itunes_track_payload(100, kind="music-video"),
            itunes_track_payload(101, artworkUrl100=None),
        ]})

        tracks = itunes.search_tracks("Adele Hello", 5)

        self.assertEqual([t.id for t in tracks], ["itunes_99", "itunes_101"])
        self.assertEqual(tracks[0].duration_seconds, 199)
        self.assertTrue(tracks[0].explicit)
        self.assertIn("300x300", tracks[0].cover_url)
        self.assertEqual(tracks[1].cover_url, PLACEHOLDER_COVER)

    @patch("music.itunes.requests.get")
    def test_forbidden_is_rate_limit(self, get):
        get.return_value = _response(status=403)
        with self.assertRaises(UpstreamError) as ctx:
            itunes.search_tracks("anything", 5)
        self.assertEqual(ctx.exception.status, 403)
