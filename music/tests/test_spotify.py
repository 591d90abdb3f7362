import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import requests
import spotipy
from django.core.cache import cache
from django.test import SimpleTestCase

from music.exceptions import ProviderAuthError, ProviderConfigurationError, UpstreamError
from music.providers.spotify import SpotifyProvider
from music.providers.types import PLACEHOLDER_COVER, SourceProvider
from music.spotify import CredentialLease, SpotifyClient, format_track
from music.tests.factories import spotify_search_payload, spotify_track_payload


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class CountingFetcher:
    """Token exchange stand-in: a new token per call."""

    def __init__(self, expires_in=3600):
        self.calls = 0
        self.expires_in = expires_in

    def __call__(self):
        self.calls += 1
        return {"access_token": f"token-{self.calls}", "expires_in": self.expires_in}


class TestCredentialLease(SimpleTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.fetch = CountingFetcher()
        self.lease = CredentialLease(self.fetch, margin=30, clock=self.clock)

    def test_starts_invalid(self):
        self.assertFalse(self.lease.is_valid())

    def test_bearer_reuses_valid_token(self):
        self.assertEqual(self.lease.bearer(), "token-1")
        self.clock.now += 1000
        self.assertEqual(self.lease.bearer(), "token-1")
        self.assertEqual(self.fetch.calls, 1)

    def test_refreshes_inside_safety_margin(self):
        self.lease.bearer()
        # 3600s lease, 30s margin: at +3571 only 29s remain
        self.clock.now += 3571
        self.assertFalse(self.lease.is_valid())
        self.assertEqual(self.lease.bearer(), "token-2")

    def test_expires_at_is_honoured(self):
        lease = CredentialLease(
            lambda: {"access_token": "abc", "expires_at": 1_100}, margin=30, clock=self.clock
        )
        lease.refresh()
        self.assertTrue(lease.is_valid(now=1_060))
        self.assertFalse(lease.is_valid(now=1_071))

    def test_failed_exchange_invalidates(self):
        self.lease.bearer()

        def broken():
            raise requests.exceptions.ConnectionError("boom")

        self.lease._fetch = broken
        with self.assertRaises(ProviderAuthError):
            self.lease.refresh()
        self.assertIsNone(self.lease.token)
        self.assertFalse(self.lease.is_valid())

    def test_missing_access_token(self):
        lease = CredentialLease(lambda: {"expires_in": 3600}, clock=self.clock)
        with self.assertRaises(ProviderAuthError):
            lease.bearer()


class SpotifyTestCase(SimpleTestCase):

    def setUp(self):
        cache.clear()
        self.fetch = CountingFetcher()
        self.sp = MagicMock()
        self.client = SpotifyClient(
            lease=CredentialLease(self.fetch),
            client_factory=lambda token: self.sp,
        )
        self.provider = SpotifyProvider(self.client)


class TestSpotifyClient(SpotifyTestCase):

    def test_unconfigured_client(self):
        client = SpotifyClient("", "")
        self.assertFalse(client.configured)
        with self.assertRaises(ProviderConfigurationError):
            client.ensure_token()

    def test_retries_once_after_401(self):
        page = spotify_search_payload([spotify_track_payload("t1")])
        self.sp.search.side_effect = [spotipy.SpotifyException(401, -1, "token expired"), page]

        self.assertEqual(self.client.search("adele", 5), page)
        self.assertEqual(self.sp.search.call_count, 2)
        self.assertEqual(self.fetch.calls, 2)

    def test_second_401_is_auth_error(self):
        self.sp.search.side_effect = spotipy.SpotifyException(401, -1, "revoked")

        with self.assertRaises(ProviderAuthError):
            self.client.search("adele", 5)
        self.assertEqual(self.sp.search.call_count, 2)
        self.assertFalse(self.client.lease.is_valid())

    def test_other_errors_become_upstream_errors(self):
        self.sp.categories.side_effect = spotipy.SpotifyException(
            429, -1, "slow down", headers={"Retry-After": "3"}
        )
        with self.assertRaises(UpstreamError) as ctx:
            self.client.categories(10)
        self.assertEqual(ctx.exception.status, 429)

        self.sp.track.side_effect = requests.exceptions.Timeout("timed out")
        with self.assertRaises(UpstreamError):
            self.client.track("abc")

    def test_recommendation_seeds_are_capped(self):
        self.sp.recommendations.return_value = {"tracks": []}
        self.client.recommendations(["a", "b", "c", "d", "e", "f"], 10)

        kwargs = self.sp.recommendations.call_args.kwargs
        self.assertEqual(kwargs["seed_genres"], ["a", "b", "c", "d", "e"])


class TestFormatTrack(SimpleTestCase):

    def test_maps_fields(self):
        payload = spotify_track_payload(
            "t1", artists=[{"id": "a1", "name": "Jay"}, {"id": "a2", "name": "Kay"}]
        )
        track = format_track(payload)

        self.assertEqual(track.id, "t1")
        self.assertEqual(track.artist, "Jay, Kay")
        self.assertEqual(track.duration_seconds, 215)
        self.assertEqual(track.cover_url, "https://i.scdn.co/image/cover")
        self.assertEqual(track.isrc, "USUM72100001")
        self.assertEqual(track.genre, "Unknown")
        self.assertEqual(track.source_provider, SourceProvider.SPOTIFY)

    def test_missing_images_and_null_items(self):
        payload = spotify_track_payload("t2")
        payload["album"]["images"] = []

        self.assertEqual(format_track(payload).cover_url, PLACEHOLDER_COVER)
        self.assertIsNone(format_track(None))
        self.assertIsNone(format_track({"name": "no id"}))


class TestSpotifyProvider(SpotifyTestCase):

    def test_search_page_flags(self):
        items = [spotify_track_payload(f"t{i}") for i in range(3)]
        self.sp.search.return_value = spotify_search_payload(
            items, total=120, next_url="https://api.spotify.com/next"
        )
        result = self.provider.search("love", 3)

        self.assertEqual(len(result.tracks), 3)
        self.assertEqual(result.total, 120)
        self.assertTrue(result.has_next)
        self.assertFalse(result.has_previous)

    def test_search_soft_fails(self):
        self.sp.search.side_effect = spotipy.SpotifyException(500, -1, "server error")
        result = self.provider.search("love", 3)

        self.assertEqual(result.tracks, ())
        self.assertEqual(result.total, 0)

    def test_trending_deduplicates_and_stops_at_limit(self):
        shared = [spotify_track_payload(f"s{i}") for i in range(10)]
        fresh = [spotify_track_payload(f"f{i}") for i in range(10)]
        pages = {
            "a": spotify_search_payload(shared),
            "the": spotify_search_payload(shared),
            "love": spotify_search_payload(fresh),
        }
        self.sp.search.side_effect = lambda **kw: pages[kw["q"]]

        tracks = self.provider.get_trending(15)

        ids = [t.id for t in tracks]
        self.assertEqual(len(ids), 15)
        self.assertEqual(len(set(ids)), 15)
        self.assertEqual(ids[:10], [f"s{i}" for i in range(10)])
        # "song" / "music" never queried once the limit is reached
        self.assertEqual(self.sp.search.call_count, 3)

    def test_trending_skips_failed_batches(self):
        good = spotify_search_payload([spotify_track_payload("g1")])

        def search(**kw):
            if kw["q"] == "a":
                raise spotipy.SpotifyException(502, -1, "bad gateway")
            return good

        self.sp.search.side_effect = search
        tracks = self.provider.get_trending(5)

        self.assertEqual([t.id for t in tracks], ["g1"])

    def test_categories(self):
        self.sp.categories.return_value = {
            "categories": {"items": [
                {"id": "pop", "name": "Pop", "icons": [{"url": "https://icon/pop"}]},
                {"id": "mood", "name": "Mood", "icons": []},
            ]}
        }
        categories = self.provider.get_categories(10)

        self.assertEqual([c.id for c in categories], ["pop", "mood"])
        self.assertEqual(categories[0].image_url, "https://icon/pop")
        self.assertIsNone(categories[1].image_url)

    def test_recommendations_default_seeds(self):
        self.sp.recommendations.return_value = {"tracks": [spotify_track_payload("r1")]}
        tracks = self.provider.get_recommendations(None, 5)

        self.assertEqual([t.id for t in tracks], ["r1"])
        self.assertEqual(self.sp.recommendations.call_args.kwargs["seed_genres"], ["pop", "rock"])

    def test_track_details_absent_on_error(self):
        self.sp.track.side_effect = spotipy.SpotifyException(404, -1, "not found")
        self.assertIsNone(self.provider.get_track_details("missing"))

    def test_health_degrades_when_token_exchange_fails(self):
        def broken():
            raise requests.exceptions.ConnectionError("no route")

        provider = SpotifyProvider(SpotifyClient(lease=CredentialLease(broken)))
        health = provider.health_check()

        self.assertFalse(health.ok)
        self.assertIn("token exchange failed", health.message)

    def test_health_ok(self):
        self.assertTrue(self.provider.health_check().ok)


class RateLimitedHandler(BaseHTTPRequestHandler):
    """Answers every request with 429 and a Retry-After header."""

    def do_GET(self):
        body = json.dumps({"error": {"status": 429, "message": "API rate limit exceeded"}}).encode()
        self.send_response(429)
        self.send_header("Retry-After", "2")
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


class TestSpotifyRateLimit(SimpleTestCase):
    """Real spotipy client against a local server that is always rate limited."""

    def setUp(self):
        cache.clear()
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), RateLimitedHandler)
        threading.Thread(target=self.server.serve_forever, daemon=True).start()
        self.addCleanup(self.server.server_close)
        self.addCleanup(self.server.shutdown)

        lease = CredentialLease(lambda: {"access_token": "t", "expires_in": 3600})
        self.client = SpotifyClient(timeout=0.5, lease=lease)
        # the token never changes, so this spotipy instance serves every call
        self.client._client().prefix = f"http://127.0.0.1:{self.server.server_port}/v1/"
        self.provider = SpotifyProvider(self.client)

    def test_429_does_not_wait_for_retry_after(self):
        started = time.time()
        result = self.provider.search("adele", 5)
        elapsed = time.time() - started

        self.assertLess(elapsed, 1.5)
        self.assertEqual(result.tracks, ())
        self.assertEqual(cache.get("ratelimit:spotify")["retry_after"], 2)
        self.assertEqual(cache.get("api:spotify:search")["status"], 429)

    def test_429_is_upstream_error(self):
        with self.assertRaises(UpstreamError) as ctx:
            self.client.search("adele", 5)
        self.assertEqual(ctx.exception.status, 429)

    def test_trending_stops_after_rate_limit(self):
        started = time.time()
        self.assertEqual(self.provider.get_trending(10), [])
        self.assertLess(time.time() - started, 1.5)
        self.assertEqual(cache.get("ratelimit:spotify")["hits"], 1)


class TestSpotifyPagination(SpotifyTestCase):

    def test_offset_is_forwarded(self):
        self.sp.search.return_value = spotify_search_payload(
            [spotify_track_payload("p2")], total=40,
            next_url="https://api.spotify.com/next", previous_url="https://api.spotify.com/prev",
        )
        result = self.provider.search("love", 10, offset=20)

        self.assertEqual(self.sp.search.call_args.kwargs["offset"], 20)
        self.assertTrue(result.has_previous)
        self.assertTrue(result.has_next)

    def test_negative_offset_means_first_page(self):
        self.sp.search.return_value = spotify_search_payload([])
        self.provider.search("love", 10, offset=-5)

        self.assertEqual(self.sp.search.call_args.kwargs["offset"], 0)
