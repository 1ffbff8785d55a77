"""
Homepage Backend — Last.fm Service Tests
========================================

What:  Tests for the per-user recent-tracks cache.
How:   Fake clock + httpx.MockTransport; no network access.

What we test:
    ✅ Request parameters sent to Last.fm
    ✅ Entries served from memory inside the TTL, refreshed after it
    ✅ Each user has an independent entry
    ✅ Concurrent misses for one user make a single upstream call
    ✅ Non-2xx answers and failures raise and are never cached
"""

import asyncio

import httpx
import pytest

from homepage_api.config import settings
from homepage_api.exceptions import UpstreamServiceError
from homepage_api.services.lastfm_service import LastFmService

TRACKS = '{"recenttracks":{"track":[{"name":"Windowlicker"}]}}'


def _tracks_for(request: httpx.Request) -> httpx.Response:
    user = request.url.params["user"]
    return httpx.Response(200, text=f'{{"recenttracks":{{"@attr":{{"user":"{user}"}}}}}}')


class TestLastFmService:

    @pytest.mark.asyncio
    async def test_default_user_and_query_parameters(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = lambda request: httpx.Response(200, text=TRACKS)
        service = LastFmService(api_key="abc123", client=client, clock=fake_clock)

        result = await service.get_recent_tracks()

        assert result.body == TRACKS
        assert result.cached is False
        params = recorder.requests[0].url.params
        assert params["method"] == "user.getrecenttracks"
        assert params["user"] == settings.lastfm_default_user
        assert params["api_key"] == "abc123"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_cache_hit_within_ttl(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = lambda request: httpx.Response(200, text=TRACKS)
        service = LastFmService(api_key="k", client=client, clock=fake_clock)

        await service.get_recent_tracks("alice")
        fake_clock.advance(settings.lastfm_cache_ttl - 0.5)
        second = await service.get_recent_tracks("alice")

        assert second.cached is True
        assert second.body == TRACKS
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_refetch_once_ttl_elapsed(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = lambda request: httpx.Response(200, text=TRACKS)
        service = LastFmService(api_key="k", client=client, clock=fake_clock)

        await service.get_recent_tracks("alice")
        fake_clock.advance(settings.lastfm_cache_ttl)
        again = await service.get_recent_tracks("alice")

        assert again.cached is False
        assert len(recorder.requests) == 2
        assert service.user_cache["alice"].hit_at == fake_clock.now

    @pytest.mark.asyncio
    async def test_users_cached_independently(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = _tracks_for
        service = LastFmService(api_key="k", client=client, clock=fake_clock)

        alice = await service.get_recent_tracks("alice")
        bob = await service.get_recent_tracks("bob")
        alice_again = await service.get_recent_tracks("alice")

        assert '"alice"' in alice.body
        assert '"bob"' in bob.body
        assert alice_again.cached and alice_again.body == alice.body
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_client_error_raises_and_is_not_cached(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = lambda request: httpx.Response(403, text='{"error":10}')
        service = LastFmService(api_key="bad", client=client, clock=fake_clock)

        with pytest.raises(UpstreamServiceError, match="403") as exc_info:
            await service.get_recent_tracks("x")
        with pytest.raises(UpstreamServiceError):
            await service.get_recent_tracks("x")

        assert exc_info.value.service == "lastfm"
        assert "x" not in service.user_cache
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, mock_http, fake_clock):
        recorder, client = mock_http

        async def slow_tracks(request):
            # Yield to the loop mid-fetch so the other callers reach the lock
            await asyncio.sleep(0.01)
            return httpx.Response(200, text=TRACKS)

        recorder.handler = slow_tracks
        service = LastFmService(api_key="k", client=client, clock=fake_clock)

        results = await asyncio.gather(*(service.get_recent_tracks("alice") for _ in range(5)))

        assert len(recorder.requests) == 1
        assert [r.cached for r in results].count(False) == 1
        assert all(r.body == TRACKS for r in results)

    @pytest.mark.asyncio
    async def test_failure_raises_and_keeps_previous_entry(self, mock_http, fake_clock):
        recorder, client = mock_http
        recorder.handler = lambda request: httpx.Response(200, text=TRACKS)
        service = LastFmService(api_key="k", client=client, clock=fake_clock)
        await service.get_recent_tracks("alice")
        cached_at = service.user_cache["alice"].hit_at

        fake_clock.advance(settings.lastfm_cache_ttl + 1)
        recorder.handler = lambda request: httpx.Response(502)

        with pytest.raises(UpstreamServiceError):
            await service.get_recent_tracks("alice")

        assert service.user_cache["alice"].hit_at == cached_at
        assert service.user_cache["alice"].data == TRACKS
