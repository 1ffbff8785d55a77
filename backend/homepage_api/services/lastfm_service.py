"""
Homepage Backend — Last.fm Recent Tracks Proxy
==============================================

What:  Proxies `user.getrecenttracks` from the Last.fm web API, caching the
       raw response per user for a short, fixed TTL.
How:   A dict of username → LastFmHit guarded by a single asyncio.Lock.
       The lock is held for the whole check → fetch → store sequence, so a
       burst of page loads produces at most one upstream call per user per
       TTL window.
Who:   Called by the /lastfm route handlers.

Caching rules:
    - An entry younger than `lastfm_cache_ttl` seconds is served as-is.
    - Otherwise the upstream is called and, on a 2xx answer, the entry is
      overwritten with the new body and timestamp.
    - Any other outcome (transport error, non-2xx answer such as an unknown
      user or a bad key, open circuit) raises UpstreamServiceError or
      CircuitBreakerOpenError (503) and leaves the cache as it was.
    There is no eviction: entries are replaced only by a later request for
    the same user.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional

import httpx

from homepage_api.config import settings
from homepage_api.exceptions import UpstreamServiceError
from homepage_api.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass
class LastFmHit:
    hit_at: float
    data: str


class RecentTracks(NamedTuple):
    """What the route sends back: raw JSON text and the cache flag."""
    body: str
    cached: bool


class LastFmService:
    """
    Per-user TTL cache in front of the Last.fm API.

    Args:
        api_key:  Last.fm API key (defaults to settings.lastfm_api_key)
        client:   httpx client override for tests
        clock:    time source, seconds; tests inject a fake clock
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.key = api_key if api_key is not None else settings.lastfm_api_key
        self.ttl = settings.lastfm_cache_ttl
        self.upstream = UpstreamClient("lastfm", client=client)
        self.user_cache: Dict[str, LastFmHit] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get_recent_tracks(self, username: Optional[str] = None) -> RecentTracks:
        """
        Recent tracks for `username` (default: settings.lastfm_default_user).

        Raises:
            UpstreamServiceError when Last.fm is unreachable or answers non-2xx
            CircuitBreakerOpenError while the circuit is open
        """
        username = username or settings.lastfm_default_user

        async with self._lock:
            now = self._clock()
            last_hit = self.user_cache.get(username)

            if last_hit is not None and now - last_hit.hit_at < self.ttl:
                logger.debug("Last.fm cache hit for %s (age %.1fs)", username, now - last_hit.hit_at)
                return RecentTracks(last_hit.data, cached=True)

            response = await self.upstream.get(
                settings.lastfm_api_url,
                params={
                    "method": "user.getrecenttracks",
                    "user": username,
                    "api_key": self.key,
                    "format": "json",
                },
            )
            if not response.is_success:
                logger.warning(
                    "Last.fm answered %d for user %s; not caching",
                    response.status_code,
                    username,
                )
                raise UpstreamServiceError(
                    service="lastfm",
                    message=f"Last.fm answered {response.status_code} for user {username}",
                    context={"status_code": response.status_code, "username": username},
                )

            text = response.text
            self.user_cache[username] = LastFmHit(hit_at=now, data=text)
            logger.info("Last.fm recent tracks refreshed for %s (%d bytes)", username, len(text))
            return RecentTracks(text, cached=False)


lastfm_service = LastFmService()
