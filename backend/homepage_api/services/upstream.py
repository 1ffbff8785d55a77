"""
Homepage Backend — Upstream HTTP Client
=======================================

What:  The outbound HTTP layer shared by the Last.fm proxy and the
       Letterboxd scraper.
How:   One shared httpx.AsyncClient; per-upstream tenacity retry with
       exponential backoff + jitter; per-upstream circuit breaker.
Who:   LastFmService and LetterboxdService each own an UpstreamClient.

Error Handling Chain:
    request fails (transport error or 5xx) → tenacity retries
    → retries exhausted → circuit breaker records a failure
    → UpstreamServiceError (503) raised to the caller
    → threshold reached → later calls raise CircuitBreakerOpenError
      instantly until the recovery timeout elapses (HALF_OPEN)

    4xx responses are returned to the caller untouched: they are answers,
    not outages, and do not count against the circuit.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from homepage_api import __version__
from homepage_api.config import settings
from homepage_api.exceptions import CircuitBreakerOpenError, UpstreamServiceError

logger = logging.getLogger(__name__)

USER_AGENT = f"homepage-api/{__version__}"


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding a single upstream.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN
        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN
        HALF_OPEN (testing recovery)
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; every caller runs on the single uvicorn event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        self._clock = clock

    def _elapsed(self) -> float:
        return self._clock() - (self.last_failure_time or 0)

    @property
    def is_open(self) -> bool:
        """True while requests would be rejected (OPEN and still recovering)."""
        return self.state == self.OPEN and self._elapsed() < self.recovery_timeout

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.OPEN:
            elapsed = self._elapsed()
            if elapsed < self.recovery_timeout:
                remaining = max(1, int(self.recovery_timeout - elapsed))
                raise CircuitBreakerOpenError(service=self.name, recovery_time=remaining)

            logger.info(
                "Circuit breaker '%s' transitioning to HALF_OPEN after %.1fs",
                self.name,
                elapsed,
            )
            self.state = self.HALF_OPEN

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker '%s' transitioning to CLOSED (upstream recovered)", self.name)
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker '%s' returning to OPEN (test request failed)", self.name)
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker '%s' OPENING after %d consecutive failures",
                self.name,
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Shared httpx client
# ══════════════════════════════════════════════════════════════════════════

_shared_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """The process-wide AsyncClient, created on first use."""
    global _shared_client
    if _shared_client is None or _shared_client.is_closed:
        _shared_client = httpx.AsyncClient(
            timeout=settings.http_timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
    return _shared_client


async def close_http_client() -> None:
    """Closes the shared client; called from the application lifespan."""
    global _shared_client
    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None


def _is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx answers are worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


# ══════════════════════════════════════════════════════════════════════════
# Upstream client
# ══════════════════════════════════════════════════════════════════════════

class UpstreamClient:
    """
    GET requests against one named upstream.

    Args:
        name:    Upstream name used in logs, errors and the health report.
        client:  httpx client to use; defaults to the shared one. Tests pass
                 a client built on httpx.MockTransport.
    """

    def __init__(self, name: str, client: Optional[httpx.AsyncClient] = None):
        self.name = name
        self._client = client
        self.circuit_breaker = CircuitBreaker(
            name,
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_http_client()

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        GET `url`, returning any response below 500.

        Raises:
            CircuitBreakerOpenError: the upstream is cooling down
            UpstreamServiceError: transport error or 5xx after all retries
        """
        self.circuit_breaker.can_execute()

        start_time = time.perf_counter()
        try:
            response = await self._get_with_retry(url, params)
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "%s request failed after %.0fms: %s: %s",
                self.name,
                (time.perf_counter() - start_time) * 1000,
                type(e).__name__,
                str(e),
            )
            raise UpstreamServiceError(
                service=self.name,
                retry_after=self.circuit_breaker.recovery_timeout if self.circuit_breaker.is_open else None,
                context={"error_type": type(e).__name__, "attempts": settings.retry_max_attempts},
            )

        self.circuit_breaker.record_success()
        logger.debug(
            "%s GET %s → %d in %.0fms",
            self.name,
            response.request.url.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
        )
        return response

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # min_wait * 2^n capped at max_wait, plus up to min_wait of jitter
        wait=wait_exponential(multiplier=settings.retry_min_wait, max=settings.retry_max_wait)
        + wait_random(0, settings.retry_min_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _get_with_retry(self, url: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        response = await self.client.get(url, params=params)
        if response.status_code >= 500:
            response.raise_for_status()
        return response
