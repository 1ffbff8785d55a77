"""
Homepage Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── notes_table:     Real `notes` table in the temporary SQLite file
    ├── make_image:      Pillow-encoded image bytes of any size/format
    ├── fake_clock:      Controllable time source for the TTL caches
    ├── mock_http:       httpx.AsyncClient on a MockTransport
    └── test_client:     HTTPX AsyncClient for API endpoint testing
"""

import io
import os
import tempfile

# Override settings for testing BEFORE any homepage_api import: the settings
# singleton, the engine and the tenacity decorators read them at import.
_TEST_DIR = tempfile.mkdtemp(prefix="homepage_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["LASTFM_API_KEY"] = "test-key-not-real"
os.environ["PAINT_PATH"] = os.path.join(_TEST_DIR, "paint.png")
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from typing import Callable, List  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from PIL import Image  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

class FakeClock:
    """Callable returning `now`; tests move time with advance()."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockUpstream:
    """
    Records every request and answers with the handler installed by the test.

    Usage:
        mock_http.handler = lambda request: httpx.Response(200, json={...})
        ...
        assert len(mock_http.requests) == 1
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, text="{}")
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    What:    An AsyncMock that simulates AsyncSession behavior.
    How:     `execute` returns a plain MagicMock result so that
             scalars()/scalar_one_or_none()/rowcount can be configured
             synchronously, as on a real Result.

    Usage:
        async def test_get_note(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
            result = await note_service.get_note(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def notes_table():
    """
    Creates the notes table in the temporary SQLite database and empties it
    after the test. The engine is disposed so no pooled connection outlives
    the test's event loop.
    """
    from sqlalchemy import delete

    from homepage_api.database import async_session_factory, dispose_engine, init_models
    from homepage_api.models.note import StickyNote

    await init_models()
    yield
    async with async_session_factory() as session:
        await session.execute(delete(StickyNote))
        await session.commit()
    await dispose_engine()


@pytest.fixture
def make_image():
    """
    Provides a factory for encoded image bytes.

    Usage:
        jpeg = make_image(1920, 1080, "JPEG")
    """

    def _make(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def mock_http():
    """
    Provides (recorder, client): an AsyncClient whose transport is an
    httpx.MockTransport dispatching to `recorder`.
    """
    recorder = MockUpstream()
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as client:
        yield recorder, client


@pytest_asyncio.fixture
async def test_client():
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to the FastAPI app.
    How:     Uses ASGITransport to route requests directly to the app.
             The lifespan does not run under ASGITransport; tests that need
             the notes table request the `notes_table` fixture.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from homepage_api.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
