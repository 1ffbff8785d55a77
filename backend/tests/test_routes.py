"""
Homepage Backend — API Endpoint Tests
=====================================

What:  End-to-end tests of the HTTP surface through the full middleware
       stack and exception handlers.
How:   httpx AsyncClient over ASGITransport. Notes run against the
       temporary SQLite file; the paint image lives in tmp_path; the
       Last.fm and Letterboxd services are replaced with mocks.

What we test:
    ✅ Notes CRUD with soft delete, 404s and query validation
    ✅ Paint upload (raw and multipart), retrieval and rejection
    ✅ Last.fm / Letterboxd passthrough and 503 mapping
    ✅ u32 bounds on positions and ids
    ✅ Unexpected errors answered as JSON 500 with CORS and request-ID headers
    ✅ CORS preflight, request IDs, health
"""

import io
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image

from homepage_api.config import settings
from homepage_api.exceptions import CircuitBreakerOpenError, UpstreamServiceError
from homepage_api.routes.notes import U32_MAX
from homepage_api.schemas.letterboxd import FilmData
from homepage_api.services.lastfm_service import RecentTracks


async def _create(client, content="hello", x=10, y=20) -> dict:
    response = await client.post("/notes/", params={"content": content, "x": x, "y": y})
    assert response.status_code == 200
    return response.json()


class TestNotesEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, test_client, notes_table):
        created = await _create(test_client, "buy milk", 5, 6)

        assert set(created) == {"id", "content", "created_at", "x", "y"}
        assert (created["content"], created["x"], created["y"]) == ("buy milk", 5, 6)

        response = await test_client.get(f"/notes/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    async def test_list_active_notes_in_id_order(self, test_client, notes_table):
        first = await _create(test_client, "one")
        second = await _create(test_client, "two")

        response = await test_client.get("/notes/")

        assert response.status_code == 200
        assert [n["id"] for n in response.json()] == [first["id"], second["id"]]

    @pytest.mark.asyncio
    async def test_update_overwrites_content_and_position(self, test_client, notes_table):
        created = await _create(test_client)

        response = await test_client.patch(
            f"/notes/{created['id']}", params={"content": "moved", "x": 300, "y": 400}
        )
        assert response.status_code == 200
        assert response.content == b""

        updated = (await test_client.get(f"/notes/{created['id']}")).json()
        assert (updated["content"], updated["x"], updated["y"]) == ("moved", 300, 400)
        assert updated["created_at"] == created["created_at"]

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, test_client, notes_table):
        keep = await _create(test_client, "keep")
        gone = await _create(test_client, "gone")

        response = await test_client.delete(f"/notes/{gone['id']}")
        assert response.status_code == 200

        active = (await test_client.get("/notes/")).json()
        deleted = (await test_client.get("/notes/deleted")).json()
        assert [n["id"] for n in active] == [keep["id"]]
        assert [n["id"] for n in deleted] == [gone["id"]]

        # Still addressable by id
        response = await test_client.get(f"/notes/{gone['id']}")
        assert response.status_code == 200
        assert response.json()["content"] == "gone"

    @pytest.mark.asyncio
    async def test_missing_note_returns_404(self, test_client, notes_table):
        for response in (
            await test_client.get("/notes/999"),
            await test_client.patch("/notes/999", params={"content": "x", "x": 0, "y": 0}),
            await test_client.delete("/notes/999"),
        ):
            assert response.status_code == 404
            assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_query_validation(self, test_client, notes_table):
        missing = await test_client.post("/notes/", params={"x": 1, "y": 1})
        negative = await test_client.post("/notes/", params={"content": "a", "x": -1, "y": 1})
        bad_id = await test_client.get("/notes/not-a-number")

        assert missing.status_code == 422
        assert negative.status_code == 422
        assert bad_id.status_code == 422

    @pytest.mark.asyncio
    async def test_positions_span_u32(self, test_client, notes_table):
        created = await _create(test_client, "far corner", U32_MAX, U32_MAX)

        fetched = (await test_client.get(f"/notes/{created['id']}")).json()
        assert (fetched["x"], fetched["y"]) == (U32_MAX, U32_MAX)

        too_far = await test_client.post("/notes/", params={"content": "a", "x": U32_MAX + 1, "y": 0})
        big_id = await test_client.get(f"/notes/{U32_MAX + 1}")
        assert too_far.status_code == 422
        assert big_id.status_code == 422


class TestPaintEndpoints:

    @pytest.fixture(autouse=True)
    def _paint_file(self, tmp_path):
        from homepage_api.services.paint_service import paint_service

        with patch.object(paint_service, "paint_path", tmp_path / "paint.png"):
            yield

    @pytest.mark.asyncio
    async def test_get_before_upload_returns_404(self, test_client):
        response = await test_client.get("/paint/")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_raw_upload_then_download(self, test_client, make_image):
        response = await test_client.patch("/paint/", content=make_image(1920, 1080, "JPEG"))
        assert response.status_code == 201

        response = await test_client.get("/paint/")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        with Image.open(io.BytesIO(response.content)) as image:
            assert image.format == "PNG"
            assert image.size == (1920, 1080)

    @pytest.mark.asyncio
    async def test_multipart_upload(self, test_client, make_image):
        files = {"file": ("canvas.png", make_image(1920, 1080), "image/png")}

        response = await test_client.patch("/paint/", files=files)

        assert response.status_code == 201
        assert (await test_client.get("/paint/")).status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_size_rejected(self, test_client, make_image):
        response = await test_client.patch("/paint/", content=make_image(800, 600))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "1920x1080" in body["message"]

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, test_client):
        response = await test_client.patch("/paint/", content=b"hello world")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected(self, test_client):
        with patch.object(settings, "max_upload_size", 1024):
            response = await test_client.patch("/paint/", content=b"\x00" * 2048)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "exceeds maximum" in body["message"]

    @pytest.mark.asyncio
    async def test_decompression_bomb_rejected(self, test_client, make_image):
        upload = make_image(1920, 1080)

        with patch.object(Image, "MAX_IMAGE_PIXELS", 1000):
            response = await test_client.patch("/paint/", content=upload)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert (await test_client.get("/paint/")).status_code == 404


class TestUpstreamEndpoints:

    @pytest.mark.asyncio
    async def test_lastfm_passthrough(self, test_client):
        body = '{"recenttracks":{"track":[]}}'
        with patch("homepage_api.routes.lastfm.lastfm_service") as mock_service:
            mock_service.get_recent_tracks = AsyncMock(return_value=RecentTracks(body, True))

            response = await test_client.get("/lastfm/")

        assert response.status_code == 200
        assert response.text == body
        assert response.headers["content-type"] == "application/json"
        assert response.headers["x-cache"] == "HIT"
        mock_service.get_recent_tracks.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_lastfm_named_user(self, test_client):
        body = '{"recenttracks":{"@attr":{"user":"nobody"}}}'
        with patch("homepage_api.routes.lastfm.lastfm_service") as mock_service:
            mock_service.get_recent_tracks = AsyncMock(return_value=RecentTracks(body, False))

            response = await test_client.get("/lastfm/nobody")

        assert response.status_code == 200
        assert response.text == body
        assert response.headers["x-cache"] == "MISS"
        mock_service.get_recent_tracks.assert_awaited_once_with("nobody")

    @pytest.mark.asyncio
    async def test_lastfm_unavailable_returns_503(self, test_client):
        with patch("homepage_api.routes.lastfm.lastfm_service") as mock_service:
            mock_service.get_recent_tracks = AsyncMock(side_effect=UpstreamServiceError(service="lastfm"))

            response = await test_client.get("/lastfm/")

        assert response.status_code == 503
        assert response.json()["error"] == "upstream_error"

    @pytest.mark.asyncio
    async def test_open_circuit_sets_retry_after(self, test_client):
        with patch("homepage_api.routes.letterboxd.letterboxd_service") as mock_service:
            mock_service.get_films = AsyncMock(
                side_effect=CircuitBreakerOpenError(service="letterboxd", recovery_time=42)
            )

            response = await test_client.get("/letterboxd/")

        assert response.status_code == 503
        assert response.headers["retry-after"] == "42"

    @pytest.mark.asyncio
    async def test_letterboxd_films(self, test_client):
        film = FilmData(
            name="Heat",
            poster_url="https://a.ltrbxd.com/heat.jpg",
            rating=9,
            watched_at="2024-03-01T00:00:00.000Z",
        )
        with patch("homepage_api.routes.letterboxd.letterboxd_service") as mock_service:
            mock_service.get_films = AsyncMock(return_value=[film])

            response = await test_client.get("/letterboxd/")

        assert response.status_code == 200
        assert response.json() == [film.model_dump()]


class TestCrossCutting:

    @pytest.mark.asyncio
    async def test_cors_preflight_on_any_path(self, test_client):
        response = await test_client.options(
            "/notes/123",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "PATCH",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "https://example.com")
        assert "PATCH" in response.headers["access-control-allow-methods"]
        assert response.headers["access-control-allow-credentials"] == "true"

    @pytest.mark.asyncio
    async def test_cors_headers_on_error_responses(self, test_client):
        response = await test_client.get("/paint/missing", headers={"Origin": "https://example.com"})

        assert "access-control-allow-origin" in response.headers

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_cors_and_request_id(self, test_client):
        with patch("homepage_api.routes.letterboxd.letterboxd_service") as mock_service:
            mock_service.get_films = AsyncMock(side_effect=RuntimeError("boom"))

            response = await test_client.get(
                "/letterboxd/",
                headers={"Origin": "https://example.com", "X-Request-ID": "crash123"},
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["request_id"] == "crash123"
        assert "boom" not in response.text
        assert "access-control-allow-origin" in response.headers
        assert response.headers["x-request-id"] == "crash123"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client, notes_table):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc12345"})

        assert response.headers["x-request-id"] == "abc12345"

    @pytest.mark.asyncio
    async def test_health(self, test_client, notes_table):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["status"] in ("healthy", "degraded")
        assert body["lastfm"] in ("available", "circuit_open")
