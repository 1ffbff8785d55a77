"""
Homepage Backend — Last.fm Route Handlers
=========================================

What:  GET /lastfm/ and GET /lastfm/{username} return Last.fm's
       `user.getrecenttracks` JSON verbatim, served through the per-user cache.

The response carries X-Cache: HIT or MISS so the frontend (and the access
log reader) can tell whether Last.fm was actually called.
"""

from fastapi import APIRouter, Response

from homepage_api.schemas.common import ErrorResponse
from homepage_api.services.lastfm_service import RecentTracks, lastfm_service

router = APIRouter(prefix="/lastfm", tags=["Last.fm"])

RESPONSES = {
    200: {"description": "Raw Last.fm recent tracks JSON", "content": {"application/json": {}}},
    503: {"description": "Last.fm unreachable or answered non-2xx", "model": ErrorResponse},
}


def _to_response(result: RecentTracks) -> Response:
    return Response(
        content=result.body,
        media_type="application/json",
        headers={"X-Cache": "HIT" if result.cached else "MISS"},
    )


@router.get("/", responses=RESPONSES, summary="Recent tracks for the site owner")
async def get_recent_songs() -> Response:
    return _to_response(await lastfm_service.get_recent_tracks())


@router.get("/{username}", responses=RESPONSES, summary="Recent tracks for any Last.fm user")
async def get_users_recent_songs(username: str) -> Response:
    return _to_response(await lastfm_service.get_recent_tracks(username))
