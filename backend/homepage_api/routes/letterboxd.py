"""
Homepage Backend — Letterboxd Route Handler
===========================================

What:  GET /letterboxd/ returns the owner's recent films with ratings and
       poster URLs, from a five-minute global cache.
"""

from typing import List

from fastapi import APIRouter

from homepage_api.schemas.common import ErrorResponse
from homepage_api.schemas.letterboxd import FilmData
from homepage_api.services.letterboxd_service import letterboxd_service

router = APIRouter(prefix="/letterboxd", tags=["Letterboxd"])


@router.get(
    "/",
    response_model=List[FilmData],
    responses={503: {"description": "Letterboxd unreachable and nothing cached", "model": ErrorResponse}},
    summary="Recently watched films",
)
async def get_films() -> List[FilmData]:
    return await letterboxd_service.get_films()
