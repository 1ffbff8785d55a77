"""
Homepage Backend — Sticky Notes Route Handlers
==============================================

What:  CRUD endpoints under /notes.
How:   Parameters come from the path and query string (the frontend sends
       `POST /notes/?content=...&x=..&y=..`); work is delegated to NoteService.

Endpoints:
    GET    /notes/             active notes
    GET    /notes/deleted      soft-deleted notes
    GET    /notes/{id}         one note (404 if missing)
    POST   /notes/             create; returns the note
    PATCH  /notes/{id}         overwrite content and position; empty 200
    DELETE /notes/{id}         soft delete; empty 200
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from homepage_api.database import get_db_session
from homepage_api.schemas.common import ErrorResponse
from homepage_api.schemas.note import StickyNoteResponse
from homepage_api.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["Notes"])

# Positions and ids are unsigned 32-bit values on the canvas
U32_MAX = 2**32 - 1

NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}
SERVER_ERROR = {500: {"description": "Database error", "model": ErrorResponse}}


def _position(axis: str):
    return Query(..., ge=0, le=U32_MAX, description=f"{axis} position on the canvas (px)")


@router.get(
    "/",
    response_model=List[StickyNoteResponse],
    responses=SERVER_ERROR,
    summary="List active sticky notes",
)
async def get_active_notes(
    db: AsyncSession = Depends(get_db_session),
) -> List[StickyNoteResponse]:
    return await note_service.list_notes(db, deleted=False)


# Declared before /{note_id} so "deleted" is not parsed as an id
@router.get(
    "/deleted",
    response_model=List[StickyNoteResponse],
    responses=SERVER_ERROR,
    summary="List soft-deleted sticky notes",
)
async def get_deleted_notes(
    db: AsyncSession = Depends(get_db_session),
) -> List[StickyNoteResponse]:
    return await note_service.list_notes(db, deleted=True)


@router.get(
    "/{note_id}",
    response_model=StickyNoteResponse,
    responses={**NOT_FOUND, **SERVER_ERROR},
    summary="Get a sticky note by id",
)
async def get_note(
    note_id: int = Path(..., ge=0, le=U32_MAX),
    db: AsyncSession = Depends(get_db_session),
) -> StickyNoteResponse:
    return await note_service.get_note(db, note_id)


@router.post(
    "/",
    response_model=StickyNoteResponse,
    responses=SERVER_ERROR,
    summary="Create a sticky note",
    description="Creates a note stamped with the current unix time and returns it.",
)
async def create_note(
    content: str = Query(..., description="Note text"),
    x: int = _position("Horizontal"),
    y: int = _position("Vertical"),
    db: AsyncSession = Depends(get_db_session),
) -> StickyNoteResponse:
    return await note_service.create_note(db, content=content, x=x, y=y)


@router.patch(
    "/{note_id}",
    status_code=200,
    responses={**NOT_FOUND, **SERVER_ERROR},
    summary="Update a sticky note's content and position",
)
async def update_note(
    note_id: int = Path(..., ge=0, le=U32_MAX),
    content: str = Query(..., description="New note text"),
    x: int = _position("Horizontal"),
    y: int = _position("Vertical"),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.update_note(db, note_id, content=content, x=x, y=y)
    return Response(status_code=200)


@router.delete(
    "/{note_id}",
    status_code=200,
    responses={**NOT_FOUND, **SERVER_ERROR},
    summary="Soft-delete a sticky note",
)
async def delete_note(
    note_id: int = Path(..., ge=0, le=U32_MAX),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.delete_note(db, note_id)
    return Response(status_code=200)
