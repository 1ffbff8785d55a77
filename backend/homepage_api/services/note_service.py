"""
Homepage Backend — Sticky Note Service
======================================

What:  CRUD over the `notes` table, with soft delete.
How:   Plain SQLAlchemy 2.0 statements on the request's AsyncSession.
       Commit/rollback belongs to `get_db_session`; this layer only flushes.
Who:   Called by the /notes route handlers.

Error Handling:
    Missing rows become NotFoundError (404). Any SQLAlchemy failure is
    logged with its detail and re-raised as DatabaseError (500) carrying a
    generic message.
"""

import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from homepage_api.exceptions import DatabaseError, NotFoundError
from homepage_api.models.note import StickyNote, unix_now
from homepage_api.schemas.note import StickyNoteResponse

logger = logging.getLogger(__name__)


class NoteService:
    """
    Stateless service; every call receives the session it works in.

    Responsibilities:
        - list_notes(): active or soft-deleted notes
        - get_note(): one note by id, deleted or not
        - create_note(): insert with a server-side timestamp
        - update_note(): overwrite content and position
        - delete_note(): soft delete
    """

    async def list_notes(self, db: AsyncSession, deleted: bool = False) -> List[StickyNoteResponse]:
        """
        Return every note whose soft-delete flag equals `deleted`, oldest first.
        """
        try:
            result = await db.execute(
                select(StickyNote)
                .where(StickyNote.deleted.is_(deleted))
                .order_by(StickyNote.id)
            )
            notes = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes (deleted=%s): %s", deleted, str(e))
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"deleted": deleted, "error_type": type(e).__name__},
            )

        return [StickyNoteResponse.model_validate(note) for note in notes]

    async def get_note(self, db: AsyncSession, note_id: int) -> StickyNoteResponse:
        """
        Retrieve a single note by id.

        Raises:
            NotFoundError: no note with this id (→ 404)
            DatabaseError: query execution failed (→ 500)
        """
        try:
            result = await db.execute(select(StickyNote).where(StickyNote.id == note_id))
            note = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": note_id},
            )

        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))

        return StickyNoteResponse.model_validate(note)

    async def create_note(
        self,
        db: AsyncSession,
        content: str,
        x: int,
        y: int,
    ) -> StickyNoteResponse:
        """
        Insert a note stamped with the current unix time.

        The flush assigns the autoincrement id so the response can carry it
        before the request's transaction commits.
        """
        note = StickyNote(content=content, created_at=unix_now(), x=x, y=y, deleted=False)

        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error saving sticky note: %s", str(e))
            raise DatabaseError(
                message="Error saving sticky note.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Sticky note %s created at (%d, %d)", note.id, x, y)
        return StickyNoteResponse.model_validate(note)

    async def update_note(
        self,
        db: AsyncSession,
        note_id: int,
        content: str,
        x: int,
        y: int,
    ) -> None:
        """
        Overwrite a note's content and position. `created_at` never changes.

        Raises:
            NotFoundError: no note with this id
        """
        await self._update_one(
            db,
            note_id,
            {"content": content, "x": x, "y": y},
            action="update",
        )
        logger.info("Sticky note %s moved to (%d, %d)", note_id, x, y)

    async def delete_note(self, db: AsyncSession, note_id: int) -> None:
        """
        Soft-delete a note. It disappears from the active list and shows up
        under the deleted list; GET by id still returns it.

        Raises:
            NotFoundError: no note with this id
        """
        await self._update_one(db, note_id, {"deleted": True}, action="delete")
        logger.info("Sticky note %s deleted", note_id)

    async def _update_one(self, db: AsyncSession, note_id: int, values: dict, action: str) -> None:
        try:
            result = await db.execute(
                update(StickyNote).where(StickyNote.id == note_id).values(**values)
            )
        except SQLAlchemyError as e:
            logger.error("Database error on note %s (%s): %s", note_id, action, str(e))
            raise DatabaseError(
                message=f"Could not {action} the note. Please try again.",
                context={"note_id": note_id, "error_type": type(e).__name__},
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="note", resource_id=str(note_id))


note_service = NoteService()
