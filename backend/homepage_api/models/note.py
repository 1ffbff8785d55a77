"""
Homepage Backend — Sticky Note SQLAlchemy Model
===============================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by NoteService for CRUD and by Alembic for schema management.

Table Design:
    - 64-bit autoincrement id: notes are addressed as /notes/<id>, with ids
      up to 2^32-1 accepted by the routes
    - created_at: unix seconds, set once at insert
    - x, y: position on the site canvas, in pixels
    - deleted: soft-delete flag; deleted notes stay readable by id and are
      listed under /notes/deleted
"""

import time

from sqlalchemy import BigInteger, Boolean, Index, Integer, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from homepage_api.database import Base


def unix_now() -> int:
    """Current time as whole unix seconds."""
    return int(time.time())


class StickyNote(Base):
    """
    A positioned text note on the site canvas.

    Query Patterns:
        - Active notes:   SELECT ... WHERE deleted = false
        - Deleted notes:  SELECT ... WHERE deleted = true
        - Single note:    SELECT ... WHERE id = :id
    """

    __tablename__ = "notes"

    # BIGINT on server databases; SQLite needs INTEGER for the rowid alias
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=unix_now,
        comment="Creation time in unix seconds",
    )

    # Positions span the full u32 range, beyond a 32-bit signed INTEGER
    x: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    y: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Soft-delete flag",
    )

    __table_args__ = (
        Index("idx_notes_deleted", "deleted"),
    )

    def __repr__(self) -> str:
        return (
            f"<StickyNote(id={self.id}, x={self.x}, y={self.y}, "
            f"deleted={self.deleted})>"
        )
