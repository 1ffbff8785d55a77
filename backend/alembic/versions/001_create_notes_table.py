"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `notes` table backing the sticky notes on the site canvas.
How:   Portable column types only, so the same revision runs on SQLite and
       PostgreSQL.

Rollback: downgrade() drops the table (all notes are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",

        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),

        sa.Column("content", sa.Text(), nullable=False),

        # Unix seconds, written by the application at insert
        sa.Column(
            "created_at",
            sa.BigInteger(),
            nullable=False,
            comment="Creation time in unix seconds",
        ),

        # 64-bit: positions cover the full u32 range
        sa.Column("x", sa.BigInteger(), nullable=False),
        sa.Column("y", sa.BigInteger(), nullable=False),

        sa.Column(
            "deleted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="Soft-delete flag",
        ),

        sa.PrimaryKeyConstraint("id"),
    )

    # Every list query filters on the soft-delete flag
    op.create_index("idx_notes_deleted", "notes", ["deleted"])


def downgrade() -> None:
    op.drop_index("idx_notes_deleted", table_name="notes")
    op.drop_table("notes")
