"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2025-01-06 00:00:00.000000+00:00

What:  Creates the `notes` table: UUID id, title, markdown content and the
       created/updated timestamps, plus the two descending timestamp indexes
       used by the createdAt and updatedAt sort orders.

Rollback: downgrade() drops the table and every note in it.
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

        # Assigned by the application at insert time
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Unique identifier assigned at creation",
        ),

        sa.Column(
            "title",
            sa.String(200),
            nullable=False,
            comment="Note title, 1-200 characters",
        ),

        # Length (max 50,000) is enforced by the application, not the column
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Markdown body, 1-50,000 characters",
        ),

        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC)",
        ),

        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Last successful mutation (UTC)",
        ),

        sa.PrimaryKeyConstraint("id"),
    )

    # Backs sort=createdAt and the stats "recent notes" count
    op.create_index(
        "idx_notes_created_at",
        "notes",
        [sa.text("created_at DESC")],
    )

    # Backs sort=updatedAt, the default list order
    op.create_index(
        "idx_notes_updated_at",
        "notes",
        [sa.text("updated_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_notes_updated_at", table_name="notes")
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_table("notes")
