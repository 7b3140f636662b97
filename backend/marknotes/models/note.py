"""
MarkNotes Backend - Note SQLAlchemy Model
===========================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by NoteStore for CRUD operations and by Alembic for schema management.

Table Design:
    - UUID primary key, generated in Python at insert time
    - title: VARCHAR(200), stored trimmed
    - content: TEXT, up to 50,000 characters (enforced by the store)
    - created_at / updated_at: TIMESTAMP WITH TIME ZONE, always UTC

    Indexes on created_at DESC and updated_at DESC back the two
    descending sort orders of the list endpoint.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, TypeDecorator, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marknotes.database import Base

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 50_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware DateTime that always round-trips as UTC.

    SQLite has no timezone support and hands back naive values; those are
    re-tagged as UTC on load so comparisons and serialization stay consistent.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Note(Base):
    """
    A single text note.

    Lifecycle:
        1. Created with title + content; created_at == updated_at
        2. Zero or more updates, each refreshing updated_at
        3. Deleted individually or by delete-all
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier assigned at creation",
    )

    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
        comment="Note title, 1-200 characters",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Markdown body, 1-50,000 characters",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        comment="When this note was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        comment="Last successful mutation (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_created_at", created_at.desc()),
        Index("idx_notes_updated_at", updated_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title[:30]}', updated_at='{self.updated_at}')>"
