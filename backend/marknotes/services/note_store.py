"""
MarkNotes Backend - Note Store
================================

What:  Persistent collection of Note records: create/read/update/delete plus
       the filtered, ordered, windowed `find` used by the list endpoint.
How:   Every operation runs in its own transactional session from the injected
       `Database` handle, so each create/update/delete is atomic on its own.
Who:   Constructed by the app factory; called by NoteService.

Outcome conventions:
    - Malformed identifier      → ValidationError (before any database access)
    - Well-formed but absent id → None / False (not an exception)
    - Out-of-bounds fields      → ValidationError
    - Driver/SQL failures       → propagate as SQLAlchemyError (the service
                                  wraps them into DatabaseError)

Timestamps:
    `touch()` is the single place updated_at is set. create() stamps
    created_at and updated_at from one clock read, so they start out equal.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.sql.elements import UnaryExpression

from marknotes.database import Database
from marknotes.exceptions import ValidationError
from marknotes.models.note import Note, utc_now
from marknotes.schemas.note import clean_content, clean_title

logger = logging.getLogger(__name__)

NoteId = Union[str, uuid.UUID]


def parse_note_id(note_id: NoteId) -> uuid.UUID:
    """Parse a note identifier or raise ValidationError("Invalid note ID format")."""
    if isinstance(note_id, uuid.UUID):
        return note_id
    try:
        return uuid.UUID(str(note_id))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(message="Invalid note ID format", field="id") from None


def touch(note: Note, now: Optional[datetime] = None) -> Note:
    """Stamp updated_at. It never moves backwards."""
    now = now or utc_now()
    if note.updated_at is not None and now < note.updated_at:
        now = note.updated_at
    note.updated_at = now
    return note


def _validated_fields(fields: Mapping[str, Any], partial: bool) -> dict:
    """
    Apply the title/content rules; raise ValidationError listing every bad field.

    partial=True: absent or None fields are skipped (update semantics).
    """
    rules = {"title": clean_title, "content": clean_content}
    clean: dict = {}
    details = []
    for name, rule in rules.items():
        value = fields.get(name)
        if partial and value is None:
            continue
        try:
            clean[name] = rule(value, required=not partial)
        except ValueError as e:
            details.append({"field": name, "message": str(e)})
    if details:
        raise ValidationError(message="Validation failed", details=details)
    return clean


class NoteStore:
    """Note persistence over an explicitly injected Database handle."""

    def __init__(self, database: Database):
        self.database = database

    async def find(
        self,
        filter: Optional[ColumnElement[bool]] = None,
        order_by: Sequence[UnaryExpression] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[Note], int]:
        """Return (records in the window, total matching ignoring the window)."""
        query = select(Note)
        if filter is not None:
            query = query.where(filter)
        if order_by:
            query = query.order_by(*order_by)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)

        async with self.database.session() as session:
            result = await session.execute(query)
            records = list(result.scalars().all())
            total = await self._count(session, filter)
        return records, total

    async def find_by_id(self, note_id: NoteId) -> Optional[Note]:
        pk = parse_note_id(note_id)
        async with self.database.session() as session:
            return await session.get(Note, pk)

    async def create(self, fields: Mapping[str, Any]) -> Note:
        clean = _validated_fields(fields, partial=False)
        now = utc_now()
        note = Note(
            id=uuid.uuid4(),
            title=clean["title"],
            content=clean["content"],
            created_at=now,
            updated_at=now,
        )
        async with self.database.session() as session:
            session.add(note)
            await session.flush()
        logger.info("Note created: %s", note.id)
        return note

    async def update_by_id(self, note_id: NoteId, fields: Mapping[str, Any]) -> Optional[Note]:
        pk = parse_note_id(note_id)
        clean = _validated_fields(fields, partial=True)
        async with self.database.session() as session:
            note = await session.get(Note, pk)
            if note is None:
                return None
            for name, value in clean.items():
                setattr(note, name, value)
            touch(note)
            await session.flush()
        logger.info("Note updated: %s (fields=%s)", pk, sorted(clean))
        return note

    async def delete_by_id(self, note_id: NoteId) -> bool:
        pk = parse_note_id(note_id)
        async with self.database.session() as session:
            result = await session.execute(delete(Note).where(Note.id == pk))
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Note deleted: %s", pk)
        return deleted

    async def delete_all(self) -> int:
        async with self.database.session() as session:
            result = await session.execute(delete(Note))
            removed = result.rowcount or 0
        logger.info("Deleted all notes: %d removed", removed)
        return removed

    async def count(self, filter: Optional[ColumnElement[bool]] = None) -> int:
        async with self.database.session() as session:
            return await self._count(session, filter)

    @staticmethod
    async def _count(session, filter: Optional[ColumnElement[bool]]) -> int:
        query = select(func.count()).select_from(Note)
        if filter is not None:
            query = query.where(filter)
        result = await session.execute(query)
        return result.scalar() or 0
