"""
MarkNotes Backend - Note Service
==================================

What:  Business logic between the routes (HTTP) and the NoteStore (persistence).
How:   Runs the query builder for list requests, calls the store, turns
       "absent" store outcomes into NotFoundError and store failures into
       DatabaseError, and builds the response envelopes.
Who:   Called by route handlers in routes/notes.py.

Flow (GET /api/notes):
    NoteQuery ──▶ build_query_plan() ──▶ NoteStore.find() ──▶ PageInfo ──▶ envelope

Design:
    NoteService is stateless; it receives the store for each call. Tests can
    hand it a mock store without touching HTTP.
"""

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from marknotes.exceptions import DatabaseError, NotFoundError
from marknotes.models.note import Note, utc_now
from marknotes.schemas.note import (
    MessageEnvelope,
    NoteCreate,
    NoteEnvelope,
    NoteListEnvelope,
    NoteOut,
    NoteStats,
    NoteUpdate,
    StatsEnvelope,
)
from marknotes.services.note_store import NoteId, NoteStore
from marknotes.services.query_builder import NoteQuery, PageInfo, build_query_plan

logger = logging.getLogger(__name__)

# "Recent" in the stats endpoint: created within this window
RECENT_NOTES_WINDOW = timedelta(days=7)


@contextmanager
def _store_errors(action: str, **context) -> Iterator[None]:
    """Wrap driver/SQL failures into DatabaseError; details stay in the log."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error while %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            context={"action": action, "error_type": type(e).__name__, **context},
        ) from e


class NoteService:
    """
    Note operations behind the API.

    Responsibilities:
        - list_notes(): search + sort + paginate
        - get/create/update/delete single notes
        - delete_all_notes(), get_stats()
    """

    async def list_notes(self, store: NoteStore, query: NoteQuery) -> NoteListEnvelope:
        plan = build_query_plan(query)
        with _store_errors("listing notes", q=query.q, page=query.page):
            records, total = await store.find(
                filter=plan.filter,
                order_by=plan.order_by,
                skip=plan.skip,
                limit=plan.limit,
            )

        info = PageInfo.from_window(query, count=len(records), total=total)
        logger.debug(
            "Listed notes q=%r sort=%s page=%d/%d (%d of %d)",
            query.q, query.sort, info.page, info.pages, info.count, info.total,
        )
        return NoteListEnvelope(
            data=[_to_out(n) for n in records],
            count=info.count,
            total=info.total,
            page=info.page,
            pages=info.pages,
        )

    async def get_note(self, store: NoteStore, note_id: NoteId) -> NoteEnvelope:
        with _store_errors("fetching note", note_id=str(note_id)):
            note = await store.find_by_id(note_id)
        if note is None:
            raise NotFoundError(resource="Note", resource_id=str(note_id))
        return NoteEnvelope(data=_to_out(note))

    async def create_note(self, store: NoteStore, payload: NoteCreate) -> NoteEnvelope:
        with _store_errors("creating note"):
            note = await store.create(payload.model_dump())
        return NoteEnvelope(data=_to_out(note))

    async def update_note(
        self, store: NoteStore, note_id: NoteId, payload: NoteUpdate
    ) -> NoteEnvelope:
        with _store_errors("updating note", note_id=str(note_id)):
            note = await store.update_by_id(note_id, payload.changes())
        if note is None:
            raise NotFoundError(resource="Note", resource_id=str(note_id))
        return NoteEnvelope(data=_to_out(note))

    async def delete_note(self, store: NoteStore, note_id: NoteId) -> MessageEnvelope:
        with _store_errors("deleting note", note_id=str(note_id)):
            deleted = await store.delete_by_id(note_id)
        if not deleted:
            raise NotFoundError(resource="Note", resource_id=str(note_id))
        return MessageEnvelope(message="Note deleted successfully")

    async def delete_all_notes(self, store: NoteStore) -> MessageEnvelope:
        with _store_errors("deleting all notes"):
            removed = await store.delete_all()
        return MessageEnvelope(message=f"{removed} notes deleted successfully")

    async def get_stats(self, store: NoteStore) -> StatsEnvelope:
        now = utc_now()
        with _store_errors("computing stats"):
            total = await store.count()
            recent = await store.count(Note.created_at >= now - RECENT_NOTES_WINDOW)
        return StatsEnvelope(
            data=NoteStats(total_notes=total, recent_notes=recent, last_updated=now),
        )


def _to_out(note: Note) -> NoteOut:
    return NoteOut.model_validate(note)


note_service = NoteService()
