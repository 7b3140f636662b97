"""
MarkNotes Backend - Notes Route Handlers
==========================================

What:  CRUD, search, stats and bulk-delete endpoints under /api/notes.
How:   Extracts path/query/body input, delegates to NoteService, returns the
       response envelope. Validation failures never reach the store: bodies
       and query parameters are validated by FastAPI (answered as 400 by the
       RequestValidationError handler), identifiers by the store before it
       opens a session.

Route Inventory:
    GET    /api/notes            list (q, page, limit, sort)
    GET    /api/notes/stats      totals
    GET    /api/notes/{id}       single note
    POST   /api/notes            create
    PUT    /api/notes/{id}       partial update
    DELETE /api/notes/{id}       delete one
    DELETE /api/notes            delete all
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from marknotes.schemas.note import (
    ErrorResponse,
    MessageEnvelope,
    NoteCreate,
    NoteEnvelope,
    NoteListEnvelope,
    NoteUpdate,
    StatsEnvelope,
)
from marknotes.services.note_service import note_service
from marknotes.services.note_store import NoteStore
from marknotes.services.query_builder import NoteQuery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])


def get_note_store(request: Request) -> NoteStore:
    """FastAPI dependency: the NoteStore wired into this app at startup."""
    return request.app.state.note_store


StoreDep = Annotated[NoteStore, Depends(get_note_store)]

_NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}
_BAD_REQUEST = {400: {"description": "Validation failed", "model": ErrorResponse}}


@router.get(
    "",
    response_model=NoteListEnvelope,
    response_model_exclude_none=True,
    responses=_BAD_REQUEST,
    summary="List notes with search, sort and pagination",
)
async def list_notes(
    response: Response,
    query: Annotated[NoteQuery, Query()],
    store: StoreDep,
) -> NoteListEnvelope:
    """
    Example:
        GET /api/notes?q=meeting&sort=title&page=2&limit=20
    """
    result = await note_service.list_notes(store, query)
    response.headers["X-Total-Count"] = str(result.total)
    return result


# Declared before /{note_id} so "stats" is not captured as an identifier
@router.get(
    "/stats",
    response_model=StatsEnvelope,
    response_model_exclude_none=True,
    summary="Note statistics",
)
async def get_stats(store: StoreDep) -> StatsEnvelope:
    return await note_service.get_stats(store)


@router.get(
    "/{note_id}",
    response_model=NoteEnvelope,
    response_model_exclude_none=True,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Get a single note by ID",
)
async def get_note(note_id: str, store: StoreDep) -> NoteEnvelope:
    return await note_service.get_note(store, note_id)


@router.post(
    "",
    status_code=201,
    response_model=NoteEnvelope,
    response_model_exclude_none=True,
    responses=_BAD_REQUEST,
    summary="Create a note",
)
async def create_note(payload: NoteCreate, store: StoreDep) -> NoteEnvelope:
    return await note_service.create_note(store, payload)


@router.put(
    "/{note_id}",
    response_model=NoteEnvelope,
    response_model_exclude_none=True,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Update a note (absent fields are left unchanged)",
)
async def update_note(note_id: str, payload: NoteUpdate, store: StoreDep) -> NoteEnvelope:
    return await note_service.update_note(store, note_id, payload)


@router.delete(
    "/{note_id}",
    response_model=MessageEnvelope,
    response_model_exclude_none=True,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Delete a note",
)
async def delete_note(note_id: str, store: StoreDep) -> MessageEnvelope:
    return await note_service.delete_note(store, note_id)


@router.delete(
    "",
    response_model=MessageEnvelope,
    response_model_exclude_none=True,
    summary="Delete every note",
)
async def delete_all_notes(store: StoreDep) -> MessageEnvelope:
    result = await note_service.delete_all_notes(store)
    logger.warning("Bulk delete: %s", result.message)
    return result
