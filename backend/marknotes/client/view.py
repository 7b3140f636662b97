"""
MarkNotes Client - Notes View Controller
==========================================

What:  Presentation state for a notes screen (list, search box, editor)
       and the actions that change it.
How:   `NotesViewState` is a plain pydantic record, so a UI layer can render
       or serialize it directly. `NotesView` owns one state instance and
       talks to the API only through a NotesClient.

Status transitions:
    idle ──load()──▶ loading ──▶ ready
                          └────▶ error   (state.error holds the user message)

Search:
    set_search() debounces: the list reloads only after `debounce` seconds
    without another keystroke. Each load() takes a generation number and a
    response that arrives after a newer load() started is dropped.
"""

import asyncio
import logging
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from marknotes.client.gateway import NotesClient, get_error_message
from marknotes.schemas.note import NoteOut

logger = logging.getLogger(__name__)

ViewStatus = Literal["idle", "loading", "ready", "error"]


class NoteDraft(BaseModel):
    """Editor contents. A draft without an id has never been saved."""
    id: Optional[str] = None
    title: str = ""
    content: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def blank_id_is_none(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class NotesViewState(BaseModel):
    notes: List[NoteOut] = Field(default_factory=list)
    selected: Optional[NoteOut] = None
    editing: bool = False
    search: str = ""
    status: ViewStatus = "idle"
    error: Optional[str] = None


class NotesView:
    """
    Controller behind the notes screen.

    Usage:
        view = NotesView(client)
        await view.load()
        await view.set_search("meet")      # reloads 300 ms later
        view.create_new()
        await view.save(NoteDraft(title="Standup", content="- notes"))
    """

    def __init__(self, client: NotesClient, debounce: float = 0.3, page_size: int = 100):
        self.client = client
        self.debounce = debounce
        self.page_size = page_size
        self.state = NotesViewState()
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None

    # ── Loading & Search ──────────────────────────────────────────────────

    async def load(self) -> None:
        self._generation += 1
        generation = self._generation
        self.state.status = "loading"
        self.state.error = None

        try:
            result = await self.client.get_notes(
                q=self.state.search.strip() or None,
                limit=self.page_size,
            )
        except Exception as e:
            if generation != self._generation:
                return
            logger.warning("Failed to load notes: %s", e)
            self.state.status = "error"
            self.state.error = get_error_message(e)
            return

        if generation != self._generation:
            logger.debug("Dropping stale notes response (generation %d)", generation)
            return
        self.state.notes = result.data
        self.state.status = "ready"

    def set_search(self, text: str) -> asyncio.Task:
        """Update the search text and schedule a debounced reload."""
        self.state.search = text
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.ensure_future(self._load_after_debounce())
        return self._pending

    async def _load_after_debounce(self) -> None:
        await asyncio.sleep(self.debounce)
        await self.load()

    # ── Editing ───────────────────────────────────────────────────────────

    def create_new(self) -> None:
        self.state.selected = None
        self.state.editing = True

    def edit(self, note: NoteOut) -> None:
        self.state.selected = note
        self.state.editing = True

    def cancel_edit(self) -> None:
        self.state.editing = False
        self.state.selected = None

    async def save(self, draft: Union[NoteDraft, NoteOut]) -> bool:
        """
        Persist the editor contents.

        A draft with an id updates that note in place; otherwise a new note
        is created and put at the top of the list. Returns False (and sets
        state.error) when the API call fails; edit mode is then kept.
        """
        if isinstance(draft, NoteOut):
            draft = NoteDraft(id=str(draft.id), title=draft.title, content=draft.content)

        try:
            if draft.id:
                result = await self.client.update_note(
                    draft.id, title=draft.title, content=draft.content
                )
                saved = result.data
                self.state.notes = [saved if n.id == saved.id else n for n in self.state.notes]
            else:
                result = await self.client.create_note(draft.title, draft.content)
                self.state.notes = [result.data, *self.state.notes]
        except Exception as e:
            logger.warning("Failed to save note: %s", e)
            self.state.error = get_error_message(e)
            return False

        self.state.error = None
        self.state.editing = False
        self.state.selected = None
        return True

    async def delete(self, note_id: str) -> bool:
        try:
            await self.client.delete_note(note_id)
        except Exception as e:
            logger.warning("Failed to delete note %s: %s", note_id, e)
            self.state.error = get_error_message(e)
            return False

        self.state.notes = [n for n in self.state.notes if str(n.id) != str(note_id)]
        selected = self.state.selected
        if selected is not None and str(selected.id) == str(note_id):
            self.state.selected = None
            self.state.editing = False
        return True
