"""
MarkNotes Client - Data Gateway
=================================

What:  Async HTTP client for the MarkNotes API.
How:   One httpx.AsyncClient per NotesClient. Every call either returns the
       parsed response envelope (the same pydantic models the server
       serializes) or raises ApiError. Nothing is retried implicitly; callers
       wrap calls in `with_retry()` when they want that.
Who:   Used by NotesView and by scripts talking to a running API.

Failure mapping:
    non-2xx response            → ApiError(body["error"] or "HTTP error! status: N", N)
    connect error / timeout     → ApiError(..., 0)
    2xx with unreadable body    → ApiError(..., 0)

Retry policy (with_retry):
    attempts:   max_retries, sequential
    wait:       delay * attempt (1x, 2x, 3x ...)
    retried:    status 0 and 5xx only; 4xx surfaces immediately
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from marknotes.config import settings
from marknotes.exceptions import ApiError
from marknotes.schemas.note import (
    HealthResponse,
    MessageEnvelope,
    NoteEnvelope,
    NoteListEnvelope,
    StatsEnvelope,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

__all__ = ["ApiError", "NotesClient", "get_error_message", "with_retry"]


# ══════════════════════════════════════════════════════════════════════════
# Retry & Error Helpers
# ══════════════════════════════════════════════════════════════════════════

def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.is_retryable


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call `fn` until it succeeds, fails with a non-retryable error, or
    `max_retries` attempts have been made. The last failure is re-raised.

    Defaults come from CLIENT_RETRY_ATTEMPTS / CLIENT_RETRY_DELAY.

    Example:
        notes = await with_retry(lambda: client.get_notes(q="meeting"))
    """
    attempts = max(1, max_retries if max_retries is not None else settings.client_retry_attempts)
    step = delay if delay is not None else settings.client_retry_delay

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_incrementing(start=step, increment=step),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        sleep=sleep,
    )
    return await retrying(fn)


def get_error_message(error: BaseException) -> str:
    """User-facing text for a failed API call."""
    if isinstance(error, ApiError):
        if error.status == 400:
            return "Invalid request. Please check your input."
        if error.status == 404:
            return "Note not found."
        if error.status == 500:
            return "Server error. Please try again later."
        if error.status == 0:
            return "Network error. Please check your connection."
        return error.message or "An unexpected error occurred."
    return "An unexpected error occurred."


# ══════════════════════════════════════════════════════════════════════════
# Gateway
# ══════════════════════════════════════════════════════════════════════════

class NotesClient:
    """
    Typed access to /api/notes and /api/health.

    Usage:
        async with NotesClient("http://localhost:5000/api") as client:
            page = await client.get_notes(q="groceries", limit=20)
            created = await client.create_note("Title", "# Body")

    `transport` is passed straight to httpx (tests use MockTransport or
    ASGITransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.client_timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "NotesClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Notes ─────────────────────────────────────────────────────────────

    async def get_notes(
        self,
        q: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> NoteListEnvelope:
        params = {
            key: value
            for key, value in (("q", q), ("page", page), ("limit", limit), ("sort", sort))
            if value
        }
        return await self._request("GET", "/notes", NoteListEnvelope, params=params)

    async def get_note(self, note_id: str) -> NoteEnvelope:
        return await self._request("GET", f"/notes/{note_id}", NoteEnvelope)

    async def create_note(self, title: str, content: str) -> NoteEnvelope:
        return await self._request(
            "POST", "/notes", NoteEnvelope, json={"title": title, "content": content}
        )

    async def update_note(
        self,
        note_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> NoteEnvelope:
        body = {k: v for k, v in (("title", title), ("content", content)) if v is not None}
        return await self._request("PUT", f"/notes/{note_id}", NoteEnvelope, json=body)

    async def delete_note(self, note_id: str) -> MessageEnvelope:
        return await self._request("DELETE", f"/notes/{note_id}", MessageEnvelope)

    async def delete_all_notes(self) -> MessageEnvelope:
        return await self._request("DELETE", "/notes", MessageEnvelope)

    async def get_stats(self) -> StatsEnvelope:
        return await self._request("GET", "/notes/stats", StatsEnvelope)

    # ── Health ────────────────────────────────────────────────────────────

    async def health_check(self) -> HealthResponse:
        return await self._request("GET", "/health", HealthResponse)

    async def is_api_available(self) -> bool:
        try:
            await self.health_check()
        except ApiError as e:
            logger.info("API unavailable at %s: %s", self.base_url, e.message)
            return False
        return True

    # ── Transport ─────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        model: Type[M],
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> M:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise ApiError(f"Request timed out: {method} {path}", 0) from e
        except httpx.TransportError as e:
            raise ApiError(str(e) or "Network error", 0) from e

        logger.debug("%s %s -> %d", method, path, response.status_code)

        if not response.is_success:
            body = _json_or_empty(response)
            raise ApiError(
                body.get("error") or f"HTTP error! status: {response.status_code}",
                response.status_code,
                body,
            )

        try:
            return model.model_validate(response.json())
        except (ValueError, SchemaError) as e:
            raise ApiError(f"Unexpected response from {method} {path}", 0) from e


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
