"""
MarkNotes Backend - Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract between client and backend.
How:   FastAPI validates request bodies against NoteCreate/NoteUpdate and
       serializes the response envelopes. The client gateway parses the same
       envelopes back into these models.

Wire conventions:
    - Record fields are camelCase on the wire (createdAt, updatedAt)
    - Every response is an envelope: {success, data?, error?, count?, total?,
      page?, pages?, message?}; null members are omitted by the routes
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from marknotes.models.note import CONTENT_MAX_LENGTH, TITLE_MAX_LENGTH


# ══════════════════════════════════════════════════════════════════════════
# Field Rules (shared by request schemas and the NoteStore)
# ══════════════════════════════════════════════════════════════════════════


def clean_title(value: Any, required: bool = True) -> str:
    """Validate a title and return it with surrounding whitespace stripped."""
    if not isinstance(value, str) or not value.strip():
        if required:
            raise ValueError("Title is required")
        raise ValueError(f"Title must be between 1 and {TITLE_MAX_LENGTH} characters")
    stripped = value.strip()
    if len(stripped) > TITLE_MAX_LENGTH:
        if required:
            raise ValueError(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")
        raise ValueError(f"Title must be between 1 and {TITLE_MAX_LENGTH} characters")
    return stripped


def clean_content(value: Any, required: bool = True) -> str:
    """Validate note content. Content is stored verbatim."""
    if not isinstance(value, str) or not value.strip():
        if required:
            raise ValueError("Content is required")
        raise ValueError("Content must be between 1 and 50,000 characters")
    if len(value) > CONTENT_MAX_LENGTH:
        if required:
            raise ValueError("Content cannot exceed 50,000 characters")
        raise ValueError("Content must be between 1 and 50,000 characters")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """
    Body of POST /api/notes.

    Missing fields default to None and still run through the validators so the
    client gets "Title is required" rather than a generic "Field required".
    """
    title: Optional[str] = Field(default=None, validate_default=True, description="1-200 characters")
    content: Optional[str] = Field(default=None, validate_default=True, description="1-50,000 characters")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        return clean_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> str:
        return clean_content(v)


class NoteUpdate(BaseModel):
    """Body of PUT /api/notes/{id}. Absent or null fields are left unchanged."""
    title: Optional[str] = Field(default=None, description="1-200 characters if present")
    content: Optional[str] = Field(default=None, description="1-50,000 characters if present")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else clean_title(v, required=False)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else clean_content(v, required=False)

    def changes(self) -> Dict[str, str]:
        """Only the fields the client actually supplied with a value."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteOut(BaseModel):
    """Full representation of a persisted note."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: uuid.UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class Envelope(BaseModel):
    success: bool = True
    message: Optional[str] = None


class NoteEnvelope(Envelope):
    data: NoteOut


class NoteListEnvelope(Envelope):
    """
    Page of notes plus pagination metadata.

    count: records in this page; total: all matches ignoring pagination;
    pages: ceil(total / limit), 0 when there are no matches.
    """
    data: List[NoteOut]
    count: int
    total: int
    page: int
    pages: int


class MessageEnvelope(Envelope):
    message: str


class NoteStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_notes: int
    recent_notes: int = Field(description="Notes created in the last 7 days")
    last_updated: datetime


class StatsEnvelope(Envelope):
    data: NoteStats


class HealthResponse(BaseModel):
    """Returned by GET /api/health."""
    success: bool = True
    status: str = Field(description="OK when the API process is serving requests")
    message: str
    timestamp: datetime
    environment: str
    database: Optional[str] = Field(default=None, description="connected | disconnected")


class ErrorResponse(BaseModel):
    """
    Standardized error envelope for all API errors.

    Example:
        {
            "success": false,
            "error": "Validation failed",
            "details": [{"field": "title", "message": "Title is required"}],
            "request_id": "1f0c2a9b"
        }
    """
    success: bool = False
    error: str
    details: Optional[List[Dict[str, Any]]] = None
    request_id: Optional[str] = None
