"""
MarkNotes Backend - Note Query Builder
========================================

What:  Translates a client search/sort/page request into a store query plan
       plus pagination metadata.
How:   `NoteQuery` validates the raw parameters (it doubles as FastAPI's
       query-parameter model for GET /api/notes), `build_query_plan()` turns
       it into a SQLAlchemy filter, an ordering and a skip/limit window, and
       `PageInfo.from_window()` reports count/total/page/pages.

Contract:
    q       optional, trimmed, 1-100 chars; case-insensitive substring match
            over title OR content
    page    integer >= 1, default 1; bounded so the offset fits in int64
    limit   integer 1-100, default 10
    sort    title (asc) | createdAt (desc) | updatedAt (desc, default and
            fallback for anything unrecognized)

    window  skip (page - 1) * limit, take limit
    pages   ceil(total / limit); 0 when total or limit is 0
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import ColumnElement, or_
from sqlalchemy.sql.elements import UnaryExpression

from marknotes.models.note import Note

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_QUERY_LENGTH = 100
# Keeps the offset (page - 1) * limit within a signed 64-bit integer
MAX_PAGE = (2**63 - 1) // MAX_LIMIT
DEFAULT_SORT = "updatedAt"

# sort key -> ordering; id breaks ties so pages never overlap
SORT_ORDERS = {
    "title": (Note.title.asc(), Note.id.asc()),
    "createdAt": (Note.created_at.desc(), Note.id.asc()),
    "updatedAt": (Note.updated_at.desc(), Note.id.asc()),
}


class NoteQuery(BaseModel):
    """Validated list parameters: GET /api/notes?q=&page=&limit=&sort="""

    q: Optional[str] = Field(default=None, description="Search text (1-100 characters)")
    page: int = Field(default=DEFAULT_PAGE, ge=1, le=MAX_PAGE, description="Page number, starting at 1")
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page (max 100)")
    sort: str = Field(default=DEFAULT_SORT, description="title | createdAt | updatedAt")

    @field_validator("q")
    @classmethod
    def validate_q(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        if not 1 <= len(stripped) <= MAX_QUERY_LENGTH:
            raise ValueError(f"Search query must be between 1 and {MAX_QUERY_LENGTH} characters")
        return stripped

    @field_validator("sort", mode="before")
    @classmethod
    def normalize_sort(cls, v: object) -> str:
        return v if v in SORT_ORDERS else DEFAULT_SORT


@dataclass(frozen=True)
class QueryPlan:
    """What the store needs to run a list query."""
    filter: Optional[ColumnElement[bool]]
    order_by: Tuple[UnaryExpression, ...]
    skip: int
    limit: int


@dataclass(frozen=True)
class PageInfo:
    count: int
    total: int
    page: int
    pages: int

    @classmethod
    def from_window(cls, query: NoteQuery, count: int, total: int) -> "PageInfo":
        return cls(
            count=count,
            total=total,
            page=query.page,
            pages=compute_pages(total, query.limit),
        )


def compute_pages(total: int, limit: int) -> int:
    """ceil(total / limit), defined as 0 when either side is 0."""
    if total <= 0 or limit <= 0:
        return 0
    return -(-total // limit)


def search_filter(q: Optional[str]) -> Optional[ColumnElement[bool]]:
    """
    Case-insensitive substring match over title OR content.

    autoescape=True makes % and _ in the search text match literally.
    """
    if not q:
        return None
    return or_(
        Note.title.icontains(q, autoescape=True),
        Note.content.icontains(q, autoescape=True),
    )


def build_query_plan(query: NoteQuery) -> QueryPlan:
    return QueryPlan(
        filter=search_filter(query.q),
        order_by=SORT_ORDERS.get(query.sort, SORT_ORDERS[DEFAULT_SORT]),
        skip=(query.page - 1) * query.limit,
        limit=query.limit,
    )
