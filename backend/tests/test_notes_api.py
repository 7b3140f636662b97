"""
MarkNotes Backend - Notes API Tests
=====================================

End-to-end through the ASGI app and an in-memory database.

What we test:
    ✅ Create → get → update → delete → get (404) lifecycle
    ✅ Validation envelope for bodies, query parameters and identifiers
    ✅ Search (case-insensitive, title OR content, literal wildcards)
    ✅ Sorting and pagination metadata
    ✅ Delete-all, stats, health
    ✅ Unknown routes and store failures
"""

import math
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from marknotes.schemas.note import NoteOut
from marknotes.services.query_builder import MAX_PAGE


async def _create(client, title="Title", content="Content"):
    response = await client.post("/api/notes", json={"title": title, "content": content})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_end_to_end(self, test_client):
        created = await _create(test_client, "Shopping", "- eggs")
        note_id = created["id"]
        assert created["createdAt"] == created["updatedAt"]
        assert set(created) == {"id", "title", "content", "createdAt", "updatedAt"}

        response = await test_client.get(f"/api/notes/{note_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["title"] == "Shopping"
        assert body["data"]["content"] == "- eggs"

        response = await test_client.put(f"/api/notes/{note_id}", json={"content": "- milk"})
        assert response.status_code == 200
        updated = NoteOut.model_validate(response.json()["data"])
        original = NoteOut.model_validate(created)
        assert updated.title == "Shopping"
        assert updated.content == "- milk"
        assert updated.created_at == original.created_at
        assert updated.updated_at >= original.updated_at

        response = await test_client.delete(f"/api/notes/{note_id}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Note deleted successfully"}

        response = await test_client.get(f"/api/notes/{note_id}")
        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"] == "Note not found"

    @pytest.mark.asyncio
    async def test_title_is_trimmed(self, test_client):
        created = await _create(test_client, "  Padded  ", "body")
        assert created["title"] == "Padded"

    @pytest.mark.asyncio
    async def test_update_absent_note(self, test_client):
        response = await test_client.put(
            "/api/notes/00000000-0000-4000-8000-000000000000", json={"title": "x"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_absent_note(self, test_client):
        response = await test_client.delete("/api/notes/00000000-0000-4000-8000-000000000000")
        assert response.status_code == 404
        assert response.json()["error"] == "Note not found"


class TestValidation:

    @pytest.mark.asyncio
    async def test_create_without_title(self, test_client):
        response = await test_client.post("/api/notes", json={"content": "body"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert {"field": "title", "message": "Title is required"} in body["details"]

    @pytest.mark.asyncio
    async def test_create_with_empty_body(self, test_client):
        response = await test_client.post("/api/notes", json={})
        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert fields == {"title", "content"}

    @pytest.mark.asyncio
    async def test_content_too_long(self, test_client):
        response = await test_client.post(
            "/api/notes", json={"title": "Big", "content": "x" * 50_001}
        )
        assert response.status_code == 400
        assert response.json()["details"] == [
            {"field": "content", "message": "Content cannot exceed 50,000 characters"}
        ]

    @pytest.mark.asyncio
    async def test_title_too_long(self, test_client):
        response = await test_client.post(
            "/api/notes", json={"title": "x" * 201, "content": "body"}
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["message"] == "Title cannot exceed 200 characters"

    @pytest.mark.asyncio
    async def test_update_with_blank_content(self, test_client):
        created = await _create(test_client)
        response = await test_client.put(f"/api/notes/{created['id']}", json={"content": "  "})
        assert response.status_code == 400
        assert response.json()["details"] == [
            {"field": "content", "message": "Content must be between 1 and 50,000 characters"}
        ]

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client):
        for method in ("get", "delete"):
            response = await getattr(test_client, method)("/api/notes/not-an-id")
            assert response.status_code == 400
            assert response.json()["error"] == "Invalid note ID format"
        response = await test_client.put("/api/notes/not-an-id", json={"title": "x"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params,field",
        [
            ({"page": 0}, "page"),
            ({"page": "abc"}, "page"),
            ({"page": 10**20}, "page"),
            ({"page": 2**62}, "page"),
            ({"limit": 0}, "limit"),
            ({"limit": 101}, "limit"),
            ({"q": "   "}, "q"),
            ({"q": "x" * 101}, "q"),
        ],
    )
    async def test_bad_list_parameters(self, test_client, params, field):
        response = await test_client.get("/api/notes", params=params)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == field

    @pytest.mark.asyncio
    async def test_blank_query_message(self, test_client):
        response = await test_client.get("/api/notes", params={"q": " "})
        assert response.json()["details"][0]["message"] == (
            "Search query must be between 1 and 100 characters"
        )


class TestListing:

    @pytest.mark.asyncio
    async def test_search_title_or_content_case_insensitive(self, test_client):
        await _create(test_client, "Meeting Notes", "agenda")
        await _create(test_client, "Groceries", "buy stuff before the MEETING")
        await _create(test_client, "Other", "nothing relevant")

        response = await test_client.get("/api/notes", params={"q": "meeting"})
        body = response.json()
        assert body["total"] == 2
        assert {n["title"] for n in body["data"]} == {"Meeting Notes", "Groceries"}

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, test_client):
        await _create(test_client, "100% done", "finished")
        await _create(test_client, "1000 items", "inventory")

        response = await test_client.get("/api/notes", params={"q": "100%"})
        assert [n["title"] for n in response.json()["data"]] == ["100% done"]

    @pytest.mark.asyncio
    async def test_sort_by_title(self, test_client):
        for title in ("banana", "apple", "cherry"):
            await _create(test_client, title)
        response = await test_client.get("/api/notes", params={"sort": "title"})
        assert [n["title"] for n in response.json()["data"]] == ["apple", "banana", "cherry"]

    @pytest.mark.asyncio
    async def test_default_sort_is_most_recently_updated(self, test_client):
        first = await _create(test_client, "first")
        await _create(test_client, "second")
        await test_client.put(f"/api/notes/{first['id']}", json={"content": "edited"})

        for params in ({}, {"sort": "nonsense"}):
            response = await test_client.get("/api/notes", params=params)
            assert response.json()["data"][0]["title"] == "first"

    @pytest.mark.asyncio
    async def test_sort_by_created_at_newest_first(self, test_client):
        await _create(test_client, "older")
        await _create(test_client, "newer")
        response = await test_client.get("/api/notes", params={"sort": "createdAt"})
        assert [n["title"] for n in response.json()["data"]] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_pagination_metadata(self, test_client):
        for i in range(25):
            await _create(test_client, f"Note {i:02d}")

        response = await test_client.get(
            "/api/notes", params={"page": 3, "limit": 10, "sort": "title"}
        )
        body = response.json()
        assert body["count"] == 5
        assert body["total"] == 25
        assert body["page"] == 3
        assert body["pages"] == math.ceil(25 / 10)
        assert [n["title"] for n in body["data"]] == [f"Note {i}" for i in range(20, 25)]
        assert response.headers["X-Total-Count"] == "25"

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap(self, test_client):
        for _ in range(6):
            await _create(test_client, "same title")

        seen = []
        for page in (1, 2, 3):
            response = await test_client.get(
                "/api/notes", params={"page": page, "limit": 2, "sort": "title"}
            )
            seen.extend(n["id"] for n in response.json()["data"])
        assert len(seen) == len(set(seen)) == 6

    @pytest.mark.asyncio
    async def test_page_past_the_end(self, test_client):
        await _create(test_client)
        response = await test_client.get("/api/notes", params={"page": 5})
        body = response.json()
        assert body["data"] == []
        assert body["count"] == 0
        assert body["total"] == 1

    @pytest.mark.asyncio
    async def test_largest_page_is_empty_not_an_error(self, test_client):
        await _create(test_client)
        response = await test_client.get("/api/notes", params={"page": MAX_PAGE, "limit": 100})
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["page"] == MAX_PAGE

    @pytest.mark.asyncio
    async def test_delete_all_then_list_empty(self, test_client):
        for i in range(3):
            await _create(test_client, f"N{i}")

        response = await test_client.delete("/api/notes")
        assert response.status_code == 200
        assert response.json()["message"] == "3 notes deleted successfully"

        body = (await test_client.get("/api/notes")).json()
        assert body["data"] == []
        assert body["total"] == 0
        assert body["pages"] == 0


class TestStatsAndHealth:

    @pytest.mark.asyncio
    async def test_stats(self, test_client):
        await _create(test_client, "one")
        await _create(test_client, "two")

        response = await test_client.get("/api/notes/stats")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalNotes"] == 2
        assert data["recentNotes"] == 2
        assert "lastUpdated" in data

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "OK"
        assert body["message"] == "Notes API is running"
        assert body["environment"] == "test"
        assert body["database"] == "connected"
        assert "timestamp" in body


class TestErrors:

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/unknown")
        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"] == "Not found - /api/unknown"

    @pytest.mark.asyncio
    async def test_store_failure_returns_generic_500(self, app, test_client):
        app.state.note_store.find = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )
        response = await test_client.get("/api/notes")
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Server Error"
        assert "connection refused" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_generic_500(self, app):
        app.state.note_store.find = AsyncMock(side_effect=RuntimeError("boom secret"))
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/notes")
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Server Error"}
        assert "boom secret" not in response.text

    @pytest.mark.asyncio
    async def test_error_responses_carry_request_id(self, test_client):
        response = await test_client.get(
            "/api/notes/not-an-id", headers={"X-Request-ID": "abc123"}
        )
        assert response.json()["request_id"] == "abc123"
        assert response.headers["X-Request-ID"] == "abc123"
