"""Tests for the HTTP API."""

import httpx
import pytest_asyncio

from tracecore.api import create_fastapi_app
from tracecore.api.routes import control


@pytest_asyncio.fixture
async def client(application):
    """HTTP client bound to the API of a started application."""
    fastapi_app = create_fastapi_app(application)
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def capture(client, content: str, content_ref: str = "plan") -> dict:
    response = await client.post(
        "/api/versions",
        json={
            "content_type": "development_plan",
            "content_ref": content_ref,
            "content": content,
            "event_type": "ai_response",
            "summary": "draft",
        },
    )
    assert response.status_code == 201
    return response.json()


class TestEventRoutes:
    """Tests for event and context routes."""

    async def test_record_event(self, client, application):
        """Test that POST /api/events queues an enriched event."""
        response = await client.post(
            "/api/events",
            json={"event_type": "user_input", "interaction_type": "query", "user_input": "hi"},
        )

        assert response.status_code == 202
        assert response.json() == {"status": "queued"}

        event = application.pipeline._queue[-1]
        assert event.interaction_type == "query"
        assert event.user_id == "user_001"

    async def test_record_event_requires_type(self, client):
        """Test request validation."""
        response = await client.post("/api/events", json={"view": "chat"})
        assert response.status_code == 422

    async def test_update_context(self, client, application):
        """Test that PATCH /api/context merges changes."""
        response = await client.patch("/api/context", json={"current_view": "editor"})

        assert response.status_code == 200
        assert response.json()["current_view"] == "editor"
        assert response.json()["user_id"] == "user_001"
        assert application.context.current_view == "editor"

    async def test_clear_context_details(self, client, application):
        """Test that a null context_details clears it and events keep flowing."""
        response = await client.patch("/api/context", json={"context_details": None})

        assert response.status_code == 200
        assert response.json()["context_details"] == {}

        response = await client.post("/api/events", json={"event_type": "user_input"})
        assert response.status_code == 202
        assert application.pipeline._queue[-1].context_details == {}

    async def test_update_context_invalid(self, client):
        """Test that a non-object context_details is rejected."""
        response = await client.patch("/api/context", json={"context_details": "dark"})
        assert response.status_code == 422

    async def test_telemetry_status(self, client, application):
        """Test pipeline status reporting."""
        application.pipeline.record_event("user_input")

        response = await client.get("/api/telemetry/status")
        data = response.json()

        assert response.status_code == 200
        assert data["queue_size"] == 1
        assert data["recorded"] == 1
        assert data["is_sending"] is False


class TestVersionRoutes:
    """Tests for version routes."""

    async def test_capture_and_list(self, client):
        """Test capture followed by listing one stream."""
        first = await capture(client, "x")
        second = await capture(client, "x\ny")

        assert first["diff"] is None
        assert "+y" in second["diff"]
        assert second["metadata"]["previous_version_id"] == first["version_id"]

        response = await client.get("/api/versions", params={"content_ref": "plan"})
        assert [v["version_id"] for v in response.json()] == [
            second["version_id"],
            first["version_id"],
        ]

    async def test_list_all_streams(self, client):
        """Test listing without content_ref."""
        await capture(client, "a", "one")
        await capture(client, "b", "two")

        response = await client.get("/api/versions")
        assert {v["content_ref"] for v in response.json()} == {"one", "two"}

    async def test_capture_storage_failure(self, client, application, monkeypatch):
        """Test that a failed capture is reported as 507."""

        async def failed_capture(**kwargs):
            return None

        monkeypatch.setattr(application.version_store, "capture_version", failed_capture)

        response = await client.post(
            "/api/versions",
            json={
                "content_type": "documentation",
                "content_ref": "doc",
                "content": "x",
                "event_type": "user_edit",
                "summary": "s",
            },
        )
        assert response.status_code == 507

    async def test_get_content(self, client):
        """Test fetching raw content."""
        record = await capture(client, "hello\nworld")

        response = await client.get(f"/api/versions/{record['version_id']}/content")
        assert response.json() == {"version_id": record["version_id"], "content": "hello\nworld"}

    async def test_get_content_missing(self, client):
        response = await client.get("/api/versions/unknown/content")
        assert response.status_code == 404

    async def test_revert(self, client, application):
        """Test that revert returns content and queues an audit event."""
        record = await capture(client, "original")
        await capture(client, "changed")

        response = await client.post(f"/api/versions/{record['version_id']}/revert")

        assert response.status_code == 200
        assert response.json()["content"] == "original"
        assert application.pipeline._queue[-1].event_type == "user_action"

        listing = await client.get("/api/versions", params={"content_ref": "plan"})
        assert len(listing.json()) == 2

    async def test_revert_missing(self, client):
        response = await client.post("/api/versions/unknown/revert")
        assert response.status_code == 404

    async def test_preview_diff(self, client):
        """Test the preview diff route."""
        response = await client.post(
            "/api/versions/diff", json={"old_content": "a", "new_content": "a\nb"}
        )
        assert response.json() == {"diff": "  a\n+ b"}


class TestCollectorRoutes:
    """Tests for the development collector."""

    async def test_ingest_batch(self, client):
        response = await client.post(
            "/api/telemetry/events",
            json=[{"id": "e1", "eventType": "user_input"}, {"id": "e2"}],
        )

        assert response.status_code == 200
        assert response.json() == {"received": 2}

    async def test_rejects_non_array(self, client):
        response = await client.post("/api/telemetry/events", json={"id": "e1"})
        assert response.status_code == 422


class TestControlRoutes:
    """Tests for control routes."""

    async def test_reset(self, client):
        """Test that reset clears version history."""
        await capture(client, "x")

        response = await client.post("/api/control/reset")
        assert response.json() == {"status": "ok"}

        listing = await client.get("/api/versions")
        assert listing.json() == []

    async def test_flush(self, client, application, transport):
        """Test that flush drains the queue immediately."""
        application.pipeline.record_event("user_input")

        response = await client.post("/api/control/flush")

        assert response.json() == {"status": "ok", "queue_size": 0, "sent": 1}
        assert len(transport.sent_events) == 1

    async def test_flush_failure_pending(self, client, application, transport):
        """Test that a failed flush leaves events queued."""
        transport.fail = True
        application.pipeline.record_event("user_input")

        response = await client.post("/api/control/flush")

        assert response.json()["status"] == "pending"
        assert response.json()["queue_size"] == 1
        transport.fail = False

    async def test_sim_not_configured(self, client, monkeypatch):
        """Test SIM control without a SIM instance."""
        monkeypatch.setattr(control, "_sim_instance", None)

        response = await client.post("/api/control/sim/start")
        assert response.status_code == 404
