"""Tests for Application."""

import pytest

from tracecore.app import Application
from tracecore.pipeline import EventPipeline
from tracecore.storage import Storage
from tracecore.versions import VersionStore


class TestApplicationStart:
    """Tests for Application.start()."""

    async def test_start_initializes_components(self, application):
        """Test that start initializes all components."""
        assert isinstance(application.storage, Storage)
        assert isinstance(application.pipeline, EventPipeline)
        assert isinstance(application.version_store, VersionStore)

    async def test_start_wires_dependencies(self, application, transport, context):
        """Test that components share storage, pipeline and context."""
        store = application.version_store

        assert store._storage is application.storage
        assert store._pipeline is application.pipeline
        assert application.pipeline._transport is transport
        assert application.pipeline.global_context is context
        assert application.context is context

    async def test_start_arms_pipeline(self, application):
        """Test that the pipeline timer runs after start."""
        assert application.pipeline.has_pending_timer

    async def test_start_creates_database_tables(self, application):
        """Test that start creates database tables."""
        async with application.storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = {row[0] for row in await cursor.fetchall()}

        assert {"version_records", "version_contents"} <= tables

    def test_components_before_start(self):
        """Test that accessing components before start raises."""
        app = Application(db_path=":memory:")

        with pytest.raises(RuntimeError, match="not started"):
            app.pipeline
        with pytest.raises(RuntimeError, match="not started"):
            app.version_store
        with pytest.raises(RuntimeError, match="not started"):
            app.storage

    def test_context_from_env(self, monkeypatch):
        """Test that identity defaults come from the environment."""
        monkeypatch.setenv("TELEMETRY_USER_ID", "env_user")
        monkeypatch.setenv("TELEMETRY_SESSION_ID", "env_session")
        monkeypatch.setenv("APP_VERSION", "9.9.9")

        app = Application(db_path=":memory:")

        assert app.context.user_id == "env_user"
        assert app.context.session_id == "env_session"
        assert app.context.app_version == "9.9.9"


class TestApplicationStop:
    """Tests for Application.stop()."""

    async def test_stop_flushes_queue(self, context, transport, pipeline_config):
        """Test that queued events are delivered on stop."""
        app = Application(
            db_path=":memory:",
            pipeline_config=pipeline_config,
            transport=transport,
            context=context,
        )
        await app.start()

        app.pipeline.record_event("user_input", custom_data={"n": 1})
        app.pipeline.record_event("user_input", custom_data={"n": 2})
        await app.stop()

        assert [e.custom_data["n"] for e in transport.sent_events] == [1, 2]
        assert transport.closed
        assert not app.pipeline.has_pending_timer

    async def test_stop_before_start(self):
        """Test that stop without start is a no-op."""
        app = Application(db_path=":memory:")
        await app.stop()


class TestApplicationReset:
    """Tests for Application.reset()."""

    async def test_reset_clears_versions(self, application):
        """Test that reset removes version history."""
        store = application.version_store
        record = await store.capture_version("documentation", "doc", "text", "user_edit", "s")

        await application.reset()

        assert await store.get_all_versions() == []
        assert await store.get_version_content(record.version_id) is None

    async def test_reset_keeps_pipeline_running(self, application):
        """Test that reset does not stop telemetry."""
        await application.reset()

        application.pipeline.record_event("user_input")
        assert application.pipeline.queue_size == 1
