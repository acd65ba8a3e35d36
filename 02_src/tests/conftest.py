"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracecore.pipeline import TransportError  # noqa: E402


class FakeTransport:
    """In-memory transport that records batches and can fail or stall."""

    def __init__(self):
        self.batches: list[list] = []
        self.calls = 0
        self.fail = False
        self.fail_times = 0
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def send(self, events):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail or self.fail_times > 0:
            if self.fail_times > 0:
                self.fail_times -= 1
            raise TransportError("collector unavailable")
        self.batches.append(list(events))

    async def aclose(self):
        self.closed = True

    @property
    def sent_events(self) -> list:
        return [event for batch in self.batches for event in batch]


class BeaconTransport(FakeTransport):
    """FakeTransport with a fire-and-forget primitive."""

    def __init__(self):
        super().__init__()
        self.beacons: list[list] = []

    def beacon(self, events) -> bool:
        self.beacons.append(list(events))
        return True


@pytest.fixture
def context():
    """Create a global context with identity set."""
    from tracecore.models import GlobalContext

    return GlobalContext(
        user_id="user_001",
        session_id="session_001",
        app_version="1.2.3",
        client_info="pytest",
        current_view="chat",
        context_details={"theme": "dark"},
        extra_attributes={"activeProjectID": "proj_1"},
    )


@pytest.fixture
def transport():
    """Create a recording fake transport."""
    return FakeTransport()


@pytest.fixture
def beacon_transport():
    """Create a fake transport that supports beacons."""
    return BeaconTransport()


@pytest.fixture
def pipeline_config():
    """Config with a long interval so only tests that want the timer see it."""
    from tracecore.config import PipelineConfig

    return PipelineConfig(
        endpoint="http://collector.test/api/telemetry/events",
        batch_size=5,
        batch_interval_ms=60_000,
        max_queue_size=10,
    )


@pytest_asyncio.fixture
async def pipeline(context, transport, pipeline_config):
    """Create an EventPipeline (not started) with the fake transport."""
    from tracecore.pipeline import EventPipeline

    pl = EventPipeline(context, transport=transport, config=pipeline_config)
    yield pl
    await pl.stop()


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from tracecore.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def version_store(storage, pipeline, context):
    """Create VersionStore with storage and pipeline."""
    from tracecore.versions import VersionStore

    return VersionStore(storage, pipeline, context)


@pytest_asyncio.fixture
async def application(context, transport, pipeline_config):
    """Create and start an in-memory Application."""
    from tracecore.app import Application

    app = Application(
        db_path=":memory:",
        pipeline_config=pipeline_config,
        transport=transport,
        context=context,
    )
    await app.start()
    yield app
    await app.stop()
