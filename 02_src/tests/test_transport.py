"""Tests for transports and shutdown senders."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from tracecore.models import InteractionEvent
from tracecore.pipeline import (
    BeaconSender,
    HttpTransport,
    RequestSender,
    TransportError,
    select_shutdown_sender,
)

ENDPOINT = "http://collector.test/api/telemetry/events"


def make_events(count: int) -> list[InteractionEvent]:
    ts = datetime.now(timezone.utc)
    return [
        InteractionEvent(
            id=f"evt{i}",
            timestamp=ts,
            sequence=i,
            event_type="user_input",
            user_id="user1",
            session_id="sess1",
        )
        for i in range(count)
    ]


class TestHttpTransportSend:
    """Tests for HttpTransport.send()."""

    async def test_send_posts_json_array(self):
        """Test that a batch is POSTed as a JSON array of payloads."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"received": 2})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpTransport(ENDPOINT, client=client)

        await transport.send(make_events(2))

        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == ENDPOINT
        assert requests[0].headers["content-type"] == "application/json"
        body = json.loads(requests[0].content)
        assert [e["id"] for e in body] == ["evt0", "evt1"]
        assert body[0]["eventType"] == "user_input"

        await client.aclose()

    async def test_non_success_status_raises(self):
        """Test that non-2xx responses are failures."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        )
        transport = HttpTransport(ENDPOINT, client=client)

        with pytest.raises(TransportError, match="503"):
            await transport.send(make_events(1))

        await client.aclose()

    async def test_network_error_raises(self):
        """Test that connection errors are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpTransport(ENDPOINT, client=client)

        with pytest.raises(TransportError) as exc_info:
            await transport.send(make_events(1))

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        await client.aclose()

    async def test_aclose_keeps_injected_client_open(self):
        """Test that an injected client is not closed by the transport."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200))
        )
        transport = HttpTransport(ENDPOINT, client=client)
        await transport.aclose()

        assert not client.is_closed
        await client.aclose()


class TestHttpTransportBeacon:
    """Tests for HttpTransport.beacon()."""

    async def test_beacon_posts_in_background(self):
        """Test that beacon returns immediately and the POST completes later."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(204)

        beacon_client = httpx.Client(transport=httpx.MockTransport(handler))
        transport = HttpTransport(ENDPOINT, beacon_client=beacon_client)

        assert transport.beacon(make_events(3)) is True
        await transport.aclose()

        assert len(requests) == 1
        assert [e["id"] for e in requests[0]] == ["evt0", "evt1", "evt2"]
        beacon_client.close()

    async def test_beacon_failure_is_swallowed(self):
        """Test that a failed beacon request only logs."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        beacon_client = httpx.Client(transport=httpx.MockTransport(handler))
        transport = HttpTransport(ENDPOINT, beacon_client=beacon_client)

        assert transport.beacon(make_events(1)) is True
        await transport.aclose()
        beacon_client.close()


class TestShutdownSenders:
    """Tests for shutdown sender selection and delivery."""

    def test_select_beacon_for_http(self):
        """Test that HttpTransport gets the beacon sender."""
        assert isinstance(select_shutdown_sender(HttpTransport(ENDPOINT)), BeaconSender)

    def test_select_request_without_beacon(self, transport):
        """Test that plain transports get the request sender."""
        assert isinstance(select_shutdown_sender(transport), RequestSender)

    async def test_request_sender_on_running_loop(self, transport):
        """Test that the request is scheduled on the running loop."""
        sender = RequestSender(transport)

        assert sender.send(make_events(2)) is True
        await sender.wait()

        assert len(transport.batches) == 1

    def test_request_sender_without_loop(self, transport):
        """Test that the request runs on its own thread when no loop is running."""
        sender = RequestSender(transport)

        assert sender.send(make_events(1)) is True
        asyncio.run(sender.wait())

        assert len(transport.batches) == 1
