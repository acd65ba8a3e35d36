"""Transports that deliver event batches to the collector endpoint."""

import asyncio
import json
import threading
from typing import Protocol, runtime_checkable

import httpx

from ..logging_config import get_logger
from ..models import InteractionEvent

logger = get_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class TransportError(RuntimeError):
    """A batch was not accepted by the collector."""


class ITransport(Protocol):
    """Delivers one batch of events per call."""

    async def send(self, events: list[InteractionEvent]) -> None:
        """POST the batch. Raise on network error or non-success status."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...


@runtime_checkable
class SupportsBeacon(Protocol):
    """Fire-and-forget delivery that survives process teardown."""

    def beacon(self, events: list[InteractionEvent]) -> bool:
        """Dispatch the batch without waiting. Return True if dispatched."""
        ...


def encode_batch(events: list[InteractionEvent]) -> bytes:
    """Encode events as the JSON array the collector expects."""
    return json.dumps([event.to_payload() for event in events], default=str).encode("utf-8")


class HttpTransport:
    """HTTP transport: async POST for drains, thread-backed beacon for shutdown."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        beacon_client: httpx.Client | None = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._beacon_client = beacon_client
        self._beacon_threads: list[threading.Thread] = []

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def send(self, events: list[InteractionEvent]) -> None:
        """POST a batch, raising TransportError on any failure."""
        if self._client is None:
            # Created lazily so it binds to the loop that drains
            self._client = httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await self._client.post(
                self._endpoint,
                content=encode_batch(events),
                headers=JSON_HEADERS,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach {self._endpoint}: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Collector returned {response.status_code}: {response.text[:200]}"
            )

    def beacon(self, events: list[InteractionEvent]) -> bool:
        """Send on a non-daemon thread so the interpreter waits for it at exit."""
        body = encode_batch(events)
        thread = threading.Thread(
            target=self._post_beacon,
            args=(body, len(events)),
            name="tracecore-beacon",
            daemon=False,
        )
        try:
            thread.start()
        except RuntimeError as e:
            # Interpreter is already finalizing
            logger.warning("Beacon could not be dispatched: %s", e)
            return False

        self._beacon_threads.append(thread)
        return True

    def _post_beacon(self, body: bytes, count: int) -> None:
        try:
            if self._beacon_client is not None:
                response = self._beacon_client.post(
                    self._endpoint, content=body, headers=JSON_HEADERS
                )
            else:
                response = httpx.post(
                    self._endpoint,
                    content=body,
                    headers=JSON_HEADERS,
                    timeout=self._timeout,
                )
        except httpx.HTTPError as e:
            logger.warning("Beacon request for %s events failed: %s", count, e)
            return

        if response.is_success:
            logger.info("Beacon delivered %s events", count)
        else:
            logger.warning(
                "Beacon for %s events rejected with status %s",
                count,
                response.status_code,
            )

    async def aclose(self) -> None:
        """Wait for outstanding beacons, then close the async client."""
        threads, self._beacon_threads = self._beacon_threads, []
        for thread in threads:
            await asyncio.to_thread(thread.join, self._timeout)

        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
