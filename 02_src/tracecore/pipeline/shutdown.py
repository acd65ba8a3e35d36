"""Shutdown delivery strategies.

A fire-and-forget primitive is used when the transport offers one;
otherwise an ordinary request is dispatched that may outlive the caller.
"""

import asyncio
import threading
from typing import Protocol

from ..logging_config import get_logger
from ..models import InteractionEvent
from .transport import ITransport, SupportsBeacon

logger = get_logger(__name__)


class IShutdownSender(Protocol):
    """One best-effort, non-blocking delivery attempt."""

    def send(self, events: list[InteractionEvent]) -> bool:
        """Dispatch the batch. Return True if a send was started."""
        ...

    async def wait(self) -> None:
        """Wait for dispatched sends that this sender still tracks."""
        ...


class BeaconSender:
    """Uses the transport's beacon primitive."""

    def __init__(self, transport: SupportsBeacon):
        self._transport = transport

    def send(self, events: list[InteractionEvent]) -> bool:
        dispatched = self._transport.beacon(events)
        if dispatched:
            logger.info("Shutdown beacon dispatched for %s events", len(events))
        else:
            logger.warning("Shutdown beacon failed, %s events may be lost", len(events))
        return dispatched

    async def wait(self) -> None:
        # Beacon threads are owned and joined by the transport
        return


class RequestSender:
    """Ordinary request that is not awaited by the caller."""

    def __init__(self, transport: ITransport):
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()
        self._threads: list[threading.Thread] = []

    def send(self, events: list[InteractionEvent]) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and not loop.is_closed():
            task = loop.create_task(self._deliver(events))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            thread = threading.Thread(
                target=asyncio.run,
                args=(self._deliver(events),),
                name="tracecore-shutdown-flush",
                daemon=False,
            )
            thread.start()
            self._threads.append(thread)

        logger.info("Shutdown request dispatched for %s events", len(events))
        return True

    async def _deliver(self, events: list[InteractionEvent]) -> None:
        try:
            await self._transport.send(events)
        except Exception as e:
            logger.error("Shutdown flush of %s events failed: %s", len(events), e)

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        threads, self._threads = self._threads, []
        for thread in threads:
            await asyncio.to_thread(thread.join)


def select_shutdown_sender(transport: ITransport) -> IShutdownSender:
    """Pick the beacon primitive when available, else an ordinary request."""
    if isinstance(transport, SupportsBeacon):
        return BeaconSender(transport)
    return RequestSender(transport)
