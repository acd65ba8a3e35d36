"""EventPipeline: enrich, queue and batch-deliver interaction events."""

import asyncio
import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from ..config import PipelineConfig
from ..logging_config import get_logger
from ..models import GlobalContext, InteractionEvent, Outcome
from .shutdown import IShutdownSender, select_shutdown_sender
from .transport import HttpTransport, ITransport, TransportError

logger = get_logger(__name__)


def _detached(value: Any) -> Any:
    """Deep copy of caller data; shallow copy for values that cannot be deep-copied."""
    if value is None:
        return None
    try:
        return copy.deepcopy(value)
    except Exception as e:
        logger.debug("Falling back to shallow copy of %s: %s", type(value).__name__, e)
        return copy.copy(value)


@dataclass
class PipelineStats:
    """Counters for the pipeline's lifetime."""

    recorded: int = 0
    dropped: int = 0
    sent: int = 0
    failed_attempts: int = 0


class IEventPipeline(Protocol):
    """Non-blocking event intake with batched delivery."""

    @property
    def global_context(self) -> GlobalContext:
        """Live context used to enrich new events."""
        ...

    def record_event(self, event_type: str, **fields: Any) -> None:
        """Enrich and queue an event. Never raises, never blocks."""
        ...

    def update_global_context(self, **changes: Any) -> None:
        """Merge into the live context; only later events see the change."""
        ...

    def flush_on_shutdown(self) -> bool:
        """Best-effort, non-blocking send of whatever is still queued."""
        ...


class EventPipeline:
    """Bounded in-memory queue drained by size, by timer, or at shutdown."""

    def __init__(
        self,
        context: GlobalContext,
        transport: ITransport | None = None,
        config: PipelineConfig | None = None,
    ):
        self._config = (config or PipelineConfig()).resolved()
        self._context = context
        self._transport = transport or HttpTransport(
            self._config.endpoint, timeout=self._config.request_timeout_s
        )
        self._shutdown_sender: IShutdownSender = select_shutdown_sender(self._transport)

        self._queue: list[InteractionEvent] = []
        self._sequence = 0
        self._sending = False
        self._running = False
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self.stats = PipelineStats()

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def global_context(self) -> GlobalContext:
        return self._context

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def is_sending(self) -> bool:
        return self._sending

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    async def start(self) -> None:
        """Arm the recurring timer."""
        if self._running:
            return
        if not self._context.has_identity:
            logger.warning(
                "EventPipeline started without user_id or session_id; "
                "events will lack user context"
            )
        self._running = True
        self._arm_timer()
        logger.info(
            "EventPipeline started",
            extra={
                "context": {
                    "endpoint": self._config.endpoint,
                    "batch_size": self._config.batch_size,
                    "batch_interval_ms": self._config.batch_interval_ms,
                    "max_queue_size": self._config.max_queue_size,
                }
            },
        )

    async def stop(self) -> None:
        """Disarm the timer and wait for in-flight drains."""
        self._running = False
        self._cancel_timer()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("EventPipeline stopped with %s events queued", len(self._queue))

    async def aclose(self) -> None:
        """Wait for shutdown sends and close the transport."""
        await self._shutdown_sender.wait()
        await self._transport.aclose()

    def update_global_context(self, **changes: Any) -> None:
        """Merge into the live context; queued events keep their values."""
        self._context.update(**changes)
        logger.debug("Global context updated: %s", sorted(changes))

    def record_event(
        self,
        event_type: str,
        *,
        interaction_type: str | None = None,
        view: str | None = None,
        user_input: Any = None,
        ai_output: Any = None,
        outcome: Outcome | str = Outcome.SUCCESS,
        latency_ms: float | None = None,
        model_used: str | None = None,
        token_usage: dict | None = None,
        custom_data: dict | None = None,
        context_details: dict | None = None,
        user_feedback: Any = None,
        tool_calls: list[dict] | None = None,
        prompt_version: str | None = None,
        available_tools: list[str] | None = None,
        feature_flags: dict | None = None,
    ) -> None:
        """Enrich an event with id, timestamp and context, then queue it."""
        if len(self._queue) >= self._config.max_queue_size:
            self._report_drop(event_type, "queue full")
            return

        try:
            outcome = Outcome(outcome)
        except ValueError:
            logger.warning("Unknown outcome %r for %s event", outcome, event_type)
            outcome = Outcome.UNKNOWN

        try:
            ctx = self._context.snapshot()
            event = InteractionEvent(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(timezone.utc),
                sequence=self._sequence + 1,
                event_type=event_type,
                user_id=ctx["user_id"] or "",
                session_id=ctx["session_id"] or "",
                outcome=outcome,
                interaction_type=interaction_type,
                view=view if view is not None else ctx["current_view"],
                user_input=_detached(user_input),
                ai_output=_detached(ai_output),
                latency_ms=latency_ms,
                model_used=model_used,
                token_usage=_detached(token_usage),
                custom_data=_detached(custom_data),
                context_details={
                    **(ctx["context_details"] or {}),
                    **(_detached(context_details) or {}),
                },
                user_feedback=_detached(user_feedback),
                tool_calls=_detached(tool_calls),
                prompt_version=prompt_version,
                available_tools=list(available_tools) if available_tools is not None else None,
                feature_flags=_detached(feature_flags),
                app_version=ctx["app_version"],
                client_info=ctx["client_info"],
                attributes=dict(ctx["extra_attributes"] or {}),
            )
        except Exception as e:
            self.stats.dropped += 1
            logger.error(
                "Dropping %s event, enrichment failed: %s",
                event_type,
                e,
                exc_info=True,
                extra={"context": {"dropped_total": self.stats.dropped}},
            )
            return

        self._sequence = event.sequence
        self._queue.append(event)
        self.stats.recorded += 1
        logger.debug(
            "Event '%s' queued, queue size %s", event_type, len(self._queue)
        )

        if len(self._queue) >= self._config.batch_size:
            self._schedule_drain()

    async def drain(self) -> None:
        """Send the current queue as one batch; re-queue it at the front on failure."""
        if self._sending or not self._queue:
            if self._running and self._timer is None and not self._sending:
                self._arm_timer()
            return

        self._sending = True
        batch = self._queue
        self._queue = []
        self._cancel_timer()

        try:
            logger.debug("Sending %s events", len(batch))
            await self._transport.send(batch)
        except TransportError as e:
            self.stats.failed_attempts += 1
            logger.error(
                "Failed to send %s events, re-queueing: %s",
                len(batch),
                e,
                extra={"context": {"batch_size": len(batch), "queued": len(self._queue)}},
            )
            self._requeue(batch)
        except Exception as e:
            # Batch cannot be encoded or sent at all; dropped, not retried
            self.stats.dropped += len(batch)
            logger.error(
                "Dropping %s events that could not be sent: %s",
                len(batch),
                e,
                exc_info=True,
                extra={"context": {"batch_size": len(batch), "dropped_total": self.stats.dropped}},
            )
        else:
            self.stats.sent += len(batch)
            logger.info("Sent %s events", len(batch))
        finally:
            self._sending = False
            if self._running:
                self._arm_timer()

    def flush_on_shutdown(self) -> bool:
        """Hand whatever is queued to the shutdown sender. Single attempt."""
        if not self._queue:
            return False

        batch = self._queue
        self._queue = []
        logger.info("Flushing %s events on shutdown", len(batch))
        try:
            return self._shutdown_sender.send(batch)
        except Exception as e:
            logger.error("Shutdown flush of %s events failed: %s", len(batch), e)
            return False

    def _requeue(self, batch: list[InteractionEvent]) -> None:
        """Put a failed batch ahead of events recorded during the attempt.

        The queue is then capped at max_queue_size by dropping the newest
        events, so repeated failures under load cannot grow memory.
        """
        self._queue = batch + self._queue
        overflow = len(self._queue) - self._config.max_queue_size
        if overflow > 0:
            for event in self._queue[-overflow:]:
                self._report_drop(event.event_type, "queue full after retry")
            del self._queue[-overflow:]

    def _report_drop(self, event_type: str, reason: str) -> None:
        self.stats.dropped += 1
        logger.warning(
            "Dropping %s event (%s, max %s)",
            event_type,
            reason,
            self._config.max_queue_size,
            extra={"context": {"dropped_total": self.stats.dropped}},
        )

    def _schedule_drain(self) -> None:
        if self._sending or not self._running:
            return
        task = asyncio.get_running_loop().create_task(self.drain())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_timer(self) -> None:
        self._timer = None
        if self._queue:
            self._schedule_drain()
            if self._sending or self._tasks:
                return
        self._arm_timer()

    def _arm_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._config.batch_interval_s, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
