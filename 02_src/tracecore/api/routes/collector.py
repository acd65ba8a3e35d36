"""Development collector endpoint.

Accepts the pipeline's batches so a single process can run end to end.
Events are logged, not stored.
"""

from typing import Any

from fastapi import APIRouter

from ...logging_config import get_logger

logger = get_logger(__name__)


def create_collector_router() -> APIRouter:
    """Create collector router."""
    router = APIRouter(prefix="/api/telemetry", tags=["collector"])

    @router.post("/events")
    async def ingest_events(events: list[dict[str, Any]]) -> dict:
        """Accept a batch of interaction events."""
        event_types = sorted({e.get("eventType", "unknown") for e in events})
        logger.info(
            "Collector received %s events",
            len(events),
            extra={"context": {"event_types": event_types}},
        )
        return {"received": len(events)}

    return router
