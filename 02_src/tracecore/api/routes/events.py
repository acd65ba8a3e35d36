"""Event intake and telemetry status routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication


class EventRequest(BaseModel):
    """Request model for recording an interaction event."""

    event_type: str
    interaction_type: str | None = None
    view: str | None = None
    user_input: Any = None
    ai_output: Any = None
    outcome: str = "success"
    latency_ms: float | None = None
    model_used: str | None = None
    token_usage: dict[str, Any] | None = None
    custom_data: dict[str, Any] | None = None
    context_details: dict[str, Any] | None = None
    user_feedback: Any = None
    tool_calls: list[dict[str, Any]] | None = None
    prompt_version: str | None = None
    available_tools: list[str] | None = None
    feature_flags: dict[str, Any] | None = None


class ContextUpdateRequest(BaseModel):
    """Partial update of the global context."""

    user_id: str | None = None
    session_id: str | None = None
    app_version: str | None = None
    client_info: str | None = None
    current_view: str | None = None
    context_details: dict[str, Any] | None = None
    extra_attributes: dict[str, Any] | None = None


class StatusResponse(BaseModel):
    """Response model for queued requests."""

    status: str


class TelemetryStatusResponse(BaseModel):
    """Response model for pipeline status."""

    endpoint: str
    queue_size: int
    is_sending: bool
    recorded: int
    dropped: int
    sent: int
    failed_attempts: int


def create_events_router(app: IApplication) -> APIRouter:
    """Create events router."""
    router = APIRouter(prefix="/api", tags=["events"])

    @router.post("/events", response_model=StatusResponse, status_code=202)
    async def record_event(request: EventRequest) -> dict:
        """Queue an interaction event for delivery."""
        fields = request.model_dump(exclude={"event_type"})
        app.pipeline.record_event(request.event_type, **fields)
        return {"status": "queued"}

    @router.patch("/context")
    async def update_context(request: ContextUpdateRequest) -> dict:
        """Merge changes into the global context."""
        changes = request.model_dump(exclude_unset=True)
        try:
            app.pipeline.update_global_context(**changes)
        except TypeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return app.pipeline.global_context.snapshot()

    @router.get("/telemetry/status", response_model=TelemetryStatusResponse)
    async def telemetry_status() -> dict:
        """Report queue size and delivery counters."""
        pipeline = app.pipeline
        return {
            "endpoint": pipeline.config.endpoint,
            "queue_size": pipeline.queue_size,
            "is_sending": pipeline.is_sending,
            "recorded": pipeline.stats.recorded,
            "dropped": pipeline.stats.dropped,
            "sent": pipeline.stats.sent,
            "failed_attempts": pipeline.stats.failed_attempts,
        }

    return router
