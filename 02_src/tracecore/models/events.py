"""Interaction event data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Outcome(str, Enum):
    """High-level result of an interaction."""

    SUCCESS = "success"
    ERROR = "error"
    FAILURE = "failure"
    INCOMPLETE = "incomplete"
    TIMEOUT = "timeout"
    ABORTED = "aborted"
    UNKNOWN = "unknown"


# Python field name -> wire (collector) key
_WIRE_KEYS = {
    "id": "id",
    "timestamp": "timestamp",
    "sequence": "sequence",
    "event_type": "eventType",
    "interaction_type": "interactionType",
    "view": "view",
    "user_input": "userInput",
    "ai_output": "aiOutput",
    "outcome": "outcome",
    "latency_ms": "latencyMs",
    "model_used": "modelUsed",
    "token_usage": "tokenUsage",
    "custom_data": "customData",
    "context_details": "contextDetails",
    "user_feedback": "userFeedback",
    "tool_calls": "toolCalls",
    "prompt_version": "promptVersion",
    "available_tools": "availableTools",
    "feature_flags": "featureFlags",
    "user_id": "userID",
    "session_id": "sessionID",
    "app_version": "appVersion",
    "client_info": "clientInfo",
}


@dataclass(frozen=True)
class InteractionEvent:
    """One enriched record of something that happened. Never mutated."""

    id: str
    timestamp: datetime
    sequence: int
    event_type: str  # "user_input", "ai_response", "system_action", ...
    user_id: str
    session_id: str
    outcome: Outcome = Outcome.SUCCESS
    interaction_type: str | None = None
    view: str | None = None
    user_input: Any = None
    ai_output: Any = None
    latency_ms: float | None = None
    model_used: str | None = None
    token_usage: dict | None = None
    custom_data: dict | None = None
    context_details: dict = field(default_factory=dict)
    user_feedback: Any = None
    tool_calls: list[dict] | None = None
    prompt_version: str | None = None
    available_tools: list[str] | None = None
    feature_flags: dict | None = None
    app_version: str | None = None
    client_info: str | None = None
    attributes: dict = field(default_factory=dict)  # GlobalContext.extra_attributes

    def to_payload(self) -> dict:
        """Serialize to the collector's JSON shape."""
        payload = {}
        for name, key in _WIRE_KEYS.items():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Outcome):
                value = value.value
            payload[key] = value

        for key, value in (self.attributes or {}).items():
            payload.setdefault(key, value)

        return payload
