"""Core data models for tracecore."""

from .context import GlobalContext
from .events import InteractionEvent, Outcome
from .versions import ContentType, VersionRecord

__all__ = [
    # Context
    "GlobalContext",
    # Events
    "InteractionEvent",
    "Outcome",
    # Versions
    "ContentType",
    "VersionRecord",
]
