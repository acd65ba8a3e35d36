"""Version history data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    """Known kinds of versioned content."""

    DEVELOPMENT_PLAN = "development_plan"
    CODE_SNIPPET = "code_snippet"
    PROJECT_CONTEXT = "project_context"
    DOCUMENTATION = "documentation"
    CHAT_EXPORT = "chat_export"
    SHUNT_INTERACTION = "shunt_interaction"
    WEAVER_MEMORY_UPDATE = "weaver_memory_update"
    DEVELOPER_CANVAS_SNAPSHOT = "developer_canvas_snapshot"


@dataclass(frozen=True)
class VersionRecord:
    """Metadata for one snapshot of a content stream."""

    version_id: str
    timestamp: datetime
    committer_id: str
    event_type: str  # what triggered the capture, e.g. "ai_response"
    content_type: str
    content_ref: str  # logical stream name
    summary: str
    diff: str | None = None  # unified patch against the previous version
    metadata: dict = field(default_factory=dict)

    @property
    def previous_version_id(self) -> str | None:
        return self.metadata.get("previous_version_id")

    def to_dict(self) -> dict:
        return {
            "version_id": self.version_id,
            "timestamp": self.timestamp.isoformat(),
            "committer_id": self.committer_id,
            "event_type": self.event_type,
            "content_type": self.content_type,
            "content_ref": self.content_ref,
            "summary": self.summary,
            "diff": self.diff,
            "metadata": dict(self.metadata),
        }
