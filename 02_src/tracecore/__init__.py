"""tracecore: interaction telemetry pipeline and content version history."""

from .app import Application, IApplication
from .config import PipelineConfig, VersionStoreConfig
from .models import (
    ContentType,
    GlobalContext,
    InteractionEvent,
    Outcome,
    VersionRecord,
)
from .pipeline import (
    EventPipeline,
    HttpTransport,
    IEventPipeline,
    ITransport,
    TransportError,
)
from .storage import IStorage, Storage, StorageError
from .versions import IVersionStore, VersionStore

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Config
    "PipelineConfig",
    "VersionStoreConfig",
    # Models
    "GlobalContext",
    "InteractionEvent",
    "Outcome",
    "ContentType",
    "VersionRecord",
    # Components
    "IEventPipeline",
    "EventPipeline",
    "ITransport",
    "HttpTransport",
    "TransportError",
    "IStorage",
    "Storage",
    "StorageError",
    "IVersionStore",
    "VersionStore",
]
