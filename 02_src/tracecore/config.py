"""Project-level configuration and path helpers."""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "tracecore.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# logging_config imports this module, so use the stdlib accessor directly
logger = logging.getLogger(__name__)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_number(name: str, cast: type) -> int | float | None:
    """Read a numeric env var, ignoring values that do not parse."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return None


@dataclass(frozen=True)
class PipelineConfig:
    """Event pipeline settings, fixed for the pipeline's lifetime."""

    endpoint: str = "http://localhost:8000/api/telemetry/events"
    batch_size: int = 10
    batch_interval_ms: int = 5000
    max_queue_size: int = 100
    request_timeout_s: float = 10.0

    @property
    def batch_interval_s(self) -> float:
        return self.batch_interval_ms / 1000

    def resolved(self) -> "PipelineConfig":
        """Return a copy with missing or non-positive values replaced by defaults."""
        defaults = PipelineConfig()
        changes = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "endpoint":
                if not value:
                    changes[f.name] = defaults.endpoint
                continue
            if value is None or value <= 0:
                logger.warning(
                    "Invalid pipeline setting %s=%r, using default %r",
                    f.name,
                    value,
                    getattr(defaults, f.name),
                )
                changes[f.name] = getattr(defaults, f.name)
        return replace(self, **changes) if changes else self

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build config from TELEMETRY_* environment variables."""
        values = {
            "endpoint": os.getenv("TELEMETRY_ENDPOINT") or None,
            "batch_size": _env_number("TELEMETRY_BATCH_SIZE", int),
            "batch_interval_ms": _env_number("TELEMETRY_BATCH_INTERVAL_MS", int),
            "max_queue_size": _env_number("TELEMETRY_MAX_QUEUE_SIZE", int),
            "request_timeout_s": _env_number("TELEMETRY_REQUEST_TIMEOUT", float),
        }
        return cls(**{k: v for k, v in values.items() if v is not None}).resolved()


@dataclass(frozen=True)
class VersionStoreConfig:
    """Version store settings."""

    max_versions_per_stream: int = 20
    diff_context_lines: int = 3

    @classmethod
    def from_env(cls) -> "VersionStoreConfig":
        """Build config from VERSION_* environment variables."""
        max_versions = _env_number("VERSION_MAX_PER_STREAM", int)
        if max_versions is None or max_versions <= 0:
            return cls()
        return cls(max_versions_per_stream=max_versions)
