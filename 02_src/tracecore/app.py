"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .config import PipelineConfig, VersionStoreConfig, resolve_db_path
from .logging_config import get_logger
from .models import GlobalContext
from .pipeline import EventPipeline, ITransport
from .storage import IStorage, Storage
from .versions import VersionStore

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Flush telemetry and shut down in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset version data between test runs."""
        ...

    @property
    def pipeline(self) -> EventPipeline:
        """Event pipeline of a started application."""
        ...

    @property
    def version_store(self) -> VersionStore:
        """Version store of a started application."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        pipeline_config: PipelineConfig | None = None,
        store_config: VersionStoreConfig | None = None,
        transport: ITransport | None = None,
        context: GlobalContext | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._pipeline_config = pipeline_config or PipelineConfig.from_env()
        self._store_config = store_config or VersionStoreConfig.from_env()
        self._transport = transport
        self._context = context or GlobalContext(
            user_id=os.getenv("TELEMETRY_USER_ID", ""),
            session_id=os.getenv("TELEMETRY_SESSION_ID", ""),
            app_version=os.getenv("APP_VERSION"),
        )

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._pipeline: EventPipeline | None = None
        self._version_store: VersionStore | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventPipeline (depends on transport + context)
        self._pipeline = EventPipeline(
            self._context,
            transport=self._transport,
            config=self._pipeline_config,
        )
        await self._pipeline.start()

        # 3. VersionStore (depends on Storage, audits through EventPipeline)
        self._version_store = VersionStore(
            self._storage,
            self._pipeline,
            self._context,
            config=self._store_config,
        )
        logger.info("VersionStore initialized")
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Flush telemetry and shut down in reverse order."""
        if self._pipeline:
            await self._pipeline.stop()
            self._pipeline.flush_on_shutdown()
            await self._pipeline.aclose()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset version data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    @property
    def context(self) -> GlobalContext:
        """Get the shared global context."""
        return self._context

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def pipeline(self) -> EventPipeline:
        """Get event pipeline instance."""
        if not self._pipeline:
            raise RuntimeError("Application not started")
        return self._pipeline

    @property
    def version_store(self) -> VersionStore:
        """Get version store instance."""
        if not self._version_store:
            raise RuntimeError("Application not started")
        return self._version_store
