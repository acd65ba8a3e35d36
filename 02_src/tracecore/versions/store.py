"""VersionStore: bounded, diffed snapshot history per content stream."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..config import VersionStoreConfig
from ..logging_config import get_logger
from ..models import GlobalContext, Outcome, VersionRecord
from ..pipeline import IEventPipeline
from ..storage import IStorage, StorageError
from .diff import build_patch, generate_diff

logger = get_logger(__name__)


class IVersionStore(Protocol):
    """Snapshot, browse, diff and revert named content streams."""

    async def capture_version(
        self,
        content_type: str,
        content_ref: str,
        new_content: str,
        event_type: str,
        summary: str,
        metadata: dict | None = None,
    ) -> VersionRecord | None:
        """Store a new snapshot. Return None if it could not be persisted."""
        ...

    async def get_versions(self, content_ref: str) -> list[VersionRecord]:
        """History of one stream, newest first."""
        ...

    async def get_all_versions(self) -> list[VersionRecord]:
        """Every stream's history merged, newest first."""
        ...

    async def get_version_content(self, version_id: str) -> str | None:
        """Raw content of one version."""
        ...

    async def revert_to_version(self, version_id: str) -> str | None:
        """Return a past version's content without changing history."""
        ...

    def generate_diff(self, old_content: str, new_content: str) -> str:
        """Ad-hoc preview diff."""
        ...


class VersionStore:
    """Keeps the newest snapshots of each stream and audits changes."""

    def __init__(
        self,
        storage: IStorage,
        pipeline: IEventPipeline,
        context: GlobalContext,
        config: VersionStoreConfig | None = None,
    ):
        self._storage = storage
        self._pipeline = pipeline
        self._context = context
        self._config = config or VersionStoreConfig()

    @property
    def max_versions_per_stream(self) -> int:
        return self._config.max_versions_per_stream

    async def capture_version(
        self,
        content_type: str,
        content_ref: str,
        new_content: str,
        event_type: str,
        summary: str,
        metadata: dict | None = None,
    ) -> VersionRecord | None:
        """Diff against the newest version, persist, evict the oldest beyond the cap."""
        content_type = str(getattr(content_type, "value", content_type))
        current = await self._storage.get_version_records(content_ref)
        previous = current[0] if current else None

        diff = None
        if previous is not None:
            previous_content = await self._storage.get_version_content(previous.version_id)
            if previous_content is not None:
                diff = build_patch(
                    previous_content,
                    new_content,
                    f"Version {len(current)}",
                    f"Version {len(current) + 1}",
                    context_lines=self._config.diff_context_lines,
                )

        record_metadata = dict(metadata or {})
        if previous is not None:
            record_metadata["previous_version_id"] = previous.version_id

        record = VersionRecord(
            version_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            committer_id=self._context.user_id or "unknown",
            event_type=event_type,
            content_type=content_type,
            content_ref=content_ref,
            summary=summary,
            diff=diff,
            metadata=record_metadata,
        )

        # History after prepending the new record; anything past the cap goes
        keep = self._config.max_versions_per_stream - 1
        evicted = [old.version_id for old in current[keep:]]

        try:
            await self._storage.save_version(record, new_content, evict_ids=evicted)
        except StorageError as e:
            logger.error(
                "Failed to capture version for '%s': %s",
                content_ref,
                e,
                exc_info=True,
            )
            return None

        if evicted:
            logger.debug("Evicted %s old versions of '%s'", len(evicted), content_ref)

        self._pipeline.record_event(
            "system_action",
            interaction_type="version_captured",
            view=self._context.current_view or "unknown",
            outcome=Outcome.SUCCESS,
            custom_data={
                "version_id": record.version_id,
                "content_ref": record.content_ref,
                "content_type": record.content_type,
                "summary": record.summary,
                "previous_version_id": record.previous_version_id,
            },
        )

        logger.info(
            "Captured version %s for '%s'",
            record.version_id,
            content_ref,
            extra={"context": {"content_type": content_type, "evicted": len(evicted)}},
        )
        return record

    async def get_versions(self, content_ref: str) -> list[VersionRecord]:
        """History of one stream, newest first."""
        return await self._storage.get_version_records(content_ref)

    async def get_all_versions(self) -> list[VersionRecord]:
        """Every stream's history merged, newest first."""
        return await self._storage.get_all_version_records()

    async def get_version_content(self, version_id: str) -> str | None:
        """Raw content of one version."""
        return await self._storage.get_version_content(version_id)

    async def revert_to_version(self, version_id: str) -> str | None:
        """Return a past version's content. History is left untouched."""
        content = await self._storage.get_version_content(version_id)
        if content is None:
            logger.warning("Attempted to revert to unknown version %s", version_id)
            return None

        record = await self._storage.get_version_record(version_id)
        self._pipeline.record_event(
            "user_action",
            interaction_type="revert_to_version",
            view=self._context.current_view or "unknown",
            outcome=Outcome.SUCCESS,
            custom_data={
                "version_id": version_id,
                "content_ref": record.content_ref if record else None,
                "content_type": record.content_type if record else None,
            },
        )

        logger.info("Content reverted to version %s", version_id)
        return content

    def generate_diff(self, old_content: str, new_content: str) -> str:
        """Ad-hoc preview diff, independent of stored patches."""
        return generate_diff(old_content, new_content)
