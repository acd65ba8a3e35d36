"""SQLite storage implementation."""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, Sequence

import aiosqlite

from ..config import resolve_db_path
from ..models import VersionRecord


class StorageError(RuntimeError):
    """A write could not be persisted; nothing from it was kept."""


class IStorage(Protocol):
    """Persistent storage for version metadata and content (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def save_version(
        self,
        record: VersionRecord,
        content: str,
        evict_ids: Sequence[str] = (),
    ) -> None:
        """Persist record and content, and evict old versions, in one transaction."""
        ...

    async def get_version_records(self, content_ref: str) -> list[VersionRecord]:
        """Get records for one stream (newest first)."""
        ...

    async def get_all_version_records(self) -> list[VersionRecord]:
        """Get records for every stream (newest timestamp first)."""
        ...

    async def get_version_record(self, version_id: str) -> VersionRecord | None:
        """Get a single record."""
        ...

    async def get_version_content(self, version_id: str) -> str | None:
        """Get the raw content stored for a version."""
        ...

    async def get_content_refs(self) -> list[str]:
        """Get the names of all captured streams."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


_RECORD_COLUMNS = """
    version_id, content_ref, content_type, event_type, committer_id,
    summary, diff, metadata, timestamp
"""


def _to_db_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _row_to_record(row) -> VersionRecord:
    return VersionRecord(
        version_id=row[0],
        content_ref=row[1],
        content_type=row[2],
        event_type=row[3],
        committer_id=row[4],
        summary=row[5],
        diff=row[6],
        metadata=json.loads(row[7]),
        timestamp=_from_db_timestamp(row[8]),
    )


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        # One connection is shared, so write transactions must not interleave
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        # Read and execute schema
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def save_version(
        self,
        record: VersionRecord,
        content: str,
        evict_ids: Sequence[str] = (),
    ) -> None:
        """Persist record and content, and evict old versions, in one transaction."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        try:
            metadata_json = json.dumps(record.metadata)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Metadata for version {record.version_id} is not serializable: {e}"
            ) from e

        async with self._write_lock:
            try:
                await self._conn.execute(
                    f"""
                    INSERT INTO version_records ({_RECORD_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.version_id,
                        record.content_ref,
                        record.content_type,
                        record.event_type,
                        record.committer_id,
                        record.summary,
                        record.diff,
                        metadata_json,
                        _to_db_timestamp(record.timestamp),
                    ),
                )
                await self._conn.execute(
                    """
                    INSERT INTO version_contents (version_id, content)
                    VALUES (?, ?)
                    """,
                    (record.version_id, content),
                )

                if evict_ids:
                    placeholders = ",".join("?" * len(evict_ids))
                    await self._conn.execute(
                        f"DELETE FROM version_records WHERE version_id IN ({placeholders})",
                        list(evict_ids),
                    )
                    await self._conn.execute(
                        f"DELETE FROM version_contents WHERE version_id IN ({placeholders})",
                        list(evict_ids),
                    )

                await self._conn.commit()
            except aiosqlite.Error as e:
                await self._conn.rollback()
                raise StorageError(f"Failed to save version {record.version_id}: {e}") from e

    async def get_version_records(self, content_ref: str) -> list[VersionRecord]:
        """Get records for one stream (newest first)."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM version_records
            WHERE content_ref = ?
            ORDER BY seq DESC
            """,
            (content_ref,),
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def get_all_version_records(self) -> list[VersionRecord]:
        """Get records for every stream (newest timestamp first)."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM version_records
            ORDER BY timestamp DESC, seq DESC
            """
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def get_version_record(self, version_id: str) -> VersionRecord | None:
        """Get a single record."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM version_records
            WHERE version_id = ?
            """,
            (version_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return _row_to_record(row)

    async def get_version_content(self, version_id: str) -> str | None:
        """Get the raw content stored for a version."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT content
            FROM version_contents
            WHERE version_id = ?
            """,
            (version_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return row[0]

    async def get_content_refs(self) -> list[str]:
        """Get the names of all captured streams."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT DISTINCT content_ref
            FROM version_records
            ORDER BY content_ref
            """
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        tables = [
            "version_contents",
            "version_records",
        ]

        async with self._write_lock:
            for table in tables:
                await self._conn.execute(f"DELETE FROM {table}")

            await self._conn.commit()
