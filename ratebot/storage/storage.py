"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import StoreError
from ..logging_config import get_logger
from ..models import SessionRecord, TraceEvent

logger = get_logger(__name__)


class ISessionStore(Protocol):
    """Per-user session persistence."""

    async def get_session(self, user_id: int) -> SessionRecord | None:
        """Get the session for a user; None when absent or outdated."""
        ...

    async def save_session(self, record: SessionRecord) -> None:
        """Create or overwrite the session for record.user_id."""
        ...


class IStorage(ISessionStore, Protocol):
    """Persistent storage for sessions and trace events (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

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

    # Sessions
    async def get_session(self, user_id: int) -> SessionRecord | None:
        """Get the session for a user.

        Records written under another schema version, or missing fields,
        are reported as absent so the conversation restarts from /start.
        """
        conn = self._require_conn()
        try:
            cursor = await conn.execute(
                "SELECT data FROM sessions WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Error reading session {user_id}: {e}") from e

        if not row:
            return None

        try:
            data = json.loads(row[0])
        except ValueError:
            logger.warning("Unparsable session for %s ignored", user_id)
            return None

        record = SessionRecord.from_dict(data) if isinstance(data, dict) else None
        if record is None:
            logger.info("Outdated session for %s treated as absent", user_id)
        return record

    async def save_session(self, record: SessionRecord) -> None:
        """Create or overwrite the session for record.user_id."""
        conn = self._require_conn()
        try:
            await conn.execute(
                """
                INSERT OR REPLACE INTO sessions (user_id, data, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (record.user_id, json.dumps(record.to_dict(), ensure_ascii=False)),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Error saving session {record.user_id}: {e}") from e

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        conn = self._require_conn()
        row = (
            event.id or str(uuid.uuid4()),
            event.event_type,
            event.actor,
            json.dumps(event.data, ensure_ascii=False, default=str),
            _stamp(event.timestamp),
        )
        try:
            await conn.execute(
                "INSERT INTO trace_events (id, event_type, actor, data, timestamp) "
                "VALUES (?, ?, ?, ?, ?)",
                row,
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Error saving trace event {event.event_type}: {e}") from e

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Trace events matching every given filter, newest first."""
        conn = self._require_conn()

        filters: list[tuple[str, list]] = []
        if after:
            filters.append(("timestamp > ?", [_stamp(after)]))
        if event_types:
            marks = ", ".join("?" for _ in event_types)
            filters.append((f"event_type IN ({marks})", list(event_types)))
        if actor:
            filters.append(("actor = ?", [actor]))

        sql = "SELECT id, event_type, actor, data, timestamp FROM trace_events"
        params: list = []
        if filters:
            sql += " WHERE " + " AND ".join(clause for clause, _ in filters)
            for _, values in filters:
                params.extend(values)
        sql += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        try:
            async with conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Error reading trace events: {e}") from e

        return [_trace_event(row) for row in rows]

    async def clear(self) -> None:
        """Delete all sessions and trace events."""
        conn = self._require_conn()
        await conn.execute("DELETE FROM sessions")
        await conn.execute("DELETE FROM trace_events")
        await conn.commit()


def _stamp(moment: datetime) -> str:
    """UTC ISO timestamp with fixed precision, so text order is time order."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _trace_event(row) -> TraceEvent:
    event_id, event_type, actor, data, timestamp = row
    return TraceEvent(
        id=event_id,
        event_type=event_type,
        actor=actor,
        data=json.loads(data),
        timestamp=datetime.fromisoformat(timestamp),
    )
