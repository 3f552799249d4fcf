"""SQLite-backed record store for journal entries, tasks, events, emails and contacts.

This module provides:
- RecordStore: aiosqlite interface used by the search and metrics aggregators

Array fields (tags, attendees, recipients) are stored as JSON text and
matched with SQLite's json_each. Timestamps are stored as UTC ISO-8601
strings, so lexical comparison orders them chronologically.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from .errors import StoreError
from .records import (
    KIND_ORDER,
    KINDS,
    CalendarEvent,
    Contact,
    Email,
    JournalEntry,
    Record,
    Task,
    to_iso,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# SQL Schema
# ---------------------------------------------------------------------------


SCHEMA = """
CREATE TABLE IF NOT EXISTS journal_entries (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    mood TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    is_private INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_journal_user_created ON journal_entries(user_id, created_at);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'TODO',
    priority TEXT NOT NULL DEFAULT 'MEDIUM',
    due_date TEXT,
    completed_at TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_user_created ON tasks(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_tasks_user_completed ON tasks(user_id, completed_at);
CREATE INDEX IF NOT EXISTS idx_tasks_user_due ON tasks(user_id, due_date);

CREATE TABLE IF NOT EXISTS calendar_events (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    location TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'confirmed',
    attendees TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_user_start ON calendar_events(user_id, start_time);

CREATE TABLE IF NOT EXISTS emails (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    subject TEXT NOT NULL,
    sender TEXT NOT NULL,
    recipients TEXT NOT NULL DEFAULT '[]',
    content TEXT,
    is_read INTEGER NOT NULL DEFAULT 0,
    is_important INTEGER NOT NULL DEFAULT 0,
    received_at TEXT NOT NULL,
    sent_at TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_emails_user_received ON emails(user_id, received_at);
CREATE INDEX IF NOT EXISTS idx_emails_user_sent ON emails(user_id, sent_at);

CREATE TABLE IF NOT EXISTS contacts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    phone TEXT,
    company TEXT,
    job_title TEXT,
    notes TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    is_favorite INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_contacts_user_created ON contacts(user_id, created_at);
"""


def _casefold_text(value: str | None) -> str | None:
    """Unicode-aware lowercase, registered as an SQL function on each connection."""
    return value.lower() if value is not None else None


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the query matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _upsert_sql(record_cls: type) -> str:
    columns = record_cls.COLUMNS
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
    return (
        f"INSERT INTO {record_cls.TABLE} ({', '.join(columns)}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------


class RecordStore:
    """SQLite store holding every user's records.

    Usage:
        store = RecordStore(Path("~/.productivity-hub/hub.db"))
        await store.initialize()

        await store.upsert(task)
        tasks = await store.find_matching("tasks", "user-1", "report", None, None, 20)

        await store.close()
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the RecordStore.

        Args:
            db_path: Path of the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    # ================================================================
    # Lifecycle
    # ================================================================

    async def initialize(self) -> None:
        """Open the connection, set pragmas and create the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = await self._get_connection()
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute("PRAGMA busy_timeout = 5000")
        await conn.execute("PRAGMA synchronous = NORMAL")
        await conn.executescript(SCHEMA)
        await conn.commit()

        logger.info(f"RecordStore initialized at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("RecordStore connection closed")

    async def _get_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
            await self._connection.create_function(
                "casefold_text", 1, _casefold_text, deterministic=True
            )
        return self._connection

    async def verify_integrity(self) -> bool:
        """Return True if the database passes SQLite's integrity check."""
        conn = await self._get_connection()
        async with conn.execute("PRAGMA integrity_check") as cursor:
            result = await cursor.fetchone()
            return result[0] == "ok"

    async def safe_initialize(self) -> None:
        """Initialize, recovering from a corrupt database file if needed."""
        try:
            await self.initialize()

            if not await self.verify_integrity():
                raise sqlite3.DatabaseError("Integrity check failed")

        except sqlite3.DatabaseError as e:
            logger.error(f"Database error during initialization: {e}")
            await self._recover_database()

    async def _recover_database(self) -> None:
        """Move the corrupt file aside and start from an empty database."""
        logger.warning("Attempting database recovery...")
        await self.close()

        if self.db_path.exists():
            corrupt_path = self.db_path.with_suffix(".db.corrupt")
            self.db_path.rename(corrupt_path)
            logger.info(f"Corrupt database moved to {corrupt_path}")

        for suffix in ["-wal", "-shm"]:
            wal_file = self.db_path.parent / (self.db_path.name + suffix)
            if wal_file.exists():
                wal_file.unlink()

        await self.initialize()
        logger.info("Database recovered - records must be re-imported")

    # ================================================================
    # Writes
    # ================================================================

    async def upsert(self, record: Record) -> None:
        """Insert or replace a single record."""
        conn = await self._get_connection()
        await conn.execute(_upsert_sql(type(record)), record.to_row())
        await conn.commit()

    async def upsert_batch(self, records: Iterable[Record]) -> int:
        """Insert or replace many records of any kinds.

        Returns:
            The number of records written.
        """
        by_class: dict[type, list[Record]] = {}
        for record in records:
            by_class.setdefault(type(record), []).append(record)
        if not by_class:
            return 0

        conn = await self._get_connection()
        written = 0
        for record_cls, items in by_class.items():
            await conn.executemany(_upsert_sql(record_cls), [r.to_row() for r in items])
            written += len(items)
        await conn.commit()
        return written

    async def delete(self, kind: str, record_id: str) -> bool:
        """Delete a record by kind and id.

        Returns:
            True if a record was deleted, False if not found.
        """
        table = KINDS[kind].table
        conn = await self._get_connection()
        cursor = await conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        await conn.commit()
        return cursor.rowcount > 0

    # ================================================================
    # Query helpers
    # ================================================================

    async def _fetch_rows(self, sql: str, params: list | tuple, kind: str) -> list[Any]:
        conn = await self._get_connection()
        try:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StoreError(f"Query on {kind} failed: {e}", kind=kind) from e

    async def _fetch_count(self, sql: str, params: list | tuple, kind: str) -> int:
        rows = await self._fetch_rows(sql, params, kind)
        return rows[0][0] if rows else 0

    async def _fetch_records(self, sql: str, params: list | tuple, kind: str) -> list:
        record_cls = KINDS[kind].record_cls
        return [record_cls.from_row(row) for row in await self._fetch_rows(sql, params, kind)]

    # ================================================================
    # Search
    # ================================================================

    async def find_matching(
        self,
        kind: str,
        user_id: str,
        query: str,
        date_from: datetime | None,
        date_to: datetime | None,
        limit: int,
    ) -> list[Record]:
        """Fetch a user's records of one kind that match a query.

        A record matches when any of the kind's text columns contains the
        query (case-insensitive) or any of its array columns holds the query
        as an element. Results follow the kind's ordering and are capped at
        limit before any scoring happens.

        Args:
            kind: Kind tag (journal, tasks, calendar, emails, contacts).
            user_id: Owner of the records.
            query: Search text.
            date_from: Inclusive lower bound on the kind's date column.
            date_to: Inclusive upper bound on the kind's date column.
            limit: Maximum number of records to return.

        Returns:
            Matching records, at most limit of them.

        Raises:
            StoreError: If the query fails.
        """
        spec = KINDS[kind]
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]

        pattern = f"%{_escape_like(query.lower())}%"
        match_conditions: list[str] = []
        for column in spec.text_columns:
            match_conditions.append(f"casefold_text({column}) LIKE ? ESCAPE '\\'")
            params.append(pattern)
        for column in spec.array_columns:
            match_conditions.append(
                f"EXISTS (SELECT 1 FROM json_each({spec.table}.{column}) WHERE json_each.value = ?)"
            )
            params.append(query)
        conditions.append(f"({' OR '.join(match_conditions)})")

        if date_from:
            conditions.append(f"{spec.date_from_column} >= ?")
            params.append(to_iso(date_from))
        if date_to:
            conditions.append(f"{spec.date_to_column} <= ?")
            params.append(to_iso(date_to))

        sql = f"""
            SELECT * FROM {spec.table}
            WHERE {' AND '.join(conditions)}
            ORDER BY {spec.order_by}
            LIMIT ?
        """
        params.append(limit)

        return await self._fetch_records(sql, params, kind)

    # ================================================================
    # Metrics
    # ================================================================

    async def tasks_completed_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[Task]:
        """Tasks whose completion time falls in the range, oldest first."""
        return await self._fetch_records(
            """
            SELECT * FROM tasks
            WHERE user_id = ? AND completed_at >= ? AND completed_at <= ?
            ORDER BY completed_at ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "tasks",
        )

    async def count_tasks_created_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> int:
        return await self._fetch_count(
            "SELECT COUNT(*) FROM tasks WHERE user_id = ? AND created_at >= ? AND created_at <= ?",
            (user_id, to_iso(date_from), to_iso(date_to)),
            "tasks",
        )

    async def count_overdue_tasks(self, user_id: str, now: datetime) -> int:
        """Count unfinished tasks due before now, regardless of any date range."""
        return await self._fetch_count(
            """
            SELECT COUNT(*) FROM tasks
            WHERE user_id = ? AND status != 'COMPLETED'
              AND due_date IS NOT NULL AND due_date < ?
            """,
            (user_id, to_iso(now)),
            "tasks",
        )

    async def journal_entries_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[JournalEntry]:
        return await self._fetch_records(
            """
            SELECT * FROM journal_entries
            WHERE user_id = ? AND created_at >= ? AND created_at <= ?
            ORDER BY created_at ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "journal",
        )

    async def mood_distribution(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[tuple[str, int]]:
        """Count journal entries per mood label, skipping entries without one."""
        rows = await self._fetch_rows(
            """
            SELECT mood, COUNT(*) AS mood_count FROM journal_entries
            WHERE user_id = ? AND created_at >= ? AND created_at <= ?
              AND mood IS NOT NULL
            GROUP BY mood
            ORDER BY mood
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "journal",
        )
        return [(row["mood"], row["mood_count"]) for row in rows]

    async def events_starting_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[CalendarEvent]:
        return await self._fetch_records(
            """
            SELECT * FROM calendar_events
            WHERE user_id = ? AND start_time >= ? AND start_time <= ?
            ORDER BY start_time ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "calendar",
        )

    async def emails_received_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[Email]:
        return await self._fetch_records(
            """
            SELECT * FROM emails
            WHERE user_id = ? AND received_at >= ? AND received_at <= ?
            ORDER BY received_at ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "emails",
        )

    async def emails_sent_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[Email]:
        return await self._fetch_records(
            """
            SELECT * FROM emails
            WHERE user_id = ? AND sent_at >= ? AND sent_at <= ?
            ORDER BY sent_at ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "emails",
        )

    async def contacts_created_between(
        self, user_id: str, date_from: datetime, date_to: datetime
    ) -> list[Contact]:
        return await self._fetch_records(
            """
            SELECT * FROM contacts
            WHERE user_id = ? AND created_at >= ? AND created_at <= ?
            ORDER BY created_at ASC
            """,
            (user_id, to_iso(date_from), to_iso(date_to)),
            "contacts",
        )

    # ================================================================
    # Stats
    # ================================================================

    async def get_stats(self) -> dict[str, int]:
        """Return the number of stored records per kind."""
        stats: dict[str, int] = {}
        for kind in KIND_ORDER:
            stats[kind] = await self._fetch_count(
                f"SELECT COUNT(*) FROM {KINDS[kind].table}", (), kind
            )
        return stats

    async def get_record(self, kind: str, record_id: str) -> Record | None:
        """Fetch one record by kind and id."""
        records = await self._fetch_records(
            f"SELECT * FROM {KINDS[kind].table} WHERE id = ?", (record_id,), kind
        )
        return records[0] if records else None


