"""Shared test fixtures for the productivity hub."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from productivity_hub.records import CalendarEvent, Contact, Email, JournalEntry, Task
from productivity_hub.store import RecordStore

# Fixed reference time; factories date records relative to it
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
LONG_AGO = NOW - timedelta(days=60)

USER = "user-1"


@pytest.fixture
def now() -> datetime:
    return NOW


# ---------------------------------------------------------------------------
# Record factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_journal() -> Callable[..., JournalEntry]:
    """Factory for journal entries.

    Usage:
        entry = make_journal()  # Default values
        entry = make_journal(id="j2", title="Custom", mood="happy")
    """

    def _create(
        id: str = "j1",
        user_id: str = USER,
        title: str = "Morning pages",
        content: str = "Wrote about the week ahead",
        mood: str | None = None,
        tags: list[str] | None = None,
        created_at: datetime = LONG_AGO,
        updated_at: datetime | None = None,
    ) -> JournalEntry:
        return JournalEntry(
            id=id,
            user_id=user_id,
            title=title,
            content=content,
            mood=mood,
            tags=tags or [],
            created_at=created_at,
            updated_at=updated_at or created_at,
        )

    return _create


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks."""

    def _create(
        id: str = "t1",
        user_id: str = USER,
        title: str = "Write report",
        description: str | None = None,
        status: str = "TODO",
        priority: str = "MEDIUM",
        due_date: datetime | None = None,
        completed_at: datetime | None = None,
        tags: list[str] | None = None,
        created_at: datetime = LONG_AGO,
        updated_at: datetime | None = None,
    ) -> Task:
        return Task(
            id=id,
            user_id=user_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            completed_at=completed_at,
            tags=tags or [],
            created_at=created_at,
            updated_at=updated_at or created_at,
        )

    return _create


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for calendar events. Events last an hour unless end_time is given."""

    def _create(
        id: str = "c1",
        user_id: str = USER,
        title: str = "Planning meeting",
        description: str | None = None,
        location: str | None = None,
        start_time: datetime = LONG_AGO,
        end_time: datetime | None = None,
        attendees: list[str] | None = None,
        created_at: datetime = LONG_AGO,
    ) -> CalendarEvent:
        return CalendarEvent(
            id=id,
            user_id=user_id,
            title=title,
            description=description,
            location=location,
            start_time=start_time,
            end_time=end_time or start_time + timedelta(hours=1),
            attendees=attendees or [],
            created_at=created_at,
            updated_at=created_at,
        )

    return _create


@pytest.fixture
def make_email() -> Callable[..., Email]:
    """Factory for emails."""

    def _create(
        id: str = "e1",
        user_id: str = USER,
        subject: str = "Quarterly numbers",
        sender: str = "alice@example.com",
        recipients: list[str] | None = None,
        content: str | None = None,
        is_read: bool = True,
        is_important: bool = False,
        received_at: datetime = LONG_AGO,
        sent_at: datetime | None = None,
        created_at: datetime | None = None,
    ) -> Email:
        return Email(
            id=id,
            user_id=user_id,
            subject=subject,
            sender=sender,
            recipients=recipients or ["bob@example.com"],
            content=content,
            is_read=is_read,
            is_important=is_important,
            received_at=received_at,
            sent_at=sent_at,
            created_at=created_at or received_at,
        )

    return _create


@pytest.fixture
def make_contact() -> Callable[..., Contact]:
    """Factory for contacts."""

    def _create(
        id: str = "p1",
        user_id: str = USER,
        first_name: str | None = "Ada",
        last_name: str | None = "Lovelace",
        email: str | None = None,
        company: str | None = None,
        job_title: str | None = None,
        notes: str | None = None,
        tags: list[str] | None = None,
        created_at: datetime = LONG_AGO,
    ) -> Contact:
        return Contact(
            id=id,
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            company=company,
            job_title=job_title,
            notes=notes,
            tags=tags or [],
            created_at=created_at,
            updated_at=created_at,
        )

    return _create


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Temporary database path."""
    return tmp_path / "state" / "hub.db"


@pytest.fixture
async def store(db_path: Path) -> RecordStore:
    """Initialized, empty RecordStore."""
    record_store = RecordStore(db_path)
    await record_store.initialize()
    yield record_store
    await record_store.close()
