"""Read-only projections of the five record kinds the hub searches and measures.

This module provides:
- JournalEntry, Task, CalendarEvent, Email, Contact: record dataclasses
- KindSpec: per-kind search configuration (fields, ordering, date filter)
- KINDS: registry of kind tag -> KindSpec

Each record converts to a SQLite row (``to_row``/``from_row``) and to a
camelCase mapping (``to_dict``) read by the scorer and the HTTP layer.
All timestamps are timezone-aware UTC.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, ClassVar


# ---------------------------------------------------------------------------
# Datetime helpers
# ---------------------------------------------------------------------------


def to_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime for storage, or pass None through."""
    if value is None:
        return None
    return to_utc(value).isoformat()


def from_iso(value: str | None) -> datetime | None:
    """Parse a stored ISO timestamp, or pass None through."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(value))


def parse_datetime(value: Any) -> datetime | None:
    """Coerce a datetime, date or ISO string into an aware UTC datetime.

    Dates become midnight UTC. Returns None for missing or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return from_iso(value)
        except ValueError:
            return None
    return None


def _dump_list(values: list[str]) -> str:
    return json.dumps(list(values))


def _load_list(value: str | None) -> list[str]:
    if not value:
        return []
    return list(json.loads(value))


# ---------------------------------------------------------------------------
# Record dataclasses
# ---------------------------------------------------------------------------


@dataclass
class JournalEntry:
    """A journal entry with optional mood label and tags."""

    TABLE: ClassVar[str] = "journal_entries"
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "id", "user_id", "title", "content", "mood", "tags",
        "is_private", "created_at", "updated_at",
    )

    id: str
    user_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    mood: str | None = None
    tags: list[str] = field(default_factory=list)
    is_private: bool = True

    def to_row(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.title,
            self.content,
            self.mood,
            _dump_list(self.tags),
            1 if self.is_private else 0,
            to_iso(self.created_at),
            to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Any) -> JournalEntry:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            mood=row["mood"],
            tags=_load_list(row["tags"]),
            is_private=bool(row["is_private"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "mood": self.mood,
            "tags": list(self.tags),
            "isPrivate": self.is_private,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Task:
    """A task with status, priority, and optional due/completion dates."""

    TABLE: ClassVar[str] = "tasks"
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "id", "user_id", "title", "description", "status", "priority",
        "due_date", "completed_at", "tags", "created_at", "updated_at",
    )

    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    status: str = "TODO"
    priority: str = "MEDIUM"
    due_date: datetime | None = None
    completed_at: datetime | None = None
    tags: list[str] = field(default_factory=list)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.title,
            self.description,
            self.status,
            self.priority,
            to_iso(self.due_date),
            to_iso(self.completed_at),
            _dump_list(self.tags),
            to_iso(self.created_at),
            to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Any) -> Task:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            due_date=from_iso(row["due_date"]),
            completed_at=from_iso(row["completed_at"]),
            tags=_load_list(row["tags"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": self.due_date,
            "completedAt": self.completed_at,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class CalendarEvent:
    """A calendar event spanning start_time to end_time."""

    TABLE: ClassVar[str] = "calendar_events"
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "id", "user_id", "title", "description", "location", "start_time",
        "end_time", "status", "attendees", "created_at", "updated_at",
    )

    id: str
    user_id: str
    title: str
    start_time: datetime
    end_time: datetime
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    location: str | None = None
    status: str = "confirmed"
    attendees: list[str] = field(default_factory=list)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.title,
            self.description,
            self.location,
            to_iso(self.start_time),
            to_iso(self.end_time),
            self.status,
            _dump_list(self.attendees),
            to_iso(self.created_at),
            to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Any) -> CalendarEvent:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            location=row["location"],
            start_time=from_iso(row["start_time"]),
            end_time=from_iso(row["end_time"]),
            status=row["status"],
            attendees=_load_list(row["attendees"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "status": self.status,
            "attendees": list(self.attendees),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Email:
    """A received or sent email message."""

    TABLE: ClassVar[str] = "emails"
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "id", "user_id", "subject", "sender", "recipients", "content",
        "is_read", "is_important", "received_at", "sent_at", "created_at",
    )

    id: str
    user_id: str
    subject: str
    sender: str
    received_at: datetime
    created_at: datetime
    recipients: list[str] = field(default_factory=list)
    content: str | None = None
    is_read: bool = False
    is_important: bool = False
    sent_at: datetime | None = None

    def to_row(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.subject,
            self.sender,
            _dump_list(self.recipients),
            self.content,
            1 if self.is_read else 0,
            1 if self.is_important else 0,
            to_iso(self.received_at),
            to_iso(self.sent_at),
            to_iso(self.created_at),
        )

    @classmethod
    def from_row(cls, row: Any) -> Email:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            subject=row["subject"],
            sender=row["sender"],
            recipients=_load_list(row["recipients"]),
            content=row["content"],
            is_read=bool(row["is_read"]),
            is_important=bool(row["is_important"]),
            received_at=from_iso(row["received_at"]),
            sent_at=from_iso(row["sent_at"]),
            created_at=from_iso(row["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        # "from"/"to" are the public field names; Python reserves "from".
        return {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "to": list(self.recipients),
            "content": self.content,
            "isRead": self.is_read,
            "isImportant": self.is_important,
            "receivedAt": self.received_at,
            "sentAt": self.sent_at,
            "createdAt": self.created_at,
        }


@dataclass
class Contact:
    """An address-book contact."""

    TABLE: ClassVar[str] = "contacts"
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "id", "user_id", "first_name", "last_name", "email", "phone",
        "company", "job_title", "notes", "tags", "is_favorite",
        "created_at", "updated_at",
    )

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    job_title: str | None = None
    notes: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False

    def to_row(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.first_name,
            self.last_name,
            self.email,
            self.phone,
            self.company,
            self.job_title,
            self.notes,
            _dump_list(self.tags),
            1 if self.is_favorite else 0,
            to_iso(self.created_at),
            to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Any) -> Contact:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            phone=row["phone"],
            company=row["company"],
            job_title=row["job_title"],
            notes=row["notes"],
            tags=_load_list(row["tags"]),
            is_favorite=bool(row["is_favorite"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "jobTitle": self.job_title,
            "notes": self.notes,
            "tags": list(self.tags),
            "isFavorite": self.is_favorite,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


Record = JournalEntry | Task | CalendarEvent | Email | Contact


# ---------------------------------------------------------------------------
# Kind registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KindSpec:
    """How one record kind is searched.

    Attributes:
        kind: Public kind tag (also the ``type`` of its search results).
        record_cls: Record dataclass for rows of this kind.
        searchable_fields: camelCase fields scored by the relevance scorer.
        excerpt_field: camelCase field the excerpt is cut from.
        text_columns: SQL columns matched by case-insensitive substring.
        array_columns: SQL JSON-array columns matched by exact containment.
        order_by: SQL ordering applied before the per-kind cap.
        date_from_column: Column compared with ``>= dateFrom``.
        date_to_column: Column compared with ``<= dateTo``.
    """

    kind: str
    record_cls: type
    searchable_fields: tuple[str, ...]
    excerpt_field: str
    text_columns: tuple[str, ...]
    array_columns: tuple[str, ...]
    order_by: str
    date_from_column: str
    date_to_column: str

    @property
    def table(self) -> str:
        return self.record_cls.TABLE


KIND_ORDER: tuple[str, ...] = ("journal", "tasks", "calendar", "emails", "contacts")

KINDS: dict[str, KindSpec] = {
    "journal": KindSpec(
        kind="journal",
        record_cls=JournalEntry,
        searchable_fields=("title", "content", "tags"),
        excerpt_field="content",
        text_columns=("title", "content"),
        array_columns=("tags",),
        order_by="updated_at DESC",
        date_from_column="created_at",
        date_to_column="created_at",
    ),
    "tasks": KindSpec(
        kind="tasks",
        record_cls=Task,
        searchable_fields=("title", "description", "tags"),
        excerpt_field="description",
        text_columns=("title", "description"),
        array_columns=("tags",),
        order_by="updated_at DESC",
        date_from_column="created_at",
        date_to_column="created_at",
    ),
    "calendar": KindSpec(
        kind="calendar",
        record_cls=CalendarEvent,
        searchable_fields=("title", "description", "location", "attendees"),
        excerpt_field="description",
        text_columns=("title", "description", "location"),
        array_columns=("attendees",),
        order_by="start_time DESC",
        date_from_column="start_time",
        date_to_column="end_time",
    ),
    "emails": KindSpec(
        kind="emails",
        record_cls=Email,
        searchable_fields=("subject", "content", "from", "to"),
        excerpt_field="content",
        text_columns=("subject", "content", "sender"),
        array_columns=("recipients",),
        order_by="received_at DESC",
        date_from_column="received_at",
        date_to_column="received_at",
    ),
    "contacts": KindSpec(
        kind="contacts",
        record_cls=Contact,
        searchable_fields=(
            "firstName", "lastName", "email", "company", "jobTitle", "notes", "tags",
        ),
        excerpt_field="notes",
        text_columns=("first_name", "last_name", "email", "company", "job_title", "notes"),
        array_columns=("tags",),
        order_by="updated_at DESC",
        date_from_column="created_at",
        date_to_column="created_at",
    ),
}
