"""Load records from a YAML or JSON export file.

File layout (JSON is accepted as a subset of YAML)::

    journal:
      - id: j1
        userId: user-1
        title: Morning pages
        content: ...
        createdAt: 2024-01-05T08:00:00Z
    tasks: [...]
    calendar: [...]
    emails: [...]
    contacts: [...]

Field names are the camelCase names used in API responses. ``updatedAt``
defaults to ``createdAt`` when missing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .errors import ValidationError
from .records import (
    KIND_ORDER,
    CalendarEvent,
    Contact,
    Email,
    JournalEntry,
    Record,
    Task,
    parse_datetime,
)

logger = logging.getLogger(__name__)


def _required_datetime(item: dict, name: str) -> datetime:
    value = parse_datetime(item.get(name))
    if value is None:
        raise ValueError(f"{name} must be an ISO-8601 timestamp")
    return value


def _optional_datetime(item: dict, name: str) -> datetime | None:
    if item.get(name) is None:
        return None
    return _required_datetime(item, name)


def _journal(item: dict) -> JournalEntry:
    created = _required_datetime(item, "createdAt")
    return JournalEntry(
        id=str(item["id"]),
        user_id=str(item["userId"]),
        title=item["title"],
        content=item["content"],
        mood=item.get("mood"),
        tags=list(item.get("tags") or []),
        is_private=bool(item.get("isPrivate", True)),
        created_at=created,
        updated_at=_optional_datetime(item, "updatedAt") or created,
    )


def _task(item: dict) -> Task:
    created = _required_datetime(item, "createdAt")
    return Task(
        id=str(item["id"]),
        user_id=str(item["userId"]),
        title=item["title"],
        description=item.get("description"),
        status=item.get("status", "TODO"),
        priority=item.get("priority", "MEDIUM"),
        due_date=_optional_datetime(item, "dueDate"),
        completed_at=_optional_datetime(item, "completedAt"),
        tags=list(item.get("tags") or []),
        created_at=created,
        updated_at=_optional_datetime(item, "updatedAt") or created,
    )


def _event(item: dict) -> CalendarEvent:
    created = _required_datetime(item, "createdAt")
    return CalendarEvent(
        id=str(item["id"]),
        user_id=str(item["userId"]),
        title=item["title"],
        description=item.get("description"),
        location=item.get("location"),
        start_time=_required_datetime(item, "startTime"),
        end_time=_required_datetime(item, "endTime"),
        status=item.get("status", "confirmed"),
        attendees=list(item.get("attendees") or []),
        created_at=created,
        updated_at=_optional_datetime(item, "updatedAt") or created,
    )


def _email(item: dict) -> Email:
    return Email(
        id=str(item["id"]),
        user_id=str(item["userId"]),
        subject=item["subject"],
        sender=item["from"],
        recipients=list(item.get("to") or []),
        content=item.get("content"),
        is_read=bool(item.get("isRead", False)),
        is_important=bool(item.get("isImportant", False)),
        received_at=_required_datetime(item, "receivedAt"),
        sent_at=_optional_datetime(item, "sentAt"),
        created_at=_required_datetime(item, "createdAt"),
    )


def _contact(item: dict) -> Contact:
    created = _required_datetime(item, "createdAt")
    return Contact(
        id=str(item["id"]),
        user_id=str(item["userId"]),
        first_name=item.get("firstName"),
        last_name=item.get("lastName"),
        email=item.get("email"),
        phone=item.get("phone"),
        company=item.get("company"),
        job_title=item.get("jobTitle"),
        notes=item.get("notes"),
        tags=list(item.get("tags") or []),
        is_favorite=bool(item.get("isFavorite", False)),
        created_at=created,
        updated_at=_optional_datetime(item, "updatedAt") or created,
    )


BUILDERS: dict[str, Callable[[dict], Record]] = {
    "journal": _journal,
    "tasks": _task,
    "calendar": _event,
    "emails": _email,
    "contacts": _contact,
}


def parse_records(data: dict[str, Any]) -> list[Record]:
    """Build records from a parsed export document.

    Raises:
        ValidationError: If any item is missing a field or has a bad value.
    """
    error = ValidationError({})
    records: list[Record] = []

    for kind in KIND_ORDER:
        items = data.get(kind) or []
        if not isinstance(items, list):
            error.add(kind, "must be a list of records")
            continue
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                error.add(f"{kind}[{index}]", "must be a mapping")
                continue
            try:
                records.append(BUILDERS[kind](item))
            except KeyError as e:
                error.add(f"{kind}[{index}]", f"missing field {e.args[0]}")
            except (TypeError, ValueError) as e:
                error.add(f"{kind}[{index}]", str(e))

    unknown = set(data) - set(KIND_ORDER)
    for name in sorted(unknown):
        error.add(name, "unknown record kind")

    if error.details:
        raise error
    return records


def load_records(path: Path) -> list[Record]:
    """Read and parse an export file.

    Raises:
        ValidationError: If the file is not valid YAML or holds bad records.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Export file is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Export file must contain a mapping of kind to records")
    records = parse_records(data)
    logger.info(f"Loaded {len(records)} records from {path}")
    return records
