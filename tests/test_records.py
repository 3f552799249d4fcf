"""Tests for record projections and the kind registry."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from productivity_hub.records import (
    KIND_ORDER,
    KINDS,
    CalendarEvent,
    Email,
    Task,
    from_iso,
    parse_datetime,
    to_iso,
)


class TestDatetimeHelpers:
    def test_to_iso_normalizes_to_utc(self) -> None:
        ts = datetime(2024, 1, 5, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_iso(ts) == "2024-01-05T08:00:00+00:00"

    def test_from_iso_accepts_z_suffix(self) -> None:
        assert from_iso("2024-01-05T08:00:00Z") == datetime(2024, 1, 5, 8, tzinfo=timezone.utc)

    def test_from_iso_date_only(self) -> None:
        assert from_iso("2024-01-05") == datetime(2024, 1, 5, tzinfo=timezone.utc)

    def test_parse_datetime_date_is_midnight_utc(self) -> None:
        assert parse_datetime(date(2024, 1, 5)) == datetime(2024, 1, 5, tzinfo=timezone.utc)

    def test_parse_datetime_invalid(self) -> None:
        assert parse_datetime("not a date") is None
        assert parse_datetime(12345) is None
        assert parse_datetime(None) is None


class TestToDict:
    def test_email_uses_public_names(self, make_email) -> None:
        data = make_email(sender="a@x.com", recipients=["b@x.com"]).to_dict()
        assert data["from"] == "a@x.com"
        assert data["to"] == ["b@x.com"]
        assert "sender" not in data

    def test_task_fields_are_camel_case(self, make_task, now) -> None:
        data = make_task(due_date=now, completed_at=now).to_dict()
        assert data["dueDate"] == now
        assert data["completedAt"] == now
        assert "userId" not in data

    def test_contact_fields(self, make_contact) -> None:
        data = make_contact(job_title="CTO", company="Acme").to_dict()
        assert data["firstName"] == "Ada"
        assert data["jobTitle"] == "CTO"
        assert data["company"] == "Acme"


class TestRows:
    def test_task_row_round_trip(self, make_task, now) -> None:
        task = make_task(tags=["work", "q1"], due_date=now)
        row = dict(zip(Task.COLUMNS, task.to_row()))
        assert Task.from_row(row) == task

    def test_email_row_keeps_missing_sent_at(self, make_email) -> None:
        email = make_email()
        row = dict(zip(Email.COLUMNS, email.to_row()))
        assert row["sent_at"] is None
        assert Email.from_row(row).sent_at is None


class TestCalendarEvent:
    def test_duration_minutes(self, make_event, now) -> None:
        event = make_event(start_time=now, end_time=now + timedelta(minutes=90))
        assert event.duration_minutes == 90


class TestKindRegistry:
    def test_every_kind_registered(self) -> None:
        assert set(KINDS) == set(KIND_ORDER)

    def test_searchable_fields(self) -> None:
        assert KINDS["journal"].searchable_fields == ("title", "content", "tags")
        assert KINDS["emails"].searchable_fields == ("subject", "content", "from", "to")
        assert KINDS["calendar"].excerpt_field == "description"
        assert KINDS["contacts"].excerpt_field == "notes"

    def test_calendar_filters_on_start_and_end(self) -> None:
        spec = KINDS["calendar"]
        assert spec.date_from_column == "start_time"
        assert spec.date_to_column == "end_time"
        assert spec.record_cls is CalendarEvent
