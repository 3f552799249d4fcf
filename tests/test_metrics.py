"""Tests for metrics calculators and MetricsAggregator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from productivity_hub.insights import (
    EMAIL_EXCELLENT,
    EMAIL_LOW,
    JOURNAL_LOW,
    TASK_GOOD,
    TASK_LOW,
)
from productivity_hub.metrics import (
    DEFAULT_METRIC_TYPES,
    MetricsAggregator,
    MetricsRequest,
    average_mood,
    most_used_tags,
    percentage,
    resolve_metric_types,
    round_half_up,
)
from productivity_hub.store import RecordStore

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
LONG_AGO = NOW - timedelta(days=60)
USER = "user-1"

ALL = ["tasks", "journal", "calendar", "emails", "contacts"]


def days_ago(n: float) -> datetime:
    return NOW - timedelta(days=n)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_round_half_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(3.125, 2) == 3.13

    def test_percentage_zero_denominator(self) -> None:
        assert percentage(5, 0) == 0

    def test_percentage(self) -> None:
        assert percentage(1, 4) == 25

    def test_average_mood(self) -> None:
        assert average_mood([("happy", 1), ("sad", 1)]) == 3
        assert average_mood([("happy", 2), ("unknown", 1)]) == 4.33

    def test_average_mood_empty(self) -> None:
        assert average_mood([]) == 0

    def test_most_used_tags(self) -> None:
        tags = [["work", "home"], ["home"], ["gym", "work", "home"]]
        assert most_used_tags(tags, top=2) == [
            {"tag": "home", "count": 3},
            {"tag": "work", "count": 2},
        ]


class TestResolveMetricTypes:
    def test_aliases(self) -> None:
        assert resolve_metric_types(DEFAULT_METRIC_TYPES) == ["tasks", "journal", "calendar", "emails"]

    def test_bare_tags_and_dedupe(self) -> None:
        assert resolve_metric_types(["contacts", "contacts_added", "tasks"]) == ["contacts", "tasks"]

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown metric type: sleep"):
            resolve_metric_types(["sleep"])


# ---------------------------------------------------------------------------
# MetricsAggregator
# ---------------------------------------------------------------------------


@pytest.fixture
async def populated_store(
    store: RecordStore, make_task, make_journal, make_event, make_email, make_contact
) -> RecordStore:
    await store.upsert_batch([
        # Tasks
        make_task(id="a", status="COMPLETED", completed_at=days_ago(1), created_at=days_ago(10)),
        make_task(id="b", status="COMPLETED", completed_at=days_ago(3), created_at=days_ago(10)),
        make_task(id="c", created_at=days_ago(5)),
        make_task(id="d", due_date=days_ago(1)),
        # Journal
        make_journal(id="j1", mood="happy", tags=["work", "gym"], created_at=days_ago(2)),
        make_journal(id="j2", mood="sad", tags=["work"], created_at=days_ago(2)),
        make_journal(id="j3", created_at=days_ago(1)),
        # Calendar
        make_event(id="c1", start_time=days_ago(4)),
        make_event(
            id="c2", start_time=days_ago(2), end_time=days_ago(2) + timedelta(minutes=90)
        ),
        # Emails
        make_email(id="e1", received_at=days_ago(1)),
        make_email(id="e2", received_at=days_ago(1), is_read=False),
        make_email(id="e3", received_at=days_ago(2)),
        make_email(id="s1", received_at=LONG_AGO, sent_at=days_ago(1)),
        # Contacts
        make_contact(id="p1", company="Acme", tags=["client"], created_at=days_ago(3)),
        make_contact(id="p2", company="Acme", tags=["client", "vip"], created_at=days_ago(3)),
        make_contact(id="p3", created_at=days_ago(1)),
    ])
    return store


class TestMetricsAggregator:
    @pytest.mark.asyncio
    async def test_task_metrics(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["tasks"]), now=NOW
        )
        tasks = response.categories["tasks"].to_dict()
        assert tasks["total"] == 2
        assert tasks["totalCreated"] == 3
        assert tasks["overdue"] == 1
        assert tasks["completionRate"] == pytest.approx(200 / 3)
        assert tasks["timeSeries"] == [
            {"date": "2024-03-12", "count": 1},
            {"date": "2024-03-14", "count": 1},
        ]
        assert response.overview == {"tasksCompleted": 2}
        assert response.insights == [TASK_GOOD]

    @pytest.mark.asyncio
    async def test_journal_metrics(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["journal"]), now=NOW
        )
        journal = response.categories["journal"].to_dict()
        assert journal["total"] == 3
        assert journal["averageMood"] == 3
        assert journal["moodDistribution"] == [
            {"mood": "happy", "count": 1},
            {"mood": "sad", "count": 1},
        ]
        assert journal["mostUsedTags"] == [
            {"tag": "work", "count": 2},
            {"tag": "gym", "count": 1},
        ]
        assert journal["timeSeries"] == [
            {"date": "2024-03-13", "count": 2},
            {"date": "2024-03-14", "count": 1},
        ]
        assert response.insights == [JOURNAL_LOW]

    @pytest.mark.asyncio
    async def test_calendar_metrics(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["calendar"]), now=NOW
        )
        calendar = response.categories["calendar"].summary
        assert calendar == {"total": 2, "totalDuration": 150, "averageDuration": 75}
        assert response.overview == {"calendarEvents": 2}
        assert response.insights == []

    @pytest.mark.asyncio
    async def test_email_metrics(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["emails"]), now=NOW
        )
        emails = response.categories["emails"].to_dict()
        assert emails["totalReceived"] == 3
        assert emails["totalSent"] == 1
        assert emails["totalProcessed"] == 4
        assert emails["unreadCount"] == 1
        assert emails["responseRate"] == pytest.approx(100 / 3)
        # Received bucketed by receivedAt, sent by sentAt
        assert emails["timeSeries"] == [
            {"date": "2024-03-13", "count": 1},
            {"date": "2024-03-14", "count": 3},
        ]
        assert response.overview == {"emailsProcessed": 4}
        assert response.insights == [EMAIL_LOW]

    @pytest.mark.asyncio
    async def test_contact_metrics(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["contacts"]), now=NOW
        )
        contacts = response.categories["contacts"].to_dict()
        assert contacts["total"] == 3
        assert contacts["companies"] == 1
        assert contacts["topTags"] == [
            {"tag": "client", "count": 2},
            {"tag": "vip", "count": 1},
        ]
        assert contacts["timeSeries"] == [
            {"date": "2024-03-12", "count": 2},
            {"date": "2024-03-14", "count": 1},
        ]
        assert response.overview == {"contactsAdded": 3}

    @pytest.mark.asyncio
    async def test_all_categories_response(self, populated_store: RecordStore) -> None:
        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=ALL, granularity="week"), now=NOW
        )
        data = response.to_dict()
        assert set(data["overview"]) == {
            "tasksCompleted", "journalEntries", "calendarEvents", "emailsProcessed", "contactsAdded",
        }
        for category in ALL:
            assert category in data
        assert data["granularity"] == "week"
        assert data["dateRange"] == {"from": NOW - timedelta(days=30), "to": NOW}
        assert data["unavailable"] == []
        # 2024-03-11 is the Monday of the week of every event above
        assert data["tasks"]["timeSeries"] == [{"date": "2024-03-11", "count": 2}]

    @pytest.mark.asyncio
    async def test_month_granularity(self, store: RecordStore, make_journal) -> None:
        await store.upsert_batch([
            make_journal(id="1", created_at=datetime(2024, 1, 5, tzinfo=timezone.utc)),
            make_journal(id="2", created_at=datetime(2024, 1, 20, tzinfo=timezone.utc)),
        ])
        request = MetricsRequest(
            categories=["journal"],
            date_from=datetime(2024, 1, 1, tzinfo=timezone.utc),
            date_to=datetime(2024, 1, 31, tzinfo=timezone.utc),
            granularity="month",
        )
        response = await MetricsAggregator(store).metrics(USER, request, now=NOW)
        assert response.categories["journal"].to_dict()["timeSeries"] == [
            {"date": "2024-01", "count": 2}
        ]

    @pytest.mark.asyncio
    async def test_default_range_excludes_old_records(
        self, store: RecordStore, make_journal
    ) -> None:
        await store.upsert(make_journal(created_at=LONG_AGO))
        response = await MetricsAggregator(store).metrics(
            USER, MetricsRequest(categories=["journal"]), now=NOW
        )
        assert response.overview == {"journalEntries": 0}

    @pytest.mark.asyncio
    async def test_empty_store_safe_defaults(self, store: RecordStore) -> None:
        response = await MetricsAggregator(store).metrics(
            USER, MetricsRequest(categories=ALL), now=NOW
        )
        assert response.categories["tasks"].summary["completionRate"] == 0
        assert response.categories["emails"].summary["responseRate"] == 0
        assert response.categories["journal"].summary["averageMood"] == 0
        assert response.categories["calendar"].summary["averageDuration"] == 0
        assert response.insights == [TASK_LOW, JOURNAL_LOW, EMAIL_EXCELLENT]

    @pytest.mark.asyncio
    async def test_failed_category_is_unavailable(self, populated_store: RecordStore) -> None:
        conn = await populated_store._get_connection()
        await conn.execute("DROP TABLE tasks")

        response = await MetricsAggregator(populated_store).metrics(
            USER, MetricsRequest(categories=["tasks", "journal"]), now=NOW
        )
        assert response.unavailable == ["tasks"]
        assert "tasks" not in response.categories
        assert response.overview == {"journalEntries": 3}
        assert response.insights == [JOURNAL_LOW]

    @pytest.mark.asyncio
    async def test_custom_default_range(self, populated_store: RecordStore) -> None:
        aggregator = MetricsAggregator(populated_store, default_range_days=2)
        response = await aggregator.metrics(
            USER, MetricsRequest(categories=["journal"]), now=NOW
        )
        assert response.date_from == NOW - timedelta(days=2)
        assert response.overview == {"journalEntries": 3}
