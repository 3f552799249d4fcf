"""Productivity metrics aggregated over a date range.

This module provides:
- MetricsRequest / CategoryMetrics / MetricsResponse: metrics data structures
- Category calculators for tasks, journal, calendar, emails and contacts
- MetricsAggregator: runs the requested calculators and derives insights

Every figure is computed fresh from the records in range; rates whose
denominator is zero are reported as 0.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .bucketing import MetricBucket, group_by_period, merge_series
from .errors import StoreError
from .insights import generate_insights
from .store import RecordStore

logger = logging.getLogger(__name__)

CATEGORIES = ("tasks", "journal", "calendar", "emails", "contacts")

# Public metric type names accepted by the HTTP layer
METRIC_TYPES: dict[str, str] = {
    "tasks_completed": "tasks",
    "journal_entries": "journal",
    "calendar_events": "calendar",
    "emails_processed": "emails",
    "contacts_added": "contacts",
}
DEFAULT_METRIC_TYPES = ("tasks_completed", "journal_entries", "calendar_events", "emails_processed")

DEFAULT_RANGE_DAYS = 30
TOP_TAGS = 10

MOOD_SCORES: dict[str, float] = {
    "happy": 5,
    "excited": 4.5,
    "calm": 4,
    "neutral": 3,
    "anxious": 2,
    "frustrated": 1.5,
    "sad": 1,
    "angry": 0.5,
}
DEFAULT_MOOD_SCORE = 3


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass
class MetricsRequest:
    """Validated metrics parameters."""

    categories: list[str]
    date_from: datetime | None = None
    date_to: datetime | None = None
    granularity: str = "day"


@dataclass
class CategoryMetrics:
    """Scalar summaries plus a time series for one category."""

    category: str
    summary: dict[str, Any]
    time_series: list[MetricBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.summary)
        data["timeSeries"] = [b.to_dict() for b in self.time_series]
        return data


@dataclass
class MetricsResponse:
    """Metrics for every requested category, with overview and insights."""

    overview: dict[str, Any]
    categories: dict[str, CategoryMetrics]
    insights: list[str]
    date_from: datetime
    date_to: datetime
    granularity: str
    unavailable: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"overview": dict(self.overview)}
        for category, metrics in self.categories.items():
            data[category] = metrics.to_dict()
        data["insights"] = list(self.insights)
        data["dateRange"] = {"from": self.date_from, "to": self.date_to}
        data["granularity"] = self.granularity
        data["unavailable"] = list(self.unavailable)
        return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for non-negative values (not banker's rounding)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def percentage(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0
    return numerator / denominator * 100


def average_mood(distribution: Sequence[tuple[str, int]]) -> float:
    """Weighted mean of mood scores over (mood, count) groups, to 2 decimals.

    Unknown labels score as neutral (3). No groups gives 0.
    """
    total_count = sum(count for _, count in distribution)
    if total_count == 0:
        return 0
    total_score = sum(MOOD_SCORES.get(mood, DEFAULT_MOOD_SCORE) * count for mood, count in distribution)
    return round_half_up(total_score / total_count, 2)


def most_used_tags(tag_lists: Iterable[Sequence[str]], top: int = TOP_TAGS) -> list[dict[str, Any]]:
    """Most frequent tags, ties broken by first appearance."""
    counts: Counter[str] = Counter()
    for tags in tag_lists:
        counts.update(tags)
    return [{"tag": tag, "count": count} for tag, count in counts.most_common(top)]


# ---------------------------------------------------------------------------
# Category calculators
# ---------------------------------------------------------------------------


async def task_metrics(
    store: RecordStore,
    user_id: str,
    date_from: datetime,
    date_to: datetime,
    granularity: str,
    now: datetime,
) -> CategoryMetrics:
    """Completed, created and overdue task counts.

    ``overdue`` counts unfinished tasks due before now and is not limited
    to the requested range.
    """
    completed = await store.tasks_completed_between(user_id, date_from, date_to)
    total_created = await store.count_tasks_created_between(user_id, date_from, date_to)
    overdue = await store.count_overdue_tasks(user_id, now)

    return CategoryMetrics(
        category="tasks",
        summary={
            "total": len(completed),
            "totalCreated": total_created,
            "overdue": overdue,
            "completionRate": percentage(len(completed), total_created),
        },
        time_series=group_by_period((t.completed_at for t in completed), granularity),
    )


async def journal_metrics(
    store: RecordStore,
    user_id: str,
    date_from: datetime,
    date_to: datetime,
    granularity: str,
    now: datetime,
) -> CategoryMetrics:
    entries = await store.journal_entries_between(user_id, date_from, date_to)
    distribution = await store.mood_distribution(user_id, date_from, date_to)

    return CategoryMetrics(
        category="journal",
        summary={
            "total": len(entries),
            "averageMood": average_mood(distribution),
            "moodDistribution": [{"mood": mood, "count": count} for mood, count in distribution],
            "mostUsedTags": most_used_tags(e.tags for e in entries),
        },
        time_series=group_by_period((e.created_at for e in entries), granularity),
    )


async def calendar_metrics(
    store: RecordStore,
    user_id: str,
    date_from: datetime,
    date_to: datetime,
    granularity: str,
    now: datetime,
) -> CategoryMetrics:
    events = await store.events_starting_between(user_id, date_from, date_to)

    total_minutes = sum(e.duration_minutes for e in events)
    average_minutes = total_minutes / len(events) if events else 0

    return CategoryMetrics(
        category="calendar",
        summary={
            "total": len(events),
            "totalDuration": int(round_half_up(total_minutes)),
            "averageDuration": int(round_half_up(average_minutes)),
        },
        time_series=group_by_period((e.start_time for e in events), granularity),
    )


async def email_metrics(
    store: RecordStore,
    user_id: str,
    date_from: datetime,
    date_to: datetime,
    granularity: str,
    now: datetime,
) -> CategoryMetrics:
    """Received/sent volumes, unread count and response rate.

    Received mail is bucketed by receivedAt and sent mail by sentAt; the
    two series are summed per date key.
    """
    received = await store.emails_received_between(user_id, date_from, date_to)
    sent = await store.emails_sent_between(user_id, date_from, date_to)

    unread = sum(1 for e in received if not e.is_read)

    return CategoryMetrics(
        category="emails",
        summary={
            "totalProcessed": len(received) + len(sent),
            "totalReceived": len(received),
            "totalSent": len(sent),
            "unreadCount": unread,
            "responseRate": percentage(len(sent), len(received)),
        },
        time_series=merge_series(
            group_by_period((e.received_at for e in received), granularity),
            group_by_period((e.sent_at for e in sent), granularity),
        ),
    )


async def contact_metrics(
    store: RecordStore,
    user_id: str,
    date_from: datetime,
    date_to: datetime,
    granularity: str,
    now: datetime,
) -> CategoryMetrics:
    contacts = await store.contacts_created_between(user_id, date_from, date_to)
    companies = {c.company for c in contacts if c.company}

    return CategoryMetrics(
        category="contacts",
        summary={
            "total": len(contacts),
            "companies": len(companies),
            "topTags": most_used_tags(c.tags for c in contacts),
        },
        time_series=group_by_period((c.created_at for c in contacts), granularity),
    )


Calculator = Callable[
    [RecordStore, str, datetime, datetime, str, datetime], Awaitable[CategoryMetrics]
]

CALCULATORS: dict[str, Calculator] = {
    "tasks": task_metrics,
    "journal": journal_metrics,
    "calendar": calendar_metrics,
    "emails": email_metrics,
    "contacts": contact_metrics,
}

# category -> (overview key, summary field)
OVERVIEW_FIELDS: dict[str, tuple[str, str]] = {
    "tasks": ("tasksCompleted", "total"),
    "journal": ("journalEntries", "total"),
    "calendar": ("calendarEvents", "total"),
    "emails": ("emailsProcessed", "totalProcessed"),
    "contacts": ("contactsAdded", "total"),
}


def resolve_metric_types(metric_types: Sequence[str]) -> list[str]:
    """Map metric type names (or bare category tags) to categories.

    Raises:
        ValueError: If a name is neither a metric type nor a category.
    """
    categories: list[str] = []
    for name in metric_types:
        category = METRIC_TYPES.get(name, name)
        if category not in CALCULATORS:
            raise ValueError(f"Unknown metric type: {name}")
        if category not in categories:
            categories.append(category)
    return categories


# ---------------------------------------------------------------------------
# MetricsAggregator
# ---------------------------------------------------------------------------


class MetricsAggregator:
    """Computes per-category metrics, an overview and insights.

    Category calculators run concurrently. A category whose store queries
    fail is omitted from the response and listed under ``unavailable``.
    """

    def __init__(self, store: RecordStore, default_range_days: int = DEFAULT_RANGE_DAYS) -> None:
        self.store = store
        self.default_range_days = default_range_days

    def resolve_range(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        now: datetime,
    ) -> tuple[datetime, datetime]:
        """Fill in the default range [now - default_range_days, now]."""
        return (
            date_from or now - timedelta(days=self.default_range_days),
            date_to or now,
        )

    async def metrics(
        self,
        user_id: str,
        request: MetricsRequest,
        now: datetime | None = None,
    ) -> MetricsResponse:
        """Aggregate metrics for a user.

        Args:
            user_id: Owner of the records.
            request: Validated metrics parameters.
            now: Reference time for defaults and overdue tasks.

        Returns:
            MetricsResponse for the requested categories.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        date_from, date_to = self.resolve_range(request.date_from, request.date_to, now)

        categories = [c for c in CATEGORIES if c in request.categories]
        outcomes = await asyncio.gather(
            *(
                CALCULATORS[category](
                    self.store, user_id, date_from, date_to, request.granularity, now
                )
                for category in categories
            ),
            return_exceptions=True,
        )

        computed: dict[str, CategoryMetrics] = {}
        failed: list[str] = []
        for category, outcome in zip(categories, outcomes):
            if isinstance(outcome, StoreError):
                logger.warning(f"Metrics for {category} unavailable: {outcome}")
                failed.append(category)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                computed[category] = outcome

        overview: dict[str, Any] = {}
        for category, metrics in computed.items():
            key, summary_field = OVERVIEW_FIELDS[category]
            overview[key] = metrics.summary[summary_field]

        insights = generate_insights({c: m.summary for c, m in computed.items()})

        return MetricsResponse(
            overview=overview,
            categories=computed,
            insights=insights,
            date_from=date_from,
            date_to=date_to,
            granularity=request.granularity,
            unavailable=failed,
        )
