"""Time-series bucketing for metrics.

Groups timestamps into sparse {date, count} buckets keyed by day
(yyyy-MM-dd), Monday-anchored week (yyyy-MM-dd of the Monday), or month
(yyyy-MM). Only keys that received at least one timestamp are emitted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .records import to_utc

GRANULARITIES = ("day", "week", "month")


@dataclass
class MetricBucket:
    """Number of events falling into one time period."""

    date: str
    count: int

    def to_dict(self) -> dict:
        return {"date": self.date, "count": self.count}


def bucket_key(timestamp: datetime, granularity: str) -> str:
    """Return the bucket key of a timestamp for the given granularity.

    Raises:
        ValueError: If granularity is not day, week or month.
    """
    day = to_utc(timestamp).date()
    if granularity == "day":
        return day.strftime("%Y-%m-%d")
    if granularity == "week":
        monday = day - timedelta(days=day.weekday())
        return monday.strftime("%Y-%m-%d")
    if granularity == "month":
        return day.strftime("%Y-%m")
    raise ValueError(f"Unknown granularity: {granularity}")


def count_by_period(timestamps: Iterable[datetime], granularity: str) -> dict[str, int]:
    """Count timestamps per bucket key, in first-seen key order."""
    grouped: dict[str, int] = {}
    for timestamp in timestamps:
        key = bucket_key(timestamp, granularity)
        grouped[key] = grouped.get(key, 0) + 1
    return grouped


def group_by_period(timestamps: Iterable[datetime], granularity: str) -> list[MetricBucket]:
    """Bucket timestamps into a sparse time series.

    Buckets appear in the order their keys were first seen, so callers that
    pass chronologically ordered timestamps get a chronological series.

    Args:
        timestamps: Event timestamps.
        granularity: One of day, week, month.

    Returns:
        List of MetricBucket with count >= 1.
    """
    grouped = count_by_period(timestamps, granularity)
    return [MetricBucket(date=key, count=count) for key, count in grouped.items()]


def merge_series(*series: list[MetricBucket]) -> list[MetricBucket]:
    """Sum several series by date key, sorted by key."""
    merged: dict[str, int] = {}
    for buckets in series:
        for bucket in buckets:
            merged[bucket.date] = merged.get(bucket.date, 0) + bucket.count
    return [MetricBucket(date=key, count=merged[key]) for key in sorted(merged)]
