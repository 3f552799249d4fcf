"""Productivity Hub: search and analytics over journal, tasks, calendar, email and contacts."""

from productivity_hub.bucketing import MetricBucket, group_by_period
from productivity_hub.errors import HubError, StoreError, ValidationError
from productivity_hub.insights import generate_insights
from productivity_hub.metrics import (
    CategoryMetrics,
    MetricsAggregator,
    MetricsRequest,
    MetricsResponse,
)
from productivity_hub.records import (
    KINDS,
    CalendarEvent,
    Contact,
    Email,
    JournalEntry,
    Task,
)
from productivity_hub.scoring import calculate_relevance_score, generate_excerpt
from productivity_hub.search import (
    ScoredResult,
    SearchAggregator,
    SearchRequest,
    SearchResponse,
)
from productivity_hub.store import RecordStore

__version__ = "0.1.0"

__all__ = [
    # Records
    "CalendarEvent",
    "Contact",
    "Email",
    "JournalEntry",
    "KINDS",
    "Task",
    # Store
    "RecordStore",
    # Search
    "calculate_relevance_score",
    "generate_excerpt",
    "ScoredResult",
    "SearchAggregator",
    "SearchRequest",
    "SearchResponse",
    # Metrics
    "CategoryMetrics",
    "generate_insights",
    "group_by_period",
    "MetricBucket",
    "MetricsAggregator",
    "MetricsRequest",
    "MetricsResponse",
    # Errors
    "HubError",
    "StoreError",
    "ValidationError",
]
