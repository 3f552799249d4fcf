"""REST API for the productivity hub.

Provides the global search and analytics metrics endpoints plus a health
check. Handlers parse and validate query parameters, resolve the caller
from the configured user header and delegate to the aggregators.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any

from aiohttp import web

from productivity_hub.bucketing import GRANULARITIES
from productivity_hub.errors import StoreError, ValidationError
from productivity_hub.metrics import (
    DEFAULT_METRIC_TYPES,
    MetricsAggregator,
    MetricsRequest,
    resolve_metric_types,
)
from productivity_hub.records import from_iso, to_iso
from productivity_hub.search import SearchAggregator, SearchRequest, normalize_types
from productivity_hub.server.config import HubConfig, MetricsConfig, SearchConfig
from productivity_hub.server.rate_limit import RateLimiter
from productivity_hub.store import RecordStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


_dumps = partial(json.dumps, default=_json_default)


def json_response(data: Any, status: int = 200) -> web.Response:
    """JSON response with datetimes rendered as ISO-8601 strings."""
    return web.json_response(data, status=status, dumps=_dumps)


def error_response(
    code: str,
    message: str,
    status: int,
    details: dict | None = None,
    **extra: Any,
) -> web.Response:
    body: dict[str, Any] = {"error": code, "message": message}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return json_response(body, status=status)


# ---------------------------------------------------------------------------
# Parameter parsing
# ---------------------------------------------------------------------------


def _parse_iso_date(value: str | None) -> datetime | None:
    """Parse an ISO date string to datetime.

    Args:
        value: ISO date string or None.

    Returns:
        datetime with UTC timezone, or None if value is empty.

    Raises:
        ValueError: If value is not a valid ISO date.
    """
    if not value:
        return None
    return from_iso(value.strip())


def _get_list(query: Mapping[str, str], name: str) -> list[str]:
    """Collect a list parameter given comma-separated and/or repeated."""
    if hasattr(query, "getall"):
        raw = query.getall(name, [])
    else:
        raw = [query[name]] if name in query else []
    items: list[str] = []
    for value in raw:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def _parse_date_range(
    query: Mapping[str, str],
    error: ValidationError,
) -> tuple[datetime | None, datetime | None]:
    parsed: dict[str, datetime | None] = {}
    for name in ("dateFrom", "dateTo"):
        try:
            parsed[name] = _parse_iso_date(query.get(name))
        except ValueError:
            error.add(name, "must be an ISO-8601 date")
            parsed[name] = None

    date_from, date_to = parsed["dateFrom"], parsed["dateTo"]
    if date_from and date_to and date_from > date_to:
        error.add("dateFrom", "must not be after dateTo")
    return date_from, date_to


def parse_search_params(query: Mapping[str, str], config: SearchConfig) -> SearchRequest:
    """Validate GET /search query parameters.

    Raises:
        ValidationError: With one entry per offending parameter.
    """
    error = ValidationError({})

    text = query.get("query") or ""
    if not text.strip():
        error.add("query", "is required")
    elif len(text) > config.max_query_length:
        error.add("query", f"must be at most {config.max_query_length} characters")

    types: list[str] = []
    raw_types = _get_list(query, "types")
    if not raw_types:
        error.add("types", "is required")
    else:
        try:
            types = normalize_types(raw_types)
        except ValueError as e:
            error.add("types", str(e))

    date_from, date_to = _parse_date_range(query, error)

    limit = config.default_limit
    if query.get("limit"):
        try:
            limit = int(query["limit"])
        except ValueError:
            error.add("limit", "must be an integer")
        else:
            if not 1 <= limit <= config.max_limit:
                error.add("limit", f"must be between 1 and {config.max_limit}")

    if error.details:
        raise error

    return SearchRequest(
        query=text,
        types=types,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )


def parse_metrics_params(query: Mapping[str, str], config: MetricsConfig) -> MetricsRequest:
    """Validate GET /analytics/metrics query parameters.

    Raises:
        ValidationError: With one entry per offending parameter.
    """
    error = ValidationError({})

    categories: list[str] = []
    metric_types = _get_list(query, "metricTypes") or list(DEFAULT_METRIC_TYPES)
    try:
        categories = resolve_metric_types(metric_types)
    except ValueError as e:
        error.add("metricTypes", str(e))

    date_from, date_to = _parse_date_range(query, error)

    granularity = query.get("granularity") or config.default_granularity
    if granularity not in GRANULARITIES:
        error.add("granularity", f"must be one of {', '.join(GRANULARITIES)}")

    if error.details:
        raise error

    return MetricsRequest(
        categories=categories,
        date_from=date_from,
        date_to=date_to,
        granularity=granularity,
    )


# ---------------------------------------------------------------------------
# HubAPI
# ---------------------------------------------------------------------------


@dataclass
class HubAPI:
    """REST API handler for the productivity hub.

    Aggregators are built from the store and config unless injected.
    Rate limiters are optional; None disables throttling for that endpoint.
    """

    store: RecordStore
    config: HubConfig = field(default_factory=HubConfig)

    search_aggregator: SearchAggregator | None = None
    metrics_aggregator: MetricsAggregator | None = None

    search_limiter: RateLimiter | None = None
    metrics_limiter: RateLimiter | None = None

    _start_time: float = field(default_factory=time.time, repr=False)

    def __post_init__(self) -> None:
        if self.search_aggregator is None:
            self.search_aggregator = SearchAggregator(
                self.store, excerpt_length=self.config.search.excerpt_length
            )
        if self.metrics_aggregator is None:
            self.metrics_aggregator = MetricsAggregator(
                self.store, default_range_days=self.config.metrics.default_range_days
            )

    # =========================================================================
    # Request helpers
    # =========================================================================

    def _get_client_ip(self, request: web.Request) -> str:
        """Get client IP for rate limiting.

        Args:
            request: The HTTP request.

        Returns:
            Client IP address string.
        """
        # Reverse proxies put the original client first
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        peername = request.transport.get_extra_info("peername") if request.transport else None
        if peername:
            return peername[0]
        return "unknown"

    def _get_user_id(self, request: web.Request) -> str | None:
        user_id = request.headers.get(self.config.auth.user_header, "").strip()
        return user_id or None

    def _check_rate_limit(
        self,
        limiter: RateLimiter | None,
        scope: str,
        request: web.Request,
    ) -> web.Response | None:
        """Return a 429 response if the caller is over its limit."""
        if limiter is None:
            return None
        client_ip = self._get_client_ip(request)
        allowed, retry_after = limiter.check(f"{scope}:{client_ip}")
        if allowed:
            return None
        logger.info(f"Rate limited {scope} request from {client_ip}")
        return error_response(
            "rate_limited",
            "Too many requests.",
            status=429,
            retry_after_seconds=retry_after,
        )

    def _unauthorized(self) -> web.Response:
        return error_response(
            "unauthorized",
            f"Missing {self.config.auth.user_header} header",
            status=401,
        )

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def handle_search(self, request: web.Request) -> web.Response:
        """Handle GET /search - ranked search across the user's records.

        Query Parameters:
            query: Search text (required, 1..max_query_length chars)
            types: Comma-separated kinds: journal,tasks,calendar,emails,contacts (required)
            dateFrom: ISO date lower bound (optional)
            dateTo: ISO date upper bound (optional)
            limit: Result budget (1..max_limit, default 20)

        Response 200:
            {
                "query": "report",
                "total": 3,
                "results": {"tasks": [...], "emails": [...]},
                "summary": {"tasks": 2, "emails": 1},
                "unavailable": []
            }

        Error responses:
        - 400: Invalid parameters
        - 401: No user id header
        - 429: Rate limited
        - 503: Every requested kind failed to load
        """
        limited = self._check_rate_limit(self.search_limiter, "search", request)
        if limited is not None:
            return limited

        user_id = self._get_user_id(request)
        if user_id is None:
            return self._unauthorized()

        try:
            params = parse_search_params(request.query, self.config.search)
        except ValidationError as e:
            return error_response(e.code, "Invalid search parameters", 400, details=e.details)

        response = await self.search_aggregator.search(user_id, params)

        if response.unavailable and len(response.unavailable) == len(response.results):
            return error_response(
                "store_unavailable",
                "Record store is not available",
                status=503,
                details={"unavailable": response.unavailable},
            )

        return json_response(response.to_dict())

    async def handle_metrics(self, request: web.Request) -> web.Response:
        """Handle GET /analytics/metrics - productivity metrics and insights.

        Query Parameters:
            metricTypes: Comma-separated metric types (default: tasks_completed,
                journal_entries, calendar_events, emails_processed)
            dateFrom: ISO date (default: 30 days ago)
            dateTo: ISO date (default: now)
            granularity: day|week|month (default: day)

        Response 200:
            {
                "overview": {"tasksCompleted": 12, "journalEntries": 9},
                "tasks": {"total": 12, ..., "timeSeries": [...]},
                "journal": {...},
                "insights": ["..."],
                "dateRange": {"from": "...", "to": "..."},
                "granularity": "day",
                "unavailable": []
            }
        """
        limited = self._check_rate_limit(self.metrics_limiter, "metrics", request)
        if limited is not None:
            return limited

        user_id = self._get_user_id(request)
        if user_id is None:
            return self._unauthorized()

        try:
            params = parse_metrics_params(request.query, self.config.metrics)
        except ValidationError as e:
            return error_response(e.code, "Invalid metrics parameters", 400, details=e.details)

        response = await self.metrics_aggregator.metrics(user_id, params)

        if response.unavailable and not response.categories:
            return error_response(
                "store_unavailable",
                "Record store is not available",
                status=503,
                details={"unavailable": response.unavailable},
            )

        return json_response(response.to_dict())

    async def handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health - liveness plus per-kind record counts.

        Response 200:
            {
                "status": "healthy",  # or "degraded" if the store can't be read
                "uptime_seconds": 3600,
                "records": {"journal": 10, "tasks": 42, ...}
            }
        """
        status = "healthy"
        records: dict[str, int] | None = None
        try:
            records = await self.store.get_stats()
        except StoreError as e:
            logger.warning(f"Health check could not read store: {e}")
            status = "degraded"

        return json_response({
            "status": status,
            "uptime_seconds": int(time.time() - self._start_time),
            "records": records,
        })

    def create_app(self) -> web.Application:
        """Create and configure the aiohttp web application.

        Returns:
            Configured aiohttp Application with all routes registered.
        """
        app = web.Application()

        app.router.add_get("/search", self.handle_search)
        app.router.add_get("/analytics/metrics", self.handle_metrics)
        app.router.add_get("/health", self.handle_health)

        return app
