"""Global search across journal entries, tasks, events, emails and contacts.

This module provides:
- SearchRequest / SearchResponse / ScoredResult: search data structures
- fetch stage: per-kind store lookups, each capped at ``limit`` before scoring
- rank_candidates / partition_by_kind: the global re-rank and per-kind re-cap
- SearchAggregator: runs the whole pipeline for one request

Each kind is cut to ``limit`` records before any scoring, and after the
global ranking each kind keeps at most ``ceil(limit / len(types))``
results. A kind with many strong matches can therefore lose results that
would win a single global top-K.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .errors import StoreError
from .records import KIND_ORDER, KINDS, Record
from .scoring import calculate_relevance_score, generate_excerpt
from .store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_EXCERPT_LENGTH = 150
OVERFETCH_FACTOR = 2


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass
class SearchRequest:
    """Validated search parameters."""

    query: str
    types: list[str]
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = DEFAULT_LIMIT


@dataclass
class ScoredResult:
    """A record with its relevance score and preview excerpt."""

    kind: str
    record: Record
    relevance_score: int
    excerpt: str

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["type"] = self.kind
        data["relevanceScore"] = self.relevance_score
        data["excerpt"] = self.excerpt
        return data


@dataclass
class SearchResponse:
    """Search results grouped by kind."""

    query: str
    total: int
    results: dict[str, list[ScoredResult]]
    summary: dict[str, int]
    unavailable: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "total": self.total,
            "results": {
                kind: [r.to_dict() for r in items] for kind, items in self.results.items()
            },
            "summary": dict(self.summary),
            "unavailable": list(self.unavailable),
        }


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def normalize_types(types: Sequence[str]) -> list[str]:
    """Deduplicate kind tags, keeping request order.

    Raises:
        ValueError: If a tag is not a known kind.
    """
    seen: list[str] = []
    for kind in types:
        if kind not in KINDS:
            raise ValueError(f"Unknown kind: {kind}")
        if kind not in seen:
            seen.append(kind)
    return seen


def score_records(
    kind: str,
    records: Sequence[Record],
    query: str,
    now: datetime | None = None,
    excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
) -> list[ScoredResult]:
    """Score one kind's fetched records and attach excerpts."""
    spec = KINDS[kind]
    scored: list[ScoredResult] = []
    for record in records:
        fields = record.to_dict()
        scored.append(
            ScoredResult(
                kind=kind,
                record=record,
                relevance_score=calculate_relevance_score(
                    query, fields, spec.searchable_fields, now
                ),
                excerpt=generate_excerpt(fields.get(spec.excerpt_field), query, excerpt_length),
            )
        )
    return scored


def rank_candidates(candidates: Sequence[ScoredResult], limit: int) -> list[ScoredResult]:
    """Sort all candidates by score and keep the top ``2 * limit``.

    The sort is stable: equal scores keep their fetch order.
    """
    ranked = sorted(candidates, key=lambda r: r.relevance_score, reverse=True)
    return ranked[: limit * OVERFETCH_FACTOR]


def per_kind_cap(limit: int, type_count: int) -> int:
    """Maximum results each kind may keep after re-partitioning."""
    return math.ceil(limit / type_count)


def partition_by_kind(
    ranked: Sequence[ScoredResult],
    types: Sequence[str],
    limit: int,
) -> dict[str, list[ScoredResult]]:
    """Split ranked candidates back into per-kind lists.

    Every requested kind gets a list (possibly empty) capped at
    ``ceil(limit / len(types))``, in ranking order.
    """
    cap = per_kind_cap(limit, len(types))
    partitioned: dict[str, list[ScoredResult]] = {}
    for kind in types:
        partitioned[kind] = [r for r in ranked if r.kind == kind][:cap]
    return partitioned


# ---------------------------------------------------------------------------
# SearchAggregator
# ---------------------------------------------------------------------------


class SearchAggregator:
    """Fan-out search over every requested kind with global re-ranking.

    Per-kind store lookups run concurrently. A kind whose lookup fails with
    a StoreError is reported under ``unavailable`` and contributes an empty
    result list; the other kinds are still returned.
    """

    def __init__(
        self,
        store: RecordStore,
        excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
    ) -> None:
        """Initialize the aggregator.

        Args:
            store: Record store to query.
            excerpt_length: Target length of result excerpts.
        """
        self.store = store
        self.excerpt_length = excerpt_length

    async def fetch_candidates(
        self,
        user_id: str,
        request: SearchRequest,
        types: Sequence[str],
    ) -> tuple[dict[str, list[Record]], list[str]]:
        """Run the per-kind store lookups concurrently.

        Each lookup is capped at ``request.limit`` records.

        Returns:
            Tuple of (records per kind, kinds whose lookup failed).
        """
        outcomes = await asyncio.gather(
            *(
                self.store.find_matching(
                    kind,
                    user_id,
                    request.query,
                    request.date_from,
                    request.date_to,
                    request.limit,
                )
                for kind in types
            ),
            return_exceptions=True,
        )

        fetched: dict[str, list[Record]] = {}
        failed: list[str] = []
        for kind, outcome in zip(types, outcomes):
            if isinstance(outcome, StoreError):
                logger.warning(f"Search lookup failed for {kind}: {outcome}")
                failed.append(kind)
                fetched[kind] = []
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                fetched[kind] = outcome
        return fetched, failed

    async def search(
        self,
        user_id: str,
        request: SearchRequest,
        now: datetime | None = None,
    ) -> SearchResponse:
        """Search a user's records.

        Args:
            user_id: Owner of the records.
            request: Validated search parameters.
            now: Reference time for recency scoring. Defaults to UTC now.

        Returns:
            SearchResponse with per-kind results, summary counts and total.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        types = normalize_types(request.types)

        fetched, failed = await self.fetch_candidates(user_id, request, types)

        # Flatten in canonical kind order so ties rank the same way every time
        candidates: list[ScoredResult] = []
        for kind in KIND_ORDER:
            if kind in fetched:
                candidates.extend(
                    score_records(kind, fetched[kind], request.query, now, self.excerpt_length)
                )

        ranked = rank_candidates(candidates, request.limit)
        results = partition_by_kind(ranked, types, request.limit)

        summary = {kind: len(items) for kind, items in results.items()}
        total = sum(summary.values())

        logger.debug(
            f"Search for {request.query!r} over {types}: "
            f"{len(candidates)} candidates, {total} returned"
        )

        return SearchResponse(
            query=request.query,
            total=total,
            results=results,
            summary=summary,
            unavailable=failed,
        )
