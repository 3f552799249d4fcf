"""Relevance scoring and excerpt extraction for search results.

This module provides:
- calculate_relevance_score: Ranks one record against a query
- generate_excerpt: Cuts a preview snippet around the first query match

Both are pure functions. Scores are unbounded and only comparable within
the candidate set of a single query.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from .records import parse_datetime

# Field tiers (mutually exclusive per string field)
EXACT_MATCH_SCORE = 10
PREFIX_MATCH_SCORE = 7
SUBSTRING_MATCH_SCORE = 5
WHOLE_WORD_BONUS = 3

# Array elements (cumulative, every element scored)
ARRAY_EXACT_SCORE = 8
ARRAY_SUBSTRING_SCORE = 4

RECENT_DAY_BONUS = 2
RECENT_WEEK_BONUS = 1
IMPORTANCE_BONUS = 2

TIMESTAMP_FIELDS = ("createdAt", "receivedAt", "startTime")
IMPORTANT_PRIORITIES = ("HIGH", "URGENT")

ELLIPSIS = "..."
WORD_BOUNDARY_WINDOW = 20


# ---------------------------------------------------------------------------
# Relevance scoring
# ---------------------------------------------------------------------------


def _score_string(value: str, query_lower: str) -> int:
    value_lower = value.lower()
    score = 0

    if value_lower == query_lower:
        score += EXACT_MATCH_SCORE
    elif value_lower.startswith(query_lower):
        score += PREFIX_MATCH_SCORE
    elif query_lower in value_lower:
        score += SUBSTRING_MATCH_SCORE

    # Whole-word bonus stacks with the tier above
    if query_lower in value_lower.split():
        score += WHOLE_WORD_BONUS

    return score


def _score_array(values: Sequence[Any], query_lower: str) -> int:
    score = 0
    for item in values:
        if not isinstance(item, str):
            continue
        item_lower = item.lower()
        if item_lower == query_lower:
            score += ARRAY_EXACT_SCORE
        elif query_lower in item_lower:
            score += ARRAY_SUBSTRING_SCORE
    return score


def recency_bonus(record: Mapping[str, Any], now: datetime | None = None) -> int:
    """Return the recency bonus for a record's primary timestamp.

    The first present field of createdAt, receivedAt, startTime is used.
    """
    timestamp = None
    for name in TIMESTAMP_FIELDS:
        if record.get(name):
            timestamp = parse_datetime(record[name])
            break
    if timestamp is None:
        return 0

    if now is None:
        now = datetime.now(timezone.utc)
    days_since = (now - timestamp).total_seconds() / 86400

    if days_since < 1:
        return RECENT_DAY_BONUS
    if days_since < 7:
        return RECENT_WEEK_BONUS
    return 0


def is_important(record: Mapping[str, Any]) -> bool:
    """Check the importance flag or a HIGH/URGENT priority."""
    return bool(record.get("isImportant")) or record.get("priority") in IMPORTANT_PRIORITIES


def calculate_relevance_score(
    query: str,
    record: Mapping[str, Any],
    searchable_fields: Sequence[str],
    now: datetime | None = None,
) -> int:
    """Calculate the relevance score of a record for a query.

    Scoring:
    - String field: 10 exact / 7 prefix / 5 substring (highest tier only),
      plus 3 if the query is one of the field's whitespace-separated words
    - Array field: 8 per exactly matching element, 4 per element containing
      the query (all elements accumulate)
    - Recency: +2 if under a day old, +1 if under a week old
    - Importance: +2 if flagged important or priority is HIGH/URGENT

    Args:
        query: The raw search query (compared case-insensitively).
        record: camelCase field mapping of the record.
        searchable_fields: Ordered field names to score.
        now: Current time for the recency bonus. Defaults to UTC now.

    Returns:
        Non-negative relevance score.
    """
    query_lower = query.lower()
    score = 0

    for name in searchable_fields:
        value = record.get(name)
        if not value:
            continue
        if isinstance(value, str):
            score += _score_string(value, query_lower)
        elif isinstance(value, (list, tuple)):
            score += _score_array(value, query_lower)

    score += recency_bonus(record, now)

    if is_important(record):
        score += IMPORTANCE_BONUS

    return score


# ---------------------------------------------------------------------------
# Excerpts
# ---------------------------------------------------------------------------


def generate_excerpt(content: str | None, query: str, max_length: int) -> str:
    """Extract a snippet of content around the first match of query.

    Without a match, the head of the content is returned, truncated to
    max_length with a trailing ellipsis only when something was cut.

    With a match, a window of (max_length - len(query)) // 2 characters is
    kept on each side. Each boundary then snaps to a nearby space (within
    20 characters) so words are not split, and an ellipsis marks each side
    that was cut.

    Args:
        content: Text to excerpt (None yields an empty string).
        query: Search query, matched case-insensitively.
        max_length: Target excerpt length before boundary adjustment.

    Returns:
        The excerpt string.
    """
    if not content:
        return ""

    match_index = content.lower().find(query.lower())

    if match_index == -1:
        if len(content) > max_length:
            return content[:max_length] + ELLIPSIS
        return content

    context_length = (max_length - len(query)) // 2
    start = max(0, match_index - context_length)
    end = min(len(content), match_index + len(query) + context_length)

    if start > 0:
        prev_space = content.rfind(" ", 0, start + 1)
        # No space at all also snaps to the start when it is near enough
        if prev_space > start - WORD_BOUNDARY_WINDOW:
            start = prev_space + 1

    if end < len(content):
        next_space = content.find(" ", end)
        if next_space > 0 and next_space - end < WORD_BOUNDARY_WINDOW:
            end = next_space

    excerpt = content[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(content):
        excerpt = excerpt + ELLIPSIS
    return excerpt
