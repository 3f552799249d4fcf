"""Tests for insight generation."""

from __future__ import annotations

import pytest

from productivity_hub.insights import (
    EMAIL_EXCELLENT,
    EMAIL_GOOD,
    EMAIL_LOW,
    JOURNAL_EXCELLENT,
    JOURNAL_GOOD,
    JOURNAL_LOW,
    TASK_EXCELLENT,
    TASK_GOOD,
    TASK_LOW,
    email_insight,
    generate_insights,
    journal_insight,
    task_insight,
)


class TestTaskInsight:
    @pytest.mark.parametrize(
        ("rate", "expected"),
        [
            (100, TASK_EXCELLENT),
            (80.1, TASK_EXCELLENT),
            (80, TASK_GOOD),
            (60.5, TASK_GOOD),
            (60, TASK_LOW),
            (0, TASK_LOW),
        ],
    )
    def test_thresholds(self, rate: float, expected: str) -> None:
        assert task_insight(rate) == expected


class TestJournalInsight:
    @pytest.mark.parametrize(
        ("total", "expected"),
        [
            (25, JOURNAL_EXCELLENT),  # 0.83 per day
            (24, JOURNAL_GOOD),  # exactly 0.8
            (10, JOURNAL_GOOD),
            (9, JOURNAL_LOW),  # exactly 0.3
            (0, JOURNAL_LOW),
        ],
    )
    def test_thresholds(self, total: int, expected: str) -> None:
        assert journal_insight(total) == expected


class TestEmailInsight:
    @pytest.mark.parametrize(
        ("unread", "received", "expected"),
        [
            (0, 100, EMAIL_EXCELLENT),
            (9, 100, EMAIL_EXCELLENT),
            (10, 100, EMAIL_GOOD),
            (29, 100, EMAIL_GOOD),
            (30, 100, EMAIL_LOW),
        ],
    )
    def test_thresholds(self, unread: int, received: int, expected: str) -> None:
        assert email_insight(unread, received) == expected

    def test_nothing_received(self) -> None:
        """An empty inbox is treated as fully processed."""
        assert email_insight(0, 0) == EMAIL_EXCELLENT


class TestGenerateInsights:
    def test_fixed_order(self) -> None:
        metrics = {
            "emails": {"unreadCount": 50, "totalReceived": 100},
            "journal": {"total": 30},
            "tasks": {"completionRate": 90},
        }
        assert generate_insights(metrics) == [TASK_EXCELLENT, JOURNAL_EXCELLENT, EMAIL_LOW]

    def test_only_present_categories(self) -> None:
        assert generate_insights({"journal": {"total": 0}}) == [JOURNAL_LOW]

    def test_calendar_and_contacts_contribute_nothing(self) -> None:
        metrics = {"calendar": {"total": 4}, "contacts": {"total": 2}}
        assert generate_insights(metrics) == []

    def test_empty(self) -> None:
        assert generate_insights({}) == []
