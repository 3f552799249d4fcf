"""Qualitative insights derived from computed metrics.

Rules run in a fixed order (tasks, journal, emails); each category present
in the metrics contributes exactly one message.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Journal consistency is judged against a fixed 30-day period
JOURNAL_PERIOD_DAYS = 30

TASK_EXCELLENT = "Excellent task completion rate! You're highly productive."
TASK_GOOD = "Good task completion rate. Consider breaking down larger tasks."
TASK_LOW = "Task completion could be improved. Try prioritizing high-impact tasks."

JOURNAL_EXCELLENT = "Great journaling consistency! Regular reflection supports personal growth."
JOURNAL_GOOD = "Good journaling habit. Consider setting a daily reminder."
JOURNAL_LOW = "Try to journal more regularly for better emotional awareness."

EMAIL_EXCELLENT = "Excellent email management! You keep your inbox organized."
EMAIL_GOOD = "Good email management. Consider regular inbox clearing."
EMAIL_LOW = "Many unread emails. Try processing emails in batches."


def task_insight(completion_rate: float) -> str:
    if completion_rate > 80:
        return TASK_EXCELLENT
    if completion_rate > 60:
        return TASK_GOOD
    return TASK_LOW


def journal_insight(total_entries: int) -> str:
    entries_per_day = total_entries / JOURNAL_PERIOD_DAYS
    if entries_per_day > 0.8:
        return JOURNAL_EXCELLENT
    if entries_per_day > 0.3:
        return JOURNAL_GOOD
    return JOURNAL_LOW


def email_insight(unread_count: int, total_received: int) -> str:
    # An empty inbox has nothing unread
    unread_ratio = unread_count / total_received if total_received else 0.0
    if unread_ratio < 0.1:
        return EMAIL_EXCELLENT
    if unread_ratio < 0.3:
        return EMAIL_GOOD
    return EMAIL_LOW


def generate_insights(metrics: Mapping[str, Any]) -> list[str]:
    """Generate insight strings from per-category metric summaries.

    Args:
        metrics: Mapping of category tag to its summary dict. Only the
            "tasks", "journal" and "emails" categories produce insights.

    Returns:
        Ordered list of insight messages.
    """
    insights: list[str] = []

    tasks = metrics.get("tasks")
    if tasks is not None:
        insights.append(task_insight(tasks["completionRate"]))

    journal = metrics.get("journal")
    if journal is not None:
        insights.append(journal_insight(journal["total"]))

    emails = metrics.get("emails")
    if emails is not None:
        insights.append(email_insight(emails["unreadCount"], emails["totalReceived"]))

    return insights
