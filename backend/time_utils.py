"""
Time utilities for the task manager.

Single source of truth for "now", so token expiry and overdue checks agree.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def is_overdue(due_date: Optional[datetime], status: str) -> bool:
    """
    Check if a task is overdue.

    A task is overdue if it has a due date in the past and is not done.
    Naive datetimes (SQLite drops tzinfo) are treated as UTC.

    Args:
        due_date: The task's due date
        status: The task's status value

    Returns:
        True if task is overdue, False otherwise
    """
    if not due_date or status == "done":
        return False
    if due_date.tzinfo is None:
        due_date = due_date.replace(tzinfo=timezone.utc)
    return due_date < utc_now()
