"""Classify due timestamps relative to the current time."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional


DAY = timedelta(days=1)
DUE_SOON_DAYS = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_overdue(
    next_review_at: datetime,
    threshold_days: float = 0,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """Return True when the review is more than ``threshold_days`` past due."""
    if now is None:
        now = utc_now()
    return ensure_utc(now) - ensure_utc(next_review_at) > timedelta(days=threshold_days)


def get_days_until_review(next_review_at: datetime, *, now: Optional[datetime] = None) -> int:
    """Whole days until the review, rounded up; negative once it is overdue."""
    if now is None:
        now = utc_now()
    remaining = ensure_utc(next_review_at) - ensure_utc(now)
    return math.ceil(remaining / DAY)


def get_urgency_level(next_review_at: datetime, *, now: Optional[datetime] = None) -> str:
    """Bucket a due timestamp into overdue, due-today, due-soon or scheduled."""
    days_until = get_days_until_review(next_review_at, now=now)
    if days_until < 0:
        return "overdue"
    if days_until == 0:
        return "due-today"
    if days_until <= DUE_SOON_DAYS:
        return "due-soon"
    return "scheduled"
