from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.scheduling.urgency import get_days_until_review, get_urgency_level, is_overdue


NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (timedelta(0), "due-today"),
        (timedelta(hours=-12), "due-today"),
        (timedelta(hours=6), "due-soon"),
        (timedelta(days=1), "due-soon"),
        (timedelta(days=2), "due-soon"),
        (timedelta(days=2, hours=1), "scheduled"),
        (timedelta(days=3), "scheduled"),
        (timedelta(days=-1), "overdue"),
        (timedelta(days=-10), "overdue"),
    ],
)
def test_urgency_level_boundaries(offset: timedelta, expected: str) -> None:
    assert get_urgency_level(NOW + offset, now=NOW) == expected


def test_urgency_level_is_stable_for_same_instant() -> None:
    due = NOW + timedelta(days=1, hours=3)
    assert get_urgency_level(due, now=NOW) == get_urgency_level(due, now=NOW)


def test_days_until_review_rounds_up_and_keeps_sign() -> None:
    assert get_days_until_review(NOW, now=NOW) == 0
    assert get_days_until_review(NOW + timedelta(hours=1), now=NOW) == 1
    assert get_days_until_review(NOW + timedelta(days=5), now=NOW) == 5
    assert get_days_until_review(NOW - timedelta(days=1, hours=1), now=NOW) == -1
    assert get_days_until_review(NOW - timedelta(days=3), now=NOW) == -3


def test_is_overdue_uses_threshold_in_days() -> None:
    assert is_overdue(NOW - timedelta(minutes=1), now=NOW) is True
    assert is_overdue(NOW, now=NOW) is False
    assert is_overdue(NOW - timedelta(hours=12), 1, now=NOW) is False
    assert is_overdue(NOW - timedelta(days=1, seconds=1), 1, now=NOW) is True


def test_naive_timestamps_are_treated_as_utc() -> None:
    naive_due = datetime(2026, 10, 4, 12, 0)
    assert get_days_until_review(naive_due, now=NOW) == 3
    assert get_urgency_level(naive_due, now=NOW) == "scheduled"
