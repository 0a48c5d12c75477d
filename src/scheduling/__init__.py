"""Spaced-repetition scheduling engine and urgency helpers."""

from .errors import InvalidInputError, SchedulingError, StorageError, UnknownItemError
from .srs import ReviewContext, ScheduleState, ScheduleUpdate, compute_next_schedule
from .urgency import get_days_until_review, get_urgency_level, is_overdue

__all__ = [
    "InvalidInputError",
    "ReviewContext",
    "ScheduleState",
    "ScheduleUpdate",
    "SchedulingError",
    "StorageError",
    "UnknownItemError",
    "compute_next_schedule",
    "get_days_until_review",
    "get_urgency_level",
    "is_overdue",
]
