"""Spaced-repetition scheduling for quiz items.

An SM-2 variant: the classic ease-factor and repetition rules decide a base
interval, which is then scaled by the item's mastery room, its difficulty and
the learner's current correct streak.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.scheduling.tags import parse_confidence, parse_difficulty, parse_room


DEFAULT_REPETITIONS = 0
DEFAULT_INTERVAL_DAYS = 1
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_CORRECT_STREAK = 0

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.6

STREAK_BONUS_MIN_STREAK = 3
STREAK_BONUS_MIN_QUALITY = 4
STREAK_BONUS_MULTIPLIER = 1.1

_CORRECT_QUALITY = {"certainty": 5, "doubt": 4, "guess": 3}
_ROOM_MULTIPLIERS = {"intake": 0.6, "critical": 0.7, "developing": 0.85, "mastered": 1.15}
_DIFFICULTY_MULTIPLIERS = {"hard": 0.85, "easy": 1.1, "medium": 1.0}


@dataclass(slots=True, frozen=True)
class ReviewContext:
    """Outcome of a single attempt together with the item's current standing."""

    is_correct: bool
    confidence: Optional[str]
    room: Optional[str]
    difficulty: Optional[str]

    @classmethod
    def from_raw(
        cls,
        *,
        is_correct: bool,
        confidence: Optional[str],
        room: Optional[str],
        difficulty: Optional[str],
        strict: bool = False,
    ) -> ReviewContext:
        """Build a context from untrusted tag strings."""
        return cls(
            is_correct=bool(is_correct),
            confidence=parse_confidence(confidence, strict=strict),
            room=parse_room(room, strict=strict),
            difficulty=parse_difficulty(difficulty, strict=strict),
        )


@dataclass(slots=True, frozen=True)
class ScheduleState:
    """The part of a stored schedule the next calculation depends on."""

    repetitions: int = DEFAULT_REPETITIONS
    interval_days: int = DEFAULT_INTERVAL_DAYS
    ease_factor: float = DEFAULT_EASE_FACTOR
    correct_streak: int = DEFAULT_CORRECT_STREAK


@dataclass(slots=True)
class ScheduleUpdate:
    """Calculated review data for an item after an attempt."""

    repetitions: int
    interval_days: int
    ease_factor: float
    next_review_at: datetime
    correct_streak: int
    last_result: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, sending exact halves upwards."""
    return int(math.floor(value + 0.5))


def map_quality(is_correct: bool, confidence: Optional[str]) -> int:
    """Translate correctness and stated confidence into a 1-5 quality score."""
    if is_correct:
        return _CORRECT_QUALITY.get(confidence, 4)
    return 1 if confidence == "certainty" else 2


def get_room_multiplier(room: Optional[str]) -> float:
    return _ROOM_MULTIPLIERS.get(room, 1.0)


def get_difficulty_multiplier(difficulty: Optional[str]) -> float:
    return _DIFFICULTY_MULTIPLIERS.get(difficulty, 1.0)


def update_ease_factor(current_ease: float, quality: int) -> float:
    """Apply the SM-2 ease adjustment, saturating at the allowed bounds."""
    miss = 5 - quality
    new_ease = current_ease + (0.1 - miss * (0.08 + miss * 0.02))
    return min(MAX_EASE_FACTOR, max(MIN_EASE_FACTOR, new_ease))


def calculate_base_interval(
    repetitions: int,
    previous_interval: int,
    ease_factor: float,
    quality: int,
) -> int:
    """Return the unadjusted SM-2 interval; ``repetitions`` is the updated count."""
    if quality < 3:
        return 1
    if repetitions == 0:
        return 1
    if repetitions == 1:
        return 6
    return round_half_up(previous_interval * ease_factor)


def apply_contextual_adjustments(
    base_interval: int,
    context: ReviewContext,
    correct_streak: int,
) -> int:
    """Scale the base interval by room, difficulty and streak; never below one day."""
    quality = map_quality(context.is_correct, context.confidence)
    room_multiplier = get_room_multiplier(context.room)
    difficulty_multiplier = get_difficulty_multiplier(context.difficulty)
    adjusted = max(1, round_half_up(base_interval * room_multiplier * difficulty_multiplier))

    if (
        context.is_correct
        and quality >= STREAK_BONUS_MIN_QUALITY
        and correct_streak >= STREAK_BONUS_MIN_STREAK
    ):
        adjusted = round_half_up(adjusted * STREAK_BONUS_MULTIPLIER)

    return adjusted


def compute_next_schedule(
    previous: Optional[ScheduleState],
    context: ReviewContext,
    *,
    now: Optional[datetime] = None,
) -> ScheduleUpdate:
    """Return the schedule that follows ``previous`` after the attempt in ``context``."""
    if now is None:
        now = datetime.now(timezone.utc)
    if previous is None:
        previous = ScheduleState()

    quality = map_quality(context.is_correct, context.confidence)
    ease_factor = update_ease_factor(previous.ease_factor, quality)
    repetitions = 0 if quality < 3 else previous.repetitions + 1
    base_interval = calculate_base_interval(
        repetitions, previous.interval_days, ease_factor, quality
    )
    correct_streak = previous.correct_streak + 1 if context.is_correct else 0
    interval_days = apply_contextual_adjustments(base_interval, context, correct_streak)

    return ScheduleUpdate(
        repetitions=repetitions,
        interval_days=interval_days,
        ease_factor=ease_factor,
        next_review_at=now + timedelta(days=interval_days),
        correct_streak=correct_streak,
        last_result=quality,
    )
