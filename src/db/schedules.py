"""Persistence and due-item queries for review schedules."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar
from uuid import uuid4

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.scheduling.errors import StorageError
from src.scheduling.srs import ReviewContext, compute_next_schedule
from src.scheduling.tags import ROOMS, parse_item_type
from src.scheduling.urgency import ensure_utc, utc_now

from . import ReviewAttempt, ReviewSchedule, Subject, Topic


LOGGER = logging.getLogger(__name__)

URGENT_OVERDUE = timedelta(hours=24)
DEFAULT_HISTORY_SIZE = 20

_T = TypeVar("_T")


@dataclass(slots=True)
class DueReviewSummary:
    """Due reviews for a single topic."""

    topic_id: Optional[str]
    topic_name: Optional[str]
    subject_id: Optional[str]
    subject_name: Optional[str]
    due_count: int
    urgent_count: int


@dataclass(slots=True)
class ReviewStats:
    """Aggregated view of the reviews that are currently due."""

    total_due: int = 0
    due_by_room: dict[str, int] = field(default_factory=lambda: {room: 0 for room in ROOMS})
    due_by_subject: dict[str, int] = field(default_factory=dict)
    average_streak: float = 0.0
    longest_streak: int = 0
    next_review_date: Optional[datetime] = None


def _storage_errors(
    func_: Callable[..., Awaitable[_T]],
) -> Callable[..., Awaitable[_T]]:
    """Re-raise database failures as :class:`StorageError`."""

    @functools.wraps(func_)
    async def wrapper(*args: Any, **kwargs: Any) -> _T:
        try:
            return await func_(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StorageError(f"Review schedule {func_.__name__} failed: {exc}") from exc

    return wrapper


class ReviewScheduleRepository:
    """Reads and writes review schedules through a single database session.

    Writes happen inside the caller's transaction; the repository only
    flushes.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @_storage_errors
    async def upsert(
        self,
        item_id: str,
        item_type: str,
        topic_id: Optional[str],
        context: ReviewContext,
        *,
        now: Optional[datetime] = None,
        attempt_id: Optional[str] = None,
    ) -> ReviewSchedule:
        """Apply an attempt to the item's schedule, creating the schedule if needed.

        Retrying with an ``attempt_id`` that is already recorded returns the
        stored schedule without applying the attempt again.
        """
        if now is None:
            now = utc_now()
        item_type = parse_item_type(item_type)

        if attempt_id is not None:
            recorded = await self._get_attempt(attempt_id)
            if recorded is not None:
                LOGGER.debug("Attempt %s was already applied to %s %s.", attempt_id, item_type, item_id)
                return await self._session.get(ReviewSchedule, recorded.schedule_id)

        schedule = await self._load_for_update(item_type, item_id)
        update = compute_next_schedule(
            schedule.to_state() if schedule is not None else None,
            context,
            now=now,
        )

        if schedule is not None and topic_id is None:
            topic_id = schedule.topic_id
        subject_id = await self._resolve_subject_id(topic_id)

        if schedule is None:
            schedule = ReviewSchedule(
                id=str(uuid4()),
                item_type=item_type,
                item_id=item_id,
                created_at=now,
            )
            self._session.add(schedule)

        schedule.topic_id = topic_id
        schedule.subject_id = subject_id
        schedule.repetitions = update.repetitions
        schedule.interval_days = update.interval_days
        schedule.ease_factor = update.ease_factor
        schedule.correct_streak = update.correct_streak
        schedule.last_review = now
        schedule.next_review_at = update.next_review_at
        schedule.last_result = update.last_result
        schedule.last_confidence = context.confidence
        schedule.last_room = context.room
        schedule.updated_at = now
        await self._session.flush()

        self._session.add(
            ReviewAttempt(
                schedule_id=schedule.id,
                attempt_id=attempt_id,
                is_correct=context.is_correct,
                quality=update.last_result,
                confidence=context.confidence,
                room=context.room,
                difficulty=context.difficulty,
                reviewed_at=now,
            )
        )
        await self._session.flush()

        LOGGER.debug(
            "Scheduled %s %s in %d day(s) (quality=%d, ease=%.2f, streak=%d).",
            item_type,
            item_id,
            update.interval_days,
            update.last_result,
            update.ease_factor,
            update.correct_streak,
        )
        return schedule

    @_storage_errors
    async def get_schedule_by_item_id(
        self, item_id: str, item_type: str = "question"
    ) -> Optional[ReviewSchedule]:
        """Return the schedule for an item, or ``None`` when it was never reviewed."""
        stmt = select(ReviewSchedule).where(
            ReviewSchedule.item_type == parse_item_type(item_type),
            ReviewSchedule.item_id == item_id,
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    @_storage_errors
    async def get_due_item_ids(
        self,
        *,
        subject_ids: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        item_type: str = "question",
        now: Optional[datetime] = None,
    ) -> list[str]:
        """Return ids of items due for review, most overdue first."""
        if now is None:
            now = utc_now()

        stmt = (
            select(ReviewSchedule.item_id)
            .where(
                ReviewSchedule.item_type == parse_item_type(item_type),
                ReviewSchedule.next_review_at <= now,
            )
            .order_by(ReviewSchedule.next_review_at, ReviewSchedule.id)
        )
        if subject_ids:
            stmt = stmt.where(ReviewSchedule.subject_id.in_(list(subject_ids)))
        if limit is not None:
            stmt = stmt.limit(max(0, limit))

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @_storage_errors
    async def get_due_summary_by_topic(
        self,
        subject_ids: Optional[Sequence[str]] = None,
        *,
        item_type: str = "question",
        now: Optional[datetime] = None,
    ) -> list[DueReviewSummary]:
        """Group due reviews per topic, most urgent topics first."""
        if now is None:
            now = utc_now()
        urgent_before = now - URGENT_OVERDUE

        due_count = func.count(ReviewSchedule.id).label("due_count")
        urgent_count = func.count(
            case((ReviewSchedule.next_review_at < urgent_before, 1))
        ).label("urgent_count")

        stmt = (
            select(
                ReviewSchedule.topic_id,
                Topic.name,
                ReviewSchedule.subject_id,
                Subject.name,
                due_count,
                urgent_count,
            )
            .select_from(ReviewSchedule)
            .outerjoin(Topic, Topic.id == ReviewSchedule.topic_id)
            .outerjoin(Subject, Subject.id == ReviewSchedule.subject_id)
            .where(*self._due_filters(item_type, now, subject_ids))
            .group_by(ReviewSchedule.topic_id, Topic.name, ReviewSchedule.subject_id, Subject.name)
            .order_by(urgent_count.desc(), due_count.desc(), ReviewSchedule.topic_id)
        )

        result = await self._session.execute(stmt)
        return [
            DueReviewSummary(
                topic_id=topic_id,
                topic_name=topic_name,
                subject_id=subject_id,
                subject_name=subject_name,
                due_count=int(due),
                urgent_count=int(urgent),
            )
            for topic_id, topic_name, subject_id, subject_name, due, urgent in result.all()
        ]

    @_storage_errors
    async def get_stats(
        self,
        subject_ids: Optional[Sequence[str]] = None,
        *,
        item_type: str = "question",
        now: Optional[datetime] = None,
    ) -> ReviewStats:
        """Summarise due reviews by room and subject, plus streak figures."""
        if now is None:
            now = utc_now()
        due_filters = self._due_filters(item_type, now, subject_ids)
        stats = ReviewStats()

        totals_stmt = select(
            func.count(ReviewSchedule.id),
            func.avg(ReviewSchedule.correct_streak),
            func.max(ReviewSchedule.correct_streak),
            func.min(ReviewSchedule.next_review_at),
        ).where(*due_filters)
        total_due, average_streak, longest_streak, earliest_due = (
            await self._session.execute(totals_stmt)
        ).one()

        stats.total_due = int(total_due or 0)
        stats.average_streak = float(average_streak or 0.0)
        stats.longest_streak = int(longest_streak or 0)

        room_stmt = (
            select(ReviewSchedule.last_room, func.count(ReviewSchedule.id))
            .where(*due_filters)
            .group_by(ReviewSchedule.last_room)
        )
        for room, count in (await self._session.execute(room_stmt)).all():
            if room in stats.due_by_room:
                stats.due_by_room[room] += int(count)

        subject_stmt = (
            select(ReviewSchedule.subject_id, func.count(ReviewSchedule.id))
            .where(*due_filters, ReviewSchedule.subject_id.is_not(None))
            .group_by(ReviewSchedule.subject_id)
        )
        for subject_id, count in (await self._session.execute(subject_stmt)).all():
            stats.due_by_subject[subject_id] = int(count)

        if earliest_due is None:
            upcoming_stmt = select(func.min(ReviewSchedule.next_review_at)).where(
                ReviewSchedule.item_type == parse_item_type(item_type),
                ReviewSchedule.next_review_at > now,
            )
            if subject_ids:
                upcoming_stmt = upcoming_stmt.where(ReviewSchedule.subject_id.in_(list(subject_ids)))
            earliest_due = (await self._session.execute(upcoming_stmt)).scalar()

        stats.next_review_date = ensure_utc(earliest_due) if earliest_due is not None else None
        return stats

    @_storage_errors
    async def get_recent_attempts(
        self, schedule_id: str, limit: int = DEFAULT_HISTORY_SIZE
    ) -> list[ReviewAttempt]:
        """Return up to ``limit`` latest attempts for a schedule, oldest first."""
        stmt = (
            select(ReviewAttempt)
            .where(ReviewAttempt.schedule_id == schedule_id)
            .order_by(ReviewAttempt.reviewed_at.desc(), ReviewAttempt.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(reversed(result.scalars().all()))

    @staticmethod
    def _due_filters(
        item_type: str, now: datetime, subject_ids: Optional[Sequence[str]]
    ) -> list[Any]:
        filters: list[Any] = [
            ReviewSchedule.item_type == parse_item_type(item_type),
            ReviewSchedule.next_review_at <= now,
        ]
        if subject_ids:
            filters.append(ReviewSchedule.subject_id.in_(list(subject_ids)))
        return filters

    async def _get_attempt(self, attempt_id: str) -> Optional[ReviewAttempt]:
        stmt = select(ReviewAttempt).where(ReviewAttempt.attempt_id == attempt_id)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def _load_for_update(self, item_type: str, item_id: str) -> Optional[ReviewSchedule]:
        stmt = (
            select(ReviewSchedule)
            .where(ReviewSchedule.item_type == item_type, ReviewSchedule.item_id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def _resolve_subject_id(self, topic_id: Optional[str]) -> Optional[str]:
        if topic_id is None:
            return None
        result = await self._session.execute(select(Topic.subject_id).where(Topic.id == topic_id))
        return result.scalar()
