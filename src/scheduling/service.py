"""Record quiz attempts and answer due-review questions for the study UI."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db import ReviewSchedule
from src.db.schedules import (
    DEFAULT_HISTORY_SIZE,
    DueReviewSummary,
    ReviewScheduleRepository,
    ReviewStats,
)
from src.scheduling.errors import StorageError, UnknownItemError
from src.scheduling.interfaces import ItemLookup, MasteryTierClassifier
from src.scheduling.srs import ReviewContext
from src.scheduling.tags import parse_item_type, parse_room
from src.scheduling.urgency import get_urgency_level, utc_now


LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(slots=True)
class AttemptOutcome:
    """Result of recording one attempt."""

    schedule: ReviewSchedule
    quality: int
    urgency: str
    next_room: Optional[str] = None


class ReviewService:
    """Coordinates item lookup, schedule updates and mastery classification."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        item_lookup: ItemLookup,
        tier_classifier: Optional[MasteryTierClassifier] = None,
        *,
        clock: Clock = utc_now,
        strict_tags: bool = False,
        history_size: int = DEFAULT_HISTORY_SIZE,
        item_type: str = "question",
    ) -> None:
        self._session_factory = session_factory
        self._item_lookup = item_lookup
        self._tier_classifier = tier_classifier
        self._clock = clock
        self._strict_tags = strict_tags
        self._history_size = history_size
        self._item_type = parse_item_type(item_type)
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, str], int] = {}

    @asynccontextmanager
    async def _item_lock(self, item_id: str) -> AsyncIterator[None]:
        """Hold the item's lock; the lock is dropped once nobody holds or awaits it."""
        key = (self._item_type, item_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def record_attempt(
        self,
        item_id: str,
        *,
        is_correct: bool,
        confidence: Optional[str],
        attempt_id: Optional[str] = None,
    ) -> AttemptOutcome:
        """Apply an answer to the item's schedule and return the new state.

        Attempts for the same item are serialised so that each one starts from
        the schedule the previous attempt wrote. The mastery tier is classified
        after the attempt is committed, so a classifier failure never loses it.
        """
        now = self._clock()

        async with self._item_lock(item_id):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        item = await self._item_lookup.get_item(session, item_id)
                        if item is None:
                            raise UnknownItemError(item_id)

                        context = ReviewContext.from_raw(
                            is_correct=is_correct,
                            confidence=confidence,
                            room=item.room,
                            difficulty=item.difficulty,
                            strict=self._strict_tags,
                        )
                        schedule = await ReviewScheduleRepository(session).upsert(
                            item_id,
                            self._item_type,
                            item.topic_id,
                            context,
                            now=now,
                            attempt_id=attempt_id,
                        )
            except StorageError:
                LOGGER.exception("Failed to record attempt for item %s.", item_id)
                raise
            except SQLAlchemyError as exc:
                LOGGER.exception("Failed to commit attempt for item %s.", item_id)
                raise StorageError(f"Could not save attempt for item {item_id!r}.") from exc

            next_room = await self._classify_next_room(schedule.id, item_id)

        LOGGER.info(
            "Recorded attempt for %s %s; next review in %d day(s).",
            self._item_type,
            item_id,
            schedule.interval_days,
        )
        return AttemptOutcome(
            schedule=schedule,
            quality=schedule.last_result,
            urgency=get_urgency_level(schedule.next_review_at, now=now),
            next_room=next_room,
        )

    async def _classify_next_room(self, schedule_id: str, item_id: str) -> Optional[str]:
        if self._tier_classifier is None:
            return None
        try:
            async with self._session_factory() as session:
                history = await ReviewScheduleRepository(session).get_recent_attempts(
                    schedule_id, self._history_size
                )
            return parse_room(self._tier_classifier.classify(history), strict=self._strict_tags)
        except Exception:
            LOGGER.exception(
                "Mastery tier classification failed for item %s; the attempt is kept.", item_id
            )
            return None

    async def get_schedule(self, item_id: str) -> Optional[ReviewSchedule]:
        async with self._session_factory() as session:
            return await ReviewScheduleRepository(session).get_schedule_by_item_id(
                item_id, self._item_type
            )

    async def get_due_item_ids(
        self,
        *,
        subject_ids: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> list[str]:
        async with self._session_factory() as session:
            return await ReviewScheduleRepository(session).get_due_item_ids(
                subject_ids=subject_ids,
                limit=limit,
                item_type=self._item_type,
                now=self._clock(),
            )

    async def get_due_summary_by_topic(
        self, subject_ids: Optional[Sequence[str]] = None
    ) -> list[DueReviewSummary]:
        async with self._session_factory() as session:
            return await ReviewScheduleRepository(session).get_due_summary_by_topic(
                subject_ids, item_type=self._item_type, now=self._clock()
            )

    async def get_stats(self, subject_ids: Optional[Sequence[str]] = None) -> ReviewStats:
        async with self._session_factory() as session:
            return await ReviewScheduleRepository(session).get_stats(
                subject_ids, item_type=self._item_type, now=self._clock()
            )

    def get_urgency(self, schedule: ReviewSchedule) -> str:
        """Classify a stored schedule against the service clock."""
        return get_urgency_level(schedule.next_review_at, now=self._clock())
