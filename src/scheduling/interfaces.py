"""Collaborators the review service depends on but does not implement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(slots=True, frozen=True)
class ItemInfo:
    """What the scheduler needs to know about a quiz item."""

    item_id: str
    topic_id: Optional[str]
    difficulty: str
    room: str


class AttemptRecord(Protocol):
    """Minimal view of a recorded attempt handed to a tier classifier."""

    is_correct: bool
    quality: int
    confidence: Optional[str]


class ItemLookup(Protocol):
    """Resolves quiz items owned by the content layer."""

    async def get_item(self, session: AsyncSession, item_id: str) -> Optional[ItemInfo]:
        ...


class MasteryTierClassifier(Protocol):
    """Decides an item's mastery room from its attempt history."""

    def classify(self, history: Sequence[AttemptRecord]) -> str:
        ...
