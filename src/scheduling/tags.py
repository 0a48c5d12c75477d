"""Tag vocabularies shared by the scheduling engine and the schedule store."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, cast

from src.scheduling.errors import InvalidInputError


LOGGER = logging.getLogger(__name__)

CONFIDENCE_LEVELS: tuple[str, ...] = ("certainty", "doubt", "guess")
ROOMS: tuple[str, ...] = ("intake", "critical", "developing", "mastered")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")
ITEM_TYPES: tuple[str, ...] = ("question", "topic")


def parse_tag(
    kind: str,
    value: Optional[str],
    allowed: Sequence[str],
    *,
    strict: bool = False,
) -> Optional[str]:
    """Return ``value`` as a canonical tag from ``allowed``.

    Unknown values are passed through normalised in lenient mode, so the
    engine's neutral fallbacks apply to them. A missing value stays ``None``.
    Strict mode raises instead.
    """
    normalized = value.strip().lower() if isinstance(value, str) else None
    if normalized is not None and normalized in allowed:
        return normalized
    if strict:
        raise InvalidInputError(
            f"Unrecognised {kind} {value!r}; expected one of {', '.join(allowed)}."
        )
    LOGGER.warning("Unrecognised %s %r; neutral scheduling defaults will apply.", kind, value)
    return normalized


def parse_confidence(value: Optional[str], *, strict: bool = False) -> Optional[str]:
    return parse_tag("confidence", value, CONFIDENCE_LEVELS, strict=strict)


def parse_room(value: Optional[str], *, strict: bool = False) -> Optional[str]:
    return parse_tag("room", value, ROOMS, strict=strict)


def parse_difficulty(value: Optional[str], *, strict: bool = False) -> Optional[str]:
    return parse_tag("difficulty", value, DIFFICULTIES, strict=strict)


def parse_item_type(value: Optional[str]) -> str:
    """Item types select rows in the store, so they are always validated."""
    return cast(str, parse_tag("item type", value, ITEM_TYPES, strict=True))
