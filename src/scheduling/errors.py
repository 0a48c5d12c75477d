"""Exceptions raised by the review scheduling layer."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for review scheduling failures."""


class InvalidInputError(SchedulingError, ValueError):
    """A confidence, room, or difficulty tag was not recognised."""


class StorageError(SchedulingError):
    """Reading or writing review schedules failed in the database layer."""


class UnknownItemError(SchedulingError, LookupError):
    """An attempt referenced an item the item lookup does not know about."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item {item_id!r} could not be found.")
        self.item_id = item_id
