"""Error kinds and exceptions raised by the meet entry core."""
from __future__ import annotations

from django.db import models


class ErrorKind(models.TextChoices):
    EVENT_INACTIVE = "EventInactive", "This event is turned off for this meet."
    ATHLETE_OVER_LIMIT = "AthleteOverLimit", "This athlete already has the maximum number of events."
    DUPLICATE_ENTRY = "DuplicateEntry", "This athlete is already entered in this event."
    PERSISTENCE_ERROR = "PersistenceError", "The change could not be saved."
    AMBIGUOUS_DENIAL = "AmbiguousDenial", "The change was not confirmed; refreshing entries."
    PARSE_ROW_ERROR = "ParseRowError", "The row could not be read."


class MeetEntryError(Exception):
    """Base class for errors carrying an :class:`ErrorKind`."""

    kind: ErrorKind = ErrorKind.PERSISTENCE_ERROR

    def __init__(self, message: str | None = None, *, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message or self.kind.label)

    @property
    def message(self) -> str:
        return str(self)


class AssignmentRejected(MeetEntryError):
    """A rule violation detected before any mutation happened."""

    kind = ErrorKind.ATHLETE_OVER_LIMIT


class PersistenceError(MeetEntryError):
    """A create, update or delete failed outright."""

    kind = ErrorKind.PERSISTENCE_ERROR
