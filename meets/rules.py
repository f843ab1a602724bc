"""Rules deciding whether an athlete may be entered into an event."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from django.conf import settings

from .errors import ErrorKind
from .models import RELAY_LEG_MAX, RELAY_LEG_MIN, MeetEntry

__all__ = [
    "AssignmentDecision",
    "AssignmentOptions",
    "EntryPayload",
    "RelayLegCounter",
    "can_assign",
    "count_counted_entries",
    "default_individual_limit",
    "relay_team_for",
]


def default_individual_limit() -> int:
    return int(getattr(settings, "MEETS_INDIVIDUAL_EVENT_LIMIT", 4))


def default_relays_count_toward_limit() -> bool:
    return bool(getattr(settings, "MEETS_RELAYS_COUNT_TOWARD_LIMIT", False))


@dataclass(frozen=True)
class EntryPayload:
    """Fields of a meet entry waiting to be persisted."""

    meet_id: int
    athlete_id: int
    event_id: int
    relay_leg: int | None = None
    relay_team: str | None = None

    def as_fields(self) -> dict[str, object]:
        return {
            "meet_id": self.meet_id,
            "athlete_id": self.athlete_id,
            "event_id": self.event_id,
            "relay_leg": self.relay_leg,
            "relay_team": self.relay_team,
        }


@dataclass(frozen=True)
class AssignmentOptions:
    relays_count_toward_limit: bool = field(default_factory=default_relays_count_toward_limit)
    individual_limit: int = field(default_factory=default_individual_limit)
    inactive_event_ids: frozenset = frozenset()
    relay_team: str | None = None
    relay_leg: int | None = None


@dataclass(frozen=True)
class AssignmentDecision:
    allowed: bool
    reason: ErrorKind | None = None
    payload: EntryPayload | None = None

    def __bool__(self) -> bool:
        return self.allowed


def relay_team_for(event) -> str:
    """Return the relay squad label implied by the event's short name."""

    if "Alt" in (event.short_name or ""):
        return MeetEntry.RelayTeam.ALT
    return MeetEntry.RelayTeam.A


def _entry_is_relay(entry) -> bool:
    event = getattr(entry, "event", None)
    return bool(getattr(event, "is_relay", False))


def count_counted_entries(entries: Iterable, athlete_id, *, relays_count: bool) -> int:
    """Count entries for an athlete that apply toward the individual cap.

    Duplicate (athlete, event) pairs are counted once.
    """

    seen: set[tuple] = set()
    for entry in entries:
        if entry.athlete_id != athlete_id:
            continue
        relay = _entry_is_relay(entry)
        if relay and not relays_count:
            continue
        key = (entry.event_id, getattr(entry, "relay_team", None)) if relay else (entry.event_id,)
        seen.add(key)
    return len(seen)


def can_assign(
    athlete,
    event,
    meet,
    existing_entries: Iterable,
    options: AssignmentOptions | None = None,
) -> AssignmentDecision:
    """Decide whether ``athlete`` may be entered into ``event`` for ``meet``.

    ``existing_entries`` are the meet's current entries with their ``event``
    available. Nothing is persisted; on success the returned decision carries
    the payload to hand to the entry store.
    """

    if meet is None:
        raise ValueError("A meet is required.")
    if event is None:
        raise ValueError("An event from the catalog is required.")

    options = options or AssignmentOptions()
    entries = list(existing_entries)

    if event.pk in options.inactive_event_ids:
        return AssignmentDecision(False, ErrorKind.EVENT_INACTIVE)

    if not event.is_relay:
        already_in = any(
            entry.athlete_id == athlete.pk and entry.event_id == event.pk for entry in entries
        )
        if already_in:
            return AssignmentDecision(False, ErrorKind.DUPLICATE_ENTRY)

        counted = count_counted_entries(
            entries, athlete.pk, relays_count=options.relays_count_toward_limit
        )
        if counted >= options.individual_limit:
            return AssignmentDecision(False, ErrorKind.ATHLETE_OVER_LIMIT)

        payload = EntryPayload(meet_id=meet.pk, athlete_id=athlete.pk, event_id=event.pk)
        return AssignmentDecision(True, payload=payload)

    relay_leg = options.relay_leg
    if relay_leg is not None and not RELAY_LEG_MIN <= relay_leg <= RELAY_LEG_MAX:
        raise ValueError(f"Relay leg must be between {RELAY_LEG_MIN} and {RELAY_LEG_MAX}.")
    payload = EntryPayload(
        meet_id=meet.pk,
        athlete_id=athlete.pk,
        event_id=event.pk,
        relay_leg=relay_leg,
        relay_team=options.relay_team or relay_team_for(event),
    )
    return AssignmentDecision(True, payload=payload)


class RelayLegCounter:
    """Next relay leg for the one-athlete-at-a-time assign flow."""

    def __init__(self, current: int = RELAY_LEG_MIN):
        self.current = min(max(int(current), RELAY_LEG_MIN), RELAY_LEG_MAX)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"RelayLegCounter(current={self.current})"

    def set(self, leg: int) -> None:
        if not RELAY_LEG_MIN <= leg <= RELAY_LEG_MAX:
            raise ValueError(f"Relay leg must be between {RELAY_LEG_MIN} and {RELAY_LEG_MAX}.")
        self.current = leg

    def advance(self) -> int:
        self.current = min(self.current + 1, RELAY_LEG_MAX)
        return self.current
