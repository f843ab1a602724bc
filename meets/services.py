"""Assignment and move workflows built on the rule engine and entry store."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable

from django.db import transaction

from . import models
from .activation import EventActivationOverlay
from .drag import MoveIntent
from .errors import AssignmentRejected, ErrorKind, PersistenceError
from .rules import AssignmentOptions, RelayLegCounter, can_assign, relay_team_for
from .store import EntryStore

logger = logging.getLogger(__name__)

__all__ = [
    "BatchAssignResult",
    "MoveResult",
    "assign_athlete",
    "assign_batch",
    "assign_single",
    "build_options",
    "execute_move",
]


@dataclass
class BatchAssignResult:
    created: list = field(default_factory=list)
    rejected: list[tuple[object, ErrorKind]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MoveResult:
    moved: bool
    removed: object | None = None
    added: object | None = None
    reason: ErrorKind | None = None


def build_options(
    overlay: EventActivationOverlay | None,
    *,
    relays_count_toward_limit: bool | None = None,
    **extra,
) -> AssignmentOptions:
    """Return rule options with the meet's inactive events filled in."""

    options = AssignmentOptions(**extra)
    if relays_count_toward_limit is not None:
        options = replace(options, relays_count_toward_limit=relays_count_toward_limit)
    if overlay is not None:
        options = replace(options, inactive_event_ids=overlay.inactive_event_ids)
    return options


def assign_athlete(
    store: EntryStore,
    athlete: models.Athlete,
    event: models.TrackEvent,
    meet: models.Meet,
    options: AssignmentOptions | None = None,
):
    """Validate and persist one entry; raise :class:`AssignmentRejected` on a rule violation."""

    decision = can_assign(athlete, event, meet, store.entries, options)
    if not decision.allowed:
        logger.info(
            "rejected %s for athlete %s event %s meet %s",
            decision.reason,
            athlete.pk,
            event.pk,
            meet.pk,
        )
        raise AssignmentRejected(kind=decision.reason)
    return store.add(decision.payload)


def assign_single(
    store: EntryStore,
    athlete: models.Athlete,
    event: models.TrackEvent,
    meet: models.Meet,
    options: AssignmentOptions | None = None,
    *,
    leg_counter: RelayLegCounter | None = None,
):
    """Assign one athlete; relay legs come from ``leg_counter``, which advances on success."""

    options = options or AssignmentOptions()
    if event.is_relay and leg_counter is not None:
        options = replace(
            options,
            relay_leg=leg_counter.current,
            relay_team=options.relay_team or relay_team_for(event),
        )
    entry = assign_athlete(store, athlete, event, meet, options)
    if event.is_relay and leg_counter is not None:
        leg_counter.advance()
    return entry


def assign_batch(
    store: EntryStore,
    athletes: Iterable[models.Athlete],
    event: models.TrackEvent,
    meet: models.Meet,
    options: AssignmentOptions | None = None,
) -> BatchAssignResult:
    """Select-all flow: assign each athlete in turn, leaving relay legs unset."""

    options = replace(options or AssignmentOptions(), relay_leg=None)
    result = BatchAssignResult()
    for athlete in athletes:
        try:
            entry = assign_athlete(store, athlete, event, meet, options)
        except AssignmentRejected as exc:
            result.rejected.append((athlete, exc.kind))
            continue
        except PersistenceError as exc:
            result.errors.append(f"{athlete}: {exc.message}")
            continue
        result.created.append(entry)
    return result


def execute_move(
    store: EntryStore,
    intent: MoveIntent,
    meet: models.Meet,
    options: AssignmentOptions | None = None,
) -> MoveResult:
    """Carry out a drag move: validate the target, then remove and re-add.

    The remove and the add share a transaction; if the add fails the removal
    is rolled back and the local copy restored, so an entry is never lost
    between events.
    """

    if intent.target_event_id == intent.source_event_id:
        return MoveResult(moved=False)

    entry_id = getattr(intent.entry, "pk", intent.entry)
    entry = store.get(entry_id)
    if entry is None:
        raise PersistenceError("That entry no longer exists.")
    # The intent's source comes from the client and may be stale.
    if intent.target_event_id == entry.event_id:
        return MoveResult(moved=False)

    target = models.TrackEvent.objects.filter(pk=intent.target_event_id).first()
    if target is None:
        raise PersistenceError("The target event does not exist.")

    options = options or AssignmentOptions()
    if target.is_relay:
        relay_leg = entry.relay_leg if entry.event.is_relay else None
        options = replace(options, relay_leg=relay_leg, relay_team=relay_team_for(target))

    others = [other for other in store.entries if other.pk != entry.pk]
    decision = can_assign(entry.athlete, target, meet, others, options)
    if not decision.allowed:
        return MoveResult(moved=False, reason=decision.reason)

    try:
        with transaction.atomic():
            outcome = store.remove(entry.pk)
            if outcome is ErrorKind.AMBIGUOUS_DENIAL:
                raise PersistenceError(kind=ErrorKind.AMBIGUOUS_DENIAL)
            added = store.add(decision.payload)
    except PersistenceError as exc:
        store.restore(entry)
        store.reconcile()
        logger.warning("move of entry %s to event %s failed: %s", entry.pk, target.pk, exc)
        return MoveResult(moved=False, reason=exc.kind)

    logger.info(
        "moved athlete %s from event %s to event %s in meet %s",
        entry.athlete_id,
        intent.source_event_id,
        target.pk,
        meet.pk,
    )
    return MoveResult(moved=True, removed=entry, added=added)
