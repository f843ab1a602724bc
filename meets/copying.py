"""Copy every entry of one meet into another."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import PersistenceError
from .repository import EntryRepository
from .store import EntryStore

logger = logging.getLogger(__name__)


@dataclass
class CopyResult:
    added: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return self.added == 0 and not self.errors


def copy_all_from(
    source_meet_id,
    store: EntryStore,
    source_repository: EntryRepository | None = None,
) -> CopyResult:
    """Add the source meet's entries to ``store``'s meet, skipping athlete/event pairs it has.

    Adds run one after another; a failed add is recorded and the copy carries
    on, nothing already added is rolled back.
    """

    source_repository = source_repository or store.repository
    result = CopyResult()
    if source_meet_id == store.meet_id:
        return result

    seen = {(entry.athlete_id, entry.event_id) for entry in store.entries}
    for entry in source_repository.list_for_meet(source_meet_id):
        key = (entry.athlete_id, entry.event_id)
        if key in seen:
            result.skipped += 1
            continue
        try:
            store.add(
                {
                    "meet_id": store.meet_id,
                    "athlete_id": entry.athlete_id,
                    "event_id": entry.event_id,
                    "relay_leg": entry.relay_leg,
                    "relay_team": entry.relay_team,
                }
            )
        except PersistenceError as exc:
            result.errors.append(f"{entry.athlete} - {entry.event}: {exc.message}")
            continue
        seen.add(key)
        result.added += 1

    if result.is_noop:
        logger.info("copy from meet %s into meet %s added nothing", source_meet_id, store.meet_id)
    else:
        logger.info(
            "copied %d entries from meet %s into meet %s (%d skipped, %d failed)",
            result.added,
            source_meet_id,
            store.meet_id,
            result.skipped,
            len(result.errors),
        )
    return result
