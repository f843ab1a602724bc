"""In-memory view of a meet's entries, kept in step with the database."""
from __future__ import annotations

import logging

from .errors import ErrorKind, PersistenceError
from .repository import EntryRepository
from .rules import EntryPayload, count_counted_entries

logger = logging.getLogger(__name__)


class EntryStore:
    """Authoritative local entry set for one meet.

    All mutation goes through :meth:`add`, :meth:`remove` and :meth:`update`.
    When a delete or update reports zero affected rows the local copy is
    changed anyway and ``pending_reconcile`` is raised; :meth:`reconcile`
    re-reads the meet and clears it.
    """

    def __init__(self, meet_id, repository: EntryRepository | None = None, *, load: bool = True):
        self.meet_id = meet_id
        self.repository = repository or EntryRepository()
        self.pending_reconcile = False
        self._entries: list = []
        if load:
            self.load()

    def load(self) -> list:
        self._entries = self.repository.list_for_meet(self.meet_id)
        return self.entries

    def reconcile(self) -> list:
        entries = self.load()
        if self.pending_reconcile:
            logger.info("reconciled meet %s: %d entries", self.meet_id, len(entries))
        self.pending_reconcile = False
        return entries

    @property
    def entries(self) -> list:
        return list(self._entries)

    def get(self, entry_id):
        for entry in self._entries:
            if entry.pk == entry_id:
                return entry
        return None

    def add(self, payload: EntryPayload | dict):
        fields = payload.as_fields() if isinstance(payload, EntryPayload) else dict(payload)
        if fields.get("meet_id") != self.meet_id:
            raise PersistenceError("Entry belongs to a different meet.")
        entry = self.repository.create(**fields)
        self._entries.append(entry)
        logger.debug("added entry %s to meet %s", entry.pk, self.meet_id)
        return entry

    def remove(self, entry_id) -> ErrorKind | None:
        deleted = self.repository.delete(entry_id)
        self._entries = [entry for entry in self._entries if entry.pk != entry_id]
        if deleted:
            logger.debug("removed entry %s from meet %s", entry_id, self.meet_id)
            return None
        logger.warning(
            "delete of entry %s in meet %s affected no rows; reconciling", entry_id, self.meet_id
        )
        self.pending_reconcile = True
        return ErrorKind.AMBIGUOUS_DENIAL

    def update(self, entry_id, **patch) -> ErrorKind | None:
        updated = self.repository.update(entry_id, **patch)
        if updated:
            fresh = self.repository.get(entry_id)
            self._entries = [fresh if entry.pk == entry_id else entry for entry in self._entries]
            return None
        logger.warning(
            "update of entry %s in meet %s affected no rows; reconciling", entry_id, self.meet_id
        )
        entry = self.get(entry_id)
        if entry is not None:
            for name, value in patch.items():
                setattr(entry, name, value)
        self.pending_reconcile = True
        return ErrorKind.AMBIGUOUS_DENIAL

    def restore(self, entry) -> None:
        """Put back a locally removed entry object without persisting it."""

        if self.get(entry.pk) is None:
            self._entries.append(entry)

    def by_event(self, event_id) -> list:
        return [entry for entry in self._entries if entry.event_id == event_id]

    def by_athlete(self, athlete_id) -> list:
        return [entry for entry in self._entries if entry.athlete_id == athlete_id]

    def count_for_athlete(self, athlete_id, exclude_relays: bool = False) -> int:
        """Distinct events for the athlete, counted the way the entry cap counts them."""

        return count_counted_entries(self._entries, athlete_id, relays_count=not exclude_relays)

    def has_pair(self, athlete_id, event_id) -> bool:
        return any(
            entry.athlete_id == athlete_id and entry.event_id == event_id for entry in self._entries
        )

    def unique_athlete_count(self) -> int:
        return len({entry.athlete_id for entry in self._entries})
