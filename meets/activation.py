"""Per-meet event activation overrides."""
from __future__ import annotations

import logging
from typing import Iterable

from .repository import ActivationRepository

logger = logging.getLogger(__name__)


class EventActivationOverlay:
    """Tracks which catalog events are switched off for a single meet.

    An event is active unless an override row exists for it.
    """

    def __init__(self, meet_id, repository: ActivationRepository | None = None):
        self.meet_id = meet_id
        self.repository = repository or ActivationRepository()
        self._inactive: set = set()
        self.reload()

    def reload(self) -> None:
        self._inactive = self.repository.inactive_event_ids(self.meet_id)

    @property
    def inactive_event_ids(self) -> frozenset:
        return frozenset(self._inactive)

    def is_active(self, event_id) -> bool:
        return event_id not in self._inactive

    def toggle(self, event_id) -> bool:
        """Flip the event's state with a single write and return the new state."""

        if self.is_active(event_id):
            self.repository.create(meet_id=self.meet_id, event_id=event_id)
            self._inactive.add(event_id)
            logger.info("event %s deactivated for meet %s", event_id, self.meet_id)
            return False

        deleted = self.repository.delete_override(self.meet_id, event_id)
        self._inactive.discard(event_id)
        if not deleted:
            logger.warning(
                "re-activating event %s for meet %s affected no rows; reconciling",
                event_id,
                self.meet_id,
            )
            self.reload()
            return self.is_active(event_id)
        logger.info("event %s re-activated for meet %s", event_id, self.meet_id)
        return True


def visible_events(events: Iterable, overlay: EventActivationOverlay, *, is_coach: bool) -> list:
    """Events a viewer should see; non-coaches do not see inactive events."""

    if is_coach:
        return list(events)
    return [event for event in events if overlay.is_active(event.pk)]
