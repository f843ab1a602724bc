"""Long-press drag handling for moving entries between event cards.

Two pieces cooperate here. :class:`LongPressGesture` turns raw pointer input
into drag lifecycle calls and decides between a tap, a scroll and a drag.
:class:`DragCoordinator` is the shared drag context: it owns the drop zones,
tracks the hovered event, produces auto-scroll steps and, when the pointer is
released, the :class:`MoveIntent`. Neither touches the database; executing a
move intent is up to the caller.

Time is always passed in by the caller (seconds, any monotonic origin), so
every transition can be driven from tests without a real clock.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable

from django.conf import settings


DRAG_DEFAULTS = {
    "LONG_PRESS_DELAY": 0.4,
    "MOVE_THRESHOLD": 10,
    "EDGE_MARGIN": 50,
    "SCROLL_STEP": 10,
    "HAPTIC_MS": 50,
}


def drag_setting(name: str):
    overrides = getattr(settings, "MEETS_DRAG", {}) or {}
    return overrides.get(name, DRAG_DEFAULTS[name])


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    def contains(self, point: Point) -> bool:
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom


@dataclass(frozen=True)
class MoveIntent:
    entry: object
    source_event_id: object
    target_event_id: object


@dataclass(frozen=True)
class DragSignal:
    kind: str
    payload: dict = field(default_factory=dict)


Listener = Callable[[DragSignal], None]


class DragCoordinator:
    """Single drag context shared by every drop zone of one meet view."""

    def __init__(
        self,
        *,
        viewport_height: float | None = None,
        edge_margin: float | None = None,
        scroll_step: float | None = None,
    ):
        self.viewport_height = viewport_height
        self.edge_margin = edge_margin if edge_margin is not None else drag_setting("EDGE_MARGIN")
        self.scroll_step = scroll_step if scroll_step is not None else drag_setting("SCROLL_STEP")
        self._zones: dict[object, Rect] = {}
        self._listeners: list[Listener] = []
        self._pending: Point | None = None
        self._reset()

    def _reset(self) -> None:
        self.entry = None
        self.source_event_id = None
        self.hover_event_id = None
        self.position = Point(0, 0)
        self._pending = None

    @property
    def is_dragging(self) -> bool:
        return self.entry is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, **payload) -> None:
        signal = DragSignal(kind, payload)
        for listener in list(self._listeners):
            listener(signal)

    def register_drop_zone(self, event_id, rect: Rect) -> None:
        self._zones[event_id] = rect

    def unregister_drop_zone(self, event_id) -> None:
        self._zones.pop(event_id, None)
        if self.hover_event_id == event_id:
            self.hover_event_id = None

    @property
    def drop_zones(self) -> dict:
        return dict(self._zones)

    def hit_test(self, point: Point):
        """Return the event id whose card contains ``point``; later zones win overlaps."""

        found = None
        for event_id, rect in self._zones.items():
            if rect.contains(point):
                found = event_id
        return found

    def scroll_delta(self, point: Point) -> float:
        if self.viewport_height is None:
            return 0
        if point.y < self.edge_margin:
            return -self.scroll_step
        if point.y > self.viewport_height - self.edge_margin:
            return self.scroll_step
        return 0

    def on_drag_start(self, entry, source_event_id) -> bool:
        if self.is_dragging:
            return False
        self._reset()
        self.entry = entry
        self.source_event_id = source_event_id
        self._emit("drag_start", entry=entry, source_event_id=source_event_id)
        self._emit("haptic", duration_ms=drag_setting("HAPTIC_MS"))
        return True

    def on_drag_move(self, position: Point) -> None:
        if not self.is_dragging:
            return
        # Only the latest position per frame matters.
        self._pending = position

    def frame(self) -> None:
        """Apply the most recent pointer position, as on an animation frame."""

        if not self.is_dragging or self._pending is None:
            return
        self.position = self._pending
        self._pending = None
        self._emit("position", x=self.position.x, y=self.position.y)

        hovered = self.hit_test(self.position)
        if hovered != self.hover_event_id:
            self.hover_event_id = hovered
            self._emit("hover", event_id=hovered)

        delta = self.scroll_delta(self.position)
        if delta:
            self._emit("scroll", dy=delta)

    def on_drag_end(self) -> MoveIntent | None:
        if not self.is_dragging:
            return None
        self.frame()
        intent = None
        if self.hover_event_id is not None and self.hover_event_id != self.source_event_id:
            intent = MoveIntent(self.entry, self.source_event_id, self.hover_event_id)
        self._reset()
        self._emit("drag_end", intent=intent)
        return intent

    def cancel(self) -> None:
        if not self.is_dragging:
            return
        self._reset()
        self._emit("drag_end", intent=None)


class GesturePhase(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    DRAGGING = "dragging"


class LongPressGesture:
    """Pointer state machine feeding a :class:`DragCoordinator`.

    A press becomes a drag only after ``delay`` seconds without moving more
    than ``move_threshold`` pixels on either axis. Releasing early or moving
    too far first returns to idle without side effects.
    """

    def __init__(
        self,
        coordinator: DragCoordinator,
        *,
        can_edit: bool = True,
        disabled: bool = False,
        delay: float | None = None,
        move_threshold: float | None = None,
    ):
        self.coordinator = coordinator
        self.can_edit = can_edit
        self.disabled = disabled
        self.delay = delay if delay is not None else drag_setting("LONG_PRESS_DELAY")
        self.move_threshold = (
            move_threshold if move_threshold is not None else drag_setting("MOVE_THRESHOLD")
        )
        self._clear()

    def _clear(self) -> None:
        self.phase = GesturePhase.IDLE
        self.entry = None
        self.source_event_id = None
        self.start_position: Point | None = None
        self.pressed_at: float | None = None

    def pointer_down(self, entry, source_event_id, position: Point, now: float) -> bool:
        if self.disabled or not self.can_edit:
            return False
        if self.phase is not GesturePhase.IDLE or self.coordinator.is_dragging:
            return False
        self.phase = GesturePhase.ARMED
        self.entry = entry
        self.source_event_id = source_event_id
        self.start_position = position
        self.pressed_at = now
        return True

    def poll(self, now: float) -> bool:
        """Fire the long-press if its delay has elapsed; return True when a drag starts."""

        if self.phase is not GesturePhase.ARMED:
            return False
        if now - self.pressed_at < self.delay:
            return False
        if not self.coordinator.on_drag_start(self.entry, self.source_event_id):
            self._clear()
            return False
        self.phase = GesturePhase.DRAGGING
        self.coordinator.on_drag_move(self.start_position)
        return True

    def _moved_too_far(self, position: Point) -> bool:
        dx = abs(position.x - self.start_position.x)
        dy = abs(position.y - self.start_position.y)
        return dx > self.move_threshold or dy > self.move_threshold

    def pointer_move(self, position: Point, now: float) -> None:
        if self.phase is GesturePhase.ARMED:
            self.poll(now)
        if self.phase is GesturePhase.ARMED:
            if self._moved_too_far(position):
                self._clear()
            return
        if self.phase is GesturePhase.DRAGGING:
            self.coordinator.on_drag_move(position)

    def pointer_up(self, now: float) -> MoveIntent | None:
        if self.phase is GesturePhase.ARMED:
            self.poll(now)
        intent = None
        if self.phase is GesturePhase.DRAGGING:
            intent = self.coordinator.on_drag_end()
        self._clear()
        return intent

    def pointer_cancel(self) -> None:
        if self.phase is GesturePhase.DRAGGING:
            self.coordinator.cancel()
        self._clear()
