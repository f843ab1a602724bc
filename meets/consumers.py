"""Websocket consumer driving drag-to-move for a meet's entries."""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from . import services
from .access import activation_repository_for, editable_teams, entry_repository_for
from .activation import EventActivationOverlay
from .drag import DragCoordinator, DragSignal, LongPressGesture, Point, Rect
from .errors import PersistenceError
from .models import Meet
from .store import EntryStore

logger = logging.getLogger(__name__)


def _point(content) -> Point:
    return Point(float(content.get("x", 0)), float(content.get("y", 0)))


def _seconds(content) -> float:
    # Clients send millisecond timestamps.
    return float(content.get("t", 0)) / 1000.0


class DragConsumer(AsyncJsonWebsocketConsumer):
    """One long-press gesture and drag context per connected client.

    Pointer input arrives as JSON messages; drag signals are sent back as they
    are emitted. A completed move is executed server side and every client of
    the meet is told to refresh its entries.
    """

    async def connect(self):
        self.meet_id = int(self.scope["url_route"]["kwargs"]["meet_id"])
        self.group_name = f"meet_entries_{self.meet_id}"
        self.can_edit = await self.resolve_can_edit()
        self.signals: list[DragSignal] = []
        self.coordinator = DragCoordinator()
        self.coordinator.subscribe(self.signals.append)
        self.gesture = LongPressGesture(self.coordinator, can_edit=self.can_edit)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_json({"type": "ready", "can_edit": self.can_edit})

    async def disconnect(self, code):  # pragma: no cover - infrastructure
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        kind = content.get("type") if isinstance(content, dict) else None
        handler = getattr(self, f"handle_{kind}", None) if isinstance(kind, str) else None
        if handler is None:
            await self.send_json({"type": "error", "detail": f"Unknown message type: {kind}"})
            return
        try:
            intent = handler(content)
        except (KeyError, TypeError, ValueError) as exc:
            logger.info("malformed %s message in meet %s: %r", kind, self.meet_id, exc)
            await self.send_json({"type": "error", "detail": f"Malformed {kind} message."})
            return
        await self.flush_signals()
        if intent is not None:
            await self.perform_move(intent)

    def handle_register_zone(self, content):
        rect = Rect(
            float(content["left"]),
            float(content["top"]),
            float(content["right"]),
            float(content["bottom"]),
        )
        self.coordinator.register_drop_zone(int(content["event_id"]), rect)

    def handle_unregister_zone(self, content):
        self.coordinator.unregister_drop_zone(int(content["event_id"]))

    def handle_viewport(self, content):
        self.coordinator.viewport_height = float(content["height"])

    def handle_pointer_down(self, content):
        accepted = self.gesture.pointer_down(
            int(content["entry_id"]),
            int(content["event_id"]),
            _point(content),
            _seconds(content),
        )
        if not accepted:
            self.signals.append(DragSignal("ignored", {"entry_id": content.get("entry_id")}))

    def handle_pointer_move(self, content):
        self.gesture.pointer_move(_point(content), _seconds(content))

    def handle_tick(self, content):
        self.gesture.poll(_seconds(content))

    def handle_frame(self, content):
        self.coordinator.frame()

    def handle_pointer_up(self, content):
        return self.gesture.pointer_up(_seconds(content))

    def handle_pointer_cancel(self, content):
        self.gesture.pointer_cancel()

    async def flush_signals(self):
        pending, self.signals[:] = list(self.signals), []
        for signal in pending:
            payload = {key: value for key, value in signal.payload.items() if key != "intent"}
            intent = signal.payload.get("intent")
            if intent is not None:
                payload["target_event_id"] = intent.target_event_id
            await self.send_json({"type": signal.kind, **payload})

    async def perform_move(self, intent):
        result = await self.execute_move(intent)
        if result.get("moved"):
            await self.channel_layer.group_send(
                self.group_name,
                {"type": "entries.changed", "event": {"type": "entries_changed", "meet": self.meet_id}},
            )
        await self.send_json({"type": "move_result", **result})

    async def entries_changed(self, event):
        await self.send_json(event["event"])

    @database_sync_to_async
    def resolve_can_edit(self) -> bool:
        user = self.scope.get("user")
        meet = Meet.objects.filter(pk=self.meet_id).only("team_id").first()
        if meet is None or user is None:
            return False
        return editable_teams(user).filter(pk=meet.team_id).exists()

    @database_sync_to_async
    def execute_move(self, intent) -> dict:
        user = self.scope.get("user")
        meet = Meet.objects.get(pk=self.meet_id)
        store = EntryStore(meet.pk, entry_repository_for(user))
        overlay = EventActivationOverlay(meet.pk, activation_repository_for(user))
        try:
            result = services.execute_move(store, intent, meet, services.build_options(overlay))
        except PersistenceError as exc:
            logger.warning("drag move in meet %s failed: %s", meet.pk, exc)
            return {"moved": False, "kind": exc.kind, "detail": exc.message}
        return {
            "moved": result.moved,
            "kind": result.reason,
            "detail": result.reason.label if result.reason else None,
        }
