import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "team_platform.settings")

import django

django.setup()

from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase
from django.urls import re_path

from meets.consumers import DragConsumer


class StubDragConsumer(DragConsumer):
    can_edit_result = True
    moves = []

    async def resolve_can_edit(self):
        return self.can_edit_result

    async def execute_move(self, intent):
        StubDragConsumer.moves.append(intent)
        return {"moved": True, "kind": None, "detail": None}


class ReadOnlyDragConsumer(StubDragConsumer):
    can_edit_result = False


def application(consumer):
    return URLRouter([re_path(r"^ws/meets/(?P<meet_id>\d+)/drag/$", consumer.as_asgi())])


class DragConsumerTests(SimpleTestCase):
    def setUp(self):
        StubDragConsumer.moves = []

    async def connect(self, consumer=StubDragConsumer):
        communicator = WebsocketCommunicator(application(consumer), "/ws/meets/7/drag/")
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def test_long_press_drag_executes_move(self):
        communicator = await self.connect()
        self.assertEqual(await communicator.receive_json_from(), {"type": "ready", "can_edit": True})

        await communicator.send_json_to(
            {"type": "register_zone", "event_id": 1, "left": 0, "top": 0, "right": 300, "bottom": 100}
        )
        await communicator.send_json_to(
            {"type": "register_zone", "event_id": 2, "left": 0, "top": 200, "right": 300, "bottom": 300}
        )
        await communicator.send_json_to(
            {"type": "pointer_down", "entry_id": 42, "event_id": 1, "x": 50, "y": 50, "t": 0}
        )
        self.assertTrue(await communicator.receive_nothing())

        await communicator.send_json_to({"type": "tick", "t": 450})
        self.assertEqual(
            await communicator.receive_json_from(),
            {"type": "drag_start", "entry": 42, "source_event_id": 1},
        )
        self.assertEqual((await communicator.receive_json_from())["type"], "haptic")

        await communicator.send_json_to({"type": "pointer_move", "x": 50, "y": 250, "t": 600})
        await communicator.send_json_to({"type": "frame"})
        self.assertEqual(await communicator.receive_json_from(), {"type": "position", "x": 50.0, "y": 250.0})
        self.assertEqual(await communicator.receive_json_from(), {"type": "hover", "event_id": 2})

        await communicator.send_json_to({"type": "pointer_up", "t": 700})
        self.assertEqual(await communicator.receive_json_from(), {"type": "drag_end", "target_event_id": 2})
        replies = [await communicator.receive_json_from(), await communicator.receive_json_from()]
        self.assertEqual(
            sorted(reply["type"] for reply in replies), ["entries_changed", "move_result"]
        )

        self.assertEqual(len(StubDragConsumer.moves), 1)
        intent = StubDragConsumer.moves[0]
        self.assertEqual((intent.entry, intent.source_event_id, intent.target_event_id), (42, 1, 2))
        await communicator.disconnect()

    async def test_quick_release_does_nothing(self):
        communicator = await self.connect()
        await communicator.receive_json_from()
        await communicator.send_json_to(
            {"type": "pointer_down", "entry_id": 42, "event_id": 1, "x": 50, "y": 50, "t": 0}
        )
        await communicator.send_json_to({"type": "pointer_up", "t": 100})
        self.assertTrue(await communicator.receive_nothing())
        self.assertEqual(StubDragConsumer.moves, [])
        await communicator.disconnect()

    async def test_read_only_viewer_cannot_drag(self):
        communicator = await self.connect(ReadOnlyDragConsumer)
        self.assertEqual(await communicator.receive_json_from(), {"type": "ready", "can_edit": False})
        await communicator.send_json_to(
            {"type": "pointer_down", "entry_id": 42, "event_id": 1, "x": 0, "y": 0, "t": 0}
        )
        self.assertEqual(await communicator.receive_json_from(), {"type": "ignored", "entry_id": 42})
        await communicator.disconnect()

    async def test_unknown_message_type(self):
        communicator = await self.connect()
        await communicator.receive_json_from()
        await communicator.send_json_to({"type": "explode"})
        reply = await communicator.receive_json_from()
        self.assertEqual(reply["type"], "error")
        await communicator.disconnect()

    async def test_malformed_message_keeps_socket_open(self):
        communicator = await self.connect()
        await communicator.receive_json_from()
        await communicator.send_json_to({"type": "pointer_down", "event_id": "not-a-number"})
        self.assertEqual((await communicator.receive_json_from())["type"], "error")
        await communicator.send_json_to({"type": "register_zone", "event_id": 1})
        self.assertEqual((await communicator.receive_json_from())["type"], "error")

        await communicator.send_json_to(
            {"type": "pointer_down", "entry_id": 42, "event_id": 1, "x": 0, "y": 0, "t": 0}
        )
        self.assertTrue(await communicator.receive_nothing())
        await communicator.disconnect()
