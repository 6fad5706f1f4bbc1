"""Tests for socket bookkeeping in the connection manager."""

import asyncio

import orjson

from expedition_engine.constants import EVENT_SAY
from expedition_engine.models import Outbound
from expedition_engine.rules import create_rules
from expedition_engine.ws.server import ConnectionManager, GameServer


class FakeSocket:
    def __init__(self, broken=False):
        self.broken = broken
        self.sent = []

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(orjson.loads(text))


def test_failed_send_releases_seat():
    server = GameServer(create_rules())
    room, _ = server.lifecycle.create_room("a")
    server.lifecycle.join("b", room.code)
    good, broken = FakeSocket(), FakeSocket(broken=True)
    server.manager.connect("a", good)
    server.manager.connect("b", broken)

    asyncio.run(server.deliver([(room.code, Outbound(EVENT_SAY, {"id": "a", "text": "Hi"}))]))

    assert "b" not in server.manager.connections
    assert server.lifecycle.room_of("b") is None
    assert list(room.players) == ["a"]
    assert [m["type"] for m in good.sent] == ["say", "left"]
    assert good.sent[-1]["id"] == "b"


def test_failed_snapshot_releases_seat():
    server = GameServer(create_rules())
    room, _ = server.lifecycle.create_room("a")
    server.lifecycle.join("b", room.code)
    server.manager.connect("a", FakeSocket())
    server.manager.connect("b", FakeSocket(broken=True))

    async def scenario():
        assert server.manager.send_volatile("b", b'{"type":"state","players":{}}')
        await asyncio.gather(*server.manager._tasks)

    asyncio.run(scenario())
    assert server.lifecycle.room_of("b") is None
    assert "b" not in room.players


def test_snapshot_sends_are_held_until_done():
    manager = ConnectionManager()
    socket = FakeSocket()
    manager.connect("a", socket)

    async def scenario():
        assert manager.send_volatile("a", b'{"type":"state","players":{}}')
        # Previous snapshot still in flight
        assert not manager.send_volatile("a", b'{"type":"state","players":{}}')
        assert len(manager._tasks) == 1
        await asyncio.gather(*manager._tasks)
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert manager._tasks == set()
    assert len(socket.sent) == 1
