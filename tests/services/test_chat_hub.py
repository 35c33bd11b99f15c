"""Room registry and best-effort broadcast, with in-process fake connections."""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

import pytest

from lms.services.chat_hub import ChatHub


class _FakeConnection:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.frames: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.frames.append(data)


def test_broadcast_reaches_only_room_members() -> None:
    hub = ChatHub()
    room, other_room = uuid4(), uuid4()
    a, b, c = _FakeConnection(), _FakeConnection(), _FakeConnection()
    hub.connect("a", a)
    hub.connect("b", b)
    hub.connect("c", c)
    hub.join(room, "a")
    hub.join(room, "b")
    hub.join(other_room, "c")

    delivered = asyncio.run(hub.broadcast(room, {"type": "Ping"}))

    assert delivered == 2
    assert a.frames == [{"type": "Ping"}]
    assert b.frames == [{"type": "Ping"}]
    assert c.frames == []


def test_failed_send_drops_connection_and_continues() -> None:
    hub = ChatHub()
    room = uuid4()
    broken, healthy = _FakeConnection(fail=True), _FakeConnection()
    hub.connect("broken", broken)
    hub.connect("healthy", healthy)
    hub.join(room, "broken")
    hub.join(room, "healthy")

    delivered = asyncio.run(hub.broadcast(room, {"type": "Ping"}))

    assert delivered == 1
    assert healthy.frames == [{"type": "Ping"}]
    assert hub.members(room) == frozenset({"healthy"})


def test_disconnect_removes_from_every_room() -> None:
    hub = ChatHub()
    first, second = uuid4(), uuid4()
    hub.connect("x", _FakeConnection())
    hub.join(first, "x")
    hub.join(second, "x")

    hub.disconnect("x")

    assert hub.members(first) == frozenset()
    assert hub.members(second) == frozenset()
    # Idempotent
    hub.disconnect("x")


def test_join_is_idempotent() -> None:
    hub = ChatHub()
    room = uuid4()
    conn = _FakeConnection()
    hub.connect("x", conn)
    hub.join(room, "x")
    hub.join(room, "x")

    assert asyncio.run(hub.broadcast(room, {"n": 1})) == 1
    assert conn.frames == [{"n": 1}]


def test_join_requires_known_connection() -> None:
    with pytest.raises(KeyError):
        ChatHub().join(uuid4(), "nobody")


def test_broadcast_to_empty_room() -> None:
    assert asyncio.run(ChatHub().broadcast(uuid4(), {"type": "Ping"})) == 0
