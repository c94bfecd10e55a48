"""Tests for per-connection fan-out (no event-loop plugin: each test runs its own loop)."""

from __future__ import annotations

import asyncio
import json

from puzzle_svc.connections import ConnectionManager
from puzzle_svc.schemas import AdminDisconnected, ErrorMessage, PlayerLeft
from puzzle_svc.wire import to


class FakeSocket:
    """Records sent event names; optionally waits on a gate before every send."""

    def __init__(self, gate: asyncio.Event = None, fail: bool = False) -> None:
        self.sent = []
        self.gate = gate
        self.fail = fail

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        if self.gate is not None:
            await self.gate.wait()
        self.sent.append(json.loads(text)["event"])


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def test_slow_client_does_not_hold_up_others():
    async def scenario():
        connections = ConnectionManager()
        gate = asyncio.Event()
        slow, fast = FakeSocket(gate=gate), FakeSocket()
        connections.add("slow", slow)
        connections.add("fast", fast)

        connections.deliver([
            to({"slow", "fast"}, AdminDisconnected(message="gone")),
            to("fast", ErrorMessage(code="validation", message="bad")),
        ])
        await settle()
        assert fast.sent == ["admin_disconnected", "error"]
        assert slow.sent == []

        gate.set()
        await settle()
        assert slow.sent == ["admin_disconnected"]

        connections.discard("slow")
        connections.discard("fast")

    asyncio.run(scenario())


def test_frames_keep_command_order_per_connection():
    async def scenario():
        connections = ConnectionManager()
        sock = FakeSocket()
        connections.add("a", sock)
        connections.deliver([to("a", ErrorMessage(code="x", message="1"))])
        connections.deliver([to("a", PlayerLeft(playerId="p", nickname="n", players=[]))])
        connections.deliver([to("a", AdminDisconnected(message="3"))])
        await settle()
        assert sock.sent == ["error", "player_left", "admin_disconnected"]
        connections.discard("a")

    asyncio.run(scenario())


def test_failed_send_is_isolated():
    async def scenario():
        connections = ConnectionManager()
        broken, ok = FakeSocket(fail=True), FakeSocket()
        connections.add("broken", broken)
        connections.add("ok", ok)
        connections.deliver([to({"broken", "ok"}, AdminDisconnected(message="x"))])
        await settle()
        connections.deliver([to({"broken", "ok"}, AdminDisconnected(message="y"))])
        await settle()
        assert ok.sent == ["admin_disconnected", "admin_disconnected"]
        assert broken.sent == []

        connections.discard("broken")
        assert "broken" not in connections
        assert len(connections) == 1
        connections.discard("ok")

    asyncio.run(scenario())


def test_unknown_recipients_are_skipped():
    async def scenario():
        connections = ConnectionManager()
        connections.deliver([to("ghost", AdminDisconnected(message="x"))])
        assert len(connections) == 0

    asyncio.run(scenario())
