"""
Tests for motion integration and the tick loop.
"""

import asyncio
import random

import pytest

from expedition_engine import engine
from expedition_engine.constants import EVENT_STATE
from expedition_engine.tick import TickEngine, integrate, snapshot_event


def test_positions_stay_inside_map(full_room, rules):
    """Arbitrary inputs over many ticks never leave [radius, map_size - radius]."""
    rng = random.Random(1)
    lo = rules.player_radius
    hi = rules.map_size - rules.player_radius
    for _ in range(500):
        for pid in full_room.players:
            engine.move(full_room, pid, {
                "up": rng.random() < 0.5,
                "down": rng.random() < 0.5,
                "left": rng.random() < 0.5,
                "right": rng.random() < 0.5,
            })
        integrate(full_room, rng.uniform(0, rules.max_tick_dt))
        for p in full_room.players.values():
            assert lo <= p.x <= hi
            assert lo <= p.y <= hi


def test_integrate_moves_by_speed(full_room, rules):
    player = full_room.players["p1"]
    start_x, start_y = player.x, player.y
    engine.move(full_room, "p1", {"right": True})
    integrate(full_room, 0.1)
    assert player.x == pytest.approx(start_x + rules.player_speed * 0.1)
    assert player.y == start_y


def test_integrate_clamps_at_edge(full_room, rules):
    player = full_room.players["p1"]
    engine.move(full_room, "p1", {"left": True, "up": True})
    for _ in range(100):
        integrate(full_room, 0.1)
    assert player.x == rules.player_radius
    assert player.y == rules.player_radius


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_dt_is_capped_after_stall(rules):
    clock = FakeClock()
    ticker = TickEngine(lambda: [], None, rules, clock=clock)

    assert ticker.next_dt() == 0.0
    clock.now += 0.016
    assert abs(ticker.next_dt() - 0.016) < 1e-9
    clock.now += 3.0
    assert ticker.next_dt() == rules.max_tick_dt


def test_step_broadcasts_snapshot(full_room, rules):
    sent = []

    async def sink(room, event):
        sent.append((room.code, event))

    clock = FakeClock()
    ticker = TickEngine(lambda: [full_room], sink, rules, clock=clock)
    counts = asyncio.run(ticker.step())

    assert counts == {full_room.code: 3}
    assert ticker.ticks == 1
    code, event = sent[0]
    assert code == full_room.code
    assert event.type == EVENT_STATE
    assert set(event.data["players"]) == {"p1", "p2", "p3"}


def test_snapshot_is_minimal(full_room):
    entry = snapshot_event(full_room).data["players"]["p2"]
    assert set(entry) == {"x", "y", "color", "name", "role", "tile"}
    assert entry["role"] == full_room.players["p2"].role
