"""
Tests for room creation, seating and teardown.
"""

import pytest

from expedition_engine.constants import CODE_ALPHABET, CODE_LENGTH, SEAT_COLORS
from expedition_engine.errors import ROOM_FULL, ROOM_NOT_FOUND, GameError, RoomFull, RoomNotFound


def test_create_room_code(registry):
    """Codes are six characters from the unambiguous alphabet."""
    room = registry.create_room()
    assert len(room.code) == CODE_LENGTH
    assert all(c in CODE_ALPHABET for c in room.code)
    for confusable in "IO01":
        assert confusable not in CODE_ALPHABET
    assert registry.get_room(room.code) is room


def test_codes_are_unique(registry):
    codes = {registry.create_room().code for _ in range(50)}
    assert len(codes) == 50
    assert len(registry) == 50


def test_join_assigns_seats_in_order(registry, rules):
    room = registry.create_room()
    players = [registry.join_room(room.code, f"p{i}") for i in range(3)]

    assert [p.seat for p in players] == [0, 1, 2]
    assert [p.name for p in players] == ["P1", "P2", "P3"]
    assert [p.color for p in players] == SEAT_COLORS
    for p in players:
        assert p.tile == room.grid.start
        assert p.speed == rules.player_speed
        assert p.role is None


def test_join_is_case_insensitive(registry):
    room = registry.create_room()
    player = registry.join_room(f"  {room.code.lower()} ", "p1")
    assert player.id in room.players


def test_join_unknown_room(registry):
    with pytest.raises(RoomNotFound) as exc:
        registry.join_room("ZZZZZZ", "p1")
    assert exc.value.code == ROOM_NOT_FOUND
    assert isinstance(exc.value, GameError)


def test_room_full(registry):
    room = registry.create_room()
    for i in range(3):
        registry.join_room(room.code, f"p{i}")

    with pytest.raises(RoomFull) as exc:
        registry.join_room(room.code, "extra")
    assert exc.value.code == ROOM_FULL
    assert "extra" not in room.players
    assert len(room.players) == 3


def test_freed_seat_is_reused(registry):
    room = registry.create_room()
    for i in range(3):
        registry.join_room(room.code, f"p{i}")
    registry.leave_room(room.code, "p1")

    newcomer = registry.join_room(room.code, "p9")
    assert newcomer.seat == 1
    assert newcomer.color == SEAT_COLORS[1]


def test_last_leave_destroys_room(registry):
    destroyed = []
    registry.on_destroyed(lambda room: destroyed.append(room.code))

    room = registry.create_room()
    registry.join_room(room.code, "p1")
    registry.join_room(room.code, "p2")

    registry.leave_room(room.code, "p1")
    assert room.code in registry
    registry.leave_room(room.code, "p2")
    assert room.code not in registry
    assert destroyed == [room.code]


def test_created_hook(registry):
    created = []
    registry.on_created(created.append)
    room = registry.create_room()
    assert created == [room]


def test_leave_clears_side_state(registry):
    room = registry.create_room()
    registry.join_room(room.code, "p1")
    registry.join_room(room.code, "p2")
    room.dancing.add("p1")
    room.ready_to_convert.add("p1")

    registry.leave_room(room.code, "p1")
    assert "p1" not in room.dancing
    assert "p1" not in room.ready_to_convert


def test_seeded_rooms_share_layout(registry):
    a = registry.create_room(seed=5)
    b = registry.create_room(seed=5)
    assert a.grid.tiles == b.grid.tiles
