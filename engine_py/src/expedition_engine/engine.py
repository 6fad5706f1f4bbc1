"""Action arbiter: role-gated intents applied against room state.

Every public function takes the room and the acting player id and returns an
``ActionResult``. A failed precondition leaves the room untouched and returns
``ActionResult.ignored()``; the server never tells a client why an intent was
dropped.
"""

import logging
import math
from typing import Dict, List, Optional

from .constants import (
    CELEBRATION_MESSAGE, EVENT_CELEBRATE_START, EVENT_FORAGER_TARGET,
    EVENT_LABELS_SHARED, EVENT_LABELS_UPDATE, EVENT_LOST, EVENT_MAP_SHARED,
    EVENT_MATCH_ENDED, EVENT_MATCH_STARTED, EVENT_RESOURCES, EVENT_TILE_DATA,
    EVENT_TILE_DATA_UPDATE, EVENT_TILE_UPDATE, LOST_MESSAGE, ROLE_EXPLORER,
    ROLE_FORAGER, ROLE_LEADER, ROLES, manhattan
)
from .economy import (
    allocate_food as _allocate, can_afford, convert_gold, fresh_economy, in_base_zone,
    is_lost, reset_labels, resource_bundle, set_label, share_explorer_labels,
    spend_food, visible_labels
)
from .grid import generate_grid, harvest, is_collectable, is_scannable, nearest_point, neighbor, reveal
from .models import ActionResult, MatchStage, Outbound, PlayerSession, Room
from .serialization import sanitize_point, serialize_labels, serialize_visited, tile_points

logger = logging.getLogger(__name__)


def _reject(room: Room, player_id: str, action: str, reason: str) -> ActionResult:
    logger.debug(f"Dropped {action} from {player_id} in room {room.code}: {reason}")
    return ActionResult.ignored()


def _active_player(room: Room, player_id: str) -> Optional[PlayerSession]:
    if room.stage != MatchStage.ACTIVE:
        return None
    return room.players.get(player_id)


def _resources_event(room: Room) -> Outbound:
    return Outbound(EVENT_RESOURCES, {"bundle": resource_bundle(room.economy)})


def _tile_data_event(room: Room, player: PlayerSession) -> Outbound:
    x, y = player.tile
    return Outbound(
        EVENT_TILE_DATA,
        {"x": x, "y": y, "points": tile_points(room.grid, player.tile)},
        to=player.id,
    )


def _spawn(room: Room, player: PlayerSession) -> None:
    cx, cy = room.rules.base_point
    player.x, player.y = cx, cy
    player.vx = player.vy = 0.0
    player.tile = tuple(room.grid.start)


# Match lifecycle

def start_match(room: Room) -> List[Outbound]:
    """
    Begin (or reboot) a match for a full room.

    Roles are shuffled one-to-one over the seated players. Every match after
    the first gets a freshly generated grid.
    """
    if len(room.players) != room.rules.max_players:
        return []

    if room.matches_started > 0:
        room.grid = generate_grid(room.rules, room.rng)
    room.matches_started += 1

    roles = list(ROLES)
    room.rng.shuffle(roles)
    seated = sorted(room.players.values(), key=lambda p: p.seat)
    for player, role in zip(seated, roles):
        player.role = role
        _spawn(room, player)

    room.economy = fresh_economy(room.rules)
    room.ready_to_convert.clear()
    reset_labels(room)
    room.visited = {
        ROLE_EXPLORER: {tuple(room.grid.start)},
        ROLE_FORAGER: {tuple(room.grid.start)},
    }
    room.forager_target = None
    room.map_shared = False
    room.stage = MatchStage.ACTIVE

    logger.info(
        f"Match {room.matches_started} started in room {room.code}: "
        + ", ".join(f"{p.name}={p.role}" for p in seated)
    )

    events = [Outbound(EVENT_MATCH_STARTED, {
        "roles": {p.id: p.role for p in seated},
        "grid": room.grid.describe(),
        "resources": resource_bundle(room.economy),
    })]
    events.extend(_tile_data_event(room, p) for p in seated)
    return events


def _check_loss(room: Room, events: List[Outbound]) -> List[Outbound]:
    if room.stage != MatchStage.ACTIVE or not is_lost(room):
        return events
    logger.info(f"Room {room.code} lost: forager stranded, rebooting match")
    events.append(Outbound(EVENT_LOST, {"role": ROLE_FORAGER, "message": LOST_MESSAGE}))
    events.extend(start_match(room))
    return events


# Actions

def move(room: Room, player_id: str, keys: Dict) -> ActionResult:
    """Set the player's velocity from directional flags. Missing flags count as released."""
    player = room.players.get(player_id)
    if player is None:
        return _reject(room, player_id, "move", "not seated")
    keys = keys or {}
    vx = vy = 0.0
    if keys.get("left"):
        vx -= 1
    if keys.get("right"):
        vx += 1
    if keys.get("up"):
        vy -= 1
    if keys.get("down"):
        vy += 1
    if vx or vy:
        m = math.hypot(vx, vy)
        vx /= m
        vy /= m
    player.vx, player.vy = vx, vy
    return ActionResult.ok()


def farm_convert(room: Room, player_id: str) -> ActionResult:
    """
    Mark the player ready to convert bank gold into leader food.

    Conversion fires only once all seated players are ready at the same
    time while standing in the base zone; the readiness set then resets.
    """
    player = _active_player(room, player_id)
    if player is None:
        return _reject(room, player_id, "farmConvert", "no active session")
    if room.economy.gold <= 0:
        return _reject(room, player_id, "farmConvert", "bank empty")
    if not in_base_zone(player, room.grid.start, room.rules):
        return _reject(room, player_id, "farmConvert", "outside base zone")

    room.ready_to_convert.add(player_id)
    # Anyone who wandered off since signalling is no longer ready
    room.ready_to_convert = {
        pid for pid in room.ready_to_convert
        if pid in room.players and in_base_zone(room.players[pid], room.grid.start, room.rules)
    }
    if len(room.ready_to_convert) < room.rules.max_players:
        return ActionResult.ok()

    room.ready_to_convert.clear()
    amount = convert_gold(room.economy)
    logger.info(f"Room {room.code} converted {amount} gold into leader food")
    return ActionResult.ok(_resources_event(room))


def allocate_food(room: Room, player_id: str, explorer: int, forager: int) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role != ROLE_LEADER:
        return _reject(room, player_id, "allocateFood", "not the leader")
    if not _allocate(room.economy, explorer, forager):
        return _reject(room, player_id, "allocateFood", f"cannot allocate {explorer}+{forager}")
    events = [_resources_event(room)]
    return ActionResult.ok(*_check_loss(room, events))


def enter_neighbor(room: Room, player_id: str, direction: str) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role not in (ROLE_EXPLORER, ROLE_FORAGER):
        return _reject(room, player_id, "enterNeighbor", "role cannot travel")

    dest = neighbor(player.tile, direction)
    if dest is None or not room.grid.in_bounds(*dest):
        return _reject(room, player_id, "enterNeighbor", f"no tile {direction} of {player.tile}")

    cost = room.rules.role_move_cost(player.role)
    if not can_afford(room.economy, player.role, cost):
        return _reject(room, player_id, "enterNeighbor", "not enough food")

    if player.role == ROLE_FORAGER:
        target = room.forager_target
        if not room.map_shared or target is None:
            return _reject(room, player_id, "enterNeighbor", "forager has no route yet")
        if manhattan(dest, target) >= manhattan(player.tile, target):
            return _reject(room, player_id, "enterNeighbor", "step does not approach target")

    spend_food(room.economy, player.role, cost)
    player.tile = dest

    # Walking off one edge lands on the opposite edge of the next tile
    r = room.rules.player_radius
    far = room.rules.map_size - r
    if direction == "right":
        player.x = r
    elif direction == "left":
        player.x = far
    elif direction == "down":
        player.y = r
    elif direction == "up":
        player.y = far

    visited = room.visited.setdefault(player.role, set())
    visited.add(dest)

    events = [
        Outbound(EVENT_TILE_UPDATE, {
            "role": player.role,
            "tile": list(dest),
            "visited": serialize_visited(visited),
        }),
        _tile_data_event(room, player),
        _resources_event(room),
    ]

    if player.role == ROLE_EXPLORER and dest == tuple(room.grid.start):
        room.map_shared = True
        shared = share_explorer_labels(room)
        leader = room.leader
        if leader is not None:
            events.append(Outbound(
                EVENT_LABELS_SHARED, {"labels": serialize_labels(shared)}, to=leader.id
            ))
        events.append(Outbound(EVENT_MAP_SHARED, {}))
        logger.info(f"Explorer shared the map in room {room.code} ({len(shared)} labels)")

    return ActionResult.ok(*_check_loss(room, events))


def scan_tile(room: Room, player_id: str) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role != ROLE_EXPLORER:
        return _reject(room, player_id, "scanTile", "not the explorer")
    if not can_afford(room.economy, ROLE_EXPLORER, room.rules.scan_cost):
        return _reject(room, player_id, "scanTile", "not enough food")

    found = nearest_point(
        room.grid, player.tile, player.x, player.y, room.rules.scan_radius, is_scannable
    )
    if found is None:
        return _reject(room, player_id, "scanTile", "nothing to reveal in range")

    index, point = found
    spend_food(room.economy, ROLE_EXPLORER, room.rules.scan_cost)
    reveal(point)
    x, y = player.tile
    events = [
        Outbound(EVENT_TILE_DATA_UPDATE, {
            "x": x, "y": y, "index": index, "point": sanitize_point(point),
        }),
        _resources_event(room),
    ]
    return ActionResult.ok(*_check_loss(room, events))


def collect_resource(room: Room, player_id: str) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role != ROLE_FORAGER:
        return _reject(room, player_id, "collectResource", "not the forager")
    if not can_afford(room.economy, ROLE_FORAGER, room.rules.forage_cost):
        return _reject(room, player_id, "collectResource", "not enough food")

    found = nearest_point(
        room.grid, player.tile, player.x, player.y, room.rules.collect_radius, is_collectable
    )
    if found is None:
        return _reject(room, player_id, "collectResource", "nothing to collect in range")

    index, point = found
    spend_food(room.economy, ROLE_FORAGER, room.rules.forage_cost)
    room.economy.carrying += harvest(point)
    x, y = player.tile
    events = [
        Outbound(EVENT_TILE_DATA_UPDATE, {
            "x": x, "y": y, "index": index, "point": sanitize_point(point),
        }),
        _resources_event(room),
    ]
    return ActionResult.ok(*_check_loss(room, events))


def deliver_to_base(room: Room, player_id: str) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role != ROLE_FORAGER:
        return _reject(room, player_id, "deliverToBase", "not the forager")
    if player.tile != tuple(room.grid.start):
        return _reject(room, player_id, "deliverToBase", "not on the start tile")
    if room.economy.carrying <= 0:
        return _reject(room, player_id, "deliverToBase", "nothing carried")

    delivered = room.economy.carrying
    room.economy.carrying = 0
    room.stage = MatchStage.CELEBRATION
    logger.info(f"Room {room.code} delivered {delivered} units, celebrating")
    return ActionResult.ok(
        _resources_event(room),
        Outbound(EVENT_CELEBRATE_START, {
            "grid": room.grid.describe(),
            "message": CELEBRATION_MESSAGE,
        }),
        Outbound(EVENT_MATCH_ENDED, {"reason": "delivered"}),
    )


def mark_tile(room: Room, player_id: str, x: int, y: int, label: int) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role is None:
        return _reject(room, player_id, "markTile", "no role")
    set_label(room, player.role, x, y, label)
    labels = visible_labels(room, player.role)
    return ActionResult.ok(Outbound(
        EVENT_LABELS_UPDATE, {"labels": serialize_labels(labels)}, to=player.id
    ))


def assign_forager_target(room: Room, player_id: str, x: int, y: int) -> ActionResult:
    player = _active_player(room, player_id)
    if player is None or player.role != ROLE_LEADER:
        return _reject(room, player_id, "assignForagerTarget", "not the leader")
    if not room.grid.in_bounds(x, y):
        return _reject(room, player_id, "assignForagerTarget", f"({x}, {y}) out of bounds")
    room.forager_target = (x, y)
    return ActionResult.ok(Outbound(EVENT_FORAGER_TARGET, {"x": x, "y": y}))
