"""
Shared room economy: bank gold, per-role food, forager load and tile labels.
"""

import math
from typing import Dict, Optional

from .constants import (
    LABEL_NONE, LABEL_RICH, ROLE_EXPLORER, ROLE_FORAGER, ROLE_LEADER, ROLES, clamp
)
from .models import Economy, PlayerSession, Room, Tile
from .rules import GameRules


def fresh_economy(rules: GameRules) -> Economy:
    return Economy(gold=rules.starting_gold)


def resource_bundle(economy: Economy) -> Dict:
    """Economy snapshot sent with ``resources`` and ``matchStarted``."""
    return {
        "gold": economy.gold,
        "food": dict(economy.food),
        "carrying": economy.carrying,
    }


def can_afford(economy: Economy, role: str, cost: int) -> bool:
    return economy.food.get(role, 0) >= cost


def spend_food(economy: Economy, role: str, cost: int) -> bool:
    """Deduct ``cost`` from ``role``'s food. Leaves the economy untouched if short."""
    if cost < 0 or not can_afford(economy, role, cost):
        return False
    economy.food[role] -= cost
    return True


def convert_gold(economy: Economy) -> int:
    """Move the whole bank into the leader's food; returns the amount moved."""
    amount = economy.gold
    if amount <= 0:
        return 0
    economy.gold = 0
    economy.food[ROLE_LEADER] += amount
    return amount


def allocate_food(economy: Economy, explorer: int, forager: int) -> bool:
    """
    Hand leader food to the explorer and forager.

    Requests with a negative share, a zero total, or a total above the
    leader's food are rejected without touching the economy.
    """
    if explorer < 0 or forager < 0:
        return False
    total = explorer + forager
    if total <= 0 or total > economy.food[ROLE_LEADER]:
        return False
    economy.food[ROLE_LEADER] -= total
    economy.food[ROLE_EXPLORER] += explorer
    economy.food[ROLE_FORAGER] += forager
    return True


def in_base_zone(player: PlayerSession, grid_start: Tile, rules: GameRules) -> bool:
    if player.tile != grid_start:
        return False
    bx, by = rules.base_point
    return math.hypot(player.x - bx, player.y - by) <= rules.base_radius


def is_lost(room: Room) -> bool:
    """
    The expedition is stranded: nothing can refill the forager and the
    forager cannot move or finish a delivery.
    """
    economy = room.economy
    if economy.gold > 0 or economy.food[ROLE_LEADER] > 0:
        return False
    forager = room.forager
    if forager is None:
        return False
    if economy.carrying > 0 and forager.tile == room.grid.start:
        return False
    return economy.food[ROLE_FORAGER] < room.rules.forager_move_cost


# Tile labels

def set_label(room: Room, role: str, x: int, y: int, label: int) -> Tile:
    """Clamp coordinates into the grid and the label into 0..3, then store it."""
    tile = (
        clamp(int(x), 0, room.grid.width - 1),
        clamp(int(y), 0, room.grid.height - 1),
    )
    room.labels[role][tile] = clamp(int(label), LABEL_NONE, LABEL_RICH)
    return tile


def share_explorer_labels(room: Room) -> Dict[Tile, int]:
    room.shared_labels = dict(room.labels[ROLE_EXPLORER])
    return room.shared_labels


def visible_labels(room: Room, role: Optional[str]) -> Dict[Tile, int]:
    """Merged view of the labels ``role`` is allowed to see."""
    if role == ROLE_EXPLORER:
        return dict(room.labels[ROLE_EXPLORER])
    merged = dict(room.shared_labels)
    merged.update(room.labels[ROLE_LEADER])
    if role == ROLE_FORAGER:
        merged.update(room.labels[ROLE_FORAGER])
    elif role != ROLE_LEADER:
        return {}
    return merged


def reset_labels(room: Room) -> None:
    room.labels = {role: {} for role in ROLES}
    room.shared_labels = {}
