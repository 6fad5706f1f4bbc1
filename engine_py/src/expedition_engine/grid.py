"""
Tile grid generation and resource point queries.
"""

import math
import random
from typing import Callable, Optional, Tuple

from .constants import (
    DIRECTIONS, MAX_POINTS_PER_TILE, MAX_RICHNESS, MIN_RICHNESS,
    POINT_EDGE_MARGIN, RICHNESS_UNITS
)
from .models import Grid, ResourcePoint, Tile
from .rules import GameRules


def generate_grid(rules: GameRules, rng: Optional[random.Random] = None) -> Grid:
    """
    Build a fresh grid and scatter resource points over it.

    Args:
        rules: Game rules supplying grid dimensions, start tile and map size
        rng: Random source; pass a seeded ``random.Random`` for a repeatable layout

    Returns:
        Grid with every tile populated (the start tile is always empty)
    """
    rng = rng or random.Random()
    grid = Grid(
        width=rules.grid_width,
        height=rules.grid_height,
        start=tuple(rules.start_tile),
    )
    lo = POINT_EDGE_MARGIN
    hi = rules.map_size - POINT_EDGE_MARGIN

    for ty in range(grid.height):
        for tx in range(grid.width):
            tile = (tx, ty)
            if tile == grid.start:
                grid.tiles[tile] = []
                continue
            points = []
            for _ in range(rng.randint(0, MAX_POINTS_PER_TILE)):
                richness = rng.randint(MIN_RICHNESS, MAX_RICHNESS)
                points.append(ResourcePoint(
                    x=rng.uniform(lo, hi),
                    y=rng.uniform(lo, hi),
                    richness=richness,
                    remaining=richness * RICHNESS_UNITS,
                ))
            grid.tiles[tile] = points

    return grid


def neighbor(tile: Tile, direction: str) -> Optional[Tile]:
    """Tile one step away in ``direction``, or None for an unknown direction."""
    step = DIRECTIONS.get(direction)
    if step is None:
        return None
    return tile[0] + step[0], tile[1] + step[1]


def nearest_point(
    grid: Grid,
    tile: Tile,
    x: float,
    y: float,
    radius: float,
    accept: Callable[[ResourcePoint], bool],
) -> Optional[Tuple[int, ResourcePoint]]:
    """
    Find the closest point on ``tile`` within ``radius`` of (x, y) passing ``accept``.

    Returns:
        (index, point) or None when nothing qualifies
    """
    best = None
    best_dist = None
    for index, point in enumerate(grid.points_at(tile)):
        if not accept(point):
            continue
        dist = math.hypot(point.x - x, point.y - y)
        if dist > radius:
            continue
        if best_dist is None or dist < best_dist:
            best = (index, point)
            best_dist = dist
    return best


def is_scannable(point: ResourcePoint) -> bool:
    return not point.revealed and not point.depleted


def is_collectable(point: ResourcePoint) -> bool:
    return not point.depleted


def reveal(point: ResourcePoint) -> None:
    point.revealed = True


def harvest(point: ResourcePoint) -> int:
    """Take one forage load out of ``point``; returns the amount taken."""
    take = min(point.remaining, point.richness)
    if take <= 0:
        return 0
    point.remaining -= take
    return take
