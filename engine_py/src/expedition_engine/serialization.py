"""
State serialization and sanitization utilities.
"""

from typing import Any, Dict, List, Optional

from .models import Grid, PlayerSession, ResourcePoint, Room, Tile


def serialize_player(player: PlayerSession) -> Dict[str, Any]:
    """Rendering-relevant fields of one player (the per-tick snapshot entry)."""
    return {
        "x": player.x,
        "y": player.y,
        "color": player.color,
        "name": player.name,
        "role": player.role,
        "tile": list(player.tile),
    }


def lite_snapshot(room: Optional[Room]) -> Dict[str, Dict[str, Any]]:
    if room is None:
        return {}
    return {pid: serialize_player(p) for pid, p in room.players.items()}


def sanitize_point(point: ResourcePoint) -> Dict[str, Any]:
    """
    Serialize a resource point for clients.

    Richness stays hidden until the point has been revealed by a scan, so
    nobody learns a tile's value by inspecting traffic.
    """
    return {
        "x": point.x,
        "y": point.y,
        "remaining": point.remaining,
        "revealed": point.revealed,
        "richness": point.richness if point.revealed else None,
    }


def tile_points(grid: Grid, tile: Tile) -> List[Dict[str, Any]]:
    return [sanitize_point(p) for p in grid.points_at(tile)]


def serialize_labels(labels: Dict[Tile, int]) -> List[Dict[str, int]]:
    return [
        {"x": x, "y": y, "label": label}
        for (x, y), label in sorted(labels.items())
    ]


def serialize_visited(visited) -> List[List[int]]:
    return [list(tile) for tile in sorted(visited)]


def hello_payload(room: Optional[Room], player_id: Optional[str], rules) -> Dict[str, Any]:
    """Initial handshake for a connection, with or without a room."""
    payload = {
        "config": {
            "MAP_SIZE": rules.map_size,
            "PLAYER_RADIUS": rules.player_radius,
        },
        "youArePlayer": bool(room and player_id in room.players),
        "players": lite_snapshot(room),
        "code": None,
        "grid": None,
        "dancing": [],
        "mapShared": False,
    }
    if room is not None:
        payload.update({
            "code": room.code,
            "grid": room.grid.describe(),
            "dancing": sorted(room.dancing),
            "mapShared": room.map_shared,
            "stage": room.stage.value,
        })
    return payload
