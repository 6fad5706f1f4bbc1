"""Game models and data structures"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from .constants import ROLE_EXPLORER, ROLE_FORAGER, ROLE_LEADER, ROLES
from .rules import GameRules, default_rules

Tile = Tuple[int, int]


class MatchStage(str, Enum):
    """Match lifecycle: lobby -> active -> celebration."""
    LOBBY = "lobby"
    ACTIVE = "active"
    CELEBRATION = "celebration"


@dataclass
class PlayerSession:
    id: str
    seat: int
    name: str
    color: str
    x: float
    y: float
    speed: float
    tile: Tile
    vx: float = 0.0
    vy: float = 0.0
    role: Optional[str] = None  # leader|explorer|forager once a match starts
    dancing: bool = False
    last_say_at: Optional[float] = None


@dataclass
class ResourcePoint:
    x: float
    y: float
    richness: int  # 1..5, hidden until revealed
    remaining: int
    revealed: bool = False

    @property
    def depleted(self) -> bool:
        return self.remaining <= 0


@dataclass
class Grid:
    width: int
    height: int
    start: Tile
    tiles: Dict[Tile, List[ResourcePoint]] = field(default_factory=dict)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def points_at(self, tile: Tile) -> List[ResourcePoint]:
        return self.tiles.get(tile, [])

    def describe(self) -> dict:
        return {"w": self.width, "h": self.height, "start": list(self.start)}


@dataclass
class Economy:
    gold: int = 0
    food: Dict[str, int] = field(default_factory=lambda: {role: 0 for role in ROLES})
    carrying: int = 0  # forager's load, not yet delivered


@dataclass
class Room:
    code: str
    grid: Grid
    rules: GameRules = field(default_factory=lambda: default_rules)
    rng: random.Random = field(default_factory=random.Random)
    players: Dict[str, PlayerSession] = field(default_factory=dict)
    stage: MatchStage = MatchStage.LOBBY
    economy: Economy = field(default_factory=Economy)
    dancing: Set[str] = field(default_factory=set)
    ready_to_convert: Set[str] = field(default_factory=set)
    labels: Dict[str, Dict[Tile, int]] = field(
        default_factory=lambda: {role: {} for role in ROLES}
    )
    shared_labels: Dict[Tile, int] = field(default_factory=dict)  # explorer intel forwarded to leader
    visited: Dict[str, Set[Tile]] = field(
        default_factory=lambda: {ROLE_EXPLORER: set(), ROLE_FORAGER: set()}
    )
    forager_target: Optional[Tile] = None
    map_shared: bool = False
    matches_started: int = 0

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.rules.max_players

    def player_with_role(self, role: str) -> Optional[PlayerSession]:
        for player in self.players.values():
            if player.role == role:
                return player
        return None

    @property
    def leader(self) -> Optional[PlayerSession]:
        return self.player_with_role(ROLE_LEADER)

    @property
    def explorer(self) -> Optional[PlayerSession]:
        return self.player_with_role(ROLE_EXPLORER)

    @property
    def forager(self) -> Optional[PlayerSession]:
        return self.player_with_role(ROLE_FORAGER)


@dataclass
class Outbound:
    """One event to deliver: to a single player when ``to`` is set, else room-wide."""
    type: str
    data: Dict = field(default_factory=dict)
    to: Optional[str] = None


class ActionResult:
    """Outcome of an intent. A rejected intent carries no events."""

    def __init__(self, applied: bool, events: Optional[List[Outbound]] = None):
        self.applied = applied
        self.events = events or []

    @classmethod
    def ok(cls, *events: Outbound) -> 'ActionResult':
        return cls(applied=True, events=list(events))

    @classmethod
    def ignored(cls) -> 'ActionResult':
        return cls(applied=False)

    def __bool__(self) -> bool:
        return self.applied
