"""
Server-owned game configuration.
"""

from typing import Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import ROLE_EXPLORER


class GameRules(BaseModel):
    """Tunable parameters for the simulation and the role mechanics."""

    map_size: int = Field(
        default=800,
        ge=200,
        le=4000,
        description="Side length of the square map in pixels"
    )
    player_radius: int = Field(
        default=16,
        ge=4,
        le=64,
        description="Avatar radius; positions are clamped to [radius, map_size - radius]"
    )
    player_speed: float = Field(
        default=360.0,
        gt=0,
        description="Avatar speed in px/s (never client-settable)"
    )
    tick_hz: int = Field(
        default=60,
        ge=1,
        le=240,
        description="Server tick rate"
    )
    max_tick_dt: float = Field(
        default=0.1,
        gt=0,
        le=1.0,
        description="Upper bound on the integration step after a stall"
    )
    max_players: int = Field(
        default=3,
        ge=3,
        le=3,
        description="Seats per room; one per role"
    )
    grid_width: int = Field(default=5, ge=2, le=16)
    grid_height: int = Field(default=5, ge=2, le=16)
    start_tile: Tuple[int, int] = Field(
        default=(2, 2),
        description="Tile holding the base; never spawns resources"
    )
    starting_gold: int = Field(default=30, ge=0)
    explorer_move_cost: int = Field(
        default=3,
        ge=0,
        description="Food the explorer spends to enter a neighbouring tile"
    )
    forager_move_cost: int = Field(default=3, ge=0)
    scan_cost: int = Field(default=5, ge=0)
    forage_cost: int = Field(default=2, ge=0)
    base_radius: float = Field(default=80.0, gt=0)
    scan_radius: float = Field(default=80.0, gt=0)
    collect_radius: float = Field(default=80.0, gt=0)
    chat_cooldown: float = Field(
        default=0.5,
        ge=0,
        description="Minimum seconds between two chat messages from one sender"
    )

    @field_validator('start_tile')
    @classmethod
    def validate_start_tile(cls, v):
        if v[0] < 0 or v[1] < 0:
            raise ValueError(f'start_tile {v} must be non-negative')
        return v

    @model_validator(mode='after')
    def validate_start_inside_grid(self):
        x, y = self.start_tile
        if x >= self.grid_width or y >= self.grid_height:
            raise ValueError(
                f'start_tile {self.start_tile} outside {self.grid_width}x{self.grid_height} grid'
            )
        return self

    @property
    def tick_interval(self) -> float:
        return 1.0 / self.tick_hz

    @property
    def base_point(self) -> Tuple[float, float]:
        """Centre of the base zone on the start tile."""
        half = self.map_size / 2
        return half, half

    def role_move_cost(self, role: str) -> int:
        if role == ROLE_EXPLORER:
            return self.explorer_move_cost
        return self.forager_move_cost


# Default configuration instance
default_rules = GameRules()


def create_rules(**overrides) -> GameRules:
    """Create a GameRules with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return GameRules(**config_dict)
