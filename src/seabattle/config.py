"""Game configuration loaded from defaults and ``SEABATTLE_*`` variables."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator, model_validator

from seabattle.engine.generator import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_RESTARTS
from seabattle.engine.placement import (
    DEFAULT_CANVAS,
    DEFAULT_CELL_SIZE,
    DEFAULT_DRAG_THRESHOLD,
    DEFAULT_PLAYER_FIELD,
)
from seabattle.engine.ship import STANDARD_ROSTER, Rect

DEFAULT_ENEMY_FIELD = Rect(13, 1, 10, 10)


class GameConfig(BaseModel):
    """Board layout, fleet roster and generator limits for one game."""

    model_config = {"frozen": True}

    roster: tuple[int, ...] = STANDARD_ROSTER
    canvas: Rect = DEFAULT_CANVAS
    player_field: Rect = DEFAULT_PLAYER_FIELD
    enemy_field: Rect = DEFAULT_ENEMY_FIELD
    cell_size: int = Field(default=DEFAULT_CELL_SIZE, gt=0)
    drag_threshold: float = Field(default=DEFAULT_DRAG_THRESHOLD, gt=0)
    max_placement_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, gt=0)
    max_fleet_restarts: int = Field(default=DEFAULT_MAX_RESTARTS, ge=0)
    seed: int | None = None

    @field_validator("roster")
    @classmethod
    def _roster_not_empty(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("roster must contain at least one ship")
        if any(size < 1 for size in value):
            raise ValueError("ship sizes must be positive")
        return value

    @model_validator(mode="after")
    def _fields_inside_canvas(self) -> "GameConfig":
        for name in ("player_field", "enemy_field"):
            rect: Rect = getattr(self, name)
            if rect.width < 1 or rect.height < 1:
                raise ValueError(f"{name} must not be empty")
            if (
                rect.x < self.canvas.x
                or rect.y < self.canvas.y
                or rect.right > self.canvas.right
                or rect.bottom > self.canvas.bottom
            ):
                raise ValueError(f"{name} {rect} does not fit inside canvas {self.canvas}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameConfig":
        """Build a config from ``SEABATTLE_*`` variables; overrides win."""

        data: Dict[str, Any] = {}
        roster = os.getenv("SEABATTLE_ROSTER")
        if roster:
            data["roster"] = tuple(int(part) for part in roster.split(",") if part.strip())

        env_fields = {
            "cell_size": ("SEABATTLE_CELL_SIZE", int),
            "drag_threshold": ("SEABATTLE_DRAG_THRESHOLD", float),
            "max_placement_attempts": ("SEABATTLE_MAX_PLACEMENT_ATTEMPTS", int),
            "max_fleet_restarts": ("SEABATTLE_MAX_FLEET_RESTARTS", int),
            "seed": ("SEABATTLE_SEED", int),
        }
        for field, (env_name, convert) in env_fields.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                data[field] = convert(value.strip())

        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_game_config() -> GameConfig:
    """Load and cache the game config from the environment."""

    return GameConfig.from_env()
