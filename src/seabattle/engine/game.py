"""Game controller: fleet planning followed by the battle against a static fleet."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from seabattle.config import GameConfig
from seabattle.telemetry import get_meter, get_tracer

from .battle import BattleResolver, ShotOutcome
from .generator import generate_fleet
from .placement import PlacementSession
from .ship import Coordinate, Ship
from .validator import ValidationResult

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.game")
meter = get_meter("seabattle.engine.game")

MOVE_COUNTER = meter.create_counter(
    "seabattle_engine_moves",
    unit="1",
    description="Number of shots fired in SeaBattleGame",
)


class GamePhase(Enum):
    """High-level lifecycle of a match."""

    PLANNING = "planning"
    BATTLE = "battle"
    FINISHED = "finished"


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current game."""

    phase: GamePhase
    player_ships: tuple[Ship, ...]
    validation: ValidationResult | None
    shots: Mapping[Coordinate, ShotOutcome]
    sunk_ship_ids: tuple[int, ...]
    enemy_ship_count: int


class SeaBattleGame:
    """Coordinates planning and battle for a single player.

    The opponent only ever receives shots: its fleet is generated once when
    the battle starts and never fires back.
    """

    def __init__(self, config: GameConfig | None = None, rng_seed: int | None = None) -> None:
        self.config = config or GameConfig()
        seed = rng_seed if rng_seed is not None else self.config.seed
        self._rng = random.Random(seed)
        self.phase: GamePhase = GamePhase.PLANNING
        self.placement: PlacementSession = PlacementSession.random(
            self._rng,
            roster=self.config.roster,
            field=self.config.player_field,
            canvas=self.config.canvas,
            cell_size=self.config.cell_size,
            drag_threshold=self.config.drag_threshold,
            max_attempts=self.config.max_placement_attempts,
            max_restarts=self.config.max_fleet_restarts,
        )
        self.player_ships: tuple[Ship, ...] = ()
        self.resolver: BattleResolver | None = None

    @property
    def rng(self) -> random.Random:
        return self._rng

    def start_battle(self) -> None:
        """Freeze the planned fleet and place the enemy fleet."""
        with tracer.start_as_current_span("game.start_battle") as span:
            if self.phase is not GamePhase.PLANNING:
                logger.error("start_battle_rejected", extra={"phase": self.phase.value})
                raise RuntimeError("The battle can only start from the planning phase.")

            self.player_ships = tuple(self.placement.confirm())
            enemy_fleet = generate_fleet(
                self.config.roster,
                self.config.enemy_field,
                self._rng,
                max_attempts=self.config.max_placement_attempts,
                max_restarts=self.config.max_fleet_restarts,
            )
            self.resolver = BattleResolver(enemy_fleet)
            self.phase = GamePhase.BATTLE
            span.set_attribute("enemy.ships", len(enemy_fleet))
            logger.info(
                "battle_started",
                extra={"player_ships": len(self.player_ships), "enemy_ships": len(enemy_fleet)},
            )

    def fire(self, cell: Coordinate) -> ShotOutcome:
        """Fire at an enemy cell, finishing the game once every ship is sunk."""
        with tracer.start_as_current_span("game.fire") as span:
            span.set_attribute("x", cell.x)
            span.set_attribute("y", cell.y)
            if self.phase is not GamePhase.BATTLE or self.resolver is None:
                logger.error("fire_rejected_not_in_battle", extra={"phase": self.phase.value})
                raise RuntimeError("Shots can only be fired during the battle.")
            if not self.config.enemy_field.contains(cell):
                logger.error("fire_rejected_off_field", extra={"x": cell.x, "y": cell.y})
                raise ValueError(f"{cell} is outside the enemy field.")

            outcome = self.resolver.register_shot(cell)
            if self.resolver.all_sunk():
                self.phase = GamePhase.FINISHED
                span.set_attribute("game.finished", True)
                logger.info("game_finished", extra={"shots": len(self.resolver.shots)})

            MOVE_COUNTER.add(1, attributes={"result": outcome.kind.value})
            return outcome

    def valid_targets(self) -> list[Coordinate]:
        """Return every enemy cell that has not been recorded yet."""
        if self.phase is not GamePhase.BATTLE or self.resolver is None:
            return []
        field = self.config.enemy_field
        shots = self.resolver.shots
        return [
            Coordinate(x, y)
            for y in range(field.y, field.bottom)
            for x in range(field.x, field.right)
            if Coordinate(x, y) not in shots
        ]

    def get_state(self) -> GameState:
        """Return an immutable view of the match."""
        if self.resolver is None:
            return GameState(
                phase=self.phase,
                player_ships=tuple(self.placement.ships),
                validation=self.placement.validation,
                shots={},
                sunk_ship_ids=(),
                enemy_ship_count=0,
            )
        return GameState(
            phase=self.phase,
            player_ships=self.player_ships,
            validation=None,
            shots=self.resolver.shots,
            sunk_ship_ids=tuple(self.resolver.sunk_ship_ids()),
            enemy_ship_count=len(self.resolver.ships),
        )
