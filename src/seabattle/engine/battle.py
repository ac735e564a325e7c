"""Shot tracking against a fixed opponent fleet."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from seabattle.telemetry import get_meter, get_tracer

from .ship import Coordinate, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.battle")
meter = get_meter("seabattle.engine.battle")

SHOT_COUNTER = meter.create_counter(
    "seabattle_engine_shots",
    unit="1",
    description="Shots registered against a fleet",
)


class ShotKind(Enum):
    """What a recorded cell turned out to be."""

    MISS = "miss"
    HIT = "hit"
    SUNK = "sunk"
    REVEALED = "revealed"


class CellState(Enum):
    """State of a cell from the attacker's point of view."""

    UNKNOWN = "unknown"
    MISS = "miss"
    HIT = "hit"


@dataclass(frozen=True)
class ShotOutcome:
    """Result recorded for a single cell."""

    kind: ShotKind
    cell: Coordinate
    ship_id: int | None = None
    revealed_cells: tuple[Coordinate, ...] = ()


class BattleResolver:
    """Resolves shots fired at one immutable fleet.

    The shot record and the destroyed counts are replaced, never edited, on
    each shot; the mappings handed out by :attr:`shots` and
    :attr:`destroyed_counts` therefore stay consistent snapshots.
    """

    def __init__(self, fleet: Iterable[Ship]) -> None:
        self._ships: dict[int, Ship] = {ship.id: ship for ship in fleet}
        self._positions: dict[Coordinate, int] = {
            cell: ship.id for ship in self._ships.values() for cell in ship.cells()
        }
        self._shots: Mapping[Coordinate, ShotOutcome] = MappingProxyType({})
        self._destroyed: Mapping[int, int] = MappingProxyType({})

    @property
    def ships(self) -> list[Ship]:
        return list(self._ships.values())

    @property
    def shots(self) -> Mapping[Coordinate, ShotOutcome]:
        """Recorded cells in the order they were recorded."""
        return self._shots

    @property
    def destroyed_counts(self) -> Mapping[int, int]:
        return self._destroyed

    def ship_at(self, cell: Coordinate) -> int | None:
        return self._positions.get(cell)

    def register_shot(self, cell: Coordinate) -> ShotOutcome:
        """Fire at ``cell`` and return what happened.

        Firing at a cell that is already recorded changes nothing and
        returns the outcome stored the first time.
        """
        with tracer.start_as_current_span("battle.register_shot") as span:
            span.set_attribute("shot.x", cell.x)
            span.set_attribute("shot.y", cell.y)

            previous = self._shots.get(cell)
            if previous is not None:
                span.set_attribute("shot.outcome", previous.kind.value)
                span.set_attribute("shot.repeat", True)
                logger.debug("shot_repeat", extra={"x": cell.x, "y": cell.y})
                return previous

            ship_id = self._positions.get(cell)
            if ship_id is None:
                outcome = ShotOutcome(ShotKind.MISS, cell)
                self._record({cell: outcome})
            else:
                outcome = self._hit(ship_id, cell)

            span.set_attribute("shot.outcome", outcome.kind.value)
            SHOT_COUNTER.add(1, attributes={"outcome": outcome.kind.value})
            logger.info(
                "shot_registered",
                extra={
                    "x": cell.x,
                    "y": cell.y,
                    "outcome": outcome.kind.value,
                    "ship_id": outcome.ship_id,
                },
            )
            return outcome

    def cell_state(self, cell: Coordinate) -> CellState:
        """Return how the cell should be shown to the attacker."""
        outcome = self._shots.get(cell)
        if outcome is None:
            return CellState.UNKNOWN
        if outcome.kind in (ShotKind.HIT, ShotKind.SUNK):
            return CellState.HIT
        return CellState.MISS

    def is_sunk(self, ship_id: int) -> bool:
        return self._destroyed.get(ship_id, 0) == self._ships[ship_id].size

    def sunk_ship_ids(self) -> list[int]:
        return [ship_id for ship_id in self._ships if self.is_sunk(ship_id)]

    def all_sunk(self) -> bool:
        """Check whether every ship of the fleet has been sunk."""
        return all(self.is_sunk(ship_id) for ship_id in self._ships)

    def _hit(self, ship_id: int, cell: Coordinate) -> ShotOutcome:
        ship = self._ships[ship_id]
        count = self._destroyed.get(ship_id, 0) + 1
        self._destroyed = MappingProxyType({**self._destroyed, ship_id: count})

        if count < ship.size:
            outcome = ShotOutcome(ShotKind.HIT, cell, ship_id)
            self._record({cell: outcome})
            return outcome

        revealed = tuple(
            ring_cell
            for ring_cell in ship.padded_cells()
            if ring_cell not in self._shots and ring_cell not in self._positions
        )
        outcome = ShotOutcome(ShotKind.SUNK, cell, ship_id, revealed)
        recorded = {cell: outcome}
        for ring_cell in revealed:
            recorded[ring_cell] = ShotOutcome(ShotKind.REVEALED, ring_cell)
        self._record(recorded)
        logger.info("ship_sunk", extra={"ship_id": ship_id, "revealed": len(revealed)})
        return outcome

    def _record(self, outcomes: Mapping[Coordinate, ShotOutcome]) -> None:
        self._shots = MappingProxyType({**self._shots, **outcomes})
