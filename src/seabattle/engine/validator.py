"""Placement rules: field bounds, overlap and adjacency."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from seabattle.telemetry import get_meter, get_tracer

from .ship import Coordinate, Orientation, Rect, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.validator")
meter = get_meter("seabattle.engine.validator")

VALIDATION_COUNTER = meter.create_counter(
    "seabattle_engine_field_validations",
    unit="1",
    description="Number of fleet validations performed",
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a fleet against a field rectangle."""

    invalid_ids: frozenset[int]

    @property
    def valid(self) -> bool:
        return not self.invalid_ids


def is_inside_field(ship: Ship, bounds: Rect) -> bool:
    """Check a single ship against the field edges.

    The short side of the ship is compared with ``>=`` and the long side
    with ``>``; both reject exactly the placements that stick out of the
    field, and the two forms must stay as they are.
    """
    if ship.x < bounds.x or ship.y < bounds.y:
        return False
    if ship.orientation is Orientation.VERTICAL:
        return not (ship.y + ship.size > bounds.bottom or ship.x >= bounds.right)
    return not (ship.y >= bounds.bottom or ship.x + ship.size > bounds.right)


def validate_field(ships: Iterable[Ship], bounds: Rect) -> ValidationResult:
    """Return the ids of ships that leave ``bounds`` or touch another ship.

    Ships are processed in the given order. Each footprint is compared with
    the padded footprints of the ships seen before it; a shared cell marks
    both ships. The occupancy map remembers every ship claiming a cell, so
    the result is the same for any ordering of ``ships``.
    """
    with tracer.start_as_current_span("validator.validate_field") as span:
        occupied: dict[Coordinate, list[int]] = {}
        invalid: set[int] = set()
        count = 0

        for ship in ships:
            count += 1
            if not is_inside_field(ship, bounds):
                invalid.add(ship.id)

            for cell in ship.cells():
                for other_id in occupied.get(cell, ()):
                    if other_id != ship.id:
                        invalid.add(ship.id)
                        invalid.add(other_id)

            for cell in ship.padded_cells():
                claimants = occupied.setdefault(cell, [])
                if ship.id not in claimants:
                    claimants.append(ship.id)

        result = ValidationResult(frozenset(invalid))
        span.set_attribute("fleet.size", count)
        span.set_attribute("fleet.invalid", len(invalid))
        VALIDATION_COUNTER.add(1, attributes={"valid": result.valid})
        if not result.valid:
            logger.debug(
                "field_invalid",
                extra={"invalid_ids": sorted(invalid), "ships": count},
            )
        return result
