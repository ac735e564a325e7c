"""Random fleet generation by rejection sampling."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from seabattle.telemetry import get_meter, get_tracer

from .collection import NormalizedCollection, normalize
from .ship import STANDARD_ROSTER, Orientation, Rect, Ship
from .validator import validate_field

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.generator")
meter = get_meter("seabattle.engine.generator")

PLACEMENT_COUNTER = meter.create_counter(
    "seabattle_engine_ship_placements",
    unit="1",
    description="Number of sampled ship placements",
)

DEFAULT_MAX_ATTEMPTS = 1000
DEFAULT_MAX_RESTARTS = 100


class FleetGenerationError(RuntimeError):
    """Raised when a roster cannot be placed inside the requested bounds."""


def generate_fleet(
    roster: Sequence[int] = STANDARD_ROSTER,
    bounds: Rect = Rect(0, 0, 10, 10),
    rng: random.Random | None = None,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    max_restarts: int = DEFAULT_MAX_RESTARTS,
) -> NormalizedCollection[Ship]:
    """Place one ship per roster entry at random, keeping the fleet valid.

    Each ship is sampled until the whole fleet so far passes
    :func:`validate_field`. When one ship needs more than ``max_attempts``
    samples the fleet is thrown away and rebuilt; after ``max_restarts``
    rebuilds :class:`FleetGenerationError` is raised.
    """
    rng = rng or random.Random()
    with tracer.start_as_current_span("generator.generate_fleet") as span:
        span.set_attribute("roster.length", len(roster))
        span.set_attribute("bounds.width", bounds.width)
        span.set_attribute("bounds.height", bounds.height)
        _check_roster_fits(roster, bounds)

        for restart in range(max_restarts + 1):
            ships = _try_place_roster(roster, bounds, rng, max_attempts)
            if ships is not None:
                span.set_attribute("generator.restarts", restart)
                logger.info(
                    "fleet_generated",
                    extra={"ships": len(ships), "restarts": restart},
                )
                return normalize(ships)
            logger.debug("fleet_generation_restart", extra={"restart": restart + 1})

        logger.error(
            "fleet_generation_exhausted",
            extra={"roster": list(roster), "max_restarts": max_restarts},
        )
        raise FleetGenerationError(
            f"Could not place roster {list(roster)} in {bounds} after {max_restarts} restarts."
        )


def random_ship(ship_id: int, size: int, bounds: Rect, rng: random.Random) -> Ship:
    """Sample one ship whose extent fits inside ``bounds``."""
    if size > bounds.height:
        orientation = Orientation.HORIZONTAL
    elif size > bounds.width:
        orientation = Orientation.VERTICAL
    else:
        orientation = Orientation.HORIZONTAL if rng.random() < 0.5 else Orientation.VERTICAL
    width = size if orientation is Orientation.HORIZONTAL else 1
    height = size if orientation is Orientation.VERTICAL else 1
    x = bounds.x + rng.randint(0, bounds.width - width)
    y = bounds.y + rng.randint(0, bounds.height - height)
    return Ship(id=ship_id, x=x, y=y, size=size, orientation=orientation)


def _try_place_roster(
    roster: Sequence[int], bounds: Rect, rng: random.Random, max_attempts: int
) -> list[Ship] | None:
    ships: list[Ship] = []
    for size in roster:
        attempts = 0
        while True:
            attempts += 1
            ships.append(random_ship(len(ships), size, bounds, rng))
            if validate_field(ships, bounds).valid:
                PLACEMENT_COUNTER.add(1, attributes={"result": "success"})
                break
            ships.pop()
            PLACEMENT_COUNTER.add(1, attributes={"result": "rejected"})
            if attempts >= max_attempts:
                return None
        logger.debug("random_ship_placed", extra={"size": size, "attempts": attempts})
    return ships


def _check_roster_fits(roster: Sequence[int], bounds: Rect) -> None:
    longest = max(bounds.width, bounds.height)
    shortest = min(bounds.width, bounds.height)
    for size in roster:
        if size < 1 or shortest < 1 or size > longest:
            logger.error(
                "roster_does_not_fit",
                extra={"size": size, "width": bounds.width, "height": bounds.height},
            )
            raise FleetGenerationError(f"A ship of size {size} cannot fit in {bounds}.")
