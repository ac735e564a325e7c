"""Fleet planning: drag-and-flip gestures over a live validity overlay."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from seabattle.telemetry import get_tracer

from .collection import NormalizedCollection, normalize
from .generator import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_RESTARTS, generate_fleet
from .geometry import flip, move_to, padding_ring
from .ship import STANDARD_ROSTER, Coordinate, Rect, Ship
from .validator import ValidationResult, validate_field

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.placement")

DEFAULT_CANVAS = Rect(0, 0, 25, 13)
DEFAULT_PLAYER_FIELD = Rect(1, 1, 10, 10)
DEFAULT_CELL_SIZE = 20
DEFAULT_DRAG_THRESHOLD = 1 / 3


class PlacementError(ValueError):
    """Raised when an invalid fleet is confirmed."""


class GesturePhase(Enum):
    """Phase of the pointer gesture on a single ship."""

    PRESSED = "pressed"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class DragGesture:
    """State of one press-move-release sequence on a ship."""

    ship_id: int
    start_x: int
    start_y: int
    phase: GesturePhase = GesturePhase.PRESSED

    @property
    def is_dragging(self) -> bool:
        return self.phase is GesturePhase.DRAGGING


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class PlacementSession:
    """Owns the planning fleet and applies gestures to it.

    The fleet is a :class:`NormalizedCollection` that gets replaced on every
    change. After each transition the whole fleet is validated against the
    player field and the result is kept in :attr:`validation`.
    """

    def __init__(
        self,
        ships: Sequence[Ship] | NormalizedCollection[Ship],
        field: Rect = DEFAULT_PLAYER_FIELD,
        canvas: Rect = DEFAULT_CANVAS,
        cell_size: int = DEFAULT_CELL_SIZE,
        drag_threshold: float = DEFAULT_DRAG_THRESHOLD,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_restarts: int = DEFAULT_MAX_RESTARTS,
    ) -> None:
        self.field = field
        self.canvas = canvas
        self.cell_size = cell_size
        self.drag_threshold = drag_threshold
        self.max_attempts = max_attempts
        self.max_restarts = max_restarts
        self._fleet = ships if isinstance(ships, NormalizedCollection) else normalize(ships)
        self._gesture: DragGesture | None = None
        self._validation = validate_field(self._fleet, self.field)

    @classmethod
    def random(
        cls,
        rng: random.Random | None = None,
        roster: Sequence[int] = STANDARD_ROSTER,
        field: Rect = DEFAULT_PLAYER_FIELD,
        canvas: Rect = DEFAULT_CANVAS,
        cell_size: int = DEFAULT_CELL_SIZE,
        drag_threshold: float = DEFAULT_DRAG_THRESHOLD,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_restarts: int = DEFAULT_MAX_RESTARTS,
    ) -> PlacementSession:
        """Create a session seeded with a randomly generated fleet."""
        fleet = generate_fleet(
            roster, field, rng, max_attempts=max_attempts, max_restarts=max_restarts
        )
        return cls(fleet, field, canvas, cell_size, drag_threshold, max_attempts, max_restarts)

    @property
    def fleet(self) -> NormalizedCollection[Ship]:
        return self._fleet

    @property
    def ships(self) -> list[Ship]:
        return self._fleet.to_list()

    @property
    def gesture(self) -> DragGesture | None:
        return self._gesture

    @property
    def validation(self) -> ValidationResult:
        return self._validation

    @property
    def dragging_ship_id(self) -> int | None:
        """Id of the ship currently being dragged, if any."""
        if self._gesture is not None and self._gesture.is_dragging:
            return self._gesture.ship_id
        return None

    def press(self, ship_id: int) -> None:
        """Start a gesture on ``ship_id``."""
        ship = self._fleet.get(ship_id)
        if self._gesture is not None:
            logger.warning(
                "gesture_abandoned",
                extra={"ship_id": self._gesture.ship_id, "phase": self._gesture.phase.value},
            )
        self._gesture = DragGesture(ship_id, ship.x, ship.y)
        self._revalidate()

    def drag(self, dx: float, dy: float) -> Ship | None:
        """Apply the pointer displacement ``(dx, dy)`` measured from the press.

        Returns the dragged ship as it stands afterwards, or ``None`` when
        no gesture is open.
        """
        gesture = self._gesture
        if gesture is None:
            return None

        if not gesture.is_dragging:
            limit = self.cell_size * self.drag_threshold
            if abs(dx) <= limit and abs(dy) <= limit:
                return self._fleet.get(gesture.ship_id)
            gesture = replace(gesture, phase=GesturePhase.DRAGGING)
            self._gesture = gesture
            logger.debug("drag_started", extra={"ship_id": gesture.ship_id})

        ship = self._fleet.get(gesture.ship_id)
        target_x = min(
            self.canvas.right - ship.width - 1,
            max(self.canvas.x, gesture.start_x + _round_half_up(dx / self.cell_size)),
        )
        target_y = min(
            self.canvas.bottom - ship.height - 1,
            max(self.canvas.y, gesture.start_y + _round_half_up(dy / self.cell_size)),
        )
        if (ship.x, ship.y) != (target_x, target_y):
            ship = move_to(ship, target_x, target_y)
            self._fleet = self._fleet.set(ship.id, ship)
        self._revalidate()
        return ship

    def release(self) -> Ship | None:
        """Finish the gesture; a press that never dragged flips the ship."""
        gesture = self._gesture
        if gesture is None:
            return None
        self._gesture = None

        ship = self._fleet.get(gesture.ship_id)
        if not gesture.is_dragging:
            ship = flip(ship)
            self._fleet = self._fleet.set(ship.id, ship)
            logger.debug(
                "ship_flipped",
                extra={"ship_id": ship.id, "orientation": ship.orientation.value},
            )
        else:
            logger.debug("drag_finished", extra={"ship_id": ship.id, "x": ship.x, "y": ship.y})
        self._revalidate()
        return ship

    def randomize(self, rng: random.Random | None = None, roster: Sequence[int] | None = None) -> None:
        """Replace the fleet with a freshly generated one."""
        with tracer.start_as_current_span("placement.randomize"):
            sizes = roster if roster is not None else [ship.size for ship in self._fleet]
            self._gesture = None
            self._fleet = generate_fleet(
                sizes,
                self.field,
                rng,
                max_attempts=self.max_attempts,
                max_restarts=self.max_restarts,
            )
            self._revalidate()

    def confirm(self) -> list[Ship]:
        """Return the fleet for battle, refusing while any ship is invalid."""
        if not self._validation.valid:
            logger.warning(
                "placement_confirm_rejected",
                extra={"invalid_ids": sorted(self._validation.invalid_ids)},
            )
            raise PlacementError(
                f"Ships {sorted(self._validation.invalid_ids)} break the placement rules."
            )
        logger.info("placement_confirmed", extra={"ships": len(self._fleet)})
        return self._fleet.to_list()

    def guide_cells(self) -> list[Coordinate]:
        """Cells bordering every ship, shown while a drag is in progress."""
        if self.dragging_ship_id is None:
            return []
        cells: list[Coordinate] = []
        for ship in self._fleet:
            cells.extend(padding_ring(ship, self.field))
        return cells

    def _revalidate(self) -> None:
        self._validation = validate_field(self._fleet, self.field)
