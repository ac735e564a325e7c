"""Pure transforms over positioned entities.

Every function returns a new object built with :func:`dataclasses.replace`;
the input is never modified. None of them validate the result: a shifted
ship may well leave the field, and it is up to the caller to run the field
validator afterwards.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol, TypeVar

from .ship import Coordinate, Orientation, Rect, Ship


class Positioned(Protocol):
    x: int
    y: int


class Oriented(Protocol):
    orientation: Orientation


PositionedT = TypeVar("PositionedT", bound=Positioned)
OrientedT = TypeVar("OrientedT", bound=Oriented)


def shift_by(entity: PositionedT, dx: int, dy: int) -> PositionedT:
    """Return a copy of ``entity`` translated by ``(dx, dy)``."""
    return replace(entity, x=entity.x + dx, y=entity.y + dy)  # type: ignore[type-var]


def move_to(entity: PositionedT, x: int, y: int) -> PositionedT:
    """Return a copy of ``entity`` relocated to ``(x, y)``."""
    return replace(entity, x=x, y=y)  # type: ignore[type-var]


def flip(entity: OrientedT) -> OrientedT:
    """Return a copy of ``entity`` with its orientation toggled.

    The anchor stays where it is, so a horizontal ship pivots into a
    vertical one hanging down from the same top-left cell.
    """
    return replace(entity, orientation=entity.orientation.flipped())  # type: ignore[type-var]


def padding_ring(ship: Ship, clip: Rect | None = None) -> list[Coordinate]:
    """Return the cells bordering ``ship``, optionally limited to ``clip``."""
    ring = [cell for cell in ship.padded_cells() if not ship.occupies(cell)]
    if clip is None:
        return ring
    return [cell for cell in ring if clip.contains(cell)]
