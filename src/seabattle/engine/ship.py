"""Ship domain model for the SeaBattle engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Coordinate:
    """Immutable grid cell; ``x`` is the column and ``y`` the row."""

    x: int
    y: int


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle of grid cells with exclusive far edges."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, cell: Coordinate) -> bool:
        """Return True if the cell lies inside the rectangle."""
        return self.x <= cell.x < self.right and self.y <= cell.y < self.bottom


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def flipped(self) -> Orientation:
        """Return the other orientation."""
        return Orientation.VERTICAL if self is Orientation.HORIZONTAL else Orientation.HORIZONTAL


STANDARD_ROSTER: tuple[int, ...] = (4, 3, 3, 2, 2, 2, 1, 1, 1, 1)


@dataclass(frozen=True)
class Ship:
    """A single ship anchored at its top-left cell."""

    id: int
    x: int
    y: int
    size: int
    orientation: Orientation

    @property
    def width(self) -> int:
        """Number of columns covered by the footprint."""
        return self.size if self.orientation is Orientation.HORIZONTAL else 1

    @property
    def height(self) -> int:
        """Number of rows covered by the footprint."""
        return self.size if self.orientation is Orientation.VERTICAL else 1

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.x, self.y)

    def cells(self) -> list[Coordinate]:
        """Return the ordered footprint, starting from the anchor cell."""
        if self.orientation is Orientation.HORIZONTAL:
            return [Coordinate(self.x + offset, self.y) for offset in range(self.size)]
        return [Coordinate(self.x, self.y + offset) for offset in range(self.size)]

    def padded_cells(self) -> list[Coordinate]:
        """Return the footprint grown by one cell on every side, diagonals included."""
        return [
            Coordinate(col, row)
            for col in range(self.x - 1, self.x + self.width + 1)
            for row in range(self.y - 1, self.y + self.height + 1)
        ]

    def occupies(self, cell: Coordinate) -> bool:
        return self.x <= cell.x < self.x + self.width and self.y <= cell.y < self.y + self.height
