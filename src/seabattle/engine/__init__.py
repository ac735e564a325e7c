"""Fleet placement, validation and battle engine."""

from .battle import BattleResolver, CellState, ShotKind, ShotOutcome
from .collection import NormalizedCollection, denormalize, normalize
from .generator import FleetGenerationError, generate_fleet
from .geometry import flip, move_to, padding_ring, shift_by
from .placement import DragGesture, GesturePhase, PlacementError, PlacementSession
from .ship import STANDARD_ROSTER, Coordinate, Orientation, Rect, Ship
from .validator import ValidationResult, validate_field

__all__ = [
    "BattleResolver",
    "CellState",
    "Coordinate",
    "DragGesture",
    "FleetGenerationError",
    "GesturePhase",
    "NormalizedCollection",
    "Orientation",
    "PlacementError",
    "PlacementSession",
    "Rect",
    "STANDARD_ROSTER",
    "Ship",
    "ShotKind",
    "ShotOutcome",
    "ValidationResult",
    "denormalize",
    "flip",
    "generate_fleet",
    "move_to",
    "normalize",
    "padding_ring",
    "shift_by",
    "validate_field",
]
