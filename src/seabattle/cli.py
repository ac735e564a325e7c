"""Terminal driver: plan a fleet, then shell the static enemy fleet."""

from __future__ import annotations

import argparse
from typing import Callable, Iterable

from seabattle.config import GameConfig, load_game_config
from seabattle.engine.battle import BattleResolver, CellState, ShotKind, ShotOutcome
from seabattle.engine.game import GamePhase, SeaBattleGame
from seabattle.engine.instrumented_game import InstrumentedSeaBattleGame
from seabattle.engine.placement import PlacementError, PlacementSession
from seabattle.engine.ship import Coordinate, Rect, Ship
from seabattle.telemetry import init_telemetry, shutdown_tracing
from seabattle.telemetry.logger import init_console_logging

COLUMN_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

PLANNING_HELP = """Commands:
  move <id> <cell>   drag ship <id> so its anchor lands on <cell> (e.g. move 3 B7)
  flip <id>          click ship <id> to turn it around its anchor
  random             place the whole fleet at random
  ready              start the battle (only when no ship is marked with !)
  q                  quit"""


def _coordinate_from_input(text: str, field: Rect) -> Coordinate:
    """Parse a label such as ``B7`` into an absolute cell of ``field``."""
    cleaned = text.strip().upper()
    if len(cleaned) < 2:
        raise ValueError("Use a column letter followed by a row number, e.g. A5.")
    letters = COLUMN_LABELS[: field.width]
    if cleaned[0] not in letters:
        raise ValueError(f"Column must be between {letters[0]} and {letters[-1]}.")
    try:
        row = int(cleaned[1:])
    except ValueError as exc:
        raise ValueError(f"Row must be a number between 1 and {field.height}.") from exc
    if not 1 <= row <= field.height:
        raise ValueError(f"Row must be a number between 1 and {field.height}.")
    return Coordinate(field.x + letters.index(cleaned[0]), field.y + row - 1)


def _cell_label(cell: Coordinate, field: Rect) -> str:
    if not field.contains(cell):
        return f"({cell.x},{cell.y})"
    return f"{COLUMN_LABELS[cell.x - field.x]}{cell.y - field.y + 1}"


def _format_grid(field: Rect, symbol_for: Callable[[Coordinate], str]) -> str:
    header = "    " + " ".join(f"{COLUMN_LABELS[col]:>2}" for col in range(field.width))
    rows = [header]
    for row in range(field.height):
        symbols = [
            f"{symbol_for(Coordinate(field.x + col, field.y + row)):>2}"
            for col in range(field.width)
        ]
        rows.append(f"{row + 1:>2} |" + " ".join(symbols))
    return "\n".join(rows)


def _format_planning(session: PlacementSession) -> str:
    invalid = session.validation.invalid_ids
    by_cell = {cell: ship for ship in session.ships for cell in ship.cells()}

    def symbol(cell: Coordinate) -> str:
        ship = by_cell.get(cell)
        if ship is None:
            return "."
        return "!" if ship.id in invalid else str(ship.id)

    lines = [_format_grid(session.field, symbol), ""]
    for ship in session.ships:
        marker = "!" if ship.id in invalid else " "
        lines.append(
            f"{marker} ship {ship.id}: size {ship.size} {ship.orientation.value:<10} "
            f"at {_cell_label(ship.origin, session.field)}"
        )
    return "\n".join(lines)


def _format_player_fleet(ships: Iterable[Ship], field: Rect) -> str:
    cells = {cell for ship in ships for cell in ship.cells()}
    return _format_grid(field, lambda cell: "S" if cell in cells else ".")


def _format_enemy_waters(resolver: BattleResolver, field: Rect) -> str:
    def symbol(cell: Coordinate) -> str:
        state = resolver.cell_state(cell)
        if state is CellState.HIT:
            return "X"
        if state is CellState.MISS:
            return "o"
        return "."

    return _format_grid(field, symbol)


def _describe_shot(outcome: ShotOutcome, field: Rect) -> str:
    label = _cell_label(outcome.cell, field)
    if outcome.kind is ShotKind.SUNK:
        return f"{label}: sunk! {len(outcome.revealed_cells)} surrounding cells revealed."
    if outcome.kind is ShotKind.HIT:
        return f"{label}: hit."
    if outcome.kind is ShotKind.REVEALED:
        return f"{label}: already known to be empty."
    return f"{label}: miss."


def _format_battle_status(game: SeaBattleGame) -> str:
    if game.resolver is None:
        return ""
    sunk = len(game.resolver.sunk_ship_ids())
    return (
        f"Enemy ships sunk: {sunk}/{len(game.resolver.ships)}, "
        f"unexplored cells: {len(game.valid_targets())}"
    )


def _drag_ship_to(session: PlacementSession, ship_id: int, target: Coordinate) -> None:
    ship = session.fleet.get(ship_id)
    if (ship.x, ship.y) == (target.x, target.y):
        return
    dx = (target.x - ship.x) * session.cell_size
    dy = (target.y - ship.y) * session.cell_size
    limit = session.cell_size * session.drag_threshold
    session.press(ship_id)
    if abs(dx) <= limit and abs(dy) <= limit:
        # Short moves first wander past the threshold so release never flips.
        session.drag(limit + 1, 0)
    session.drag(dx, dy)
    session.release()


def _flip_ship(session: PlacementSession, ship_id: int) -> None:
    session.press(ship_id)
    session.release()


def _parse_ship_id(raw: str, session: PlacementSession) -> int:
    try:
        ship_id = int(raw)
    except ValueError as exc:
        raise ValueError("Ship id must be a number.") from exc
    if ship_id not in session.fleet:
        raise ValueError(f"There is no ship {ship_id}.")
    return ship_id


def _handle_planning_command(game: SeaBattleGame, raw: str) -> str | None:
    """Apply one planning command; returns a message for the player."""
    session = game.placement
    parts = raw.split()
    if not parts:
        return None
    command, args = parts[0].lower(), parts[1:]

    if command == "move" and len(args) == 2:
        ship_id = _parse_ship_id(args[0], session)
        _drag_ship_to(session, ship_id, _coordinate_from_input(args[1], session.field))
        return None
    if command == "flip" and len(args) == 1:
        _flip_ship(session, _parse_ship_id(args[0], session))
        return None
    if command == "random" and not args:
        session.randomize(game.rng)
        return None
    if command == "ready" and not args:
        game.start_battle()
        return "The enemy fleet is in position. Open fire!"
    return PLANNING_HELP


def _plan_fleet(game: SeaBattleGame) -> None:
    print(PLANNING_HELP)
    while game.phase is GamePhase.PLANNING:
        print("\nYour fleet:")
        print(_format_planning(game.placement))
        raw = input("plan> ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            message = _handle_planning_command(game, raw)
        except PlacementError as exc:
            message = f"Not ready yet: {exc}"
        except ValueError as exc:
            message = f"Invalid input: {exc}"
        if message:
            print(message)


def _battle(game: SeaBattleGame) -> None:
    field = game.config.enemy_field
    while game.phase is GamePhase.BATTLE and game.resolver is not None:
        print("\nYour fleet:")
        print(_format_player_fleet(game.player_ships, game.config.player_field))
        print("\nEnemy waters:")
        print(_format_enemy_waters(game.resolver, field))
        print(_format_battle_status(game))
        raw = input("Enter target cell (e.g. A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            cell = _coordinate_from_input(raw, field)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        print(_describe_shot(game.fire(cell), field))


def play_game(config: GameConfig | None = None, seed: int | None = None, instrumented: bool = False) -> None:
    print("Welcome to Sea Battle!\n")
    game_cls = InstrumentedSeaBattleGame if instrumented else SeaBattleGame
    game = game_cls(config=config, rng_seed=seed)
    _plan_fleet(game)
    _battle(game)
    if game.resolver is None:
        return
    print("\nEnemy waters:")
    print(_format_enemy_waters(game.resolver, game.config.enemy_field))
    print(f"\nEvery enemy ship is sunk after {len(game.resolver.shots)} recorded cells. You won!")


def main() -> None:
    parser = argparse.ArgumentParser(description="Play Sea Battle in the terminal.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level for engine events (default: WARNING)."
    )
    parser.add_argument(
        "--telemetry",
        action="store_true",
        help="Initialise OpenTelemetry exporters from the environment.",
    )
    args = parser.parse_args()

    init_console_logging(args.log_level.upper())
    if args.telemetry:
        init_telemetry()
    try:
        play_game(config=load_game_config(), seed=args.seed, instrumented=args.telemetry)
    finally:
        if args.telemetry:
            shutdown_tracing()


if __name__ == "__main__":
    main()
