"""High-level gameplay tests."""

import pytest

from seabattle.config import GameConfig
from seabattle.engine.battle import ShotKind
from seabattle.engine.game import GamePhase, SeaBattleGame
from seabattle.engine.placement import PlacementError
from seabattle.engine.ship import Coordinate
from seabattle.engine.validator import validate_field


def test_game_starts_in_planning_with_a_valid_fleet() -> None:
    game = SeaBattleGame(rng_seed=1)
    state = game.get_state()
    assert state.phase is GamePhase.PLANNING
    assert state.validation is not None and state.validation.valid
    assert len(state.player_ships) == len(game.config.roster)
    assert state.shots == {}


def test_fire_requires_battle_phase() -> None:
    game = SeaBattleGame(rng_seed=2)
    with pytest.raises(RuntimeError):
        game.fire(Coordinate(13, 1))
    assert game.valid_targets() == []


def test_start_battle_places_enemy_fleet_in_enemy_field() -> None:
    game = SeaBattleGame(rng_seed=3)
    game.start_battle()
    assert game.phase is GamePhase.BATTLE
    assert game.resolver is not None
    enemy_field = game.config.enemy_field
    assert validate_field(game.resolver.ships, enemy_field).valid
    for ship in game.resolver.ships:
        assert all(enemy_field.contains(cell) for cell in ship.cells())
    assert len(game.valid_targets()) == enemy_field.width * enemy_field.height

    with pytest.raises(RuntimeError):
        game.start_battle()


def test_invalid_planning_fleet_blocks_the_battle() -> None:
    game = SeaBattleGame(rng_seed=4)
    session = game.placement
    anchor, mover = session.fleet.get(0), session.fleet.get(1)
    session.press(mover.id)
    session.drag(
        (anchor.x - mover.x) * session.cell_size,
        (anchor.y - mover.y) * session.cell_size,
    )
    session.release()
    assert not session.validation.valid

    with pytest.raises(PlacementError):
        game.start_battle()
    assert game.phase is GamePhase.PLANNING
    assert game.resolver is None


def test_off_field_shot_is_rejected() -> None:
    game = SeaBattleGame(rng_seed=5)
    game.start_battle()
    with pytest.raises(ValueError):
        game.fire(Coordinate(1, 1))
    assert game.resolver is not None and len(game.resolver.shots) == 0


def test_game_flow_until_every_ship_is_sunk() -> None:
    game = SeaBattleGame(rng_seed=42)
    game.start_battle()

    fired = 0
    while game.phase is GamePhase.BATTLE:
        targets = game.valid_targets()
        assert targets, "There should always be a target while the battle is on."
        game.fire(targets[0])
        fired += 1

    state = game.get_state()
    assert state.phase is GamePhase.FINISHED
    assert sorted(state.sunk_ship_ids) == list(range(state.enemy_ship_count))
    assert fired <= game.config.enemy_field.width * game.config.enemy_field.height
    with pytest.raises(RuntimeError):
        game.fire(Coordinate(13, 1))


def test_sinking_shot_reports_revealed_cells() -> None:
    game = SeaBattleGame(rng_seed=8)
    game.start_battle()
    assert game.resolver is not None
    target = min(game.resolver.ships, key=lambda ship: ship.size)
    outcome = None
    for cell in target.cells():
        outcome = game.fire(cell)
    assert outcome is not None and outcome.kind is ShotKind.SUNK
    assert outcome.revealed_cells
    state = game.get_state()
    assert target.id in state.sunk_ship_ids
    assert all(cell in state.shots for cell in outcome.revealed_cells)


def test_custom_config_roster() -> None:
    game = SeaBattleGame(GameConfig(roster=(3, 2), seed=9))
    assert [ship.size for ship in game.placement.ships] == [3, 2]
    game.start_battle()
    assert game.resolver is not None
    assert [ship.size for ship in game.resolver.ships] == [3, 2]
