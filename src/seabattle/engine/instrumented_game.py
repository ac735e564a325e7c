"""SeaBattle game with telemetry hooks."""

from __future__ import annotations

import time

from seabattle.engine.battle import ShotKind, ShotOutcome
from seabattle.engine.game import GamePhase, SeaBattleGame
from seabattle.engine.ship import Coordinate
from seabattle.telemetry import get_logger, get_tracer, record_game_metric


class InstrumentedSeaBattleGame(SeaBattleGame):
    """Wraps SeaBattleGame with a per-game span, metrics and logging."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("seabattle.engine")
        self._tracer = get_tracer("seabattle.engine")
        self._game_span_cm = None
        self._game_span = None
        self._battle_start_time: float | None = None
        self._game_id_counter = 0

    def start_battle(self) -> None:
        self._start_game_span()
        with self._tracer.start_as_current_span("seabattle.engine.start_battle") as span:
            try:
                super().start_battle()
            except ValueError as exc:
                record_game_metric("seabattle_placement_rejected_total", 1)
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.warning("Battle refused: %s", exc)
                self._close_game_span()
                raise
            except RuntimeError:
                self._close_game_span()
                raise
            enemy_ships = len(self.resolver.ships) if self.resolver else 0
            span.set_attribute("player_ships", len(self.player_ships))
            span.set_attribute("enemy_ships", enemy_ships)
            record_game_metric(
                "seabattle_battle_started_total",
                1,
                {"player_ships": len(self.player_ships), "enemy_ships": enemy_ships},
            )
            self._logger.info("Battle started with %d ships a side", enemy_ships)

    def fire(self, cell: Coordinate) -> ShotOutcome:
        with self._tracer.start_as_current_span("seabattle.engine.fire") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("cell.x", cell.x)
            span.set_attribute("cell.y", cell.y)

            try:
                outcome = super().fire(cell)
            except ValueError as exc:
                record_game_metric(
                    "seabattle_game_invalid_shots_total", 1, {"reason": "off_field"}
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.error("Invalid shot at (%d,%d): %s", cell.x, cell.y, exc)
                raise

            span.set_attribute("shot_outcome", outcome.kind.value)
            span.set_attribute("sunk", outcome.kind is ShotKind.SUNK)
            record_game_metric("seabattle_shots_total", 1)
            record_game_metric(
                "seabattle_shots_by_result_total", 1, {"result": outcome.kind.value}
            )
            if outcome.revealed_cells:
                record_game_metric("seabattle_cells_revealed_total", len(outcome.revealed_cells))

            self._logger.info(
                "fire cell=(%d,%d) outcome=%s", cell.x, cell.y, outcome.kind.value
            )
            if self.phase is GamePhase.FINISHED:
                self._finish_game()
            return outcome

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._battle_start_time = time.perf_counter()
        self._game_id_counter += 1
        self._game_span_cm = self._tracer.start_as_current_span("seabattle.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.id", self._game_id_counter)

    def _finish_game(self) -> None:
        if self._battle_start_time:
            duration = time.perf_counter() - self._battle_start_time
        else:
            duration = 0.0
        shots = len(self.resolver.shots) if self.resolver else 0

        record_game_metric("seabattle_game_completed_total", 1)
        record_game_metric("seabattle_game_duration_seconds", duration)

        with self._tracer.start_as_current_span("seabattle.engine.game_complete") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("shots", shots)
            span.set_attribute("duration_ms", duration * 1000)

        if self._game_span is not None:
            self._game_span.set_attribute("shots", shots)
            self._game_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info("Game finished. shots=%d duration_s=%.3f", shots, duration)
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
