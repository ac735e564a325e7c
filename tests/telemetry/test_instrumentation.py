"""Telemetry instrumentation unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from seabattle.engine.battle import ShotKind, ShotOutcome
from seabattle.engine.game import GamePhase, SeaBattleGame
from seabattle.engine.instrumented_game import InstrumentedSeaBattleGame
from seabattle.engine.ship import Coordinate
from seabattle.telemetry import config as telemetry_config_module
from seabattle.telemetry import logger as logger_module
from seabattle.telemetry import metrics as metrics_module
from seabattle.telemetry import tracer as tracer_module
from seabattle.telemetry.config import TelemetryConfig

OTEL_VARIABLES = (
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
    "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
    "OTEL_TRACES_ENABLED",
    "OTEL_METRICS_ENABLED",
    "OTEL_LOGS_ENABLED",
    "OTEL_SERVICE_NAME",
    "OTEL_SERVICE_NAMESPACE",
    "OTEL_RESOURCE_ATTRIBUTES",
    "SEABATTLE_ENABLE_TRACING",
    "SEABATTLE_ENABLE_METRICS",
    "SEABATTLE_ENABLE_LOGGING",
)


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.attributes: dict[str, object] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value

    def record_exception(self, exc):
        pass


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []

    def start_as_current_span(self, name: str):
        return DummySpan(self.span_names, name)


def reset_singletons() -> None:
    tracer_module._TRACER = None
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METER = None
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGER = None


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in OTEL_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_lazy_init_tracer(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    provider_instance.get_tracer.return_value = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module, "BatchSpanProcessor", MagicMock())
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module._TRACER is provider_instance.get_tracer.return_value

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(metrics_module, "PeriodicExportingMetricReader", MagicMock())
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module._METER is meter_provider.get_meter.return_value
    reset_singletons()


def test_shutdown_tracing_flushes_and_resets(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    tracer_module.shutdown_tracing()

    provider = MagicMock()
    monkeypatch.setattr(tracer_module, "_TRACER_PROVIDER", provider)
    monkeypatch.setattr(tracer_module, "_TRACER", MagicMock())
    tracer_module.shutdown_tracing()

    provider.force_flush.assert_called_once_with()
    provider.shutdown.assert_called_once_with()
    assert tracer_module._TRACER_PROVIDER is None
    assert tracer_module._TRACER is None


def test_record_game_metric_reuses_instruments(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    meter = MagicMock()
    monkeypatch.setattr(metrics_module, "_METER", meter)

    metrics_module.record_game_metric("seabattle_test_total", 1, {"result": "hit"})
    metrics_module.record_game_metric("seabattle_test_total", 2)

    meter.create_counter.assert_called_once_with("seabattle_test_total")
    counter = meter.create_counter.return_value
    assert counter.add.call_count == 2
    counter.add.assert_called_with(2, attributes={})
    reset_singletons()


def test_get_logger_is_cached() -> None:
    reset_singletons()
    logger = logger_module.get_logger("test")
    assert logger_module.get_logger("other") is logger
    reset_singletons()


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(tracer_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(metrics_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(logger_module, "init_logging", lambda cfg: calls.append("lo"))

    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    assert telemetry_config_module.init_telemetry(config) is config
    assert calls == ["tr", "lo"]


def test_from_env_flags_and_endpoints(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("SEABATTLE_ENABLE_METRICS", "yes")
    clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    clean_env.setenv("OTEL_SERVICE_NAME", "seabattle-test")
    clean_env.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment.environment=ci,broken")

    config = TelemetryConfig.from_env()
    assert config.enable_metrics
    assert config.enable_tracing and config.enable_logging
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint == "http://collector:4317/v1/logs"
    assert config.service_name == "seabattle-test"
    assert config.resource_attributes == {"deployment.environment": "ci"}
    assert config.resource()["service.name"] == "seabattle-test"


def test_from_env_defaults_leave_everything_off(clean_env: pytest.MonkeyPatch) -> None:
    config = TelemetryConfig.from_env()
    assert not (config.enable_tracing or config.enable_metrics or config.enable_logging)
    assert config.otlp_traces_endpoint is None
    assert config.service_name == "seabattle"


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(TelemetryConfig, "from_env", classmethod(fake_from_env))

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_instrumented_game_emits_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    metrics_calls: list[tuple[str, float, dict | None]] = []
    logger = MagicMock()

    monkeypatch.setattr("seabattle.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr("seabattle.engine.instrumented_game.get_logger", lambda *_: logger)
    monkeypatch.setattr(
        "seabattle.engine.instrumented_game.record_game_metric",
        lambda name, value, attrs=None: metrics_calls.append((name, value, attrs)),
    )
    monkeypatch.setattr(SeaBattleGame, "start_battle", lambda self: None)

    def fake_fire(self, cell):
        self.phase = GamePhase.FINISHED
        return ShotOutcome(ShotKind.SUNK, cell, 0, (Coordinate(12, 0),))

    monkeypatch.setattr(SeaBattleGame, "fire", fake_fire)

    game = InstrumentedSeaBattleGame(rng_seed=0)
    game.start_battle()
    assert "seabattle.engine.game" in tracer.span_names
    assert "seabattle.engine.start_battle" in tracer.span_names

    tracer.span_names.clear()
    metrics_calls.clear()
    outcome = game.fire(Coordinate(13, 1))
    assert outcome.kind is ShotKind.SUNK
    assert "seabattle.engine.fire" in tracer.span_names
    assert "seabattle.engine.game_complete" in tracer.span_names
    metric_names = {name for name, _, _ in metrics_calls}
    assert "seabattle_shots_total" in metric_names
    assert "seabattle_cells_revealed_total" in metric_names
    assert "seabattle_game_completed_total" in metric_names


def test_instrumented_game_records_rejected_shot(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    metric_names: list[str] = []

    monkeypatch.setattr("seabattle.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr("seabattle.engine.instrumented_game.get_logger", lambda *_: MagicMock())
    monkeypatch.setattr(
        "seabattle.engine.instrumented_game.record_game_metric",
        lambda name, value, attrs=None: metric_names.append(name),
    )

    game = InstrumentedSeaBattleGame(rng_seed=1)
    game.start_battle()
    with pytest.raises(ValueError):
        game.fire(Coordinate(0, 0))
    assert "seabattle_game_invalid_shots_total" in metric_names
