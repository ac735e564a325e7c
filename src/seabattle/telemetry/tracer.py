"""Tracing helpers built on OpenTelemetry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig


_TRACER: Tracer | None = None
_TRACER_PROVIDER: TracerProvider | None = None


def get_tracer(name: str = "seabattle") -> Tracer:
    """Return the shared tracer, falling back to the global proxy provider."""
    global _TRACER
    if _TRACER is None:
        _TRACER = trace.get_tracer(name)
    return _TRACER


def _span_processor(config: TelemetryConfig) -> SpanProcessor:
    # Console output is synchronous, OTLP export is batched.
    if not config.otlp_traces_endpoint:
        return SimpleSpanProcessor(ConsoleSpanExporter())
    exporter = OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True)
    return BatchSpanProcessor(exporter)


def init_tracing(config: TelemetryConfig) -> Tracer:
    """Install a TracerProvider that exports over OTLP, or to the console."""
    global _TRACER, _TRACER_PROVIDER

    provider = TracerProvider(resource=Resource.create(config.resource()))
    provider.add_span_processor(_span_processor(config))
    trace.set_tracer_provider(provider)

    _TRACER_PROVIDER = provider
    _TRACER = provider.get_tracer(config.service_name)
    return _TRACER


def shutdown_tracing() -> None:
    """Flush batched spans and drop the installed provider.

    Does nothing when :func:`init_tracing` was never called.
    """
    global _TRACER, _TRACER_PROVIDER

    provider = _TRACER_PROVIDER
    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
    _TRACER_PROVIDER = None
    _TRACER = None
