"""
StudyTrust Observability Layer

Tracing, metrics and logging setup.
"""

from studytrust.observability.log_setup import JSONFormatter, configure_logging
from studytrust.observability.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    PipelineMetrics,
    get_pipeline_metrics,
    get_registry,
    reset_metrics,
)
from studytrust.observability.tracer import (
    Span,
    SpanEvent,
    SpanKind,
    SpanStatus,
    Tracer,
    get_tracer,
    reset_tracers,
)

__all__ = [
    # Tracer
    "Tracer",
    "Span",
    "SpanEvent",
    "SpanKind",
    "SpanStatus",
    "get_tracer",
    "reset_tracers",
    # Metrics
    "MetricsRegistry",
    "Counter",
    "Gauge",
    "Histogram",
    "PipelineMetrics",
    "get_registry",
    "get_pipeline_metrics",
    "reset_metrics",
    # Logging
    "JSONFormatter",
    "configure_logging",
]
