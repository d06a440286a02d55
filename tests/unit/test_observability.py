"""
Unit Tests for Observability, Configuration and the Provider Factory
"""

import json
import logging

import pytest

from studytrust.config import LLMSettings, Settings, get_settings
from studytrust.core.exceptions import ConfigurationError, MissingAPIKeyError
from studytrust.llm.factory import create_provider
from studytrust.llm.openai_provider import OpenAIProvider
from studytrust.observability.log_setup import JSONFormatter, configure_logging
from studytrust.observability.metrics import MetricsRegistry, PipelineMetrics
from studytrust.observability.tracer import SpanStatus, Tracer


class TestTracer:
    """Tests for the in-process tracer."""

    def test_nested_spans_share_trace(self) -> None:
        """Test child spans inherit the trace and point at their parent."""
        tracer = Tracer("test")
        with tracer.span("outer") as outer:
            with tracer.span("inner") as inner:
                inner.set_attribute("k", "v")

        assert inner.trace_id == outer.trace_id
        assert inner.parent_id == outer.span_id
        assert inner.name == "test.inner"
        assert inner.status == SpanStatus.OK
        assert [s.name for s in tracer.get_spans()] == ["test.inner", "test.outer"]

    def test_error_recorded(self) -> None:
        """Test an exception marks the span and propagates."""
        tracer = Tracer("test")
        with pytest.raises(ValueError):
            with tracer.span("failing"):
                raise ValueError("bad input")

        span = tracer.get_spans()[0]
        assert span.status == SpanStatus.ERROR
        assert span.events[0].attributes["type"] == "ValueError"
        assert span.duration_ms is not None

    def test_span_buffer_bounded(self) -> None:
        """Test old spans are dropped past max_spans."""
        tracer = Tracer("test", max_spans=3)
        for i in range(5):
            with tracer.span(f"s{i}"):
                pass
        assert [s.name for s in tracer.get_spans()] == ["test.s2", "test.s3", "test.s4"]


class TestMetrics:
    """Tests for the metrics registry."""

    def test_counter_labels(self) -> None:
        """Test counters track label combinations separately."""
        counter = MetricsRegistry().counter("requests")
        counter.inc(labels={"input_type": "url"})
        counter.inc(2, labels={"input_type": "pdf"})
        assert counter.get({"input_type": "url"}) == 1
        assert counter.total() == 3

    def test_gauge(self) -> None:
        """Test gauges move both ways."""
        gauge = MetricsRegistry().gauge("in_flight")
        gauge.inc()
        gauge.inc()
        gauge.dec()
        assert gauge.get() == 1

    def test_histogram_timer(self) -> None:
        """Test the timer context records one observation."""
        histogram = MetricsRegistry().histogram("latency")
        with histogram.time({"stage": "score"}):
            pass
        histogram.observe(2.0, {"stage": "score"})
        assert histogram.get_count({"stage": "score"}) == 2
        assert histogram.get_sum({"stage": "score"}) >= 2.0

    def test_registry_reuses_metrics(self) -> None:
        """Test the same name returns the same metric."""
        registry = MetricsRegistry()
        assert registry.counter("x") is registry.counter("x")

    def test_pipeline_metrics_snapshot(self) -> None:
        """Test pipeline metrics land in the registry snapshot."""
        registry = MetricsRegistry()
        metrics = PipelineMetrics(registry)
        metrics.cache_hits.inc(labels={"input_type": "doi"})
        metrics.provider_latency.observe(1.5, {"phase": "phase1"})

        snapshot = registry.get_all()
        assert snapshot["studytrust_cache_hits_total"] == {"input_type=doi": 1.0}
        assert snapshot["studytrust_provider_latency_seconds"]["phase=phase1"]["count"] == 1


class TestLogging:
    """Tests for logging configuration."""

    def test_json_formatter(self) -> None:
        """Test records render as one JSON object."""
        record = logging.LogRecord(
            "studytrust.test", logging.INFO, __file__, 1, "hello %s", ("x",), None
        )
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "hello x"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "studytrust.test"

    def test_configure_idempotent(self, monkeypatch) -> None:
        """Test repeated configuration installs a single handler."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        settings = Settings()
        root = logging.getLogger()
        original_level = root.level
        try:
            configure_logging(settings)
            configure_logging(settings)
            installed = [h for h in root.handlers if getattr(h, "_studytrust", False)]
            assert len(installed) == 1
            assert root.level == logging.WARNING
        finally:
            for handler in [h for h in root.handlers if getattr(h, "_studytrust", False)]:
                root.removeHandler(handler)
            root.setLevel(original_level)


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_env_overrides(self, monkeypatch) -> None:
        """Test environment variables feed nested settings."""
        monkeypatch.setenv("STUDYTRUST_CACHE_TTL", "120")
        monkeypatch.setenv("STUDYTRUST_MAX_RETRIES", "4")
        settings = get_settings()
        assert settings.cache.ttl_seconds == 120
        assert settings.retry.max_retries == 4

    def test_blank_api_key_is_unset(self, monkeypatch) -> None:
        """Test an empty key counts as missing."""
        monkeypatch.setenv("OPENAI_API_KEY", "  ")
        assert LLMSettings().openai_api_key is None

    def test_singleton(self) -> None:
        """Test get_settings caches its instance."""
        assert get_settings() is get_settings()


class TestProviderFactory:
    """Tests for create_provider."""

    def test_openai(self, settings) -> None:
        """Test the configured model is used."""
        provider = create_provider(settings)
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == settings.llm.openai_model
        assert create_provider(settings, model="gpt-4o-mini").model == "gpt-4o-mini"

    def test_missing_key(self, monkeypatch) -> None:
        """Test a missing key is reported by name."""
        monkeypatch.setenv("OPENAI_API_KEY", "")
        with pytest.raises(MissingAPIKeyError) as exc_info:
            create_provider(Settings())
        assert exc_info.value.details == {"key_name": "OPENAI_API_KEY"}

    def test_unknown_provider(self, settings) -> None:
        """Test unsupported provider names."""
        with pytest.raises(ConfigurationError):
            create_provider(settings, provider="nonexistent")  # type: ignore[arg-type]
