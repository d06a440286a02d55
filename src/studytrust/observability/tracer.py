"""
StudyTrust Tracer

Structured tracing for pipeline operations using an OpenTelemetry-compatible
span format. The active span is tracked per asyncio task so that the two
concurrent analysis phases get correct parent links.
"""

import contextvars
import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generator

logger = logging.getLogger(__name__)


class SpanKind(str, Enum):
    """Span types for categorization."""

    INTERNAL = "internal"
    CLIENT = "client"  # External API calls


class SpanStatus(str, Enum):
    """Span completion status."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass
class SpanEvent:
    """Event within a span."""

    name: str
    timestamp: float = field(default_factory=time.time)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Span:
    """
    Trace span representing a unit of work.

    Attributes:
        trace_id: Unique trace identifier.
        span_id: Unique span identifier.
        parent_id: Parent span ID (None for root).
        name: Operation name.
        kind: Span type.
        start_time: Start timestamp.
        end_time: End timestamp (set on completion).
        status: Completion status.
        attributes: Key-value metadata.
        events: Events during span.
    """

    trace_id: str
    span_id: str
    name: str
    kind: SpanKind = SpanKind.INTERNAL
    parent_id: str | None = None
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    status: SpanStatus = SpanStatus.UNSET
    status_message: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[SpanEvent] = field(default_factory=list)

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def set_attribute(self, key: str, value: Any) -> None:
        """Set span attribute."""
        self.attributes[key] = value

    def add_event(self, name: str, attributes: dict[str, Any] | None = None) -> None:
        """Add event to span."""
        self.events.append(SpanEvent(name=name, attributes=attributes or {}))

    def set_status(self, status: SpanStatus, message: str | None = None) -> None:
        """Set span status."""
        self.status = status
        self.status_message = message

    def end(self) -> None:
        """End the span."""
        if self.end_time is None:
            self.end_time = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "kind": self.kind.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "status_message": self.status_message,
            "attributes": self.attributes,
            "events": [
                {"name": e.name, "timestamp": e.timestamp, "attributes": e.attributes}
                for e in self.events
            ],
        }


_current_span: contextvars.ContextVar[Span | None] = contextvars.ContextVar(
    "studytrust_current_span", default=None
)


class Tracer:
    """
    Tracer for structured operation tracking.

    Usage:
        tracer = get_tracer("studytrust.ingestion")

        with tracer.span("fetch_url") as span:
            span.set_attribute("url", url)
            html = await fetch()
            span.set_attribute("bytes", len(html))
    """

    def __init__(self, name: str, max_spans: int = 1000, log_spans: bool = False) -> None:
        """
        Initialize tracer.

        Args:
            name: Tracer name (e.g., module name).
            max_spans: Finished spans kept in memory.
            log_spans: Emit every finished span as a DEBUG log record.
        """
        self._name = name
        self._max_spans = max_spans
        self._log_spans = log_spans
        self._spans: list[Span] = []

    @staticmethod
    def _generate_id() -> str:
        """Generate unique ID."""
        return uuid.uuid4().hex[:16]

    @property
    def current_span(self) -> Span | None:
        """Currently active span in this task."""
        return _current_span.get()

    @contextmanager
    def span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[Span, None, None]:
        """
        Context manager for creating and managing spans.

        Args:
            name: Span name.
            kind: Span type.
            attributes: Initial attributes.

        Yields:
            Active span.
        """
        parent = _current_span.get()
        span = Span(
            trace_id=parent.trace_id if parent else self._generate_id(),
            span_id=self._generate_id(),
            parent_id=parent.span_id if parent else None,
            name=f"{self._name}.{name}",
            kind=kind,
            attributes=attributes or {},
        )
        token = _current_span.set(span)

        try:
            yield span
            if span.status == SpanStatus.UNSET:
                span.set_status(SpanStatus.OK)
        except BaseException as e:
            span.set_status(SpanStatus.ERROR, str(e))
            span.add_event("exception", {"type": type(e).__name__, "message": str(e)})
            raise
        finally:
            span.end()
            _current_span.reset(token)
            self._record(span)

    def _record(self, span: Span) -> None:
        self._spans.append(span)
        if len(self._spans) > self._max_spans:
            del self._spans[: len(self._spans) - self._max_spans]
        if self._log_spans:
            logger.debug("span %s", json.dumps(span.to_dict(), default=str))

    def get_spans(self) -> list[Span]:
        """Get all recorded spans."""
        return self._spans.copy()

    def to_json(self) -> str:
        """Export all spans as JSON."""
        return json.dumps(
            {"tracer": self._name, "spans": [s.to_dict() for s in self._spans]},
            indent=2,
            default=str,
        )


# Global tracer registry
_tracers: dict[str, Tracer] = {}


def get_tracer(name: str) -> Tracer:
    """
    Get or create a tracer by name.

    Args:
        name: Tracer name (typically module name).

    Returns:
        Tracer instance.
    """
    if name not in _tracers:
        from studytrust.config import get_settings

        _tracers[name] = Tracer(name, log_spans=get_settings().features.debug)
    return _tracers[name]


def reset_tracers() -> None:
    """Reset all tracers (for testing)."""
    _tracers.clear()
