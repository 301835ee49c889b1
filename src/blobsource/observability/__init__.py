"""
Observability utilities for blobsource.

Tracing is composition-based: stores and the repository take an optional
``Tracer`` and otherwise build one with ``create_tracer``. OpenTelemetry is an
optional dependency; without it every component falls back to ``NullTracer``.

Example:
    >>> from blobsource.observability import create_tracer, ATTR_AGGREGATE_ID
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("blobsource.example", {ATTR_AGGREGATE_ID: "b1"}):
    ...     pass
"""

from blobsource.observability.attributes import (
    ATTR_AGGREGATE_ID,
    ATTR_COMMAND_TYPE,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_EVENT_COUNT,
    ATTR_FIRST_SEQUENCE,
    ATTR_SEQUENCE,
    ATTR_STORE_BACKEND,
)
from blobsource.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from blobsource.observability.tracing import (
    OTEL_AVAILABLE,
    get_tracer,
    should_trace,
)

__all__ = [
    # Tracing
    "OTEL_AVAILABLE",
    "get_tracer",
    "should_trace",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_AGGREGATE_ID",
    "ATTR_SEQUENCE",
    "ATTR_EVENT_COUNT",
    "ATTR_FIRST_SEQUENCE",
    "ATTR_COMMAND_TYPE",
    "ATTR_STORE_BACKEND",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
]
