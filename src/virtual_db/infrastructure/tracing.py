"""OpenTelemetry tracing configuration.

Statements are traced with ``trace_span``; lazy SELECT results are traced
with ``trace_rows`` so the span covers the time the caller spends pulling
rows, not just the call that created the iterator.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, Generator, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

T = TypeVar("T")

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "virtual_db",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
        console_export: Whether to also export to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer

    from virtual_db import __version__

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)

    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("virtual_db")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for creating a trace span.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span (None values are skipped)

    Yields:
        The created span
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def trace_rows(
    name: str,
    rows: Iterable[T],
    attributes: dict[str, Any] | None = None,
) -> Iterator[T]:
    """
    Trace the consumption of a lazy row iterator.

    The span starts on the first pull and ends when the rows are exhausted,
    the iterator is closed, or an error is raised. It is never made the
    current span, since caller code runs between yields.

    Args:
        name: Name of the span
        rows: The rows to pass through
        attributes: Optional attributes to add to the span (None values are skipped)

    Yields:
        The rows, unchanged
    """
    span = get_tracer().start_span(name)
    for key, value in (attributes or {}).items():
        if value is not None:
            span.set_attribute(key, value)

    count = 0
    try:
        for row in rows:
            count += 1
            yield row
    except Exception as e:
        span.record_exception(e)
        span.set_status(Status(StatusCode.ERROR, str(e)))
        raise
    finally:
        span.set_attribute("vdb.rows", count)
        span.end()
