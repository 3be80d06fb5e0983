"""
OpenTelemetry tracing for jobs and operation attempts.

A job gets one span from start to completion; every operation attempt
gets a child span. Without :func:`setup_tracing` the global no-op provider
is used, so the engine can be embedded without exporting anything.
"""

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from batcher import __version__
from batcher.config import Settings, get_settings
from batcher.constants import SPAN_EXECUTE_OPERATION, SPAN_RUN_JOB

# Global tracer instance
_tracer: Tracer | None = None


def _build_provider(settings: Settings, enable_console_export: bool) -> TracerProvider:
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )
    if settings.otel_exporter_otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
            )
        )
    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    return provider


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Install a tracer provider for the process. Later calls return the
    tracer from the first one.

    Args:
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer
    if _tracer is not None:
        return _tracer

    settings = get_settings()
    trace.set_tracer_provider(_build_provider(settings, enable_console_export))
    _tracer = trace.get_tracer(settings.otel_service_name)
    return _tracer


def instrument_fastapi(app: Any) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: The FastAPI application instance.
    """
    FastAPIInstrumentor.instrument_app(app)


def get_tracer() -> Tracer:
    """The configured tracer, or a proxy bound to the global provider before setup."""
    if _tracer is None:
        return trace.get_tracer(get_settings().otel_service_name)
    return _tracer


def start_job_span(job_name: str, operations: int) -> Span:
    """
    Open the span covering a job's whole run.

    The caller ends it when the job completes.
    """
    return get_tracer().start_span(
        SPAN_RUN_JOB,
        attributes={"job_name": job_name, "operations": operations},
    )


@contextmanager
def operation_span(operation_id: Hashable, attempt: int) -> Iterator[Span]:
    """Span around one transform call, a child of the current job span."""
    with get_tracer().start_as_current_span(
        SPAN_EXECUTE_OPERATION,
        attributes={"operation_id": str(operation_id), "attempt": attempt},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        yield span
