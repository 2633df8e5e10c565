"""
OpenTelemetry tracing setup.

Queue code only talks to the OpenTelemetry API, which records nothing until
a process installs a tracer provider here. The worker and metrics server do
so on startup; applications embedding the client install their own.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from sqlalchemy.ext.asyncio import AsyncEngine

from pgqueue import __version__
from pgqueue.config import get_settings

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def setup_tracing(enable_console_export: bool = False) -> TracerProvider:
    """
    Install the SDK tracer provider once per process.

    Spans go to the configured OTLP endpoint; an empty endpoint disables
    export. Later calls return the provider installed first.

    Args:
        enable_console_export: If True, also print spans to stdout.
    """
    global _provider
    if _provider is not None:
        return _provider

    settings = get_settings()
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )

    endpoint = settings.otel_exporter_otlp_endpoint
    if endpoint:
        try:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
            )
        except Exception:
            logger.warning(
                "OTLP exporter unavailable, spans will not be exported",
                extra={"endpoint": endpoint},
                exc_info=True,
            )

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def instrument_fastapi(app: Any) -> None:
    """Trace every request to the metrics and health routes."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    """Trace queue statements; async engines are instrumented through ``sync_engine``."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
