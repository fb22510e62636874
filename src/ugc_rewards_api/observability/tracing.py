"""OpenTelemetry wiring: one tracer provider per process, spans tagged with merchant context."""

from __future__ import annotations

from typing import Dict

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.semconv.resource import ResourceAttributes

from ugc_rewards_api.core.settings import Settings

SPAN_ATTRIBUTE_PREFIX = "ugc."

_provider: TracerProvider | None = None


def build_span_exporter(endpoint: str | None, headers: str | None = None) -> SpanExporter:
    """OTLP over HTTP when an endpoint is configured, console output otherwise.

    ``headers`` uses the ``key=value,key=value`` form of ``OTEL_EXPORTER_OTLP_HEADERS``.
    """

    if not endpoint:
        return ConsoleSpanExporter()
    parsed: Dict[str, str] = {}
    for pair in (headers or "").split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            parsed[key.strip()] = value.strip()
    return OTLPSpanExporter(endpoint=endpoint, headers=parsed or None)


def configure_tracing(app: FastAPI, settings: Settings, *, service_name: str, service_version: str) -> TracerProvider:
    """Instrument the app; health probes are left out of the traces."""

    global _provider

    if _provider is None:
        provider = TracerProvider(
            resource=Resource.create(
                {
                    ResourceAttributes.SERVICE_NAME: service_name,
                    ResourceAttributes.SERVICE_VERSION: service_version,
                    ResourceAttributes.DEPLOYMENT_ENVIRONMENT: settings.environment,
                }
            )
        )
        exporter = build_span_exporter(settings.otel_exporter_otlp_endpoint, settings.otel_exporter_otlp_headers)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
        LoggingInstrumentor().instrument(set_logging_format=False)
        _provider = provider

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=_provider,
        excluded_urls=settings.tracing_excluded_urls,
    )
    return _provider


def annotate_current_span(**attributes: object) -> None:
    """Attach merchant/customer identifiers to the active request span, skipping ``None`` values."""

    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(f"{SPAN_ATTRIBUTE_PREFIX}{key}", str(value))


__all__ = ["SPAN_ATTRIBUTE_PREFIX", "annotate_current_span", "build_span_exporter", "configure_tracing"]
