"""
RouteKit OpenTelemetry Setup

Traces for route lifecycle operations (connect, disconnect, send) with the
route id and platform as span attributes. Without setup_tracing() the global
no-op provider is used and spans cost nothing.
"""
from __future__ import annotations
from typing import Optional
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

TRACER_NAME = "routekit"


def setup_tracing(
    service_name: str = "routekit",
    endpoint: Optional[str] = None,
    exporter: Optional[SpanExporter] = None,
) -> trace.Tracer:
    """Install a TracerProvider, exporting over OTLP when an endpoint is set."""
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    otlp_endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if exporter is None and otlp_endpoint:
        # Requires the "otlp" extra.
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(service_name)


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def route_span(tracer: trace.Tracer, operation: str, route_id: str, platform: str = ""):
    """Start a span for a route operation (use as a context manager)."""
    return tracer.start_as_current_span(
        f"route.{operation}",
        attributes={
            "route.id": route_id,
            "route.platform": platform,
        },
    )
