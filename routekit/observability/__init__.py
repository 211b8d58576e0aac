"""Tracing for route lifecycle operations."""
from routekit.observability.tracing import get_tracer, route_span, setup_tracing

__all__ = ["get_tracer", "route_span", "setup_tracing"]
