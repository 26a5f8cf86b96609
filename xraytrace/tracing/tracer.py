"""OpenTelemetry tracer provider and propagator setup for X-Ray."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from opentelemetry import trace
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.id_generator import IdGenerator

from xraytrace._version import __version__
from xraytrace.tracing.ids import AwsXRayIdGenerator
from xraytrace.tracing.propagator import AwsXRayPropagator

if TYPE_CHECKING:
    from xraytrace.config import ExporterConfig


def create_tracer_provider(
    config: ExporterConfig, exporter: SpanExporter
) -> TracerProvider:
    """Create a tracer provider producing X-Ray compatible ids.

    Args:
        config: Exporter configuration supplying the service name
        exporter: The exporter finished spans are batched to

    Returns:
        The configured provider
    """
    resource = Resource(
        attributes={
            "service.name": config.service_name,
            "telemetry.sdk.name": "xraytrace",
            "telemetry.sdk.version": __version__,
        }
    )
    provider = TracerProvider(
        resource=resource, id_generator=AwsXRayIdGenerator()
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def get_tracer(
    config: ExporterConfig, exporter: SpanExporter
) -> tuple[trace.Tracer, TracerProvider]:
    """Create a tracer for the configured service.

    Returns:
        Tuple of (tracer, provider)
    """
    provider = create_tracer_provider(config, exporter)
    return provider.get_tracer(__name__), provider


def install_propagator(
    id_generator: Optional[IdGenerator] = None,
) -> AwsXRayPropagator:
    """Make the X-Ray header the global text-map propagation format."""
    propagator = AwsXRayPropagator(id_generator)
    set_global_textmap(propagator)
    return propagator
