from ._version import __version__
from .config import ExporterConfig, load_config
from .tracing import (
    AwsXRayIdGenerator,
    AwsXRayPropagator,
    AwsXRaySpanExporter,
    ExportResult,
    Origin,
    Segment,
    XRaySegmentExporter,
    create_tracer_provider,
    install_propagator,
)

__all__ = [
    "__version__",
    # Config
    "ExporterConfig",
    "load_config",
    # Ids and propagation
    "AwsXRayIdGenerator",
    "AwsXRayPropagator",
    "install_propagator",
    # Documents
    "Segment",
    "Origin",
    # Export
    "AwsXRaySpanExporter",
    "XRaySegmentExporter",
    "ExportResult",
    "create_tracer_provider",
]
