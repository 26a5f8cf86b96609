"""X-Ray trace context codec, segment documents and span export.

Submodules:
- ids: X-Ray compatible trace and span id generation
- header: X-Amzn-Trace-Id header encoding and decoding
- propagator: OpenTelemetry text-map propagator for the header
- segment: Segment document model and JSON serialization
- segment_builder: Span to segment conversion
- exporter: Segment submission and the OpenTelemetry span exporter
- tracer: Tracer provider setup
"""

from xraytrace.tracing.exporter import (
    AwsXRaySpanExporter,
    ExportResult,
    SegmentExporter,
    XRaySegmentExporter,
)
from xraytrace.tracing.header import HEADER, format_header, parse_header
from xraytrace.tracing.ids import (
    AwsXRayIdGenerator,
    split_trace_id,
    trace_id_from_parts,
)
from xraytrace.tracing.propagator import AwsXRayPropagator
from xraytrace.tracing.segment import (
    AWS,
    AWSEC2,
    AWSECS,
    AWSElasticBeanstalk,
    AWSXRay,
    Http,
    HttpRequest,
    HttpResponse,
    Origin,
    Segment,
)
from xraytrace.tracing.segment_builder import SegmentBuilder
from xraytrace.tracing.tracer import (
    create_tracer_provider,
    get_tracer,
    install_propagator,
)

__all__ = [
    "AwsXRayIdGenerator",
    "trace_id_from_parts",
    "split_trace_id",
    "HEADER",
    "format_header",
    "parse_header",
    "AwsXRayPropagator",
    "Segment",
    "Origin",
    "AWS",
    "AWSEC2",
    "AWSECS",
    "AWSElasticBeanstalk",
    "AWSXRay",
    "Http",
    "HttpRequest",
    "HttpResponse",
    "SegmentBuilder",
    "ExportResult",
    "SegmentExporter",
    "XRaySegmentExporter",
    "AwsXRaySpanExporter",
    "create_tracer_provider",
    "get_tracer",
    "install_propagator",
]
