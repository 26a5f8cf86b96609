"""Tests for the OpenTelemetry X-Ray propagator."""

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags

from xraytrace.tracing.header import HEADER
from xraytrace.tracing.propagator import AwsXRayPropagator

SAMPLE = (
    "Root=1-5759e988-bd862e3fe1be46a994272793;"
    "Parent=53995c3f42cd8ad8;Sampled=1"
)


def _context_with(span_context: SpanContext) -> Context:
    return trace.set_span_in_context(NonRecordingSpan(span_context))


class TestInject:
    """Tests for writing the header into a carrier."""

    def test_injects_valid_context(self):
        span_context = SpanContext(
            trace_id=0x5759E988BD862E3FE1BE46A994272793,
            span_id=0x53995C3F42CD8AD8,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
        carrier: dict[str, str] = {}
        AwsXRayPropagator().inject(carrier, context=_context_with(span_context))
        assert carrier == {HEADER: SAMPLE}

    def test_invalid_context_writes_nothing(self):
        carrier: dict[str, str] = {}
        AwsXRayPropagator().inject(
            carrier, context=trace.set_span_in_context(trace.INVALID_SPAN)
        )
        assert carrier == {}

    def test_empty_context_writes_nothing(self):
        carrier: dict[str, str] = {}
        AwsXRayPropagator().inject(carrier, context=Context())
        assert carrier == {}

    def test_fields(self):
        assert AwsXRayPropagator().fields == {"X-Amzn-Trace-Id"}


class TestExtract:
    """Tests for reading the header from a carrier."""

    def test_extracts_remote_span(self):
        context = AwsXRayPropagator().extract({HEADER: SAMPLE})
        span_context = trace.get_current_span(context).get_span_context()
        assert span_context.trace_id == 0x5759E988BD862E3FE1BE46A994272793
        assert span_context.span_id == 0x53995C3F42CD8AD8
        assert span_context.is_remote
        assert span_context.trace_flags.sampled

    def test_lowercase_header_name(self):
        span_context = AwsXRayPropagator().extract_span_context(
            {"x-amzn-trace-id": SAMPLE}
        )
        assert span_context.span_id == 0x53995C3F42CD8AD8

    def test_list_valued_carrier_uses_first_value(self):
        span_context = AwsXRayPropagator().extract_span_context(
            {HEADER: [SAMPLE, "Root=garbage"]}
        )
        assert span_context.span_id == 0x53995C3F42CD8AD8

    def test_missing_header_returns_given_context(self):
        context = Context({"marker": 1})
        assert AwsXRayPropagator().extract({}, context=context) is context

    def test_missing_header_has_no_span(self):
        context = AwsXRayPropagator().extract({})
        span_context = trace.get_current_span(context).get_span_context()
        assert not span_context.is_valid

    def test_malformed_header_is_ignored(self):
        assert (
            AwsXRayPropagator().extract_span_context({HEADER: "Root=nope"})
            is None
        )


class TestRoundTrip:
    """Tests for inject followed by extract."""

    def test_round_trip_preserves_identity(self):
        propagator = AwsXRayPropagator()
        for sampled in (True, False):
            original = SpanContext(
                trace_id=0x0000000100000000000000000000002A,
                span_id=0x1,
                is_remote=False,
                trace_flags=TraceFlags(
                    TraceFlags.SAMPLED if sampled else TraceFlags.DEFAULT
                ),
            )
            carrier: dict[str, str] = {}
            propagator.inject(carrier, context=_context_with(original))
            extracted = propagator.extract_span_context(carrier)
            assert extracted.trace_id == original.trace_id
            assert extracted.span_id == original.span_id
            assert extracted.trace_flags.sampled == sampled

    def test_spans_from_tracer_round_trip(self):
        from opentelemetry.sdk.trace import TracerProvider

        from xraytrace.tracing.ids import AwsXRayIdGenerator

        provider = TracerProvider(id_generator=AwsXRayIdGenerator())
        tracer = provider.get_tracer(__name__)
        propagator = AwsXRayPropagator()
        with tracer.start_as_current_span("outgoing") as span:
            carrier: dict[str, str] = {}
            propagator.inject(carrier)
            sent = span.get_span_context()
        extracted = propagator.extract_span_context(carrier)
        assert extracted.trace_id == sent.trace_id
        assert extracted.span_id == sent.span_id
        assert extracted.trace_flags.sampled == sent.trace_flags.sampled
