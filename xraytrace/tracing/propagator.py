"""OpenTelemetry text-map propagator for the AWS X-Ray trace header."""

import logging
from typing import Optional, Set

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)
from opentelemetry.sdk.trace.id_generator import IdGenerator
from opentelemetry.trace import NonRecordingSpan, SpanContext

from xraytrace.tracing.header import HEADER, format_header, parse_header
from xraytrace.tracing.ids import AwsXRayIdGenerator

logger = logging.getLogger("xraytrace")


class AwsXRayPropagator(TextMapPropagator):
    """Injects and extracts trace context using the ``X-Amzn-Trace-Id`` header.

    Invalid span contexts are never written: a missing header tells the
    downstream service that the request is not traced. Unusable incoming
    headers are ignored so that request handling continues with a fresh trace.
    """

    def __init__(self, id_generator: Optional[IdGenerator] = None):
        """Initialize the propagator.

        Args:
            id_generator: Supplies parent span ids missing from incoming headers
        """
        self.id_generator = id_generator or AwsXRayIdGenerator()

    def inject(
        self,
        carrier: CarrierT,
        context: Optional[Context] = None,
        setter: Setter[CarrierT] = default_setter,
    ) -> None:
        span_context = trace.get_current_span(context).get_span_context()
        if not span_context.is_valid:
            return
        setter.set(carrier, HEADER, format_header(span_context))

    def extract(
        self,
        carrier: CarrierT,
        context: Optional[Context] = None,
        getter: Getter[CarrierT] = default_getter,
    ) -> Context:
        if context is None:
            context = Context()
        span_context = self.extract_span_context(carrier, getter)
        if span_context is None:
            return context
        return trace.set_span_in_context(
            NonRecordingSpan(span_context), context=context
        )

    def extract_span_context(
        self,
        carrier: CarrierT,
        getter: Getter[CarrierT] = default_getter,
    ) -> Optional[SpanContext]:
        """Read the trace header from a carrier and parse it.

        Args:
            carrier: The object holding the request headers
            getter: Reads header values from the carrier

        Returns:
            The remote span context, or None when no usable header is present
        """
        header = self._get_header(carrier, getter)
        if header is None:
            return None
        return parse_header(header, self.id_generator)

    @staticmethod
    def _get_header(
        carrier: CarrierT, getter: Getter[CarrierT]
    ) -> Optional[str]:
        values = getter.get(carrier, HEADER)
        if not values:
            values = getter.get(carrier, HEADER.lower())
        if not values:
            return None
        if len(values) > 1:
            logger.debug(
                f"Found {len(values)} {HEADER} headers, using the first one"
            )
        return values[0]

    @property
    def fields(self) -> Set[str]:
        return {HEADER}
