import logging
from typing import Any, Optional

import pytest
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.trace import SpanContext, TraceFlags

NANOS = 1_000_000_000
TRACE_ID = (0x5759E988 << 96) | 0xBD862E3FE1BE46A994272793


@pytest.fixture(autouse=True)
def reset_logger():
    """Undo init_logger() so caplog keeps seeing xraytrace records."""
    yield
    logger = logging.getLogger("xraytrace")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(logging.NOTSET)


def make_span(
    span_id: int,
    name: str = "op",
    parent_id: Optional[int] = None,
    trace_id: int = TRACE_ID,
    start: float = 10,
    end: float = 11,
    attributes: Optional[dict[str, Any]] = None,
    service_name: Optional[str] = None,
) -> ReadableSpan:
    """Build a finished span without going through a tracer."""
    parent = None
    if parent_id is not None:
        parent = SpanContext(
            trace_id=trace_id,
            span_id=parent_id,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
    resource = None
    if service_name is not None:
        resource = Resource(attributes={"service.name": service_name})
    return ReadableSpan(
        name=name,
        context=SpanContext(
            trace_id=trace_id,
            span_id=span_id,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        ),
        parent=parent,
        resource=resource,
        attributes=attributes or {},
        start_time=int(start * NANOS),
        end_time=int(end * NANOS),
    )


@pytest.fixture
def span_factory():
    return make_span
