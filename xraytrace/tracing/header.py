"""Encoding and decoding of the ``X-Amzn-Trace-Id`` propagation header.

Header grammar::

    Root=1-<8 hex timestamp>-<24 hex suffix>;Parent=<16 hex span id>;Sampled=<0|1>

Only the ``Root`` token is required. A missing or malformed ``Parent`` is
replaced by a freshly generated span id, and anything but ``Sampled=1`` means
not sampled.
"""

import logging
import re
from typing import Optional

from opentelemetry.sdk.trace.id_generator import IdGenerator
from opentelemetry.trace import SpanContext, TraceFlags

from xraytrace.tracing.ids import (
    ROOT_MASK,
    SPAN_ID_BITS,
    TIMESTAMP_BITS,
    split_trace_id,
    trace_id_from_parts,
)

logger = logging.getLogger("xraytrace")

HEADER = "X-Amzn-Trace-Id"

_RE_ROOT = re.compile(r"^Root=1-([0-9a-fA-F]+)-([0-9a-fA-F]+)")
_RE_PARENT = re.compile(r"Parent=([0-9a-fA-F]+)")
_RE_SAMPLED = re.compile(r"Sampled=1")

# Widest root suffix accepted before masking to 96 bits
_MAX_SUFFIX_BITS = 128


def format_header(span_context: SpanContext) -> str:
    """Render a span context as an ``X-Amzn-Trace-Id`` header value.

    Args:
        span_context: A valid span context

    Returns:
        The header value with fixed-width, zero-padded lowercase hex fields
    """
    timestamp, suffix = split_trace_id(span_context.trace_id)
    sampled = 1 if span_context.trace_flags.sampled else 0
    return (
        f"Root=1-{timestamp:08x}-{suffix:024x};"
        f"Parent={span_context.span_id:016x};"
        f"Sampled={sampled}"
    )


def _parse_root(header: str) -> Optional[int]:
    match = _RE_ROOT.match(header)
    if not match:
        return None
    timestamp = int(match.group(1), 16)
    suffix = int(match.group(2), 16)
    if timestamp.bit_length() > TIMESTAMP_BITS:
        return None
    if suffix.bit_length() > _MAX_SUFFIX_BITS:
        return None
    trace_id = trace_id_from_parts(timestamp, suffix & ROOT_MASK)
    return trace_id or None


def _parse_parent(header: str) -> Optional[int]:
    match = _RE_PARENT.search(header)
    if not match:
        return None
    span_id = int(match.group(1), 16)
    if span_id.bit_length() > SPAN_ID_BITS:
        return None
    return span_id or None


def parse_header(
    header: str, id_generator: IdGenerator
) -> Optional[SpanContext]:
    """Parse an ``X-Amzn-Trace-Id`` header value into a remote span context.

    Args:
        header: The raw header value
        id_generator: Supplies a span id when the header carries no usable parent

    Returns:
        The remote span context, or None when the Root token is missing or
        malformed
    """
    header = header.strip()
    trace_id = _parse_root(header)
    if trace_id is None:
        logger.debug(f"Ignoring malformed {HEADER} header: {header!r}")
        return None

    parent_id = _parse_parent(header)
    if parent_id is None:
        parent_id = id_generator.generate_span_id()
        logger.debug(f"No usable Parent in {HEADER} header, generated one")

    trace_flags = (
        TraceFlags(TraceFlags.SAMPLED)
        if _RE_SAMPLED.search(header)
        else TraceFlags(TraceFlags.DEFAULT)
    )
    return SpanContext(
        trace_id=trace_id,
        span_id=parent_id,
        is_remote=True,
        trace_flags=trace_flags,
    )
