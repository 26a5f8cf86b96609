"""Conversion of finished OpenTelemetry spans into X-Ray segment documents."""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from opentelemetry.sdk.trace import ReadableSpan

from xraytrace.tracing.segment import (
    I64_MAX,
    I64_MIN,
    AnnotationValue,
    Http,
    HttpRequest,
    HttpResponse,
    Segment,
)

if TYPE_CHECKING:
    from xraytrace.config import ExporterConfig

logger = logging.getLogger("xraytrace")

NANOS_PER_SECOND = 1_000_000_000

# Span attributes that map onto dedicated segment fields
_HTTP_REQUEST_ATTRIBUTES = {
    "http.method": "method",
    "http.url": "url",
    "http.user_agent": "user_agent",
    "http.client_ip": "client_ip",
}
_HTTP_STATUS = "http.status_code"
_HTTP_CONTENT_LENGTH = "http.response_content_length"
_USER = "enduser.id"
_RESERVED_ATTRIBUTES = {
    *_HTTP_REQUEST_ATTRIBUTES,
    _HTTP_STATUS,
    _HTTP_CONTENT_LENGTH,
    _USER,
}

_INVALID_KEY_CHARS = re.compile(r"[^A-Za-z0-9_]")


def sanitize_annotation_key(key: str) -> str:
    """Replace characters X-Ray rejects in annotation keys with underscores."""
    return _INVALID_KEY_CHARS.sub("_", key)


def _is_annotation_value(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and I64_MIN <= value <= I64_MAX
    )


def _to_seconds(timestamp_ns: Optional[int]) -> int:
    if timestamp_ns is None:
        return int(time.time())
    return timestamp_ns // NANOS_PER_SECOND


class SegmentBuilder:
    """Builds segment trees from a batch of finished spans.

    Spans whose parent is part of the same batch are nested as subsegments of
    that parent. All other spans become top-level segments carrying the trace
    id, service name, origin and AWS resource information.
    """

    def __init__(self, config: ExporterConfig):
        """Initialize the builder.

        Args:
            config: Exporter configuration supplying service and resource data
        """
        self.config = config

    def build(self, spans: Sequence[ReadableSpan]) -> list[Segment]:
        """Convert a batch of spans into top-level segment documents.

        Args:
            spans: Finished spans, in any order

        Returns:
            One segment per span that has no parent within the batch
        """
        ordered = sorted(spans, key=lambda s: s.start_time or 0)
        segments: dict[int, Segment] = {}
        for span in ordered:
            segments[span.context.span_id] = self.build_segment(span)

        roots: list[Segment] = []
        for span in ordered:
            segment = segments[span.context.span_id]
            parent = span.parent
            if (
                parent is not None
                and parent.span_id in segments
                and parent.span_id != span.context.span_id
            ):
                segments[parent.span_id].add_subsegment(segment)
                continue
            self._decorate_root(span, segment)
            roots.append(segment)

        logger.debug(
            f"Built {len(roots)} segments from a batch of {len(ordered)} spans"
        )
        return roots

    def build_segment(self, span: ReadableSpan) -> Segment:
        """Convert a single span into a segment without subsegments."""
        attributes = span.attributes or {}
        annotations, metadata = self._split_attributes(attributes)
        user = attributes.get(_USER)
        parent_id = span.parent.span_id if span.parent is not None else None
        start_time = _to_seconds(span.start_time)
        end_time = (
            _to_seconds(span.end_time)
            if span.end_time is not None
            else start_time
        )
        return Segment(
            id=span.context.span_id,
            parent_id=parent_id,
            name=span.name or self._service_name(span),
            start_time=start_time,
            end_time=end_time,
            annotations=annotations or None,
            metadata=metadata or None,
            user=str(user) if user is not None else None,
            http=self._build_http(attributes),
        )

    def _decorate_root(self, span: ReadableSpan, segment: Segment) -> None:
        segment.trace_id = span.context.trace_id
        segment.service = self._service_name(span)
        segment.origin = self.config.origin
        segment.aws = self.config.aws_resource()

    def _service_name(self, span: ReadableSpan) -> str:
        if span.resource is not None:
            service_name = span.resource.attributes.get("service.name")
            if service_name and not str(service_name).startswith(
                "unknown_service"
            ):
                return str(service_name)
        return self.config.service_name

    def _split_attributes(
        self, attributes: Mapping[str, Any]
    ) -> tuple[dict[str, AnnotationValue], dict[str, AnnotationValue]]:
        annotations: dict[str, AnnotationValue] = {}
        metadata: dict[str, AnnotationValue] = {}
        for key, value in attributes.items():
            if key in _RESERVED_ATTRIBUTES:
                continue
            if _is_annotation_value(value):
                annotations[sanitize_annotation_key(key)] = value
            else:
                metadata[key] = str(value)
        return annotations, metadata

    def _build_http(self, attributes: Mapping[str, Any]) -> Optional[Http]:
        request_fields = {
            field_name: str(attributes[key])
            for key, field_name in _HTTP_REQUEST_ATTRIBUTES.items()
            if key in attributes
        }
        request = HttpRequest(**request_fields) if request_fields else None

        status = attributes.get(_HTTP_STATUS)
        if not (isinstance(status, int) and 100 <= status <= 599):
            if status is not None:
                logger.debug(f"Ignoring invalid HTTP status code: {status!r}")
            status = None
        content_length = attributes.get(_HTTP_CONTENT_LENGTH)
        if not (
            isinstance(content_length, int)
            and not isinstance(content_length, bool)
            and 0 <= content_length <= 2**31 - 1
        ):
            content_length = None
        response = None
        if status is not None or content_length is not None:
            response = HttpResponse(
                content_length=content_length, status=status
            )

        if request is None and response is None:
            return None
        return Http(request=request, response=response)
