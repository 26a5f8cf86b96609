"""Submission of segment documents to AWS X-Ray.

``SegmentExporter`` is the export interface: it takes a batch of segment
documents and reports whether the batch was accepted and, if not, whether the
failure is worth retrying. Retrying itself is left to the caller.
``AwsXRaySpanExporter`` plugs that interface into the OpenTelemetry SDK.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from xraytrace.exceptions import SegmentExportError, ValidationError
from xraytrace.tracing.segment import Segment
from xraytrace.tracing.segment_builder import SegmentBuilder

if TYPE_CHECKING:
    from xraytrace.config import ExporterConfig

logger = logging.getLogger("xraytrace")

RETRYABLE_ERROR_CODES = {
    "ThrottledException",
    "ThrottlingException",
    "TooManyRequestsException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalFailure",
}

_RETRYABLE_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


class ExportResult(Enum):
    SUCCESS = "success"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_NOT_RETRYABLE = "failed_not_retryable"


def is_retryable_client_error(error: ClientError) -> bool:
    """Decide whether a PutTraceSegments error response is worth retrying.

    Args:
        error: The error raised by the boto3 client

    Returns:
        True for throttling and server-side failures
    """
    code = error.response.get("Error", {}).get("Code", "")
    if code in RETRYABLE_ERROR_CODES:
        return True
    status = error.response.get("ResponseMetadata", {}).get(
        "HTTPStatusCode", 0
    )
    return status == 429 or status >= 500


class SegmentExporter(ABC):
    """Interface for exporting batches of segment documents."""

    @abstractmethod
    def export(self, segments: Sequence[Segment]) -> ExportResult:
        """Submit a batch of top-level segments.

        Args:
            segments: The segments to submit

        Returns:
            SUCCESS, or the failure classification of the batch
        """

    def shutdown(self) -> None:
        """Release any resources held by the exporter."""


class XRaySegmentExporter(SegmentExporter):
    """Submits segments through the X-Ray ``PutTraceSegments`` API."""

    def __init__(self, client: Any):
        """Initialize the exporter.

        Args:
            client: A boto3 X-Ray client, or any object with put_trace_segments
        """
        self.client = client

    @classmethod
    def from_config(cls, config: ExporterConfig) -> "XRaySegmentExporter":
        """Create an exporter with a boto3 client built from the config."""
        client = boto3.client(
            "xray",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
        )
        return cls(client)

    def export(self, segments: Sequence[Segment]) -> ExportResult:
        if not segments:
            return ExportResult.SUCCESS
        documents = [segment.to_json() for segment in segments]
        try:
            self.put_segments(documents)
        except SegmentExportError as e:
            logger.warning(f"{e} (retryable={e.retryable})")
            if e.retryable:
                return ExportResult.FAILED_RETRYABLE
            return ExportResult.FAILED_NOT_RETRYABLE
        return ExportResult.SUCCESS

    def put_segments(self, documents: list[str]) -> None:
        """Send serialized segment documents in one PutTraceSegments call.

        Raises:
            SegmentExportError: When the call fails
        """
        logger.debug(f"Sending {len(documents)} segment documents to X-Ray")
        try:
            response = self.client.put_trace_segments(
                TraceSegmentDocuments=documents
            )
        except ClientError as e:
            raise SegmentExportError(
                f"X-Ray rejected {len(documents)} segments: {e}",
                retryable=is_retryable_client_error(e),
            ) from e
        except _RETRYABLE_BOTOCORE_ERRORS as e:
            raise SegmentExportError(
                f"Could not reach X-Ray: {e}", retryable=True
            ) from e
        except BotoCoreError as e:
            raise SegmentExportError(
                f"Failed to send segments to X-Ray: {e}",
                retryable=False,
                suggestion="Check the AWS region and credentials",
            ) from e

        unprocessed = response.get("UnprocessedTraceSegments") or []
        for item in unprocessed:
            logger.warning(
                f"X-Ray did not process segment {item.get('Id')}: "
                f"{item.get('ErrorCode')} {item.get('Message')}"
            )


class AwsXRaySpanExporter(SpanExporter):
    """OpenTelemetry span exporter reporting spans to AWS X-Ray.

    Example:
        >>> config = ExporterConfig(service_name="checkout")
        >>> exporter = AwsXRaySpanExporter(config)
        >>> provider = create_tracer_provider(config, exporter)
    """

    def __init__(
        self,
        config: ExporterConfig,
        segment_exporter: Optional[SegmentExporter] = None,
    ):
        """Initialize the exporter.

        Args:
            config: Exporter configuration
            segment_exporter: Destination for segments, X-Ray by default
        """
        self.config = config
        self.builder = SegmentBuilder(config)
        self.segment_exporter = (
            segment_exporter or XRaySegmentExporter.from_config(config)
        )
        self._shutdown = False

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        if self._shutdown:
            logger.warning("Exporter already shut down, dropping spans")
            return SpanExportResult.FAILURE
        try:
            segments = self.builder.build(spans)
        except ValidationError as e:
            logger.error(f"Dropping {len(spans)} spans: {e}")
            return SpanExportResult.FAILURE

        result = self.segment_exporter.export(segments)
        if result is ExportResult.SUCCESS:
            return SpanExportResult.SUCCESS
        return SpanExportResult.FAILURE

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        self.segment_exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        # nothing is buffered here
        return True
