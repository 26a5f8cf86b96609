"""AWS X-Ray segment documents.

Segments are plain dataclasses whose field declaration order is the key order
of the serialized JSON object. Each field's metadata decides how it is
written:

- ``omit="none"``: the key is left out when the value is None
- ``omit="empty"``: the key is left out when the list is empty
- no ``omit``: the key is always written, as ``null`` when the value is None
- ``encoder``: converts the value to its wire representation

See https://docs.aws.amazon.com/xray/latest/devguide/xray-api-segmentdocuments.html
"""

import json
import time
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union

from xraytrace._version import __version__
from xraytrace.exceptions import ValidationError

SDK = f"xraytrace {__version__}"

U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1
I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1
I32_MAX = (1 << 31) - 1

AnnotationValue = Union[str, int]
Timestamp = Union[int, float, datetime]


class Origin(Enum):
    """Type of AWS resource running the application."""

    EC2_INSTANCE = "AWS::EC2::Instance"
    ECS_CONTAINER = "AWS::ECS::Container"
    ELASTIC_BEANSTALK = "AWS::ElasticBeanstalk::Environment"

    @classmethod
    def parse(cls, value: Union["Origin", str]) -> "Origin":
        """Look up an origin by member, member name or backend tag."""
        if isinstance(value, cls):
            return value
        for origin in cls:
            if value in (origin.name, origin.value):
                return origin
        raise ValidationError(
            f"Invalid origin: {value!r}",
            f"Use one of {', '.join(o.name for o in cls)}",
        )


def encode_hex_id(value: int) -> str:
    """Encode a 64-bit id as 16 lowercase hex digits (big-endian)."""
    return value.to_bytes(8, "big").hex()


def encode_trace_id(value: int) -> str:
    """Encode a trace id in the packed segment form ``1-<8 hex>-<12 hex>``.

    This is not the ``Root=`` form used by the propagation header.
    """
    return f"1-{value >> 12:08x}-{value & 0x7FF:012x}"


def encode_time(value: float) -> int:
    """Encode a timestamp as whole epoch seconds, truncating fractions."""
    return int(value)


def _optional(encoder: Optional[Callable[[Any], Any]] = None) -> Any:
    return field(default=None, metadata={"omit": "none", "encoder": encoder})


def _check_range(name: str, value: Optional[int], low: int, high: int):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise ValidationError(
            f"{name} out of range [{low}, {high}]: {value}"
        )


def _coerce_id(name: str, value: Union[int, str, None]) -> Optional[int]:
    # ids read from YAML/JSON files are usually written as hex strings
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError as e:
            raise ValidationError(f"{name} is not a hex id: {value!r}") from e
    return value


def _coerce_time(name: str, value: Timestamp) -> Union[int, float]:
    if isinstance(value, datetime):
        value = value.timestamp()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be epoch seconds, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must not be before the epoch: {value}")
    return value


def _check_values(name: str, values: Optional[dict[str, Any]]):
    if values is None:
        return
    for key, value in values.items():
        if not isinstance(key, str):
            raise ValidationError(f"{name} keys must be strings, got {key!r}")
        if isinstance(value, str):
            continue
        _check_range(f"{name}[{key!r}]", value, I64_MIN, I64_MAX)


def _encode_value(value: Any) -> Any:
    if isinstance(value, Document):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_encode_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode_value(item) for key, item in value.items()}
    return value


class Document:
    """Serialization shared by segments and their nested objects."""

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation, keyed in field declaration order."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            omit = f.metadata.get("omit")
            if omit == "none" and value is None:
                continue
            if omit == "empty" and not value:
                continue
            encoder = f.metadata.get("encoder")
            if value is None:
                result[f.name] = None
            elif encoder is not None:
                result[f.name] = encoder(value)
            else:
                result[f.name] = _encode_value(value)
        return result

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def to_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")


@dataclass
class AWSECS(Document):
    """Information about an Amazon ECS container."""

    container: Optional[str] = _optional()


@dataclass
class AWSEC2(Document):
    """Information about an EC2 instance."""

    availability_zone: Optional[str] = _optional()
    instance_id: Optional[str] = _optional()


@dataclass
class AWSElasticBeanstalk(Document):
    """Information about an Elastic Beanstalk environment.

    Attributes:
        deployment_id: ID of the last successful deployment to the instance
        environment_name: The name of the environment
        version_label: The application version deployed to the instance
    """

    deployment_id: Optional[int] = _optional()
    environment_name: Optional[str] = _optional()
    version_label: Optional[str] = _optional()

    def __post_init__(self):
        _check_range("deployment_id", self.deployment_id, 0, U64_MAX)


@dataclass
class AWSXRay(Document):
    """Information about the SDK that recorded the segment."""

    sdk: str = SDK


@dataclass
class AWS(Document):
    """Information about the resource the application is running on.

    The first block of fields describes the segment's own resource; operation
    through table_name describe an AWS call made by a subsegment.
    """

    account_id: Optional[str] = _optional()
    ecs: Optional[AWSECS] = _optional()
    ec2: Optional[AWSEC2] = _optional()
    elastic_beanstalk: Optional[AWSElasticBeanstalk] = _optional()
    xray: AWSXRay = field(default_factory=AWSXRay)
    operation: Optional[str] = _optional()
    region: Optional[str] = _optional()
    request_id: Optional[str] = _optional()
    queue_url: Optional[str] = _optional()
    table_name: Optional[str] = _optional()

    def __post_init__(self):
        if isinstance(self.ecs, dict):
            self.ecs = AWSECS(**self.ecs)
        if isinstance(self.ec2, dict):
            self.ec2 = AWSEC2(**self.ec2)
        if isinstance(self.elastic_beanstalk, dict):
            self.elastic_beanstalk = AWSElasticBeanstalk(
                **self.elastic_beanstalk
            )
        if isinstance(self.xray, dict):
            self.xray = AWSXRay(**self.xray)


@dataclass
class HttpRequest(Document):
    client_ip: Optional[str] = _optional()
    method: Optional[str] = _optional()
    traced: Optional[bool] = _optional()
    url: Optional[str] = _optional()
    user_agent: Optional[str] = _optional()
    x_forwarded_for: Optional[bool] = _optional()


@dataclass
class HttpResponse(Document):
    content_length: Optional[int] = _optional()
    status: Optional[int] = _optional()

    def __post_init__(self):
        _check_range("content_length", self.content_length, 0, I32_MAX)
        _check_range("status", self.status, 100, 599)


@dataclass
class Http(Document):
    """Information about an incoming request or an outgoing HTTP call."""

    request: Optional[HttpRequest] = _optional()
    response: Optional[HttpResponse] = _optional()

    def __post_init__(self):
        if isinstance(self.request, dict):
            self.request = HttpRequest(**self.request)
        if isinstance(self.response, dict):
            self.response = HttpResponse(**self.response)


@dataclass
class Segment(Document):
    """A segment or subsegment document.

    A segment exclusively owns its subsegments. Every optional field is left
    out of the JSON when unset, except parent_id which is written as null.

    Attributes:
        annotations: Key-value pairs X-Ray indexes for search
        aws: The AWS resource the application runs on
        end_time: Epoch seconds when the segment was closed
        http: Information about the HTTP request or call
        id: 64-bit segment id
        is_progress: True when the segment is still in progress
        metadata: Additional data that is not indexed
        name: Logical name of the service or operation
        origin: Type of AWS resource running the application
        precursor_ids: Ids of sibling subsegments that completed before this one
        service: Name of the service that recorded the segment
        user: Identifier of the user who sent the request
        parent_id: Id of the parent segment or subsegment
        start_time: Epoch seconds when the segment was created
        subsegments: Nested subsegments
        trace_id: 128-bit id of the trace the segment belongs to

    Start and end times default to the moment of construction.
    """

    annotations: Optional[dict[str, AnnotationValue]] = _optional()
    aws: Optional[AWS] = _optional()
    end_time: Timestamp = field(default=None, metadata={"encoder": encode_time})  # type: ignore[assignment]
    http: Optional[Http] = _optional()
    id: int = field(default=0, metadata={"encoder": encode_hex_id})
    is_progress: bool = False
    metadata: Optional[dict[str, AnnotationValue]] = _optional()
    name: str = ""
    origin: Optional[Origin] = _optional()
    precursor_ids: Optional[list[int]] = _optional(
        lambda ids: [encode_hex_id(i) for i in ids]
    )
    service: Optional[str] = _optional()
    user: Optional[str] = _optional()
    parent_id: Optional[int] = field(
        default=None, metadata={"encoder": encode_hex_id}
    )
    start_time: Timestamp = field(default=None, metadata={"encoder": encode_time})  # type: ignore[assignment]
    subsegments: list["Segment"] = field(
        default_factory=list, metadata={"omit": "empty"}
    )
    trace_id: Optional[int] = _optional(encode_trace_id)

    def __post_init__(self):
        now = time.time()
        self.start_time = _coerce_time(
            "start_time", now if self.start_time is None else self.start_time
        )
        self.end_time = _coerce_time(
            "end_time", now if self.end_time is None else self.end_time
        )
        if self.end_time < self.start_time:
            raise ValidationError(
                f"end_time {self.end_time} is before start_time "
                f"{self.start_time}"
            )

        self.id = _coerce_id("id", self.id)
        self.parent_id = _coerce_id("parent_id", self.parent_id)
        self.trace_id = _coerce_id("trace_id", self.trace_id)
        _check_range("id", self.id, 0, U64_MAX)
        _check_range("parent_id", self.parent_id, 0, U64_MAX)
        _check_range("trace_id", self.trace_id, 0, U128_MAX)
        if self.precursor_ids is not None:
            self.precursor_ids = [
                _coerce_id("precursor_ids", i) for i in self.precursor_ids
            ]
            for precursor_id in self.precursor_ids:
                _check_range("precursor_ids", precursor_id, 0, U64_MAX)

        if self.origin is not None:
            self.origin = Origin.parse(self.origin)
        if isinstance(self.aws, dict):
            self.aws = AWS(**self.aws)
        if isinstance(self.http, dict):
            self.http = Http(**self.http)
        _check_values("annotations", self.annotations)
        _check_values("metadata", self.metadata)

        children = []
        for child in self.subsegments:
            if isinstance(child, dict):
                child = Segment(**child)
            if not isinstance(child, Segment):
                raise ValidationError(
                    f"subsegments must be segments, got {child!r}"
                )
            children.append(child)
        self.subsegments = children

    def add_subsegment(self, subsegment: "Segment") -> None:
        self.subsegments.append(subsegment)
