import json
import sys

import click
import yaml
from opentelemetry.trace import SpanContext, TraceFlags

from xraytrace.config import load_config
from xraytrace.error_handler import handle_error
from xraytrace.exceptions import ValidationError, XRayTraceError
from xraytrace.log import init_logger, logger
from xraytrace.tracing.header import format_header, parse_header
from xraytrace.tracing.ids import (
    SPAN_ID_BITS,
    AwsXRayIdGenerator,
    split_trace_id,
)
from xraytrace.tracing.segment import Segment


_STR_TAG = "tag:yaml.org,2002:str"
_NULL_TAG = "tag:yaml.org,2002:null"
HEX_ID_FIELDS = {"id", "parent_id", "trace_id", "precursor_ids"}


def _keep_as_string(node: yaml.Node) -> None:
    if isinstance(node, yaml.SequenceNode):
        for item in node.value:
            _keep_as_string(item)
    elif isinstance(node, yaml.ScalarNode) and node.tag != _NULL_TAG:
        node.tag = _STR_TAG


class SegmentLoader(yaml.SafeLoader):
    """Safe loader that reads id fields as hex text.

    Plain YAML would turn ``id: 0000000000000315`` into an octal or decimal
    number before it reaches the segment.
    """

    def construct_mapping(self, node, deep=False):
        for key_node, value_node in node.value:
            if getattr(key_node, "value", None) in HEX_ID_FIELDS:
                _keep_as_string(value_node)
        return super().construct_mapping(node, deep=deep)


def _parse_hex(name: str, value: str, bits: int) -> int:
    try:
        parsed = int(value, 16)
    except ValueError as e:
        raise ValidationError(f"{name} is not hexadecimal: {value!r}") from e
    if parsed == 0 or parsed.bit_length() > bits:
        raise ValidationError(
            f"{name} must be a non-zero {bits}-bit value: {value!r}"
        )
    return parsed


@click.group()
def cli():
    pass


@cli.command()
@click.option(
    "-n",
    "--count",
    type=int,
    default=1,
    show_default=True,
    help="Number of trace/span id pairs to generate",
)
def ids(count: int):
    """
    Generate X-Ray compatible trace and span ids.
    """
    generator = AwsXRayIdGenerator()
    for _ in range(count):
        timestamp, suffix = split_trace_id(generator.new_trace_id())
        span_id = generator.new_span_id()
        click.echo(f"1-{timestamp:08x}-{suffix:024x} {span_id:016x}")


@cli.command()
@click.option(
    "--trace-id",
    type=str,
    required=True,
    help="The 128-bit trace id as 32 hex digits, dashes allowed",
)
@click.option(
    "--span-id", type=str, required=True, help="The 64-bit parent span id"
)
@click.option("--sampled/--not-sampled", default=True, help="Sampling flag")
def encode(trace_id: str, span_id: str, sampled: bool):
    """
    Print the X-Amzn-Trace-Id header for a trace context.
    """
    raw_trace_id = trace_id.removeprefix("1-").replace("-", "")
    try:
        span_context = SpanContext(
            trace_id=_parse_hex("trace id", raw_trace_id, 128),
            span_id=_parse_hex("span id", span_id, SPAN_ID_BITS),
            is_remote=False,
            trace_flags=TraceFlags(
                TraceFlags.SAMPLED if sampled else TraceFlags.DEFAULT
            ),
        )
    except XRayTraceError as e:
        handle_error(e, exit_on_error=True)
        return
    click.echo(format_header(span_context))


@cli.command()
@click.argument("header", type=str)
def decode(header: str):
    """
    Parse an X-Amzn-Trace-Id header value.
    """
    span_context = parse_header(header, AwsXRayIdGenerator())
    if span_context is None:
        click.echo("no trace context")
        sys.exit(1)
    timestamp, suffix = split_trace_id(span_context.trace_id)
    click.echo(f"trace_id: 1-{timestamp:08x}-{suffix:024x}")
    click.echo(f"parent_id: {span_context.span_id:016x}")
    click.echo(f"sampled: {str(span_context.trace_flags.sampled).lower()}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def render(path: str):
    """
    Render a segment described in a YAML or JSON file as an X-Ray document.

    Id fields are always read as hexadecimal, quoted or not.
    """
    try:
        with open(path) as f:
            try:
                data = yaml.load(f, Loader=SegmentLoader)
            except yaml.YAMLError as e:
                raise ValidationError(
                    f"Invalid segment file {path}: {e}"
                ) from e
        if not isinstance(data, dict):
            raise ValidationError(f"Segment file must contain a mapping: {path}")
        segment = Segment(**data)
    except TypeError as e:
        handle_error(ValidationError(f"Invalid segment: {e}"), exit_on_error=True)
        return
    except XRayTraceError as e:
        handle_error(e, exit_on_error=True)
        return
    click.echo(segment.to_json())


@cli.command()
@click.option(
    "-c",
    "--config-path",
    "config_path",
    type=click.Path(exists=True),
    required=False,
    help="Path to configuration file",
)
def doctor(config_path: str | None):
    """
    Validate the exporter config and print the effective settings.
    """
    try:
        config = load_config(config_path)
    except XRayTraceError as e:
        handle_error(e, exit_on_error=True)
        return
    init_logger(config)
    logger.debug(f"Loaded config for service {config.service_name}")
    click.echo(f"service_name: {config.service_name}")
    click.echo(f"region: {config.region or '(from environment)'}")
    click.echo(f"origin: {config.origin.value if config.origin else '(none)'}")
    click.echo(f"log_level: {config.log_level}")
    click.echo("aws: " + json.dumps(config.aws_resource().to_dict()))


if __name__ == "__main__":
    cli()
