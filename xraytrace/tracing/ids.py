"""Trace and span id generation in the AWS X-Ray id layout.

An X-Ray trace id is 128 bits: a 32-bit unix timestamp (seconds) in the high
bits followed by a 96-bit random suffix. Span ids are plain random 64-bit
values.
"""

import logging
import random
import secrets
import time
from typing import Callable

from opentelemetry.sdk.trace.id_generator import IdGenerator

logger = logging.getLogger("xraytrace")

TIMESTAMP_BITS = 32
SUFFIX_BITS = 96
SPAN_ID_BITS = 64

TIMESTAMP_MASK = (1 << TIMESTAMP_BITS) - 1
# Extracts the 96-bit root suffix from a 128-bit trace id
ROOT_MASK = (1 << SUFFIX_BITS) - 1


def trace_id_from_parts(timestamp: int, suffix: int) -> int:
    """Combine an epoch-seconds timestamp and a random suffix into a trace id.

    Args:
        timestamp: Unix epoch seconds, truncated to 32 bits
        suffix: Unique suffix, truncated to 96 bits

    Returns:
        The 128-bit trace id
    """
    return ((timestamp & TIMESTAMP_MASK) << SUFFIX_BITS) | (suffix & ROOT_MASK)


def split_trace_id(trace_id: int) -> tuple[int, int]:
    """Split a 128-bit trace id into its (timestamp, suffix) parts."""
    return trace_id >> SUFFIX_BITS, trace_id & ROOT_MASK


def _new_random() -> random.Random:
    try:
        seed = secrets.randbits(128)
    except NotImplementedError:
        # no OS entropy source; ids are not security tokens
        logger.warning(
            "Secure random source unavailable, seeding id generator from time"
        )
        seed = time.time_ns()
    return random.Random(seed)


class AwsXRayIdGenerator(IdGenerator):
    """Generates trace and span ids compatible with the AWS X-Ray backend.

    Every instance owns an independent random stream. Create one generator
    per worker instead of sharing a single instance across threads.

    Example:
        >>> from opentelemetry.sdk.trace import TracerProvider
        >>> provider = TracerProvider(id_generator=AwsXRayIdGenerator())
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize the generator.

        Args:
            clock: Returns the current wall-clock time in epoch seconds
        """
        self._clock = clock
        self._random = _new_random()

    def generate_trace_id(self) -> int:
        """Generate a trace id with the current second in the high 32 bits.

        Returns:
            A 128-bit trace id with a 96-bit random suffix
        """
        return trace_id_from_parts(
            int(self._clock()), self._random.getrandbits(SUFFIX_BITS)
        )

    def generate_span_id(self) -> int:
        """Generate a random, non-zero 64-bit span id."""
        span_id = self._random.getrandbits(SPAN_ID_BITS)
        while span_id == 0:
            span_id = self._random.getrandbits(SPAN_ID_BITS)
        return span_id

    def new_trace_id(self) -> int:
        return self.generate_trace_id()

    def new_span_id(self) -> int:
        return self.generate_span_id()
