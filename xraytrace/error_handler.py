"""Error handling for the xraytrace command line."""

import sys

from xraytrace.exceptions import SegmentExportError, XRayTraceError
from xraytrace.log import logger


def handle_error(error: Exception, exit_on_error: bool = False) -> None:
    """Handle an error by logging it and optionally exiting.

    Export failures also report whether sending the batch again may succeed.

    Args:
        error: The exception that was raised
        exit_on_error: If True, exit the program after logging the error
    """
    if isinstance(error, SegmentExportError):
        retry = "may succeed on retry" if error.retryable else "will not be retried"
        logger.error(f"{error} ({retry})")
    elif isinstance(error, XRayTraceError):
        logger.error(f"{error}")
    else:
        logger.error(f"Unexpected error: {error}")
        logger.debug("Stack trace:", exc_info=True)

    if exit_on_error:
        sys.exit(1)
