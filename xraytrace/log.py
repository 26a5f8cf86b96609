"""Logging configuration for the xraytrace package.

All modules log through the ``xraytrace`` logger. ``init_logger`` attaches a
colored stream handler for command-line use; library users can configure the
logger themselves instead.
"""

import logging

from colorama import Fore, Style, init

from xraytrace.config import ExporterConfig

# Initialize colorama for cross-platform colored output
init(autoreset=True)

logger = logging.getLogger("xraytrace")

# Loggers of the boto3 stack used to submit segments
AWS_LOGGERS = ("boto3", "botocore", "urllib3")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of each record."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.BLUE,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        original_format = super().format(record)
        color = self.COLORS.get(record.levelno, "")
        if color:
            # time, name, level, message
            parts = original_format.split(" - ", 3)
            if len(parts) >= 3:
                parts[2] = f"{color}{parts[2]}{Style.RESET_ALL}"
                return " - ".join(parts)
        return original_format


def init_logger(config: ExporterConfig):
    """Initialize the package logger with colored output."""
    log_level = config.log_level
    logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates
    logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(
        ColoredFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(stream_handler)

    # Prevent duplicate logs from propagating to root logger
    logger.propagate = False

    # AWS client chatter only shows up next to the codec's debug output
    aws_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in AWS_LOGGERS:
        logging.getLogger(name).setLevel(aws_level)
