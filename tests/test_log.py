"""Tests for logger setup and CLI error reporting."""

import logging

import pytest

from xraytrace.config import ExporterConfig
from xraytrace.error_handler import handle_error
from xraytrace.exceptions import SegmentExportError, ValidationError
from xraytrace.log import AWS_LOGGERS, init_logger


class TestInitLogger:
    def test_aws_loggers_quiet_outside_debug(self):
        init_logger(ExporterConfig(log_level="INFO"))
        for name in AWS_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_aws_loggers_follow_debug(self):
        init_logger(ExporterConfig(log_level="DEBUG"))
        assert logging.getLogger("xraytrace").level == logging.DEBUG
        for name in AWS_LOGGERS:
            assert logging.getLogger(name).level == logging.DEBUG


class TestHandleError:
    def test_export_error_reports_retryability(self, caplog):
        with caplog.at_level(logging.ERROR, logger="xraytrace"):
            handle_error(SegmentExportError("X-Ray throttled", retryable=True))
            handle_error(SegmentExportError("Bad request", retryable=False))
        assert "may succeed on retry" in caplog.text
        assert "will not be retried" in caplog.text

    def test_exits_when_asked(self):
        with pytest.raises(SystemExit):
            handle_error(ValidationError("bad id"), exit_on_error=True)
