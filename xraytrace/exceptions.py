"""Custom exception classes for the xraytrace package.

Malformed propagation headers are never raised: the codec degrades them to
"no context" locally. The exceptions here cover programming errors
(invalid document fields), configuration problems and backend submission
failures.
"""


class XRayTraceError(Exception):
    """Base exception class for all xraytrace errors.

    All custom exceptions in the package inherit from this class, so callers
    can catch every xraytrace-specific error with a single except clause.
    """

    def __init__(self, message: str, suggestion: str = ""):
        """Initialize the exception.

        Args:
            message: The error message describing what went wrong
            suggestion: Optional suggestion for how to fix the problem
        """
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return a formatted error message with suggestion if available."""
        if self.suggestion:
            return f"{self.message}{'.' if not self.message.endswith('.') else ''} {self.suggestion}"
        return self.message


class ConfigurationError(XRayTraceError):
    """Raised when the exporter configuration is missing or invalid."""

    pass


class ValidationError(XRayTraceError):
    """Raised when a document is constructed with out-of-range values.

    This signals a bug in the caller rather than an environmental condition.
    """

    pass


class SegmentExportError(XRayTraceError):
    """Raised when segment documents could not be submitted to X-Ray."""

    def __init__(self, message: str, retryable: bool, suggestion: str = ""):
        self.retryable = retryable
        super().__init__(message, suggestion)
