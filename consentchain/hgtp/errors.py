"""
HGTP Error Types

Failures raised by this package's outbound metagraph calls. They carry the
three facets the error classifier reads: a message, an HTTP status and a
system error code. Cancellation of a retry loop has its own type so callers
never confuse it with a failure of the wrapped operation.
"""

from typing import Optional


class HGTPError(Exception):
    """Base exception for failed calls to a metagraph node."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ):
        """
        Args:
            message: Human-readable error message
            status: HTTP status code returned by the node, if any
            code: System error code (e.g. ``ECONNRESET``), if any
        """
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class HGTPSubmissionError(HGTPError):
    """A Data L1 node rejected a submission with a non-2xx response."""

    pass


class RetryCancelledError(Exception):
    """The retry loop was aborted through its cancel event."""

    def __init__(
        self,
        operation_name: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        self.operation_name = operation_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation_name} cancelled after {attempts} attempt(s)"
        )
