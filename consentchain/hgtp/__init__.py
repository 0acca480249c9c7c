"""
HGTP Integration

Outbound calls to the metagraph (Data L1 submissions, L0 snapshot reads) and
the error classification / retry machinery that protects them.
"""

from .errors import HGTPError, HGTPSubmissionError, RetryCancelledError
from .error_classifier import (
    ErrorClassification,
    ErrorClassifier,
    RetryPolicy,
    RETRY_POLICIES,
)
from .retry import RetryExecutor, execute_with_retry
from .models import ConsentEvent, PolicyRef, PolicyVersion, SubmissionResult
from .client import HGTPClient

__all__ = [
    "HGTPError",
    "HGTPSubmissionError",
    "RetryCancelledError",
    "ErrorClassification",
    "ErrorClassifier",
    "RetryPolicy",
    "RETRY_POLICIES",
    "RetryExecutor",
    "execute_with_retry",
    "ConsentEvent",
    "PolicyRef",
    "PolicyVersion",
    "SubmissionResult",
    "HGTPClient",
]
