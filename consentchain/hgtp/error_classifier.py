"""
Error Classification for HGTP Calls

Decides whether a failed metagraph call is worth retrying:
- RETRIABLE: transient infrastructure faults (connection refused/reset,
  timeouts, DNS failures, rate limiting, "node not ready")
- PERMANENT: caller or business-rule faults (validation, not found,
  unauthorized, forbidden); retrying cannot change the outcome
- DEGRADED: the node answers but is unhealthy (consensus or partial
  failure, bad gateway, gateway timeout); retried slower and longer

Each classification maps to one static RetryPolicy. Anything the classifier
does not recognise is treated as RETRIABLE.
"""

import asyncio
import errno
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

import httpx


class ErrorClassification(str, Enum):
    """Retriability of a failed call."""

    RETRIABLE = "retriable"
    PERMANENT = "permanent"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters for one classification. Delays are milliseconds."""

    should_retry: bool
    max_attempts: int
    initial_delay_ms: int
    backoff_multiplier: float
    max_delay_ms: int


RETRY_POLICIES: Dict[ErrorClassification, RetryPolicy] = {
    ErrorClassification.RETRIABLE: RetryPolicy(
        should_retry=True,
        max_attempts=3,
        initial_delay_ms=1000,  # 1s
        backoff_multiplier=2.0,
        max_delay_ms=10000,  # 10s
    ),
    ErrorClassification.DEGRADED: RetryPolicy(
        should_retry=True,
        max_attempts=5,
        initial_delay_ms=5000,  # 5s
        backoff_multiplier=1.5,
        max_delay_ms=30000,  # 30s
    ),
    ErrorClassification.PERMANENT: RetryPolicy(
        should_retry=False,
        max_attempts=0,
        initial_delay_ms=0,
        backoff_multiplier=1.0,
        max_delay_ms=0,
    ),
}

# System error codes for connection-level failures
RETRIABLE_CODES = frozenset(
    {
        "ECONNREFUSED",
        "ECONNRESET",
        "ETIMEDOUT",
        "ENOTFOUND",
        "ENETUNREACH",
        "EHOSTUNREACH",
    }
)

RETRIABLE_MARKERS: Tuple[str, ...] = (
    "503",
    "429",  # rate limit
    "Node not ready",
    "Network error",
)

PERMANENT_MARKERS: Tuple[str, ...] = (
    "ValidationError",
    "DuplicatePolicyVersion",
    "PolicyVersionNotFound",
    "InvalidData",
    "InvalidContentHash",
    "InvalidJurisdiction",
)
PERMANENT_STATUSES = frozenset({400, 401, 403, 404})

DEGRADED_MARKERS: Tuple[str, ...] = (
    "SnapshotStopped",
    "ConsensusFailure",
    "PartialFailure",
)
DEGRADED_STATUSES = frozenset({502, 504})

# Exceptions that imply a system code when none is attached.
# Order matters: first isinstance match wins.
EXCEPTION_CODES: Tuple[Tuple[Type[BaseException], str], ...] = (
    (httpx.TimeoutException, "ETIMEDOUT"),
    (httpx.ConnectError, "ECONNREFUSED"),
    (httpx.NetworkError, "ECONNRESET"),
    (ConnectionRefusedError, "ECONNREFUSED"),
    (ConnectionResetError, "ECONNRESET"),
    (socket.gaierror, "ENOTFOUND"),
    (socket.timeout, "ETIMEDOUT"),
    (asyncio.TimeoutError, "ETIMEDOUT"),
    (TimeoutError, "ETIMEDOUT"),
)


def error_code(error: Any) -> Optional[str]:
    """System error code of ``error``, or None."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    # gaierror / herror carry resolver codes, not errno values
    resolver_error = isinstance(error, (socket.gaierror, socket.herror))
    if isinstance(error, OSError) and not resolver_error and error.errno is not None:
        name = errno.errorcode.get(error.errno)
        if name:
            return name

    for exc_type, implied in EXCEPTION_CODES:
        if isinstance(error, exc_type):
            return implied
    return None


def error_status(error: Any) -> Optional[int]:
    """HTTP status code attached to ``error``, or None."""
    candidates = (
        getattr(error, "status", None),
        getattr(error, "status_code", None),
        getattr(getattr(error, "response", None), "status_code", None),
    )
    for status in candidates:
        if isinstance(status, int) and not isinstance(status, bool):
            return status
    return None


def error_message(error: Any) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


class ErrorClassifier:
    """Classifies errors and maps classifications to retry policies."""

    def __init__(
        self, policies: Optional[Dict[ErrorClassification, RetryPolicy]] = None
    ):
        """
        Args:
            policies: Per-classification overrides merged over RETRY_POLICIES

        Raises:
            ValueError: If the PERMANENT override would allow a retry
        """
        self.policies = dict(RETRY_POLICIES)
        if policies:
            permanent = policies.get(ErrorClassification.PERMANENT)
            if permanent is not None and (
                permanent.should_retry or permanent.max_attempts != 0
            ):
                raise ValueError(
                    "PERMANENT policy must have should_retry=False and max_attempts=0"
                )
            self.policies.update(policies)

    def classify(self, error: Any) -> ErrorClassification:
        """
        Classify an error. The first matching rule wins.

        Args:
            error: The exception (or any object exposing ``code``, ``status``
                or a message) raised by the failed call

        Returns:
            ErrorClassification
        """
        code = error_code(error)
        status = error_status(error)
        message = error_message(error)

        if code in RETRIABLE_CODES or _contains_any(message, RETRIABLE_MARKERS):
            return ErrorClassification.RETRIABLE

        if _contains_any(message, PERMANENT_MARKERS) or status in PERMANENT_STATUSES:
            return ErrorClassification.PERMANENT

        if _contains_any(message, DEGRADED_MARKERS) or status in DEGRADED_STATUSES:
            return ErrorClassification.DEGRADED

        # Unrecognised failures are assumed transient
        return ErrorClassification.RETRIABLE

    def policy_for(self, classification: ErrorClassification) -> RetryPolicy:
        """Get the retry policy for a classification."""
        return self.policies[classification]

    @staticmethod
    def calculate_delay(policy: RetryPolicy, attempt: int) -> float:
        """
        Exponential backoff delay for a zero-based attempt.

        Returns:
            Delay in milliseconds, capped at ``policy.max_delay_ms``
        """
        try:
            delay = policy.initial_delay_ms * (policy.backoff_multiplier**attempt)
        except OverflowError:
            return policy.max_delay_ms
        return min(delay, policy.max_delay_ms)


def _contains_any(message: str, markers: Tuple[str, ...]) -> bool:
    return any(marker in message for marker in markers)
