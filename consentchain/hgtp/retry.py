"""
Retry Execution with Classified Exponential Backoff

Runs an async operation, classifies each failure and retries it according to
the classification's RetryPolicy. The original exception is re-raised
unchanged once a policy says stop, so callers can still branch on its details.

One attempt counter is kept per call. Every failure is checked against the
max_attempts of its own classification using that same counter, so an
operation whose failures change classification mid-loop is judged by the
budget of whichever classification it failed with last.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from .error_classifier import ErrorClassifier
from .errors import RetryCancelledError
from ..utils.logger import RetryLogger
from ..utils.telemetry import HGTPMetrics

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """
    Executes operations with classification-driven retries.

    Holds no per-call state, so one instance may serve any number of
    concurrent callers.
    """

    def __init__(
        self,
        classifier: Optional[ErrorClassifier] = None,
        sleep: Sleep = asyncio.sleep,
        metrics: Optional[HGTPMetrics] = None,
    ):
        """
        Args:
            classifier: Error classifier; a fresh ErrorClassifier when omitted
            sleep: Non-blocking wait taking seconds
            metrics: Optional instruments for retry / error counts
        """
        self.classifier = classifier or ErrorClassifier()
        self.sleep = sleep
        self.metrics = metrics

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or its failure is not retried.

        Args:
            operation: Zero-argument coroutine function
            operation_name: Name used in logs and metrics
            cancel_event: Setting it aborts the loop before the next invocation
                or during a backoff wait

        Returns:
            The operation's result

        Raises:
            RetryCancelledError: If ``cancel_event`` was set
            Exception: The operation's own last error, unchanged
        """
        progress = RetryLogger(operation_name)
        last_error: Optional[Exception] = None
        attempt = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                progress.cancelled(attempt)
                raise RetryCancelledError(operation_name, attempt, last_error) from last_error

            try:
                result = await operation()
            except Exception as error:
                last_error = error
                classification = self.classifier.classify(error)
                policy = self.classifier.policy_for(classification)
                will_retry = policy.should_retry and attempt < policy.max_attempts

                progress.attempt_failed(
                    attempt + 1, error, classification.value, will_retry
                )

                if not will_retry:
                    progress.gave_up(attempt + 1, classification.value)
                    if self.metrics is not None:
                        self.metrics.record_error(operation_name, classification.value)
                    raise

                if self.metrics is not None:
                    self.metrics.record_retry(operation_name, classification.value)

                delay_ms = self.classifier.calculate_delay(policy, attempt)
                progress.retry_scheduled(attempt + 1, delay_ms)
                cancelled = await self._wait(delay_ms / 1000, cancel_event)
                attempt += 1

                if cancelled:
                    progress.cancelled(attempt)
                    raise RetryCancelledError(operation_name, attempt, error) from error
                continue

            if attempt > 0:
                progress.succeeded_after_retry(attempt + 1)
            return result

    async def _wait(
        self, seconds: float, cancel_event: Optional[asyncio.Event]
    ) -> bool:
        """
        Wait ``seconds`` unless ``cancel_event`` fires first.

        Returns:
            True if the wait was cut short by the cancel event
        """
        if cancel_event is None:
            await self.sleep(seconds)
            return False
        if cancel_event.is_set():
            return True

        sleeper = asyncio.ensure_future(self.sleep(seconds))
        canceller = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (sleeper, canceller):
                if not task.done():
                    task.cancel()

        if canceller in done:
            return True
        # Surface errors raised by the sleep itself
        sleeper.result()
        return False


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    classifier: Optional[ErrorClassifier] = None,
    *,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Sleep = asyncio.sleep,
    metrics: Optional[HGTPMetrics] = None,
) -> T:
    """
    Execute an operation with classified retries (convenience function).

    Args:
        operation: Zero-argument coroutine function
        operation_name: Name used in logs and metrics
        classifier: Error classifier; a fresh one when omitted
        cancel_event: Optional event that aborts the loop
        sleep: Non-blocking wait taking seconds
        metrics: Optional retry / error instruments

    Returns:
        Result from operation
    """
    executor = RetryExecutor(classifier=classifier, sleep=sleep, metrics=metrics)
    return await executor.execute(operation, operation_name, cancel_event=cancel_event)
