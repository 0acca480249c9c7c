"""
HGTP Metrics and Tracing

OpenTelemetry instruments for metagraph submissions and their retries. The
hosting application decides where they are exported by installing a
MeterProvider / TracerProvider; without one the API's no-op providers are used.
"""

from typing import Optional

from opentelemetry import metrics, trace

from .logger import get_logger

logger = get_logger(__name__)


def get_tracer(name: str) -> trace.Tracer:
    """
    Get an OpenTelemetry tracer.

    Args:
        name: Name of the tracer (usually __name__)

    Returns:
        Tracer instance
    """
    return trace.get_tracer(name)


class HGTPMetrics:
    """Counters and histograms for HGTP submissions."""

    def __init__(self, meter_provider: Optional[metrics.MeterProvider] = None):
        self.meter = metrics.get_meter(__name__, meter_provider=meter_provider)

        self.submission_counter = self.meter.create_counter(
            "hgtp.submission.total",
            unit="1",
            description="Total number of HGTP submissions",
        )
        self.submission_duration = self.meter.create_histogram(
            "hgtp.submission.duration",
            unit="s",
            description="Duration of HGTP submissions in seconds",
        )
        self.retry_counter = self.meter.create_counter(
            "hgtp.retry.total",
            unit="1",
            description="Total number of HGTP retry attempts",
        )
        self.error_counter = self.meter.create_counter(
            "hgtp.error.total",
            unit="1",
            description="Total number of HGTP errors that ended a retry loop",
        )
        self.policy_versions_submitted = self.meter.create_counter(
            "policy_version.submitted.total",
            unit="1",
            description="Total number of policy versions submitted",
        )
        self.consent_events_submitted = self.meter.create_counter(
            "consent_event.submitted.total",
            unit="1",
            description="Total number of consent events submitted",
        )

    def record_retry(self, operation: str, error_type: str) -> None:
        self.retry_counter.add(1, {"operation": operation, "error_type": error_type})

    def record_error(self, operation: str, error_type: str) -> None:
        self.error_counter.add(1, {"operation": operation, "error_type": error_type})

    def record_submission(
        self, submission_type: str, status: str, duration_s: float
    ) -> None:
        """Record one finished submission of ``submission_type`` (policy/consent)."""
        self.submission_counter.add(1, {"type": submission_type, "status": status})
        self.submission_duration.record(duration_s, {"type": submission_type})


_hgtp_metrics: Optional[HGTPMetrics] = None


def get_hgtp_metrics() -> HGTPMetrics:
    """Get or create the process-wide HGTPMetrics bound to the global provider."""
    global _hgtp_metrics
    if _hgtp_metrics is None:
        _hgtp_metrics = HGTPMetrics()
        logger.debug("HGTP metrics instruments created")
    return _hgtp_metrics
