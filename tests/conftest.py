"""
Pytest configuration and shared fixtures for consentchain tests.

This module provides:
- A recording sleep so retry delays are asserted without waiting
- In-memory OpenTelemetry metrics
- Environment isolation for the ConfigManager singleton
- Sample policy / consent payloads
"""

import asyncio

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from consentchain.config import ConfigManager
from consentchain.hgtp.error_classifier import ErrorClassifier
from consentchain.hgtp.errors import HGTPError
from consentchain.utils.telemetry import HGTPMetrics

CONFIG_ENV_VARS = (
    "METAGRAPH_L0_URL",
    "METAGRAPH_L1_URL",
    "GLOBAL_L0_URL",
    "METAGRAPH_ID",
    "HGTP_REQUEST_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "LOG_DIR",
)


# =============================================================================
# RETRY HELPERS
# =============================================================================


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        # Yield so concurrent callers interleave as they would with a real sleep
        await asyncio.sleep(0)


class FlakyOperation:
    """Async operation that raises the queued errors in order, then succeeds."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def make_error(message: str = "", status=None, code=None) -> HGTPError:
    return HGTPError(message, status=status, code=code)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def classifier():
    return ErrorClassifier()


# =============================================================================
# METRICS
# =============================================================================


@pytest.fixture
def metric_reader():
    return InMemoryMetricReader()


@pytest.fixture
def hgtp_metrics(metric_reader):
    return HGTPMetrics(meter_provider=MeterProvider(metric_readers=[metric_reader]))


def collect_metrics(reader: InMemoryMetricReader) -> dict:
    """Map metric name -> list of (attributes, data point) pairs."""
    collected = {}
    data = reader.get_metrics_data()
    if data is None:
        return collected
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points = collected.setdefault(metric.name, [])
                for point in metric.data.data_points:
                    points.append((dict(point.attributes), point))
    return collected


def counter_value(reader: InMemoryMetricReader, name: str, **attributes) -> int:
    """Sum of a counter's data points whose attributes include ``attributes``."""
    total = 0
    for attrs, point in collect_metrics(reader).get(name, []):
        if all(attrs.get(k) == v for k, v in attributes.items()):
            total += point.value
    return total


# =============================================================================
# CONFIGURATION
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Start every test from default configuration."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    ConfigManager.reset_instance()
    yield
    ConfigManager.reset_instance()


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================


@pytest.fixture
def sample_policy_version():
    from consentchain.hgtp.models import PolicyVersion

    return PolicyVersion(
        policy_id="privacy-policy",
        version="1.0.0",
        content_hash="a" * 64,
        uri="https://example.com/policies/privacy.json",
        jurisdiction="US",
        effective_from="2024-01-01T00:00:00Z",
    )


@pytest.fixture
def sample_consent_event():
    from consentchain.hgtp.models import ConsentEvent, PolicyRef

    return ConsentEvent(
        subject_id="b" * 64,
        policy_ref=PolicyRef(policy_id="privacy-policy", version="1.0.0"),
        event_type="consent_granted",
        timestamp="2024-01-15T12:00:00Z",
    )
