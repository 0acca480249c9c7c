"""
HGTP Client

Submits policy versions and consent events to the metagraph's Data L1 node
and reads them back from the latest L0 snapshot.

Submissions go through the RetryExecutor, so connection faults and degraded
nodes are retried while validation rejections fail fast. Snapshot reads are
best-effort and return empty results when the node cannot be read.
"""

import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as ModelValidationError

from ..config import ConfigManager, get_config
from ..utils.logger import configure_logging, get_logger
from ..utils.telemetry import HGTPMetrics, get_hgtp_metrics, get_tracer
from .errors import HGTPError, HGTPSubmissionError
from .models import ConsentEvent, PolicyVersion, SubmissionResult
from .retry import RetryExecutor

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HGTPClient:
    """Async client for a metagraph's L0 and Data L1 nodes."""

    POLICY_PATH = "/data-application/policy"
    CONSENT_PATH = "/data-application/consent"
    SNAPSHOT_PATH = "/snapshots/latest"

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        executor: Optional[RetryExecutor] = None,
        metrics: Optional[HGTPMetrics] = None,
    ):
        """
        Args:
            config: Connection settings; the global ConfigManager when omitted
            http_client: Shared httpx client; one is created (and owned) when omitted
            executor: Retry executor for submissions
            metrics: Submission instruments; the process-wide set when omitted
        """
        config = config or get_config()
        configure_logging(config)
        self.l0_url = config.METAGRAPH_L0_URL
        self.l1_url = config.METAGRAPH_L1_URL
        self.global_l0_url = config.GLOBAL_L0_URL
        self.metagraph_id = config.METAGRAPH_ID
        self.timeout = config.HGTP_REQUEST_TIMEOUT_SECONDS

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=self.timeout)
        self.metrics = metrics or get_hgtp_metrics()
        self.executor = executor or RetryExecutor(metrics=self.metrics)
        self.tracer = get_tracer(__name__)

    async def __aenter__(self) -> "HGTPClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def submit_policy_version(
        self, policy_version: PolicyVersion
    ) -> SubmissionResult:
        """
        Anchor a policy version on the metagraph.

        Raises:
            HGTPSubmissionError: If the node rejects the submission
            httpx.HTTPError: If the node cannot be reached after retries
        """
        status = "success"
        try:
            body = await self._submit(
                self.POLICY_PATH,
                policy_version.model_dump(mode="json"),
                "submitPolicyVersion",
                "policy",
            )
            logger.info(
                f"[HGTP] Policy version submitted: policy_id={policy_version.policy_id} "
                f"version={policy_version.version} status={body.get('status')}"
            )
            return SubmissionResult(hash=body.get("policy_id") or "pending")
        except Exception:
            status = "failure"
            raise
        finally:
            self.metrics.policy_versions_submitted.add(1, {"status": status})

    async def submit_consent_event(
        self, consent_event: ConsentEvent
    ) -> SubmissionResult:
        """
        Record a consent event on the metagraph.

        Raises:
            HGTPSubmissionError: If the node rejects the submission
            httpx.HTTPError: If the node cannot be reached after retries
        """
        status = "success"
        try:
            body = await self._submit(
                self.CONSENT_PATH,
                consent_event.model_dump(mode="json"),
                "submitConsentEvent",
                "consent",
            )
            logger.info(
                f"[HGTP] Consent event submitted: event_type={consent_event.event_type} "
                f"status={body.get('status')}"
            )
            return SubmissionResult(
                hash=body.get("consent_id") or body.get("hash") or "pending"
            )
        except Exception:
            status = "failure"
            raise
        finally:
            self.metrics.consent_events_submitted.add(
                1, {"status": status, "event_type": consent_event.event_type}
            )

    async def _submit(
        self,
        path: str,
        payload: Dict[str, Any],
        operation_name: str,
        submission_type: str,
    ) -> Dict[str, Any]:
        url = f"{self.l1_url}{path}"

        async def post() -> httpx.Response:
            response = await self.client.post(url, json=payload, timeout=self.timeout)
            if not response.is_success:
                raise HGTPSubmissionError(
                    f"HGTP submission failed: {response.reason_phrase} - {response.text}",
                    status=response.status_code,
                )
            return response

        start = time.perf_counter()
        status = "success"
        with self.tracer.start_as_current_span(f"hgtp.{operation_name}") as span:
            span.set_attribute("hgtp.submission.type", submission_type)
            span.set_attribute("hgtp.metagraph.id", self.metagraph_id)
            span.set_attribute("hgtp.global_l0.url", self.global_l0_url)
            try:
                response = await self.executor.execute(post, operation_name)
                # Accepted by the node; decoding failures must not trigger a re-post
                return _response_body(response, operation_name)
            except Exception as e:
                status = "failure"
                span.record_exception(e)
                raise
            finally:
                self.metrics.record_submission(
                    submission_type, status, time.perf_counter() - start
                )

    # ------------------------------------------------------------------
    # Snapshot reads
    # ------------------------------------------------------------------

    async def get_policies(self) -> List[PolicyVersion]:
        """All policy versions in the latest snapshot; empty if unreadable."""
        data = await self._latest_snapshot_data("policies")
        if data is None:
            return []
        raw = data.get("policyVersions") or {}
        entries = raw.values() if isinstance(raw, dict) else raw
        return _parse_all(PolicyVersion, entries)

    async def get_policy(self, policy_id: str) -> Optional[PolicyVersion]:
        policies = await self.get_policies()
        return next((p for p in policies if p.policy_id == policy_id), None)

    async def get_consents_by_subject(self, subject_id: str) -> List[ConsentEvent]:
        """Consent events of one subject in the latest snapshot; empty if unreadable."""
        data = await self._latest_snapshot_data("consents")
        if data is None:
            return []
        consents = _parse_all(ConsentEvent, data.get("consentEvents") or [])
        subject_id = subject_id.strip().lower()
        return [c for c in consents if c.subject_id == subject_id]

    async def _latest_snapshot_data(self, what: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self.client.get(
                f"{self.l0_url}{self.SNAPSHOT_PATH}", timeout=self.timeout
            )
            if not response.is_success:
                raise HGTPError(
                    f"Failed to fetch {what}: {response.reason_phrase}",
                    status=response.status_code,
                )
            snapshot = response.json()
        except (HGTPError, httpx.HTTPError, ValueError) as e:
            logger.error(f"[HGTP] Error fetching {what}: {e}")
            return None

        data = snapshot.get("data") if isinstance(snapshot, dict) else None
        return data if isinstance(data, dict) else {}


def _response_body(response: httpx.Response, operation_name: str) -> Dict[str, Any]:
    """JSON object of a 2xx submission response; empty when it is anything else."""
    try:
        body = response.json()
    except ValueError:
        logger.warning(f"[HGTP] {operation_name}: response body is not JSON")
        return {}
    if not isinstance(body, dict):
        logger.warning(
            f"[HGTP] {operation_name}: expected a JSON object, got {type(body).__name__}"
        )
        return {}
    return body


def _parse_all(model: Type[ModelT], entries: Any) -> List[ModelT]:
    parsed = []
    for entry in entries:
        try:
            parsed.append(model.model_validate(entry))
        except ModelValidationError as e:
            logger.warning(f"[HGTP] Skipping invalid {model.__name__}: {e}")
    return parsed
