"""Validation of metagraph payload models."""

import pytest
from pydantic import ValidationError

from consentchain.hgtp.models import ConsentEvent, PolicyRef, PolicyVersion


class TestPolicyVersion:
    def test_content_hash_normalised(self):
        policy = PolicyVersion(
            policy_id="privacy-policy",
            version="1.0.0",
            content_hash=" " + "A" * 64 + " ",
            uri="https://example.com/p.json",
            jurisdiction="US",
            effective_from="2024-01-01T00:00:00Z",
        )
        assert policy.content_hash == "a" * 64
        assert policy.effective_until is None

    @pytest.mark.parametrize("content_hash", ["abc", "g" * 64, "a" * 63])
    def test_invalid_content_hash(self, content_hash):
        with pytest.raises(ValidationError):
            PolicyVersion(
                policy_id="privacy-policy",
                version="1.0.0",
                content_hash=content_hash,
                uri="https://example.com/p.json",
                jurisdiction="US",
                effective_from="2024-01-01T00:00:00Z",
            )

    def test_empty_policy_id_rejected(self):
        with pytest.raises(ValidationError):
            PolicyRef(policy_id="", version="1.0.0")


class TestConsentEvent:
    def test_invalid_subject_id(self):
        with pytest.raises(ValidationError):
            ConsentEvent(
                subject_id="invalid",
                policy_ref=PolicyRef(policy_id="privacy-policy", version="1.0.0"),
                event_type="consent_granted",
                timestamp="2024-01-15T12:00:00Z",
            )

    def test_unknown_event_type(self):
        with pytest.raises(ValidationError):
            ConsentEvent(
                subject_id="b" * 64,
                policy_ref=PolicyRef(policy_id="privacy-policy", version="1.0.0"),
                event_type="consent_sold",
                timestamp="2024-01-15T12:00:00Z",
            )

    def test_metadata_defaults_empty(self, sample_consent_event):
        assert sample_consent_event.metadata == {}
