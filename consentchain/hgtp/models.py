"""Payloads exchanged with the metagraph's Data L1 and L0 nodes."""

import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

_HEX64 = re.compile(r"^[a-f0-9]{64}$")


class PolicyVersion(BaseModel):
    """One immutable version of a privacy policy, identified by its content hash."""

    policy_id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    content_hash: str
    uri: str
    jurisdiction: str
    effective_from: str
    effective_until: Optional[str] = None

    @field_validator("content_hash", mode="before")
    @classmethod
    def validate_content_hash(cls, v: Any) -> Any:
        """SHA-256 hex digest, normalised to lowercase."""
        if not isinstance(v, str):
            return v
        v = v.strip().lower()
        if not _HEX64.match(v):
            raise ValueError("content_hash must be 64 hex characters")
        return v


class PolicyRef(BaseModel):
    policy_id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


class ConsentEvent(BaseModel):
    """A data subject granting, withdrawing or updating consent to a policy version."""

    subject_id: str
    policy_ref: PolicyRef
    event_type: Literal["consent_granted", "consent_withdrawn", "consent_updated"]
    timestamp: str
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("subject_id", mode="before")
    @classmethod
    def validate_subject_id(cls, v: Any) -> Any:
        """Subject ids are hashed PII: 64 hex characters."""
        if not isinstance(v, str):
            return v
        v = v.strip().lower()
        if not _HEX64.match(v):
            raise ValueError("subject_id must be 64 hex characters")
        return v


class SubmissionResult(BaseModel):
    hash: str
