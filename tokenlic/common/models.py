"""
Pydantic models for license payloads, verdicts and stored records.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, JsonValue


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LicensePayload(BaseModel):
    """The signed content of a license token."""

    model_config = ConfigDict(frozen=True)

    version: str
    customer_id: str = Field(min_length=1)
    issue_date: AwareDatetime
    expiry_date: AwareDatetime
    uuid: str = Field(min_length=1)
    hw_fingerprint: str | None = None
    metadata: dict[str, JsonValue] = Field(default_factory=dict)
    usage_limit: int | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expiry_date


class Verdict(BaseModel):
    """Outcome of verifying a token.

    ``valid`` is authoritative. The remaining flags record each individual
    check so callers can tell an expired license from a wrong machine or a
    revoked one.
    """

    valid: bool = False
    revoked: bool = False
    payload: LicensePayload | None = None
    signature_ok: bool = False
    expired: bool | None = None
    hardware_ok: bool | None = None
    reason: str = ""

    @classmethod
    def invalid(
        cls, reason: str, payload: LicensePayload | None = None, **flags: bool
    ) -> Verdict:
        return cls(valid=False, payload=payload, reason=reason, **flags)


class RevocationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    uuid: str
    revoked_at: AwareDatetime


class IssuedLicense(BaseModel):
    """Audit record of an issued license, keyed by uuid."""

    uuid: str
    customer_id: str
    issue_date: AwareDatetime
    expiry_date: AwareDatetime
    hw_fingerprint: str | None = None
    metadata: dict[str, JsonValue] = Field(default_factory=dict)
    usage_limit: int | None = None
    license_key: str
    created_at: AwareDatetime = Field(default_factory=utcnow)

    @classmethod
    def from_payload(cls, payload: LicensePayload, token: str) -> IssuedLicense:
        return cls(
            uuid=payload.uuid,
            customer_id=payload.customer_id,
            issue_date=payload.issue_date,
            expiry_date=payload.expiry_date,
            hw_fingerprint=payload.hw_fingerprint,
            metadata=payload.metadata,
            usage_limit=payload.usage_limit,
            license_key=token,
        )
