"""
License token validation.
"""

from __future__ import annotations

import hashlib
import logging
import os
import platform
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidSignature, InvalidTag
from pydantic import ValidationError as PydanticValidationError

from tokenlic.common.crypto import CryptoUtils, EncryptedPayload
from tokenlic.common.models import LicensePayload, Verdict, utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey

    from tokenlic.common.interfaces import IRevocationOracle


def hardware_fingerprint() -> str:
    """Fingerprint of this machine: SHA-256 hex of CPU count, OS name and arch.

    Machines with identical characteristics share a fingerprint. This is a
    weak binding, not hardware attestation.
    """
    basis = f"{os.cpu_count()}-{platform.system()}-{platform.machine()}"
    return hashlib.sha256(basis.encode("utf-8")).hexdigest()


def hardware_matches(bound: str | None, supplied: str | None) -> bool:
    """Both absent, or both present and identical."""
    if bound is None:
        return supplied is None
    return supplied is not None and bound == supplied


class LicenseValidator:
    """Verifies tokens and applies expiry, hardware and revocation checks.

    Verification never raises on bad input: every failure is reported as an
    invalid Verdict. No payload is parsed before the signature is checked.
    """

    def __init__(
        self,
        public_key: EllipticCurvePublicKey,
        revocation_oracle: IRevocationOracle,
        symmetric_key: bytes | None = None,
    ):
        self.public_key = public_key
        self.revocation_oracle = revocation_oracle
        self.symmetric_key = symmetric_key
        self.logger = logging.getLogger(__name__)

    def verify(
        self, token: str, hw_fingerprint: str | None = None, now: datetime | None = None
    ) -> Verdict:
        """Verify a token and return a verdict."""
        try:
            verdict = self._verify(token, hw_fingerprint, now or utcnow())
        except Exception:  # noqa: BLE001
            self.logger.exception("Unexpected error while verifying token")
            return Verdict.invalid("internal error")
        if verdict.valid:
            self.logger.debug("License %s valid", verdict.payload.uuid)
        else:
            self.logger.info("License rejected: %s", verdict.reason)
        return verdict

    def _verify(
        self, token: str, hw_fingerprint: str | None, now: datetime
    ) -> Verdict:
        if not isinstance(token, str):
            return Verdict.invalid("token is not a string")
        parts = token.split(".")
        if len(parts) != 2 or not all(parts):  # noqa: PLR2004
            return Verdict.invalid("malformed token")
        payload_segment, signature_segment = parts

        try:
            payload_bytes = CryptoUtils.b64url_decode(payload_segment)
            signature = CryptoUtils.b64url_decode(signature_segment)
        except ValueError:
            return Verdict.invalid("undecodable token segment")

        try:
            CryptoUtils.verify(
                self.public_key, signature, payload_segment.encode("ascii")
            )
        except InvalidSignature:
            return Verdict.invalid("bad signature")

        envelope = CryptoUtils.classify_payload(payload_bytes, self.symmetric_key)
        if isinstance(envelope, EncryptedPayload):
            try:
                plaintext = CryptoUtils.decrypt(self.symmetric_key, envelope)
            except InvalidTag:
                return Verdict.invalid("decryption failed", signature_ok=True)
        else:
            plaintext = envelope.data

        try:
            payload = LicensePayload.model_validate_json(plaintext)
        except PydanticValidationError:
            return Verdict.invalid("malformed payload", signature_ok=True)

        revoked = bool(self.revocation_oracle.exists(payload.uuid))
        expired = payload.is_expired(now)
        hardware_ok = hardware_matches(payload.hw_fingerprint, hw_fingerprint)
        flags = {
            "signature_ok": True,
            "revoked": revoked,
            "expired": expired,
            "hardware_ok": hardware_ok,
        }

        if expired:
            return Verdict.invalid("expired", payload, **flags)
        if not hardware_ok:
            return Verdict.invalid("hardware mismatch", payload, **flags)
        if revoked:
            return Verdict.invalid("revoked", payload, **flags)
        return Verdict(valid=True, payload=payload, **flags)


def verify(
    token: str,
    hw_fingerprint: str | None,
    public_key: EllipticCurvePublicKey,
    symmetric_key: bytes | None,
    revocation_oracle: IRevocationOracle,
) -> Verdict:
    """Verify a token in one call."""
    return LicenseValidator(public_key, revocation_oracle, symmetric_key).verify(
        token, hw_fingerprint
    )
