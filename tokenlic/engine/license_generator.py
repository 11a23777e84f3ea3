"""
License token generator.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from cryptography.exceptions import UnsupportedAlgorithm
from pydantic import ValidationError as PydanticValidationError

from tokenlic.common.config import Config
from tokenlic.common.crypto import CryptoUtils
from tokenlic.common.exceptions import IssuanceError, ValidationError
from tokenlic.common.models import LicensePayload, utcnow

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey


class LicenseGenerator:
    """Builds, optionally encrypts, and signs license tokens."""

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)

    def build_payload(
        self,
        customer_id: str | None,
        validity_days: int,
        hw_fingerprint: str | None = None,
        metadata: dict[str, Any] | None = None,
        usage_limit: int | None = None,
        version: str | None = None,
    ) -> LicensePayload:
        """Create a fresh payload with a new uuid, valid from now."""
        if not customer_id:
            msg = "customer_id is required"
            raise ValidationError(msg)
        # bool is an int subclass but never a meaningful day count
        if isinstance(validity_days, bool) or not isinstance(validity_days, int):
            msg = f"validity_days must be an integer, got {validity_days!r}"
            raise ValidationError(msg)

        now = utcnow()
        try:
            expiry_date = now + timedelta(days=validity_days)
        except OverflowError as err:
            msg = f"validity_days out of range: {validity_days}"
            raise ValidationError(msg) from err
        try:
            return LicensePayload(
                version=version if version is not None else self.config.DEFAULT_VERSION,
                customer_id=customer_id,
                issue_date=now,
                expiry_date=expiry_date,
                uuid=str(uuid.uuid4()),
                hw_fingerprint=hw_fingerprint,
                metadata=metadata or {},
                usage_limit=usage_limit,
            )
        except PydanticValidationError as err:
            raise ValidationError(str(err)) from err

    def encode(
        self,
        payload: LicensePayload,
        private_key: EllipticCurvePrivateKey,
        symmetric_key: bytes | None = None,
    ) -> str:
        """Serialize, optionally encrypt, and sign a payload into a token."""
        try:
            payload_bytes = payload.model_dump_json().encode("utf-8")
            if symmetric_key is not None:
                payload_bytes = CryptoUtils.encrypt(symmetric_key, payload_bytes)
            payload_segment = CryptoUtils.b64url_encode(payload_bytes)
            signature = CryptoUtils.sign(private_key, payload_segment.encode("ascii"))
        except (ValueError, TypeError, AttributeError, UnsupportedAlgorithm) as err:
            msg = f"Failed to issue license {payload.uuid}: {err}"
            raise IssuanceError(msg) from err
        return f"{payload_segment}.{CryptoUtils.b64url_encode(signature)}"

    def issue(  # noqa: PLR0913
        self,
        customer_id: str | None,
        validity_days: int,
        hw_fingerprint: str | None = None,
        metadata: dict[str, Any] | None = None,
        usage_limit: int | None = None,
        version: str | None = None,
        *,
        private_key: EllipticCurvePrivateKey,
        symmetric_key: bytes | None = None,
    ) -> str:
        """Issue a signed license token.

        Each call encrypts under a new random 12-byte nonce. The nonce space
        is finite, so symmetric keys must be rotated periodically.

        Raises:
            ValidationError: missing customer id or non-integer validity
            IssuanceError: signing or encryption failed
        """
        payload = self.build_payload(
            customer_id, validity_days, hw_fingerprint, metadata, usage_limit, version
        )
        token = self.encode(payload, private_key, symmetric_key)
        self.logger.info(
            "Issued license %s for customer %s (expires %s, encrypted=%s)",
            payload.uuid,
            payload.customer_id,
            payload.expiry_date.isoformat(),
            symmetric_key is not None,
        )
        return token


def issue(  # noqa: PLR0913
    customer_id: str | None,
    validity_days: int,
    hw_fingerprint: str | None,
    metadata: dict[str, Any] | None,
    usage_limit: int | None,
    version: str | None,
    private_key: EllipticCurvePrivateKey,
    symmetric_key: bytes | None = None,
) -> str:
    """Issue a token in one call."""
    return LicenseGenerator().issue(
        customer_id,
        validity_days,
        hw_fingerprint,
        metadata,
        usage_limit,
        version,
        private_key=private_key,
        symmetric_key=symmetric_key,
    )
