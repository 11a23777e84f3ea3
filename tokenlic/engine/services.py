"""Service facade wiring key material, token engine and stores together.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from tokenlic.common.config import Config
from tokenlic.common.crypto import initialize_backend
from tokenlic.common.exceptions import KeyMaterialError
from tokenlic.common.logging_utils import setup_logger
from tokenlic.common.models import Verdict
from tokenlic.engine.keygen import KeyGenerator
from tokenlic.engine.license_generator import LicenseGenerator
from tokenlic.engine.license_validator import LicenseValidator
from tokenlic.engine.persistence import FileLicenseStore, FileRevocationStore

if TYPE_CHECKING:
    from tokenlic.common.interfaces import ILicenseStore, IRevocationStore
    from tokenlic.common.models import IssuedLicense
    from tokenlic.engine.keygen import KeyPair


class LicenseService:
    """Issues, validates and revokes licenses against configured key files.

    Key files are read on every call so that a completed key rotation takes
    effect immediately and no call ever sees a half-written key.
    """

    def __init__(
        self,
        config: Config | None = None,
        keygen: KeyGenerator | None = None,
        license_store: ILicenseStore | None = None,
        revocation_store: IRevocationStore | None = None,
        log_level: int | None = None,
    ):
        initialize_backend()
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)
        setup_logger(
            self.logger, log_level if log_level is not None else self.config.LOG_LEVEL
        )
        self.keygen = keygen or KeyGenerator(self.config)
        self.license_store = license_store or FileLicenseStore(
            self.config.ISSUED_LICENSES_FILE_PATH
        )
        self.revocation_store = revocation_store or FileRevocationStore(
            self.config.REVOKED_LICENSES_FILE_PATH
        )
        self.generator = LicenseGenerator(self.config)

    def _symmetric_key(self, use_symmetric: bool) -> bytes | None:  # noqa: FBT001
        if use_symmetric and self.keygen.symmetric_exists():
            return self.keygen.load_symmetric(self.keygen.symmetric_key_path)
        return None

    def generate_license(  # noqa: PLR0913
        self,
        customer_id: str | None,
        days: int | None = None,
        hw_fingerprint: str | None = None,
        metadata: dict[str, Any] | None = None,
        usage_limit: int | None = None,
        version: str | None = None,
        *,
        use_symmetric: bool = False,
    ) -> str:
        """Issue a license and record it in the license store."""
        if days is None:
            days = self.config.DEFAULT_VALIDITY_DAYS
        payload = self.generator.build_payload(
            customer_id, days, hw_fingerprint, metadata, usage_limit, version
        )
        private_key = self.keygen.load_private(self.keygen.private_key_path)
        symmetric_key = self._symmetric_key(use_symmetric)
        token = self.generator.encode(payload, private_key, symmetric_key)
        self.license_store.save(payload, token)
        self.logger.info(
            "Issued license %s for customer %s", payload.uuid, payload.customer_id
        )
        return token

    def validate(
        self,
        token: str,
        hw_fingerprint: str | None = None,
        *,
        use_symmetric: bool = False,
    ) -> Verdict:
        """Validate a token; unavailable key material yields an invalid verdict."""
        try:
            public_key = self.keygen.load_public(self.keygen.public_key_path)
            symmetric_key = self._symmetric_key(use_symmetric)
        except (OSError, KeyMaterialError) as err:
            self.logger.error("Cannot load verification keys: %s", err)
            return Verdict.invalid("verification keys unavailable")
        validator = LicenseValidator(public_key, self.revocation_store, symmetric_key)
        return validator.verify(token, hw_fingerprint)

    def revoke(self, uuid: str) -> bool:
        """Revoke a license uuid. Returns False if it was already revoked."""
        return self.revocation_store.revoke(uuid)

    def list_all(self) -> list[IssuedLicense]:
        return self.license_store.list_all()

    def parse_metadata(self, text: str | None) -> dict[str, Any]:
        """Leniently parse metadata JSON text.

        Blank, malformed or non-object input yields an empty mapping.
        """
        if text is None or not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            self.logger.warning("Ignoring malformed metadata JSON")
            return {}
        if not isinstance(data, dict):
            self.logger.warning("Ignoring metadata that is not a JSON object")
            return {}
        return data

    # Key management

    def generate_key_pair(self) -> KeyPair:
        return self.keygen.generate_keys()

    def delete_key_pair(self) -> None:
        self.keygen.delete_keys()

    def generate_symmetric(self) -> bytes:
        return self.keygen.generate_symmetric()

    def delete_symmetric(self) -> None:
        self.keygen.delete_symmetric()

    def key_status(self) -> dict[str, Any]:
        """Presence and contents of the key files, for display."""
        return {
            "private_exists": self.keygen.private_exists(),
            "public_exists": self.keygen.public_exists(),
            "symmetric_exists": self.keygen.symmetric_exists(),
            "private_key": self.keygen.read_private(),
            "public_key": self.keygen.read_public(),
            "symmetric_key": self.keygen.read_symmetric_b64(),
        }
