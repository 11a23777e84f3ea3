# TPHL License Tokens

from tokenlic.common.crypto import initialize_backend
from tokenlic.common.exceptions import (
    IssuanceError,
    KeyAlgorithmMismatchError,
    KeyFormatError,
    LicenseError,
    ValidationError,
)
from tokenlic.common.models import LicensePayload, Verdict
from tokenlic.engine import (
    KeyGenerator,
    KeyPair,
    LicenseGenerator,
    LicenseValidator,
    hardware_fingerprint,
    issue,
    verify,
)
from tokenlic.engine.services import LicenseService

__all__ = [
    "IssuanceError",
    "KeyAlgorithmMismatchError",
    "KeyFormatError",
    "KeyGenerator",
    "KeyPair",
    "LicenseError",
    "LicenseGenerator",
    "LicensePayload",
    "LicenseService",
    "LicenseValidator",
    "ValidationError",
    "Verdict",
    "hardware_fingerprint",
    "initialize_backend",
    "issue",
    "verify",
]
