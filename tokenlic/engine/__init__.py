"""
License token engine: key material, issuance and verification.
"""

from tokenlic.engine.keygen import KeyGenerator, KeyPair
from tokenlic.engine.license_generator import LicenseGenerator, issue
from tokenlic.engine.license_validator import (
    LicenseValidator,
    hardware_fingerprint,
    verify,
)

__all__ = [
    "KeyGenerator",
    "KeyPair",
    "LicenseGenerator",
    "LicenseValidator",
    "hardware_fingerprint",
    "issue",
    "verify",
]
