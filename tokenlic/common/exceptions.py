"""
Custom exceptions for the license token engine.
"""

from __future__ import annotations


class LicenseError(Exception):
    """Base class for all license engine errors."""


class ValidationError(LicenseError):
    """Exception for bad caller input."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class KeyMaterialError(LicenseError):
    """Base class for corrupt or unusable key material."""


class KeyFormatError(KeyMaterialError):
    """Key artifact has malformed armor or undecodable base64."""


class KeyAlgorithmMismatchError(KeyMaterialError):
    """Decoded key is not of the expected type or curve."""


class IssuanceError(LicenseError):
    """A cryptographic operation failed while issuing a token."""


class RevocationStoreError(LicenseError):
    """The revocation set cannot be read and must not be trusted or rewritten."""
