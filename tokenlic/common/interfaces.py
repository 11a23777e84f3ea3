"""
Interfaces and protocols for the engine's external collaborators.
"""

from __future__ import annotations

from typing import Protocol

from tokenlic.common.models import IssuedLicense, LicensePayload


class IRevocationOracle(Protocol):
    """Answers whether a license uuid has been revoked.

    Must return False for any unknown string, including ones never issued.
    """

    def exists(self, uuid: str) -> bool: ...


class ILicenseStore(Protocol):
    """Records issued-license metadata with upsert semantics keyed by uuid."""

    def save(self, payload: LicensePayload, token: str) -> IssuedLicense: ...

    def get(self, uuid: str) -> IssuedLicense | None: ...

    def list_all(self) -> list[IssuedLicense]: ...


class IRevocationStore(IRevocationOracle, Protocol):
    """Revocation oracle that also records new revocations."""

    def revoke(self, uuid: str) -> bool: ...
