"""Common cryptographic utilities.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

CURVE = ec.SECP521R1
SIGNATURE_HASH = hashes.SHA512
NONCE_SIZE = 12
TAG_SIZE = 16

_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")
_backend_ready = False


def initialize_backend() -> None:
    """Check once per process that the crypto backend can do what tokens need.

    Safe to call any number of times. Raises RuntimeError if the backend
    lacks P-521 ECDSA with SHA-512 or AES-GCM.
    """
    global _backend_ready  # noqa: PLW0603
    if _backend_ready:
        return
    probe = b"tokenlic-backend-probe"
    try:
        key = ec.generate_private_key(CURVE())
        signature = key.sign(probe, ec.ECDSA(SIGNATURE_HASH()))
        key.public_key().verify(signature, probe, ec.ECDSA(SIGNATURE_HASH()))
        aead = AESGCM(AESGCM.generate_key(bit_length=256))
        nonce = os.urandom(NONCE_SIZE)
        aead.decrypt(nonce, aead.encrypt(nonce, probe, None), None)
    except UnsupportedAlgorithm as err:
        msg = f"Cryptography backend does not support required algorithms: {err}"
        raise RuntimeError(msg) from err
    _backend_ready = True
    logger.debug("Cryptography backend initialized")


@dataclass(frozen=True)
class EncryptedPayload:
    """Payload bytes split into AES-GCM nonce and ciphertext with tag."""

    nonce: bytes
    ciphertext: bytes


@dataclass(frozen=True)
class PlaintextPayload:
    """Payload bytes that are the serialized license directly."""

    data: bytes


PayloadEnvelope = Union[EncryptedPayload, PlaintextPayload]


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def b64url_encode(data: bytes) -> str:
        """Base64url-encode without padding."""
        return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")

    @staticmethod
    def b64url_decode(text: str) -> bytes:
        """Strictly decode unpadded base64url text.

        Raises ValueError on characters outside the url-safe alphabet,
        impossible lengths, or non-canonical trailing bits.
        """
        if not _B64URL_RE.match(text):
            msg = "Invalid base64url characters"
            raise ValueError(msg)
        try:
            data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
        except binascii.Error as err:
            msg = f"Invalid base64url data: {err}"
            raise ValueError(msg) from err
        if CryptoUtils.b64url_encode(data) != text:
            msg = "Non-canonical base64url encoding"
            raise ValueError(msg)
        return data

    @staticmethod
    def classify_payload(
        data: bytes, symmetric_key: bytes | None
    ) -> PayloadEnvelope:
        """Decide how decoded payload bytes are to be read."""
        if symmetric_key is not None and len(data) > NONCE_SIZE:
            return EncryptedPayload(nonce=data[:NONCE_SIZE], ciphertext=data[NONCE_SIZE:])
        return PlaintextPayload(data=data)

    @staticmethod
    def encrypt(symmetric_key: bytes, plaintext: bytes) -> bytes:
        """AES-GCM encrypt under a fresh random nonce; returns nonce || ciphertext."""
        nonce = os.urandom(NONCE_SIZE)
        return nonce + AESGCM(symmetric_key).encrypt(nonce, plaintext, None)

    @staticmethod
    def decrypt(symmetric_key: bytes, envelope: EncryptedPayload) -> bytes:
        """AES-GCM decrypt; raises cryptography's InvalidTag on tampering."""
        return AESGCM(symmetric_key).decrypt(envelope.nonce, envelope.ciphertext, None)

    @staticmethod
    def sign(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
        """ECDSA/SHA-512 signature, DER encoded."""
        return private_key.sign(data, ec.ECDSA(SIGNATURE_HASH()))

    @staticmethod
    def verify(
        public_key: ec.EllipticCurvePublicKey, signature: bytes, data: bytes
    ) -> None:
        """Raises cryptography's InvalidSignature on mismatch."""
        public_key.verify(signature, data, ec.ECDSA(SIGNATURE_HASH()))
