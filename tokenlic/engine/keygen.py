"""
Key material manager for the P-521 signing key pair and the AES key.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tokenlic.common.config import Config
from tokenlic.common.crypto import CURVE
from tokenlic.common.exceptions import KeyAlgorithmMismatchError, KeyFormatError

logger = logging.getLogger(__name__)

PRIVATE_LABEL = "PRIVATE KEY"
PUBLIC_LABEL = "PUBLIC KEY"

_ARMOR_RE = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----"
    r"(?P<body>[^-]*)"
    r"-----END (?P=label)-----"
)


@dataclass(frozen=True)
class KeyPair:
    """Signing key pair. The private half never leaves the issuing side."""

    private_key: ec.EllipticCurvePrivateKey
    public_key: ec.EllipticCurvePublicKey


def _write_atomic(path: Path, data: bytes, mode: int) -> None:
    """Write to a temp file in the same directory and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _unarmor(text: str, expected_label: str) -> bytes:
    """Strip BEGIN/END armor and return the DER body."""
    match = _ARMOR_RE.search(text)
    if match is None:
        msg = "Key file has no BEGIN/END armor"
        raise KeyFormatError(msg)
    label = match.group("label")
    if label != expected_label:
        msg = f"Expected {expected_label}, found {label}"
        raise KeyAlgorithmMismatchError(msg)
    body = "".join(match.group("body").split())
    if not body:
        msg = f"Empty {label} body"
        raise KeyFormatError(msg)
    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as err:
        msg = f"Undecodable base64 in {label}: {err}"
        raise KeyFormatError(msg) from err


def _check_curve(key: ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey) -> None:
    if not isinstance(key.curve, CURVE):
        msg = f"Expected curve {CURVE.name}, found {key.curve.name}"
        raise KeyAlgorithmMismatchError(msg)


class KeyGenerator:
    """Generates, stores and loads the engine's key material."""

    def __init__(self, config: Config | None = None, keys_dir: Path | None = None):
        self.config = config or Config()
        self.keys_dir = keys_dir or self.config.KEYS_DIR

    @property
    def private_key_path(self) -> Path:
        return self.keys_dir / self.config.PRIVATE_KEY_PATH.name

    @property
    def public_key_path(self) -> Path:
        return self.keys_dir / self.config.PUBLIC_KEY_PATH.name

    @property
    def symmetric_key_path(self) -> Path:
        return self.keys_dir / self.config.SYMMETRIC_KEY_PATH.name

    # Generation

    @staticmethod
    def generate_key_pair() -> KeyPair:
        """Generate a fresh P-521 key pair from the OS random source."""
        private_key = ec.generate_private_key(CURVE())
        return KeyPair(private_key=private_key, public_key=private_key.public_key())

    @staticmethod
    def generate_symmetric_key() -> bytes:
        """Generate a 256-bit AES key."""
        return AESGCM.generate_key(bit_length=256)

    # Serialization

    @staticmethod
    def save_private(key: ec.EllipticCurvePrivateKey, path: Path) -> None:
        """Save a private key as PKCS#8 PEM."""
        pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        _write_atomic(Path(path), pem, 0o600)

    @staticmethod
    def save_public(key: ec.EllipticCurvePublicKey, path: Path) -> None:
        """Save a public key as SubjectPublicKeyInfo PEM."""
        pem = key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        _write_atomic(Path(path), pem, 0o644)

    @staticmethod
    def save_symmetric(key: bytes, path: Path) -> None:
        """Save the AES key as raw bytes, no armor."""
        _write_atomic(Path(path), key, 0o600)

    @staticmethod
    def load_private(path: Path) -> ec.EllipticCurvePrivateKey:
        """Load a PKCS#8 PEM private key on P-521.

        Raises:
            KeyFormatError: malformed armor or base64
            KeyAlgorithmMismatchError: not a P-521 EC private key
        """
        der = _unarmor(Path(path).read_text(encoding="ascii", errors="replace"), PRIVATE_LABEL)
        try:
            key = serialization.load_der_private_key(der, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            msg = f"Not a usable private key: {err}"
            raise KeyAlgorithmMismatchError(msg) from err
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            msg = f"Expected an EC private key, found {type(key).__name__}"
            raise KeyAlgorithmMismatchError(msg)
        _check_curve(key)
        return key

    @staticmethod
    def load_public(path: Path) -> ec.EllipticCurvePublicKey:
        """Load a SubjectPublicKeyInfo PEM public key on P-521.

        Raises:
            KeyFormatError: malformed armor or base64
            KeyAlgorithmMismatchError: not a P-521 EC public key
        """
        der = _unarmor(Path(path).read_text(encoding="ascii", errors="replace"), PUBLIC_LABEL)
        try:
            key = serialization.load_der_public_key(der)
        except (ValueError, UnsupportedAlgorithm) as err:
            msg = f"Not a usable public key: {err}"
            raise KeyAlgorithmMismatchError(msg) from err
        if not isinstance(key, ec.EllipticCurvePublicKey):
            msg = f"Expected an EC public key, found {type(key).__name__}"
            raise KeyAlgorithmMismatchError(msg)
        _check_curve(key)
        return key

    def load_symmetric(self, path: Path) -> bytes:
        """Load the raw AES key; it must be exactly 256 bits."""
        key = Path(path).read_bytes()
        if len(key) != self.config.SYMMETRIC_KEY_SIZE:
            msg = (
                f"Symmetric key must be {self.config.SYMMETRIC_KEY_SIZE} bytes, "
                f"found {len(key)}"
            )
            raise KeyAlgorithmMismatchError(msg)
        return key

    @staticmethod
    def delete(path: Path) -> None:
        """Remove a key file; absent files are not an error."""
        Path(path).unlink(missing_ok=True)

    # Configured key directory

    def generate_keys(self) -> KeyPair:
        """Generate and save a new signing key pair."""
        logger.info("Generating P-521 signing keys...")
        pair = self.generate_key_pair()
        self.save_private(pair.private_key, self.private_key_path)
        self.save_public(pair.public_key, self.public_key_path)
        logger.info("Keys generated and saved:")
        logger.info("  Private: %s", self.private_key_path)
        logger.info("  Public: %s", self.public_key_path)
        logger.info("Keep the private key secure!")
        return pair

    def delete_keys(self) -> None:
        self.delete(self.private_key_path)
        self.delete(self.public_key_path)
        logger.info("Signing keys deleted from %s", self.keys_dir)

    def generate_symmetric(self) -> bytes:
        """Generate and save a new AES key."""
        key = self.generate_symmetric_key()
        self.save_symmetric(key, self.symmetric_key_path)
        logger.info("Symmetric key saved: %s", self.symmetric_key_path)
        return key

    def delete_symmetric(self) -> None:
        self.delete(self.symmetric_key_path)
        logger.info("Symmetric key deleted from %s", self.keys_dir)

    def private_exists(self) -> bool:
        return self.private_key_path.exists()

    def public_exists(self) -> bool:
        return self.public_key_path.exists()

    def symmetric_exists(self) -> bool:
        return self.symmetric_key_path.exists()

    def read_private(self) -> str | None:
        """Armored private key text, or None if absent."""
        try:
            return self.private_key_path.read_text()
        except FileNotFoundError:
            return None

    def read_public(self) -> str | None:
        """Armored public key text, or None if absent."""
        try:
            return self.public_key_path.read_text()
        except FileNotFoundError:
            return None

    def read_symmetric_b64(self) -> str | None:
        """Standard base64 of the AES key, or None if absent."""
        try:
            return base64.b64encode(self.symmetric_key_path.read_bytes()).decode("ascii")
        except FileNotFoundError:
            return None
