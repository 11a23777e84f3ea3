"""
Data persistence for revocations and issued-license records.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from tokenlic.common.exceptions import RevocationStoreError
from tokenlic.common.models import IssuedLicense, RevocationRecord, utcnow

if TYPE_CHECKING:
    from tokenlic.common.models import LicensePayload

logger = logging.getLogger(__name__)

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(file_path: Path) -> threading.Lock:
    """One lock per data file, shared by every store instance in the process."""
    key = file_path.resolve()
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


class DataPersistence:
    """Handles loading and saving JSON documents."""

    @staticmethod
    def load_json(file_path: Path) -> dict[str, Any]:
        """Load a JSON object from file; missing or corrupt files read as empty."""
        try:
            with file_path.open() as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt data file %s", file_path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object data file %s", file_path)
            return {}
        return data

    @staticmethod
    def load_revoked_licenses(file_path: Path) -> dict[str, int]:
        """Load the revocation set. Only a missing file reads as empty.

        Raises:
            RevocationStoreError: the file is corrupt or not a JSON object
        """
        try:
            with file_path.open() as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            msg = f"Revocation file {file_path} is corrupt: {err}"
            raise RevocationStoreError(msg) from err
        if not isinstance(data, dict):
            msg = f"Revocation file {file_path} is not a JSON object"
            raise RevocationStoreError(msg)
        return data

    @staticmethod
    def save_json(file_path: Path, data: dict[str, Any]) -> None:
        """Save a JSON object via a unique temp file renamed into place."""
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}."
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class FileRevocationStore:
    """Revocation set stored as ``{uuid: revoked_at_epoch}``.

    Records are only ever added; an existing record is never rewritten.
    A damaged file raises RevocationStoreError rather than reading as empty.
    """

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self._lock = _lock_for(file_path)

    def exists(self, uuid: str) -> bool:
        return uuid in DataPersistence.load_revoked_licenses(self.file_path)

    def revoke(self, uuid: str) -> bool:
        """Record a revocation. Returns False if the uuid was already revoked."""
        with self._lock:
            revoked = DataPersistence.load_revoked_licenses(self.file_path)
            if uuid in revoked:
                return False
            revoked[uuid] = int(utcnow().timestamp())
            DataPersistence.save_json(self.file_path, revoked)
        logger.info("License %s revoked", uuid)
        return True

    def get(self, uuid: str) -> RevocationRecord | None:
        revoked_at = DataPersistence.load_revoked_licenses(self.file_path).get(uuid)
        if revoked_at is None:
            return None
        return RevocationRecord(
            uuid=uuid,
            revoked_at=datetime.fromtimestamp(revoked_at, tz=timezone.utc),
        )

    def list_records(self) -> list[RevocationRecord]:
        return [
            RevocationRecord(
                uuid=uuid, revoked_at=datetime.fromtimestamp(ts, tz=timezone.utc)
            )
            for uuid, ts in DataPersistence.load_revoked_licenses(self.file_path).items()
        ]


class FileLicenseStore:
    """Issued-license records stored as ``{uuid: IssuedLicense}``."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self._lock = _lock_for(file_path)

    def save(self, payload: LicensePayload, token: str) -> IssuedLicense:
        """Upsert the record for ``payload.uuid``."""
        record = IssuedLicense.from_payload(payload, token)
        with self._lock:
            data = DataPersistence.load_json(self.file_path)
            data[record.uuid] = record.model_dump(mode="json")
            DataPersistence.save_json(self.file_path, data)
        return record

    def get(self, uuid: str) -> IssuedLicense | None:
        raw = DataPersistence.load_json(self.file_path).get(uuid)
        return self._parse(uuid, raw) if raw is not None else None

    def list_all(self) -> list[IssuedLicense]:
        records = (
            self._parse(uuid, raw)
            for uuid, raw in DataPersistence.load_json(self.file_path).items()
        )
        return [r for r in records if r is not None]

    @staticmethod
    def _parse(uuid: str, raw: Any) -> IssuedLicense | None:
        try:
            return IssuedLicense.model_validate(raw)
        except PydanticValidationError:
            logger.warning("Skipping unreadable license record %s", uuid)
            return None
