"""
Configuration settings for the license token engine.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


class Config:
    """Central configuration class for all engine settings."""

    def __init__(self) -> None:
        # Token settings
        self.DEFAULT_VERSION: str = "2.0"
        self.DEFAULT_VALIDITY_DAYS: int = 30
        self.SYMMETRIC_KEY_SIZE: int = 32  # 256-bit AES key

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.KEYS_DIR: Path = Path(
            os.getenv("TOKENLIC_KEYS_DIR", str(self.BASE_DIR / "keys"))
        )
        self.DATA_DIR: Path = Path(
            os.getenv("TOKENLIC_DATA_DIR", str(self.BASE_DIR / "data"))
        )
        self.PRIVATE_KEY_PATH: Path = self.KEYS_DIR / "private.pem"
        self.PUBLIC_KEY_PATH: Path = self.KEYS_DIR / "public.pem"
        self.SYMMETRIC_KEY_PATH: Path = self.KEYS_DIR / "aes.key"
        self.REVOKED_LICENSES_FILE_PATH: Path = self.DATA_DIR / "revoked_licenses.json"
        self.ISSUED_LICENSES_FILE_PATH: Path = self.DATA_DIR / "issued_licenses.json"

        # Logging
        level_name = os.getenv("TOKENLIC_LOG_LEVEL", "INFO").upper()
        self.LOG_LEVEL: int = getattr(logging, level_name, logging.INFO)
