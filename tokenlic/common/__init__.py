# Common utilities
from tokenlic.common.crypto import CryptoUtils as CryptoUtils
from tokenlic.common.crypto import initialize_backend as initialize_backend
from tokenlic.common.logging_utils import setup_logger as setup_logger

__all__ = ["CryptoUtils", "initialize_backend", "setup_logger"]
