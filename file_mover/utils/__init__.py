"""Utilities module for File Mover."""

from .logging_config import setup_logging, get_logger, LoggingConfig
from .exceptions import (
    ErrorCode,
    FileMoverError,
    ConfigurationError,
    InvalidStateError,
    LockDetectedError,
    MoveError,
    ScanError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "ErrorCode",
    "FileMoverError",
    "ConfigurationError",
    "InvalidStateError",
    "LockDetectedError",
    "MoveError",
    "ScanError",
]
