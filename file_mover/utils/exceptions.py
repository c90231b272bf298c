"""
Custom Exceptions
=================

Defines custom exception classes for the File Mover.
All exceptions include error codes for programmatic handling.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for programmatic error handling."""

    # General errors (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    FILE_NOT_FOUND = 1002
    PERMISSION_DENIED = 1003
    INVALID_STATE = 1004

    # Move errors (1100-1199)
    MOVE_FAILED = 1100
    RETRIES_EXHAUSTED = 1101
    TARGET_EXISTS = 1102
    FILE_LOCKED = 1103

    # Scan errors (1200-1299)
    SCAN_FAILED = 1200


class FileMoverError(Exception):
    """Base exception for all File Mover errors.

    Attributes:
        message: Human-readable error message.
        error_code: Programmatic error code.
        details: Additional error context.
        cause: Original exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Programmatic error code.
            details: Additional context as key-value pairs.
            cause: Original exception if wrapping another error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return a formatted error string."""
        result = f"[{self.error_code.name}] {self.message}"
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return result

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(FileMoverError):
    """Raised when there's a configuration problem.

    Examples:
        - Watch directory does not exist
        - Filename pattern is not a valid regular expression
        - Invalid retry or dispatch settings
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            **kwargs
        )


class InvalidStateError(FileMoverError):
    """Raised when a lifecycle method is called at the wrong time.

    Examples:
        - Starting a monitor that has no watch path
        - Reconfiguring a monitor while it is running
        - Attaching a second consumer to a monitor
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.INVALID_STATE, **kwargs)


class LockDetectedError(FileMoverError):
    """Raised when a file is held open for writing by another process.

    Transient: the move worker retries on this error and never
    reports it as a failure by itself.
    """

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        super().__init__(
            message,
            error_code=ErrorCode.FILE_LOCKED,
            details=details,
            **kwargs
        )


class MoveError(FileMoverError):
    """Raised when a file cannot be moved to the target directory.

    Examples:
        - Retry budget exhausted while the file stayed locked
        - Target already exists and the conflict strategy is skip
        - Source vanished or permission denied
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        target_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.MOVE_FAILED,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = file_path
        if target_path:
            details["target_path"] = target_path
        super().__init__(
            message,
            error_code=error_code,
            details=details,
            **kwargs
        )


class ScanError(FileMoverError):
    """Raised when the initial scan of the watch directory fails."""

    def __init__(self, message: str, directory: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if directory:
            details["directory"] = directory
        super().__init__(
            message,
            error_code=ErrorCode.SCAN_FAILED,
            details=details,
            **kwargs
        )
