"""Actions module for file operations."""

from .file_operations import FileOperations, is_lock_error

__all__ = [
    "FileOperations",
    "is_lock_error",
]
