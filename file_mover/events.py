"""
Event Types
===========

Typed events emitted by the change monitor and the move processor.

Both are immutable and transient: they are handed to a single consumer
and never stored by the core.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChangeType(Enum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class ChangeEvent:
    """A validated filesystem change.

    Attributes:
        path: Path of the file that changed (destination for renames).
        change_type: What happened to the file.
        old_path: Previous path, set only for RENAMED.
    """

    path: str
    change_type: ChangeType
    old_path: Optional[str] = None


class ProcessingStatus(Enum):
    """Status of a move job.

    DETECTED -> MOVING -> [BUSY] -> (RETRYING)* -> MOVED | FAILED
    """

    DETECTED = "detected"
    MOVING = "moving"
    MOVED = "moved"
    BUSY = "busy"  # target already exists
    RETRYING = "retrying"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.MOVED, ProcessingStatus.FAILED)


@dataclass(frozen=True)
class StatusEvent:
    """Progress report for one move job, or for the initial scan.

    Scan summaries carry no file name or paths, only a message.

    Attributes:
        file_name: Name of the file being moved.
        source_path: Where the file is.
        target_path: Where the file should end up.
        status: Current processing status.
        message: Human-readable description.
        error: Underlying exception, when there is one.
        attempt: Retry attempt number for RETRYING events.
    """

    file_name: Optional[str]
    source_path: Optional[str]
    target_path: Optional[str]
    status: ProcessingStatus
    message: Optional[str] = None
    error: Optional[BaseException] = None
    attempt: Optional[int] = None
