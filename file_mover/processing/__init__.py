"""Processing module: move queue, worker and processor."""

from .queue_manager import MoveJob, MoveQueue, MoveWorker
from .processor import FileProcessor, ProcessingStats

__all__ = [
    "MoveJob",
    "MoveQueue",
    "MoveWorker",
    "FileProcessor",
    "ProcessingStats",
]
