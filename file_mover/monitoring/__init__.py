"""Monitoring module for filesystem events."""

from .validator import FileValidator
from .dispatcher import EventDispatcher, DispatchStats
from .watcher import ChangeMonitor, ChangeEventHandler

__all__ = [
    "FileValidator",
    "EventDispatcher",
    "DispatchStats",
    "ChangeMonitor",
    "ChangeEventHandler",
]
