"""
Filesystem Watcher
==================

Monitors a directory through watchdog and turns native notifications
into validated ChangeEvents for a single consumer.

Notifications are filtered on the observer thread and then handed to a
bounded EventDispatcher so a slow consumer never stalls the observer.
"""

import os
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

from file_mover.config.settings import DispatchConfig, WatchConfig
from file_mover.events import ChangeEvent, ChangeType
from file_mover.monitoring.dispatcher import EventDispatcher
from file_mover.monitoring.validator import FileValidator
from file_mover.utils.exceptions import ConfigurationError, InvalidStateError
from file_mover.utils.logging_config import get_logger

logger = get_logger(__name__)

ChangeListener = Callable[[ChangeEvent], None]


def _event_path(path: Union[str, bytes]) -> str:
    return os.fsdecode(path)


class ChangeEventHandler(FileSystemEventHandler):
    """Translates watchdog events into ChangeEvents.

    Directory events and files rejected by the validator are dropped
    here, on the observer thread, before anything is dispatched.
    """

    def __init__(self, validator: FileValidator, emit: Callable[[ChangeEvent], None]):
        """Initialize the event handler.

        Args:
            validator: Filter applied to every file event.
            emit: Called with each ChangeEvent that passes the filter.
        """
        super().__init__()
        self.validator = validator
        self.emit = emit

    def _handle(self, path: str, change_type: ChangeType, old_path: Optional[str] = None) -> None:
        if not self.validator.matches(path):
            logger.debug(f"Ignoring {change_type.value} event (filtered): {path}")
            return

        logger.debug(f"File {change_type.value} event: {path}")
        self.emit(ChangeEvent(path=path, change_type=change_type, old_path=old_path))

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(_event_path(event.src_path), ChangeType.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(_event_path(event.src_path), ChangeType.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(_event_path(event.src_path), ChangeType.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Renames are validated against the new name."""
        if event.is_directory:
            return
        self._handle(
            _event_path(event.dest_path),
            ChangeType.RENAMED,
            old_path=_event_path(event.src_path),
        )


class ChangeMonitor:
    """Watches one directory and reports validated changes to one listener.

    The watch path, recursion flag and validator settings are fixed while
    the monitor runs; stop it before reconfiguring. Exactly one listener
    can be attached at a time, normally a FileProcessor.
    """

    def __init__(
        self,
        validator: Optional[FileValidator] = None,
        recursive: bool = False,
        dispatch_config: Optional[DispatchConfig] = None,
    ):
        """Initialize the monitor.

        Args:
            validator: Filter for file events. Defaults to watching everything.
            recursive: Whether to watch subdirectories.
            dispatch_config: Bounds for the event dispatcher.
        """
        self.validator = validator or FileValidator()
        self.dispatch_config = dispatch_config or DispatchConfig()
        self._recursive = recursive
        self._watch_path: Optional[Path] = None
        self._listener: Optional[ChangeListener] = None
        self._observer: Optional[Observer] = None
        self._dispatcher: Optional[EventDispatcher[ChangeEvent]] = None
        self._running = False
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        watch_config: WatchConfig,
        dispatch_config: Optional[DispatchConfig] = None,
    ) -> "ChangeMonitor":
        """Build a monitor from configuration.

        Raises:
            ConfigurationError: If the directory or pattern is invalid.
        """
        validator = FileValidator(watch_config.extensions, watch_config.filename_pattern)
        monitor = cls(
            validator=validator,
            recursive=watch_config.recursive,
            dispatch_config=dispatch_config,
        )
        if watch_config.directory is not None:
            monitor.configure(watch_config.directory)
        return monitor

    @property
    def watch_path(self) -> Optional[Path]:
        return self._watch_path

    @property
    def recursive(self) -> bool:
        return self._recursive

    @recursive.setter
    def recursive(self, value: bool) -> None:
        with self._lock:
            self._ensure_stopped("change recursion")
            self._recursive = bool(value)

    @property
    def is_running(self) -> bool:
        return self._running

    def _ensure_stopped(self, action: str) -> None:
        if self._running:
            raise InvalidStateError(f"Cannot {action} while monitoring is active; stop first")

    def configure(self, path: Union[str, Path]) -> None:
        """Set the directory to watch.

        Raises:
            ConfigurationError: If the path is empty or not an existing directory.
            InvalidStateError: If the monitor is running.
        """
        if path is None or str(path) == "":
            raise ConfigurationError("Watch path must not be empty", config_key="watch.directory")

        directory = Path(path).expanduser()
        if not directory.is_dir():
            raise ConfigurationError(
                f"Watch directory does not exist: {directory}",
                config_key="watch.directory",
            )

        with self._lock:
            self._ensure_stopped("change the watch path")
            self._watch_path = directory
        logger.debug(f"Watch path set to {directory}")

    def attach(self, listener: ChangeListener) -> None:
        """Register the single consumer of change events.

        Raises:
            InvalidStateError: If a different listener is already attached.
        """
        with self._lock:
            if self._listener is not None and self._listener != listener:
                raise InvalidStateError("ChangeMonitor already has a listener attached")
            self._listener = listener

    def detach(self) -> None:
        with self._lock:
            self._listener = None

    def start(self) -> None:
        """Begin watching. No-op if already running.

        Raises:
            InvalidStateError: If no watch path has been configured.
        """
        with self._lock:
            if self._running:
                return
            if self._watch_path is None:
                raise InvalidStateError("Watch path is not set")

            dispatcher: EventDispatcher[ChangeEvent] = EventDispatcher(
                self._deliver,
                workers=self.dispatch_config.workers,
                max_pending=self.dispatch_config.max_pending,
                overflow_policy=self.dispatch_config.overflow_policy,
                block_timeout=self.dispatch_config.block_timeout,
                name="ChangeDispatch",
            )
            dispatcher.start()

            observer = Observer()
            handler = ChangeEventHandler(self.validator, dispatcher.submit)
            try:
                observer.schedule(handler, str(self._watch_path), recursive=self._recursive)
                observer.start()
            except Exception:
                dispatcher.stop()
                raise

            self.validator.freeze()
            self._dispatcher = dispatcher
            self._observer = observer
            self._running = True

        logger.info(
            f"Watching directory: {self._watch_path} "
            f"(recursive={self._recursive}, extensions="
            f"{', '.join(self.validator.allowed_extensions) or 'all'}, "
            f"pattern={self.validator.pattern})"
        )

    def stop(self) -> None:
        """Stop watching and release the observer. Safe to call repeatedly."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            observer, self._observer = self._observer, None
            dispatcher, self._dispatcher = self._dispatcher, None

        if observer is not None:
            observer.unschedule_all()
            observer.stop()
            observer.join(timeout=5.0)
        if dispatcher is not None:
            dispatcher.stop()
        self.validator.thaw()
        logger.info("File watcher stopped")

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "ChangeMonitor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def _deliver(self, event: ChangeEvent) -> None:
        listener = self._listener
        if listener is None:
            logger.debug(f"No listener attached, dropping {event.change_type.value}: {event.path}")
            return
        try:
            listener(event)
        except Exception:
            logger.exception(f"Change listener failed for {event.path}")
