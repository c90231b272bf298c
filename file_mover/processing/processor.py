"""
File Processor
==============

Owns the move queue and its worker, accepts files to move, optionally
scans the watch directory at start, and reports every step through a
single status callback.

Per-file problems never raise to the caller: they arrive as FAILED
status events carrying a message and, when there is one, the cause.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

from file_mover.actions.file_operations import FileOperations
from file_mover.config.settings import MoverConfig
from file_mover.events import ChangeEvent, ProcessingStatus, StatusEvent
from file_mover.monitoring.validator import FileValidator
from file_mover.monitoring.watcher import ChangeMonitor
from file_mover.processing.queue_manager import MoveJob, MoveQueue, MoveWorker, StatusCallback
from file_mover.utils.exceptions import ConfigurationError, ScanError
from file_mover.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ProcessingStats:
    """Statistics for the move processor."""

    detected: int = 0
    moved: int = 0
    failed: int = 0
    retried: int = 0
    conflicts: int = 0
    pending: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "detected": self.detected,
            "moved": self.moved,
            "failed": self.failed,
            "retried": self.retried,
            "conflicts": self.conflicts,
            "pending": self.pending,
        }


class FileProcessor:
    """Moves files into a target directory on a single worker thread.

    When built with a ChangeMonitor the processor attaches itself as the
    monitor's only listener and enqueues the change types in
    ``config.trigger_on``.
    """

    def __init__(
        self,
        target_directory: Union[str, Path],
        config: Optional[MoverConfig] = None,
        monitor: Optional[ChangeMonitor] = None,
        on_status: Optional[StatusCallback] = None,
        file_ops: Optional[FileOperations] = None,
    ):
        """Initialize the processor.

        Args:
            target_directory: Where matched files go. Must already exist
                when files are moved; the processor never creates it.
            config: Retry, conflict and shutdown settings.
            monitor: Source of change events and of the watch path and
                validator used by the initial scan.
            on_status: Receives every status event.
            file_ops: Lock probing and move implementation.

        Raises:
            ConfigurationError: If the settings are invalid.
            InvalidStateError: If the monitor already has another listener.
        """
        self.config = config or MoverConfig()
        self.config.validate()
        if target_directory is None or str(target_directory) == "":
            raise ConfigurationError(
                "Target directory must not be empty", config_key="mover.target_directory"
            )

        self.target_directory = Path(target_directory).expanduser()
        self.monitor = monitor
        self.on_status = on_status
        self._triggers = frozenset(self.config.trigger_on)

        self.queue = MoveQueue()
        self.worker = MoveWorker(
            self.queue,
            emit=self._emit,
            file_ops=file_ops,
            max_retries=self.config.max_retries,
            retry_delay=self.config.retry_delay,
            conflict_strategy=self.config.conflict_strategy,
        )

        self.ready = threading.Event()
        self._started = False
        self._stopped = False
        self._state_lock = threading.Lock()

        self.stats = ProcessingStats()
        self._stats_lock = threading.Lock()

        if monitor is not None:
            monitor.attach(self.on_change)

    @classmethod
    def from_config(
        cls,
        config: MoverConfig,
        monitor: Optional[ChangeMonitor] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> "FileProcessor":
        if config.target_directory is None:
            raise ConfigurationError(
                "Target directory is not set", config_key="mover.target_directory"
            )
        return cls(config.target_directory, config=config, monitor=monitor, on_status=on_status)

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    def start(self) -> None:
        """Start the worker and run the initial scan if configured.

        ``ready`` is set once the scan has queued its files.
        """
        with self._state_lock:
            if self._started:
                return
            self._started = True

        self.worker.start()
        logger.info(f"File processor started, target directory: {self.target_directory}")

        if self.config.scan_existing:
            self.scan_existing()
        self.ready.set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self.ready.wait(timeout)

    def stop(self, drain: Optional[bool] = None) -> int:
        """Stop the worker. Safe to call repeatedly.

        Args:
            drain: Move queued files before exiting. Defaults to
                ``config.drain_on_shutdown``; otherwise queued files are
                dropped, not persisted.

        Returns:
            Number of queued jobs abandoned.
        """
        with self._state_lock:
            if self._stopped:
                return 0
            self._stopped = True

        if self.monitor is not None:
            self.monitor.detach()

        if drain is None:
            drain = self.config.drain_on_shutdown
        abandoned = self.worker.stop(drain=drain, timeout=self.config.shutdown_timeout)

        with self._stats_lock:
            self.stats.pending = max(0, self.stats.pending - abandoned)

        logger.info("File processor stopped")
        return abandoned

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "FileProcessor":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def on_change(self, event: ChangeEvent) -> None:
        """Listener for the change monitor."""
        if event.change_type in self._triggers:
            self.enqueue(event.path)
        else:
            logger.debug(f"Not moving on {event.change_type.value}: {event.path}")

    def enqueue(self, source_path: Union[str, Path]) -> None:
        """Queue a file for moving into the target directory.

        Never raises; problems are reported as FAILED status events.

        Args:
            source_path: File to move.
        """
        try:
            source = os.fspath(source_path)
            file_name = os.path.basename(source)
            if not file_name:
                raise ValueError(f"No filename in path {source!r}")
            target = str(self.target_directory / file_name)
        except Exception as e:
            self._emit(StatusEvent(
                file_name=None,
                source_path=str(source_path),
                target_path=None,
                status=ProcessingStatus.FAILED,
                message="Could not add file to queue",
                error=e,
            ))
            return

        if self._stopped:
            self._emit(StatusEvent(
                file_name=file_name,
                source_path=source,
                target_path=target,
                status=ProcessingStatus.FAILED,
                message="Processor is stopped",
            ))
            return

        self._emit(StatusEvent(
            file_name=file_name,
            source_path=source,
            target_path=target,
            status=ProcessingStatus.DETECTED,
        ))
        self.queue.put(MoveJob(source_path=source, target_path=target, file_name=file_name))

    @staticmethod
    def _raise_walk_error(error: OSError) -> None:
        raise error

    def _scan_candidates(self, directory: Path, recursive: bool) -> Iterator[Path]:
        if recursive:
            # os.walk skips unreadable directories unless onerror raises
            for root, _dirs, files in os.walk(directory, onerror=self._raise_walk_error):
                for name in sorted(files):
                    yield Path(root) / name
        else:
            for entry in sorted(directory.iterdir()):
                if entry.is_file():
                    yield entry

    def scan_existing(self) -> int:
        """Queue matching files already in the watch directory.

        Returns:
            Number of files queued.
        """
        self._emit_summary(ProcessingStatus.DETECTED, "Scanning existing files...")

        monitor = self.monitor
        directory = monitor.watch_path if monitor is not None else None
        if directory is None or not directory.is_dir():
            self._emit_summary(
                ProcessingStatus.FAILED,
                "Watch path is invalid or does not exist",
                ScanError("Watch path is invalid or does not exist",
                          directory=str(directory) if directory else None),
            )
            return 0

        validator: FileValidator = monitor.validator
        try:
            matches = [
                path for path in self._scan_candidates(directory, monitor.recursive)
                if validator.matches(path)
            ]
        except OSError as e:
            logger.error(f"Failed to scan {directory}: {e}")
            self._emit_summary(
                ProcessingStatus.FAILED,
                "Error while scanning existing files",
                ScanError(f"Failed to list {directory}", directory=str(directory), cause=e),
            )
            return 0

        self.enqueue_all(matches)

        self._emit_summary(
            ProcessingStatus.DETECTED, f"Found {len(matches)} matching existing file(s)"
        )
        logger.info(f"Initial scan queued {len(matches)} file(s) from {directory}")
        return len(matches)

    def enqueue_all(self, paths: Iterable[Union[str, Path]]) -> None:
        for path in paths:
            self.enqueue(path)

    def _emit_summary(
        self,
        status: ProcessingStatus,
        message: str,
        error: Optional[BaseException] = None,
    ) -> None:
        self._emit(StatusEvent(
            file_name=None,
            source_path=None,
            target_path=None,
            status=status,
            message=message,
            error=error,
        ))

    def _update_stats(self, event: StatusEvent) -> None:
        if event.file_name is None:
            return
        with self._stats_lock:
            if event.status is ProcessingStatus.DETECTED:
                self.stats.detected += 1
                self.stats.pending += 1
            elif event.status is ProcessingStatus.MOVING:
                self.stats.pending = max(0, self.stats.pending - 1)
            elif event.status is ProcessingStatus.RETRYING:
                self.stats.retried += 1
            elif event.status is ProcessingStatus.BUSY:
                self.stats.conflicts += 1
            elif event.status is ProcessingStatus.MOVED:
                self.stats.moved += 1
            elif event.status is ProcessingStatus.FAILED:
                self.stats.failed += 1

    def _emit(self, event: StatusEvent) -> None:
        self._update_stats(event)
        callback = self.on_status
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            logger.error(f"Error in status callback: {e}")

    def get_stats(self) -> ProcessingStats:
        """Get current processing statistics.

        Returns:
            Copy of current statistics.
        """
        with self._stats_lock:
            return ProcessingStats(**self.stats.to_dict())

    def get_queue_size(self) -> int:
        return len(self.queue)
