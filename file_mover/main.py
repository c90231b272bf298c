"""
File Mover - Main Application
=============================

Main entry point: wires the change monitor into the move processor,
logs every status event and runs until interrupted.
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from file_mover import __version__
from file_mover.config import Config
from file_mover.events import ProcessingStatus, StatusEvent
from file_mover.monitoring import ChangeMonitor
from file_mover.processing import FileProcessor
from file_mover.processing.queue_manager import StatusCallback
from file_mover.utils.exceptions import ConfigurationError, FileMoverError
from file_mover.utils.logging_config import setup_logging, get_logger

logger = get_logger(__name__)

_STATUS_LEVELS = {
    ProcessingStatus.DETECTED: logging.INFO,
    ProcessingStatus.MOVING: logging.DEBUG,
    ProcessingStatus.MOVED: logging.INFO,
    ProcessingStatus.BUSY: logging.WARNING,
    ProcessingStatus.RETRYING: logging.WARNING,
    ProcessingStatus.FAILED: logging.ERROR,
}


def log_status(event: StatusEvent) -> None:
    """Write a status event to the application log."""
    if event.file_name is None:
        text = event.message or event.status.value
    elif event.status is ProcessingStatus.DETECTED:
        text = f"Detected new file: {event.file_name}"
    elif event.status is ProcessingStatus.MOVING:
        text = f"Moving file: {event.file_name}"
    elif event.status is ProcessingStatus.MOVED:
        text = f"Moved {event.file_name} -> {event.target_path}"
    elif event.status is ProcessingStatus.BUSY:
        text = f"Target exists for {event.file_name}: {event.target_path}"
    elif event.status is ProcessingStatus.RETRYING:
        text = f"Retrying {event.file_name}: {event.message}"
    else:
        text = f"Failed {event.file_name}: {event.message}"

    if event.status is ProcessingStatus.FAILED and event.error is not None:
        text += f" ({type(event.error).__name__}: {event.error})"

    extra = {"status": event.status.value}
    if event.source_path:
        extra["file_path"] = event.source_path
    if event.target_path:
        extra["target_path"] = event.target_path
    if event.attempt is not None:
        extra["attempt"] = event.attempt

    logger.log(_STATUS_LEVELS[event.status], text, extra=extra)


class FileMover:
    """Main orchestrator: one monitor feeding one processor."""

    def __init__(self, config: Config, on_status: Optional[StatusCallback] = None):
        """Initialize the File Mover.

        Args:
            config: Complete configuration.
            on_status: Extra subscriber for status events, called after logging.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self._subscriber = on_status

        self.monitor = ChangeMonitor.from_config(config.watch, config.dispatch)
        self.processor = FileProcessor.from_config(
            config.mover, monitor=self.monitor, on_status=self._on_status
        )
        self._stop_lock = threading.Lock()
        self._stopped = False

    def _on_status(self, event: StatusEvent) -> None:
        log_status(event)
        if self._subscriber is not None:
            self._subscriber(event)

    def start(self) -> None:
        """Start the processor (running the initial scan) and then the monitor.

        Raises:
            ConfigurationError: If the target directory does not exist.
            InvalidStateError: If no watch directory is configured.
        """
        target = self.processor.target_directory
        if not target.is_dir():
            raise ConfigurationError(
                f"Target directory does not exist: {target}",
                config_key="mover.target_directory",
            )

        self.processor.start()
        try:
            self.monitor.start()
        except Exception:
            self.processor.stop()
            raise

        logger.info(f"Watching {self.monitor.watch_path}, moving matches to {target}")

    def stop(self) -> None:
        """Stop the monitor, then the processor. Safe to call repeatedly."""
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self.monitor.stop()
        self.processor.stop()

    def __enter__(self) -> "FileMover":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.stop()
        return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-mover",
        description="Watch a directory and move matching files into a target directory"
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='YAML configuration file'
    )
    parser.add_argument(
        '--watch', '-w',
        type=Path,
        help='Directory to watch'
    )
    parser.add_argument(
        '--target', '-t',
        type=Path,
        help='Directory to move matching files into (created if missing)'
    )
    parser.add_argument(
        '--ext', '-e',
        action='append',
        dest='extensions',
        metavar='EXT',
        help='Allowed extension, e.g. .pdf (repeatable; default: all)'
    )
    parser.add_argument(
        '--pattern', '-p',
        help='Regular expression the filename without extension must match'
    )
    parser.add_argument(
        '--recursive', '-r',
        action='store_true',
        default=None,
        help='Also watch subdirectories'
    )
    parser.add_argument(
        '--scan-existing', '-s',
        action='store_true',
        default=None,
        help='Move matching files already in the watch directory at start'
    )
    parser.add_argument(
        '--drain',
        action='store_true',
        default=None,
        help='Finish queued moves before exiting'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load the config file and apply command-line overrides."""
    config = Config.load(args.config) if args.config else Config()

    if args.watch is not None:
        config.watch.directory = args.watch.expanduser()
    if args.target is not None:
        config.mover.target_directory = args.target.expanduser()
    if args.extensions:
        config.watch.extensions = list(args.extensions)
    if args.pattern is not None:
        config.watch.filename_pattern = args.pattern
    if args.recursive is not None:
        config.watch.recursive = args.recursive
    if args.scan_existing is not None:
        config.mover.scan_existing = args.scan_existing
    if args.drain is not None:
        config.mover.drain_on_shutdown = args.drain
    if args.log_level is not None:
        config.logging.level = args.log_level

    if config.watch.directory is None:
        raise ConfigurationError("No watch directory given (--watch or watch.directory)")
    if config.mover.target_directory is None:
        raise ConfigurationError("No target directory given (--target or mover.target_directory)")

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI support."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2

    setup_logging(config.logging)

    # Creating the target directory is the caller's job, not the core's
    config.mover.target_directory.mkdir(parents=True, exist_ok=True)

    try:
        mover = FileMover(config)
        mover.start()
    except FileMoverError as e:
        logger.error(f"Could not start: {e}")
        return 2

    stop_requested = threading.Event()

    def signal_handler(sig, frame):
        stop_requested.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Keep main thread alive
    try:
        while not stop_requested.wait(1.0):
            pass
    finally:
        mover.stop()

    stats = mover.processor.get_stats()
    logger.info(f"Stopped. Moved {stats.moved}, failed {stats.failed}, retried {stats.retried}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
