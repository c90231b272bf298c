"""
Test doubles shared across the test suite.
"""

import threading
from collections import Counter
from typing import Callable, List

from file_mover.actions.file_operations import FileOperations
from file_mover.events import ProcessingStatus, StatusEvent
from file_mover.utils.exceptions import LockDetectedError


class StatusRecorder:
    """Thread-safe status callback that remembers every event."""

    def __init__(self):
        self.events: List[StatusEvent] = []
        self._cond = threading.Condition()

    def __call__(self, event: StatusEvent) -> None:
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def wait_for(self, predicate: Callable[[List[StatusEvent]], bool], timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: predicate(self.events), timeout)

    def statuses(self, file_name: str) -> List[ProcessingStatus]:
        with self._cond:
            return [e.status for e in self.events if e.file_name == file_name]

    def of_status(self, status: ProcessingStatus) -> List[StatusEvent]:
        with self._cond:
            return [e for e in self.events if e.status is status]

    def wait_terminal(self, file_name: str, timeout: float = 5.0) -> bool:
        return self.wait_for(
            lambda events: any(
                e.file_name == file_name and e.status.is_terminal for e in events
            ),
            timeout,
        )


class FlakyLockOps(FileOperations):
    """Reports a file as locked for the first N probes, then moves it for real."""

    def __init__(self, locked_attempts: int):
        self.locked_attempts = locked_attempts
        self.probes: Counter = Counter()

    def probe_lock(self, path) -> None:
        self.probes[str(path)] += 1
        if self.probes[str(path)] <= self.locked_attempts:
            raise LockDetectedError("File is in use by another process", file_path=str(path))


class GateOps(FileOperations):
    """Blocks the first probe until released, so tests can catch the worker mid-job."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def probe_lock(self, path) -> None:
        if not self.entered.is_set():
            self.entered.set()
            self.release.wait(10.0)


