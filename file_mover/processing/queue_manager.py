"""
Move Queue Manager
==================

FIFO of pending move jobs and the single worker thread that drains it.

The worker sleeps on the queue's wake signal, drains every queued job
when woken, and moves each file with a bounded lock-aware retry.
Retries sleep on the worker thread itself, so one file that stays
locked holds up the jobs behind it for up to max_retries * retry_delay.
"""

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Optional

from file_mover.actions.file_operations import FileOperations, is_lock_error
from file_mover.config.settings import ConflictStrategy
from file_mover.events import ProcessingStatus, StatusEvent
from file_mover.utils.exceptions import ErrorCode, MoveError
from file_mover.utils.logging_config import get_logger, set_correlation_id

logger = get_logger(__name__)

StatusCallback = Callable[[StatusEvent], None]


@dataclass
class MoveJob:
    """One file waiting to be moved.

    Attributes:
        source_path: Current location of the file.
        target_path: Destination, target directory plus filename.
        file_name: Name of the file.
        job_id: Short identifier used as log correlation ID.
        created_at: When the job was queued.
    """

    source_path: str
    target_path: str
    file_name: str
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: datetime = field(default_factory=datetime.now)


class MoveQueue:
    """Thread-safe FIFO of move jobs with a wake signal.

    A single wake covers any number of jobs queued before the worker
    gets to run; the worker drains everything it finds.
    """

    def __init__(self):
        self._jobs: Deque[MoveJob] = deque()
        self._lock = threading.Lock()
        self._wake = threading.Event()

    def put(self, job: MoveJob) -> None:
        with self._lock:
            self._jobs.append(job)
        self._wake.set()

    def get_nowait(self) -> Optional[MoveJob]:
        """Pop the oldest job, or None when the queue is empty."""
        with self._lock:
            if self._jobs:
                return self._jobs.popleft()
            return None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until woken, then reset the signal.

        Returns:
            True if the signal was set, False on timeout.
        """
        woken = self._wake.wait(timeout)
        self._wake.clear()
        return woken

    def wake(self) -> None:
        self._wake.set()

    def clear(self) -> int:
        """Drop all queued jobs.

        Returns:
            Number of jobs dropped.
        """
        with self._lock:
            dropped = len(self._jobs)
            self._jobs.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class MoveWorker:
    """Single background thread that moves queued files.

    Shutdown is best effort: a job already being moved finishes, including
    its retries, but jobs still queued are dropped unless a drain is asked for.
    """

    def __init__(
        self,
        queue: MoveQueue,
        emit: StatusCallback,
        file_ops: Optional[FileOperations] = None,
        max_retries: int = 10,
        retry_delay: float = 0.1,
        conflict_strategy: ConflictStrategy = ConflictStrategy.RENAME,
    ):
        """Initialize the worker.

        Args:
            queue: Queue to drain.
            emit: Receives every status event.
            file_ops: Lock probing and move implementation.
            max_retries: Lock-detection attempts per job.
            retry_delay: Seconds between attempts.
            conflict_strategy: Behaviour when the target already exists.
        """
        self.queue = queue
        self.emit = emit
        self.file_ops = file_ops or FileOperations()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.conflict_strategy = conflict_strategy

        self._thread: Optional[threading.Thread] = None
        self._stopping = False
        self._drain = False
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread. No-op if already started."""
        with self._state_lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._run, daemon=True, name="MoveWorker"
            )
            self._thread.start()
        logger.debug("Move worker started")

    def stop(self, drain: bool = False, timeout: Optional[float] = 5.0) -> int:
        """Ask the worker to exit and wait for it.

        Safe to call repeatedly and from any thread.

        Args:
            drain: Process every queued job before exiting.
            timeout: Longest wait for the thread; None waits forever.

        Returns:
            Number of queued jobs abandoned.
        """
        with self._state_lock:
            if self._stopping:
                return 0
            self._drain = drain
            self._stopping = True
            thread = self._thread

        self.queue.wake()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Move worker still busy after {timeout}s, not waiting further")

        abandoned = 0 if drain and thread is not None else self.queue.clear()
        if abandoned:
            logger.warning(f"Shutdown abandoned {abandoned} queued job(s)")
        logger.debug("Move worker stopped")
        return abandoned

    def _run(self) -> None:
        """Main loop: sleep until woken, drain, repeat."""
        while True:
            self.queue.wait()
            if self._stopping and not self._drain:
                break
            self._drain_queue()
            if self._stopping:
                break

    def _drain_queue(self) -> None:
        while not (self._stopping and not self._drain):
            job = self.queue.get_nowait()
            if job is None:
                return
            self._process_job(job)

    def _status(
        self,
        job: MoveJob,
        status: ProcessingStatus,
        message: Optional[str] = None,
        error: Optional[BaseException] = None,
        attempt: Optional[int] = None,
    ) -> None:
        self.emit(StatusEvent(
            file_name=job.file_name,
            source_path=job.source_path,
            target_path=job.target_path,
            status=status,
            message=message,
            error=error,
            attempt=attempt,
        ))

    def _process_job(self, job: MoveJob) -> None:
        """Move one file and report the outcome. Never raises."""
        set_correlation_id(job.job_id)
        try:
            self._status(job, ProcessingStatus.MOVING)
            if self.move_with_retry(job):
                self._status(job, ProcessingStatus.MOVED)
            else:
                message = f"Could not move file, retries exhausted after {self.max_retries} attempts"
                self._status(
                    job,
                    ProcessingStatus.FAILED,
                    message=message,
                    error=MoveError(
                        message,
                        file_path=job.source_path,
                        target_path=job.target_path,
                        error_code=ErrorCode.RETRIES_EXHAUSTED,
                    ),
                )
        except MoveError as e:
            self._status(job, ProcessingStatus.FAILED, message=e.message, error=e)
        except Exception as e:
            logger.debug(f"Move of {job.source_path} failed", exc_info=True)
            self._status(
                job,
                ProcessingStatus.FAILED,
                message=f"Error while moving file: {type(e).__name__}: {e}",
                error=e,
            )

    def _resolve_target(self, job: MoveJob) -> bool:
        """Apply the conflict strategy when the target is taken.

        Returns:
            Whether the move should overwrite the target.

        Raises:
            MoveError: If the strategy is SKIP.
        """
        if not self.file_ops.target_exists(job.target_path):
            return False

        self._status(job, ProcessingStatus.BUSY, message="Target file already exists")

        if self.conflict_strategy is ConflictStrategy.OVERWRITE:
            logger.info(f"Overwriting: {job.target_path}")
            return True
        if self.conflict_strategy is ConflictStrategy.RENAME:
            job.target_path = str(self.file_ops.unique_path(job.target_path))
            logger.info(f"Target exists, renaming to: {job.target_path}")
            return False

        raise MoveError(
            "Target file already exists, skipping",
            file_path=job.source_path,
            target_path=job.target_path,
            error_code=ErrorCode.TARGET_EXISTS,
        )

    def move_with_retry(self, job: MoveJob) -> bool:
        """Move a file, retrying while another process holds it.

        Args:
            job: The job to move.

        Returns:
            True if moved, False if the file stayed locked for every attempt.

        Raises:
            MoveError: If the target conflict cannot be resolved.
            OSError: For errors other than the file being locked.
        """
        overwrite = self._resolve_target(job)
        attempt = 0

        while attempt < self.max_retries:
            try:
                self.file_ops.probe_lock(job.source_path)
                self.file_ops.move(job.source_path, job.target_path, overwrite=overwrite)
                return True
            except Exception as e:
                if not is_lock_error(e):
                    raise
                attempt += 1
                if attempt < self.max_retries:
                    delay_ms = int(self.retry_delay * 1000)
                    logger.warning(
                        f"File in use, retry {attempt + 1}/{self.max_retries} "
                        f"in {delay_ms}ms: {job.source_path}"
                    )
                    self._status(
                        job,
                        ProcessingStatus.RETRYING,
                        message=f"File is in use, retry {attempt + 1} of {self.max_retries} in {delay_ms}ms",
                        error=e,
                        attempt=attempt,
                    )
                    time.sleep(self.retry_delay)

        return False
