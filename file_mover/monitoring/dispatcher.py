"""
Event Dispatcher
================

Hands change events from the watchdog observer thread to the consumer
on a fixed pool of dispatch threads.

The pending buffer is bounded. When it is full the overflow policy
decides what happens: block the observer for at most ``block_timeout``
seconds, drop the oldest buffered event, or drop the new one.
With a single dispatch thread events reach the consumer in arrival
order; with more threads there is no ordering guarantee.
"""

import threading
from dataclasses import dataclass
from queue import Queue, Empty, Full
from typing import Callable, Generic, List, Optional, TypeVar

from file_mover.config.settings import OverflowPolicy
from file_mover.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class DispatchStats:
    """Counters for the dispatcher."""

    submitted: int = 0
    dispatched: int = 0
    dropped: int = 0
    handler_errors: int = 0


class EventDispatcher(Generic[T]):
    """Bounded, fixed-size pool delivering items to one handler."""

    POLL_INTERVAL = 0.2

    def __init__(
        self,
        handler: Callable[[T], None],
        workers: int = 1,
        max_pending: int = 1000,
        overflow_policy: OverflowPolicy = OverflowPolicy.BLOCK,
        block_timeout: float = 5.0,
        name: str = "EventDispatcher",
    ):
        """Initialize the dispatcher.

        Args:
            handler: Called once per submitted item on a dispatch thread.
            workers: Number of dispatch threads.
            max_pending: Maximum buffered items.
            overflow_policy: Behaviour when the buffer is full.
            block_timeout: Longest wait for space under BLOCK.
            name: Thread name prefix.
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")

        self.handler = handler
        self.workers = workers
        self.overflow_policy = overflow_policy
        self.block_timeout = block_timeout
        self.name = name

        self._queue: "Queue[T]" = Queue(maxsize=max_pending)
        self._threads: List[threading.Thread] = []
        self._running = False
        self._state_lock = threading.Lock()
        # Serializes drop-oldest eviction with the put that follows it
        self._overflow_lock = threading.Lock()

        self.stats = DispatchStats()
        self._stats_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the dispatch threads. No-op if already running."""
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._threads = [
                threading.Thread(
                    target=self._dispatch_loop,
                    daemon=True,
                    name=f"{self.name}-{i}",
                )
                for i in range(self.workers)
            ]
            for thread in self._threads:
                thread.start()
        logger.debug(f"{self.name} started with {self.workers} thread(s)")

    def stop(self, timeout: float = 5.0) -> int:
        """Stop the dispatch threads and discard undelivered items.

        Safe to call repeatedly.

        Returns:
            Number of items discarded.
        """
        with self._state_lock:
            if not self._running:
                return 0
            self._running = False
            threads, self._threads = self._threads, []

        for thread in threads:
            if thread is not threading.current_thread():
                thread.join(timeout=timeout)

        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
                discarded += 1
            except Empty:
                break

        if discarded:
            logger.warning(f"{self.name} stopped, {discarded} undelivered event(s) discarded")
        else:
            logger.debug(f"{self.name} stopped")
        return discarded

    def submit(self, item: T) -> bool:
        """Buffer an item for dispatch.

        Never blocks longer than ``block_timeout``.

        Returns:
            True if the item was buffered, False if it was dropped.
        """
        if not self._running:
            logger.debug(f"{self.name} not running, dropping event: {item}")
            self._count_drop()
            return False

        with self._stats_lock:
            self.stats.submitted += 1

        if self.overflow_policy is OverflowPolicy.BLOCK:
            try:
                self._queue.put(item, timeout=self.block_timeout)
                return True
            except Full:
                logger.warning(
                    f"{self.name} buffer full for {self.block_timeout}s, dropping event: {item}"
                )
                self._count_drop()
                return False

        if self.overflow_policy is OverflowPolicy.DROP_NEWEST:
            try:
                self._queue.put_nowait(item)
                return True
            except Full:
                logger.warning(f"{self.name} buffer full, dropping newest event: {item}")
                self._count_drop()
                return False

        with self._overflow_lock:
            while True:
                try:
                    self._queue.put_nowait(item)
                    return True
                except Full:
                    try:
                        evicted = self._queue.get_nowait()
                    except Empty:
                        continue
                    logger.warning(f"{self.name} buffer full, dropping oldest event: {evicted}")
                    self._count_drop()

    def _count_drop(self) -> None:
        with self._stats_lock:
            self.stats.dropped += 1

    def _dispatch_loop(self) -> None:
        while self._running:
            try:
                item = self._queue.get(timeout=self.POLL_INTERVAL)
            except Empty:
                continue

            try:
                self.handler(item)
                with self._stats_lock:
                    self.stats.dispatched += 1
            except Exception:
                with self._stats_lock:
                    self.stats.handler_errors += 1
                logger.exception(f"Error in {self.name} handler for {item}")
