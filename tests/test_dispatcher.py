"""
Unit tests for the bounded event dispatcher.
"""

import threading
import time

import pytest

from file_mover.config.settings import OverflowPolicy
from file_mover.monitoring.dispatcher import EventDispatcher


class Collector:
    """Handler that records items and can be held on the first one."""

    def __init__(self, hold_first: bool = False):
        self.items = []
        self.entered = threading.Event()
        self.release = threading.Event()
        self.hold_first = hold_first
        self._cond = threading.Condition()

    def __call__(self, item):
        if self.hold_first and not self.entered.is_set():
            self.entered.set()
            self.release.wait(5.0)
        with self._cond:
            self.items.append(item)
            self._cond.notify_all()

    def wait_count(self, count, timeout=5.0):
        with self._cond:
            return self._cond.wait_for(lambda: len(self.items) >= count, timeout)


def held_dispatcher(policy, max_pending=2, block_timeout=0.05):
    """Dispatcher whose only thread is stuck on item 0 with an empty buffer."""
    collector = Collector(hold_first=True)
    dispatcher = EventDispatcher(
        collector,
        workers=1,
        max_pending=max_pending,
        overflow_policy=policy,
        block_timeout=block_timeout,
    )
    dispatcher.start()
    dispatcher.submit(0)
    assert collector.entered.wait(5.0)
    return dispatcher, collector


class TestEventDispatcher:
    """Tests for EventDispatcher."""

    def test_single_thread_preserves_order(self):
        collector = Collector()
        dispatcher = EventDispatcher(collector, workers=1)
        dispatcher.start()

        for i in range(100):
            assert dispatcher.submit(i)

        assert collector.wait_count(100)
        dispatcher.stop()
        assert collector.items == list(range(100))

    def test_multiple_threads_deliver_everything(self):
        collector = Collector()
        dispatcher = EventDispatcher(collector, workers=4)
        dispatcher.start()

        for i in range(50):
            dispatcher.submit(i)

        assert collector.wait_count(50)
        dispatcher.stop()
        assert sorted(collector.items) == list(range(50))

    def test_drop_newest(self):
        """Test a full buffer rejects new items."""
        dispatcher, collector = held_dispatcher(OverflowPolicy.DROP_NEWEST)

        assert dispatcher.submit(1)
        assert dispatcher.submit(2)
        assert dispatcher.submit(3) is False

        collector.release.set()
        assert collector.wait_count(3)
        dispatcher.stop()
        assert collector.items == [0, 1, 2]
        assert dispatcher.stats.dropped == 1

    def test_drop_oldest(self):
        """Test a full buffer evicts its oldest item."""
        dispatcher, collector = held_dispatcher(OverflowPolicy.DROP_OLDEST)

        assert dispatcher.submit(1)
        assert dispatcher.submit(2)
        assert dispatcher.submit(3)

        collector.release.set()
        assert collector.wait_count(3)
        dispatcher.stop()
        assert collector.items == [0, 2, 3]
        assert dispatcher.stats.dropped == 1

    def test_block_times_out(self):
        """Test BLOCK waits at most block_timeout, then drops."""
        dispatcher, collector = held_dispatcher(OverflowPolicy.BLOCK, block_timeout=0.05)
        dispatcher.submit(1)
        dispatcher.submit(2)

        started = time.monotonic()
        assert dispatcher.submit(3) is False
        assert time.monotonic() - started < 2.0

        collector.release.set()
        assert collector.wait_count(3)
        dispatcher.stop()
        assert collector.items == [0, 1, 2]

    def test_handler_errors_are_contained(self):
        seen = []

        def handler(item):
            if item == 1:
                raise RuntimeError("boom")
            seen.append(item)

        dispatcher = EventDispatcher(handler)
        dispatcher.start()
        for i in range(3):
            dispatcher.submit(i)

        deadline = time.monotonic() + 5.0
        while len(seen) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        dispatcher.stop()

        assert seen == [0, 2]
        assert dispatcher.stats.handler_errors == 1

    def test_submit_when_stopped(self):
        dispatcher = EventDispatcher(lambda item: None)

        assert dispatcher.submit("x") is False

    def test_stop_is_idempotent(self):
        dispatcher = EventDispatcher(lambda item: None)
        dispatcher.start()

        dispatcher.stop()
        assert dispatcher.stop() == 0
        assert not dispatcher.is_running

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            EventDispatcher(lambda item: None, workers=0)
        with pytest.raises(ValueError):
            EventDispatcher(lambda item: None, max_pending=0)
