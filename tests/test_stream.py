"""Tests for status stream buffering and lifecycle."""

import threading
import time

import pytest

from connwatch.core.bridge import ConnectivityBridge
from connwatch.core.status import Status
from connwatch.notifiers.simulated import SimulatedNotifier


@pytest.fixture
def notifier():
    return SimulatedNotifier()


def test_overflow_drops_oldest(notifier):
    """Test a slow subscriber keeps only the most recent statuses."""
    bridge = ConnectivityBridge(notifier, buffer_size=2)
    stream = bridge.observe().open()

    notifier.replay([Status.AVAILABLE, Status.LOSING, Status.LOST, Status.AVAILABLE])

    assert stream.pending == 2
    assert stream.dropped == 2
    assert stream.get(timeout=0) == Status.LOST
    assert stream.get(timeout=0) == Status.AVAILABLE
    bridge.close()


def test_overflow_is_per_subscriber(notifier):
    """Test one full buffer does not affect another subscriber."""
    bridge = ConnectivityBridge(notifier, buffer_size=1)
    slow = bridge.observe().open()
    fast = bridge.observe().open()
    received = []

    notifier.available()
    received.append(fast.get(timeout=0))
    notifier.lost()
    received.append(fast.get(timeout=0))

    assert received == [Status.AVAILABLE, Status.LOST]
    assert slow.dropped == 1
    assert slow.get(timeout=0) == Status.LOST
    bridge.close()


def test_get_times_out(notifier):
    """Test get() raises TimeoutError when nothing arrives."""
    bridge = ConnectivityBridge(notifier)
    stream = bridge.observe()

    start = time.monotonic()
    with pytest.raises(TimeoutError):
        stream.get(timeout=0.05)

    assert time.monotonic() - start >= 0.04
    bridge.close()


def test_close_wakes_blocked_consumer(notifier):
    """Test closing a stream from another thread ends a blocking get()."""
    bridge = ConnectivityBridge(notifier)
    stream = bridge.observe().open()
    results = []

    consumer = threading.Thread(target=lambda: results.append(stream.get()))
    consumer.start()
    time.sleep(0.05)
    stream.close()
    consumer.join(timeout=2)

    assert not consumer.is_alive()
    assert results == [None]
    assert notifier.unregister_calls == 1


def test_close_discards_pending(notifier):
    """Test values buffered before close() are not delivered."""
    bridge = ConnectivityBridge(notifier)
    stream = bridge.observe().open()
    notifier.available()

    stream.close()

    assert stream.pending == 0
    assert list(stream) == []


def test_closed_before_attach_never_registers(notifier):
    """Test a stream closed before consumption never touches the notifier."""
    bridge = ConnectivityBridge(notifier)
    stream = bridge.observe()

    stream.close()

    assert list(stream) == []
    assert notifier.register_calls == 0


def test_break_inside_with_block_detaches(notifier):
    """Test leaving the with block early releases the registration."""
    bridge = ConnectivityBridge(notifier)
    timer = threading.Timer(0.05, notifier.available)
    timer.start()

    with bridge.observe() as stream:
        for status in stream:
            assert status == Status.AVAILABLE
            break

    timer.join()
    assert stream.closed is True
    assert bridge.is_registered is False
    assert notifier.unregister_calls == 1


def test_exception_inside_with_block_detaches(notifier):
    """Test an error in the consumer still releases the registration."""
    bridge = ConnectivityBridge(notifier)

    with pytest.raises(RuntimeError):
        with bridge.observe():
            raise RuntimeError("consumer crashed")

    assert bridge.is_registered is False


def test_repr_shows_id(notifier):
    bridge = ConnectivityBridge(notifier)
    stream = bridge.observe()

    assert stream.id in repr(stream)
    assert "active=False" in repr(stream)


def test_emission_while_closing_drops_only_that_stream(notifier):
    """Test a stream closed but not yet detached is dropped while others keep receiving."""
    bridge = ConnectivityBridge(notifier)
    closing = bridge.observe().open()
    other = bridge.observe().open()

    # close() has marked the stream but not yet reached the bridge
    with closing._cond:
        closing._closed = True

    notifier.available()
    notifier.lost()

    assert bridge.subscriber_count == 1
    assert bridge.is_registered is True
    assert other.get(timeout=0) == Status.AVAILABLE
    assert other.get(timeout=0) == Status.LOST
    assert closing.get(timeout=0) is None

    closing.close()
    assert notifier.unregister_calls == 0
    bridge.close()
