"""
Subscriptions handed out by the connectivity bridge.

Two delivery channels are supported:
- StatusStream: pull-style, a bounded per-subscriber buffer consumed by
  iteration or get(). Overflow drops the oldest pending status.
- CallbackSubscription: push-style, a callable invoked on the notifier thread.

Lock ordering: the bridge lock is always taken before a subscription's own lock.
A subscription never calls into the bridge while holding its own lock.
"""

import threading
import time
import uuid
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Optional

from loguru import logger

from connwatch.core.errors import ConnectivityError, SubscriberDeliveryFailure
from connwatch.core.status import Status

if TYPE_CHECKING:
    from connwatch.core.bridge import ConnectivityBridge


class Subscription:
    """One consumer's attachment to a bridge session."""

    def __init__(self, bridge: "ConnectivityBridge"):
        self.id = uuid.uuid4().hex[:8]
        self._bridge = bridge

    @property
    def active(self) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        """Detach from the bridge. Alias of close()."""
        self.close()

    # Called by the bridge under its lock
    def _on_attached(self) -> bool:
        raise NotImplementedError

    def _deliver(self, status: Status) -> None:
        raise NotImplementedError

    def _terminate(self, error: Optional[ConnectivityError] = None) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} active={self.active}>"


class StatusStream(Subscription):
    """
    Blocking iterator of Status values.

    The stream is created unattached; the first call to open(), get(),
    next() or entering a ``with`` block attaches it to the bridge (which may
    raise RegistrationError). Iteration ends when the stream or the bridge is
    closed, or raises FatalNotifierError once pending values are drained.
    """

    def __init__(self, bridge: "ConnectivityBridge", buffer_size: int):
        super().__init__(bridge)
        self._buffer: Deque[Status] = deque()
        self._buffer_size = buffer_size
        self._cond = threading.Condition()
        self._attached = False
        self._closed = False
        self._error: Optional[ConnectivityError] = None
        self.dropped = 0

    @property
    def active(self) -> bool:
        with self._cond:
            return self._attached and not self._closed

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def pending(self) -> int:
        """Number of statuses buffered but not yet consumed."""
        with self._cond:
            return len(self._buffer)

    def open(self) -> "StatusStream":
        """
        Attach to the bridge if not already attached.

        Raises:
            RegistrationError: If the network subsystem refused registration
            BridgeClosedError: If the bridge has been closed
        """
        with self._cond:
            if self._attached or self._closed:
                return self
        try:
            self._bridge._attach(self)
        except ConnectivityError:
            with self._cond:
                self._closed = True
                self._cond.notify_all()
            raise
        return self

    def get(self, timeout: Optional[float] = None) -> Optional[Status]:
        """
        Wait for the next status.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The next Status, or None once the stream has ended

        Raises:
            TimeoutError: If no status arrived within timeout
            FatalNotifierError: If the session terminated with an error
        """
        self.open()
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._buffer:
                if self._closed:
                    if self._error is not None:
                        raise self._error
                    return None
                if deadline is None:
                    self._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError(f"No status within {timeout}s")
                    self._cond.wait(remaining)
            return self._buffer.popleft()

    def close(self) -> None:
        """Detach from the bridge and discard pending values. Idempotent."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._buffer.clear()
            attached = self._attached
            self._cond.notify_all()
        if attached:
            self._bridge._detach(self)

    def __enter__(self):
        return self.open()

    def __iter__(self):
        return self

    def __next__(self) -> Status:
        status = self.get()
        if status is None:
            raise StopIteration
        return status

    def _on_attached(self) -> bool:
        with self._cond:
            if self._closed:
                return False
            self._attached = True
            return True

    def _deliver(self, status: Status) -> None:
        with self._cond:
            if self._closed:
                raise SubscriberDeliveryFailure(f"Stream {self.id} is closed")
            if len(self._buffer) >= self._buffer_size:
                stale = self._buffer.popleft()
                self.dropped += 1
                logger.debug(f"[StatusStream] {self.id} full, dropped pending {stale}")
            self._buffer.append(status)
            self._cond.notify_all()

    def _terminate(self, error: Optional[ConnectivityError] = None) -> None:
        with self._cond:
            self._attached = False
            if not self._closed:
                self._closed = True
                self._error = error
            self._cond.notify_all()


class CallbackSubscription(Subscription):
    """
    Push-style subscription.

    on_status runs on the notifier thread while the bridge lock is held, so
    it should return quickly. If it raises, this subscription alone is
    detached and on_error receives a SubscriberDeliveryFailure.
    """

    def __init__(
        self,
        bridge: "ConnectivityBridge",
        on_status: Callable[[Status], None],
        on_error: Optional[Callable[[ConnectivityError], None]] = None,
    ):
        super().__init__(bridge)
        self._on_status = on_status
        self._on_error = on_error
        self._state_lock = threading.Lock()
        self._active = False
        self._cancelled = False

    @property
    def active(self) -> bool:
        with self._state_lock:
            return self._active

    def close(self) -> None:
        with self._state_lock:
            if self._cancelled:
                return
            self._cancelled = True
            attached = self._active
        if attached:
            self._bridge._detach(self)

    def _on_attached(self) -> bool:
        with self._state_lock:
            if self._cancelled:
                return False
            self._active = True
            return True

    def _deliver(self, status: Status) -> None:
        with self._state_lock:
            active = self._active
        if not active:
            raise SubscriberDeliveryFailure(f"Subscription {self.id} is not active")
        try:
            self._on_status(status)
        except Exception as e:
            raise SubscriberDeliveryFailure(f"Subscriber {self.id} callback failed: {e}") from e

    def _terminate(self, error: Optional[ConnectivityError] = None) -> None:
        with self._state_lock:
            self._active = False
        if error is None or self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            logger.error(f"[CallbackSubscription] {self.id} error handler failed: {e}")
