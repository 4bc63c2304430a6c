"""In-process notifier driven by explicit calls, for tests and demos."""

import threading
from typing import Iterable, List, Optional, Union

from loguru import logger

from connwatch.core.errors import RegistrationError
from connwatch.core.protocols import NetworkCallback
from connwatch.core.status import Status


class SimulatedNotifier:
    """
    Notifier whose events are fired by calling available(), losing(), etc.

    Events are delivered synchronously on the calling thread to every
    registered callback. Registration and unregistration calls are counted.
    """

    def __init__(self, refuse_with: Optional[Exception] = None):
        """
        Args:
            refuse_with: If set, every registration attempt raises this
        """
        self._lock = threading.Lock()
        self._callbacks: List[NetworkCallback] = []
        self._refuse_with = refuse_with
        self.register_calls = 0
        self.unregister_calls = 0

    @property
    def active_registrations(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def refuse_registration(self, error: Optional[Exception] = None):
        """Make subsequent registrations fail."""
        with self._lock:
            self._refuse_with = error or RegistrationError("Permission denied: ACCESS_NETWORK_STATE")

    def allow_registration(self):
        with self._lock:
            self._refuse_with = None

    def register_callback(self, callback: NetworkCallback) -> None:
        with self._lock:
            self.register_calls += 1
            if self._refuse_with is not None:
                raise self._refuse_with
            if callback in self._callbacks:
                raise RegistrationError(f"{callback!r} is already registered")
            self._callbacks.append(callback)
        logger.debug(f"[SimulatedNotifier] Registered {callback!r}")

    def unregister_callback(self, callback: NetworkCallback) -> None:
        with self._lock:
            self.unregister_calls += 1
            if callback not in self._callbacks:
                raise ValueError(f"{callback!r} is not registered")
            self._callbacks.remove(callback)
        logger.debug(f"[SimulatedNotifier] Unregistered {callback!r}")

    def available(self):
        self._dispatch(lambda cb: cb.on_available())

    def losing(self, ttl_ms: int = 30000):
        self._dispatch(lambda cb: cb.on_losing(ttl_ms))

    def lost(self):
        self._dispatch(lambda cb: cb.on_lost())

    def unavailable(self):
        self._dispatch(lambda cb: cb.on_unavailable())

    def fail(self, error: BaseException):
        """Report a fatal subsystem failure to every registered callback."""
        self._dispatch(lambda cb: cb.on_error(error))

    def replay(self, events: Iterable[Union[Status, str]]):
        """Fire a sequence of events, given as Status values or their names."""
        fire = {
            Status.AVAILABLE: self.available,
            Status.LOSING: self.losing,
            Status.LOST: self.lost,
            Status.UNAVAILABLE: self.unavailable,
        }
        for event in events:
            status = event if isinstance(event, Status) else Status.parse(event)
            fire[status]()

    def _dispatch(self, fn):
        # Callbacks may re-enter register/unregister, so call them unlocked
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            fn(callback)
