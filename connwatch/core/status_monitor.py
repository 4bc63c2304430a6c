"""Status Monitor - latest connectivity status for display collaborators."""

import threading
from typing import Callable, List, Optional

from loguru import logger

from connwatch.core.errors import ConnectivityError
from connwatch.core.protocols import ConnectivityObserver, StatusSource
from connwatch.core.status import Status


class ConnectivityStatusMonitor:
    """
    Holds the most recent Status from an observer.

    Starts at Status.default() and is updated from a background thread that
    consumes one stream. A registration or fatal error is kept in `error`
    rather than being folded into the status, so a display can tell
    "no network yet" apart from "cannot observe the network".
    """

    def __init__(self, observer: ConnectivityObserver, initial: Status = Status.default()):
        self._observer = observer
        self._lock = threading.Lock()
        self._status = initial
        self._error: Optional[ConnectivityError] = None
        self._listeners: List[Callable[[Status], None]] = []

        self._stream: Optional[StatusSource] = None
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()

    @property
    def status(self) -> Status:
        with self._lock:
            return self._status

    @property
    def error(self) -> Optional[ConnectivityError]:
        with self._lock:
            return self._error

    def add_listener(self, listener: Callable[[Status], None]):
        """Register a callback for status changes."""
        with self._lock:
            self._listeners.append(listener)

    def render(self) -> str:
        """Display text for the current state."""
        with self._lock:
            if self._error is not None:
                return f"Network Status error: {self._error}"
            return f"Network Status {self._status}"

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, timeout: Optional[float] = 5.0) -> bool:
        """
        Start consuming the observer on a daemon thread.

        A monitor runs once: after stop() or a terminal error, start() does
        not resubscribe and returns False.

        Args:
            timeout: Seconds to wait for the subscription to attach

        Returns:
            True if consuming, False if attaching failed (see `error`) or stopped
        """
        with self._lock:
            if self._thread is not None:
                return self._error is None and self._thread.is_alive()
            self._stream = self._observer.observe()
            self._thread = threading.Thread(target=self._consume_loop, daemon=True, name="ConnectivityStatusMonitor")
            self._thread.start()

        self._started.wait(timeout)
        with self._lock:
            return self._error is None

    def stop(self):
        """Detach the subscription and wait for the consumer thread."""
        with self._lock:
            stream = self._stream
            thread = self._thread
        if stream is None:
            return

        stream.close()
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        logger.info("[StatusMonitor] Stopped")

    def _consume_loop(self):
        stream = self._stream
        try:
            stream.open()
        except ConnectivityError as e:
            logger.error(f"[StatusMonitor] Cannot observe connectivity: {e}")
            self._set_error(e)
            return
        finally:
            self._started.set()

        logger.info("[StatusMonitor] Started")
        try:
            for status in stream:
                self._set_status(status)
        except ConnectivityError as e:
            logger.error(f"[StatusMonitor] Stream terminated: {e}")
            self._set_error(e)

    def _set_error(self, error: ConnectivityError):
        with self._lock:
            self._error = error

    def _set_status(self, status: Status):
        with self._lock:
            self._status = status
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(status)
            except Exception as e:
                logger.error(f"[StatusMonitor] Listener error: {e}")
