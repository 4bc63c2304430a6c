"""
Interface Notifier - network change events from local interface state.

Polls psutil interface stats on a daemon thread and reports transitions of
the host's usable uplinks through the NetworkCallback handlers. Every
callback invocation, including the initial state for a new registration,
happens on the poll thread so callbacks observe transitions in order.

Classification (loopback and tunnel adapters ignored):
- some interface up with a routable address: available
- interfaces up but none addressed: losing if previously available,
  otherwise unavailable
- nothing up: lost if previously connected, otherwise unavailable
"""

import socket
import threading
from typing import Iterable, List, Optional, Tuple

import psutil
from loguru import logger

from connwatch.core import constants
from connwatch.core.errors import RegistrationError
from connwatch.core.protocols import NetworkCallback
from connwatch.core.status import Status

LOOPBACK_PREFIXES = ("127.", "::1")
LINK_LOCAL_PREFIXES = ("169.254.", "fe80")


class InterfaceNotifier:
    """Polling notifier backed by psutil.net_if_stats()/net_if_addrs()."""

    def __init__(
        self,
        poll_interval: float = constants.DEFAULT_POLL_INTERVAL,
        ignored_keywords: Iterable[str] = constants.TUN_INTERFACE_KEYWORDS,
    ):
        """
        Args:
            poll_interval: Seconds between interface scans
            ignored_keywords: Interface name fragments to skip (case-insensitive)
        """
        self.poll_interval = poll_interval
        self._ignored = [k.lower() for k in ignored_keywords]

        self._lock = threading.Lock()
        self._callbacks: List[NetworkCallback] = []
        self._pending: List[NetworkCallback] = []  # awaiting their initial state
        self._state: Optional[Status] = None

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._wake = threading.Event()

    def register_callback(self, callback: NetworkCallback) -> None:
        """
        Register callback; the current state is delivered to it from the poll thread.

        Raises:
            RegistrationError: If interface state cannot be read
        """
        try:
            up, addressed = self._scan()
        except (psutil.Error, OSError) as e:
            raise RegistrationError(f"Cannot read network interfaces: {e}") from e

        with self._lock:
            if callback in self._callbacks:
                raise RegistrationError(f"{callback!r} is already registered")
            if self._state is None:
                self._state = self._classify(None, up, addressed)
            self._callbacks.append(callback)
            self._pending.append(callback)
            self._ensure_running()
            self._wake.set()
            state = self._state

        logger.info(f"[InterfaceNotifier] Registered callback (state={state}, up={up}, addressed={addressed})")

    def unregister_callback(self, callback: NetworkCallback) -> None:
        """
        Remove callback. Removing the last one stops the poll thread.

        Does not wait for the thread: it may be blocked inside a callback
        that needs a lock the caller holds. Once the stop event is set the
        thread fires nothing from a new scan and exits.
        """
        with self._lock:
            if callback not in self._callbacks:
                return
            self._callbacks.remove(callback)
            if callback in self._pending:
                self._pending.remove(callback)
            if self._callbacks:
                return
            self._stop_event.set()
            self._wake.set()
            self._thread = None
            self._state = None

        logger.info("[InterfaceNotifier] Stop requested")

    def snapshot(self) -> Status:
        """Classify current interface state without registering."""
        up, addressed = self._scan()
        return self._classify(None, up, addressed)

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def _ensure_running(self):
        """Start the poll thread if needed (must be called under lock)."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event = threading.Event()
        self._wake = threading.Event()
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._stop_event, self._wake),
            daemon=True,
            name="InterfaceNotifier",
        )
        self._thread.start()
        logger.debug(f"[InterfaceNotifier] Polling every {self.poll_interval}s")

    def _poll_loop(self, stop_event: threading.Event, wake: threading.Event):
        while True:
            with self._lock:
                if stop_event.is_set():
                    return
                pending, self._pending = self._pending, []
                state = self._state
            for callback in pending:
                self._fire(callback, state)

            if wake.wait(self.poll_interval):
                wake.clear()
                continue

            try:
                up, addressed = self._scan()
            except Exception as e:
                logger.error(f"[InterfaceNotifier] Interface scan failed: {e}")
                with self._lock:
                    callbacks = [] if stop_event.is_set() else list(self._callbacks)
                for callback in callbacks:
                    callback.on_error(e)
                return

            with self._lock:
                if stop_event.is_set():
                    return
                previous = self._state
                current = self._classify(previous, up, addressed)
                if current == previous:
                    continue
                self._state = current
                callbacks = list(self._callbacks)

            logger.info(f"[InterfaceNotifier] {previous} -> {current} (up={up}, addressed={addressed})")
            for callback in callbacks:
                self._fire(callback, current)

    def _fire(self, callback: NetworkCallback, status: Status):
        if status == Status.AVAILABLE:
            callback.on_available()
        elif status == Status.LOSING:
            callback.on_losing(int(self.poll_interval * 1000))
        elif status == Status.LOST:
            callback.on_lost()
        else:
            callback.on_unavailable()

    @staticmethod
    def _classify(previous: Optional[Status], up: List[str], addressed: List[str]) -> Status:
        connected = previous in (Status.AVAILABLE, Status.LOSING)
        if addressed:
            return Status.AVAILABLE
        if up:
            return Status.LOSING if connected else Status.UNAVAILABLE
        return Status.LOST if connected else Status.UNAVAILABLE

    def _scan(self) -> Tuple[List[str], List[str]]:
        """Return (interfaces up, interfaces up with a routable address)."""
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()

        up: List[str] = []
        addressed: List[str] = []
        for name, stat in sorted(stats.items()):
            if not stat.isup or self._is_ignored(name):
                continue
            ips = [a.address for a in addrs.get(name, []) if a.family in (socket.AF_INET, socket.AF_INET6)]
            if any(ip.startswith(LOOPBACK_PREFIXES) for ip in ips):
                continue
            up.append(name)
            if any(not ip.lower().startswith(LINK_LOCAL_PREFIXES) for ip in ips):
                addressed.append(name)
        return up, addressed

    def _is_ignored(self, name: str) -> bool:
        lowered = name.lower()
        if lowered == "lo" or lowered.startswith("loopback"):
            return True
        return any(keyword in lowered for keyword in self._ignored)
