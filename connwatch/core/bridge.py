"""
Connectivity Stream Bridge - callback notifier to multi-subscriber stream.

Adapts a push-style NetworkNotifier into deduplicated StatusStreams.

Session model:
- Lazy: the notifier registration is made when the first subscriber attaches
- Shared: later subscribers join the live session (no history replay)
- Refcounted: the registration is released synchronously when the last
  subscriber detaches; the next attach registers afresh
- Thread-safe: one RLock guards the registration, dedup state and subscriber
  set; notifier callbacks and fan-out run under it
"""

import threading
from typing import Callable, Dict, Optional

from loguru import logger

from connwatch.core import constants
from connwatch.core.errors import (
    BridgeClosedError,
    ConnectivityError,
    FatalNotifierError,
    RegistrationError,
    SubscriberDeliveryFailure,
)
from connwatch.core.protocols import NetworkNotifier
from connwatch.core.status import Status
from connwatch.core.stream import CallbackSubscription, StatusStream, Subscription


class _SessionCallback:
    """NetworkCallback bound to a single registration of a bridge."""

    def __init__(self, bridge: "ConnectivityBridge", session_id: int):
        self._bridge = bridge
        self.session_id = session_id

    def on_available(self) -> None:
        self._bridge._emit(self, Status.AVAILABLE)

    def on_losing(self, ttl_ms: int) -> None:
        # TTL hint is not part of Status
        logger.debug(f"[Bridge] Losing network (ttl {ttl_ms}ms, session {self.session_id})")
        self._bridge._emit(self, Status.LOSING)

    def on_lost(self) -> None:
        self._bridge._emit(self, Status.LOST)

    def on_unavailable(self) -> None:
        self._bridge._emit(self, Status.UNAVAILABLE)

    def on_error(self, error: BaseException) -> None:
        self._bridge._fail(self, error)

    def __repr__(self):
        return f"<_SessionCallback session={self.session_id}>"


class ConnectivityBridge:
    """
    Exposes network connectivity changes as Status streams.

    Thread-safe. Use as a context manager or call close() to tear down.
    """

    DEFAULT_BUFFER_SIZE = constants.DEFAULT_BUFFER_SIZE

    def __init__(self, notifier: NetworkNotifier, buffer_size: int = DEFAULT_BUFFER_SIZE):
        """
        Initialize the bridge. No registration is made until a subscriber attaches.

        Args:
            notifier: Source of network change callbacks
            buffer_size: Pending statuses kept per stream before the oldest is dropped
        """
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be at least 1, got {buffer_size}")

        self._notifier = notifier
        self._buffer_size = buffer_size
        self._lock = threading.RLock()

        # Session state
        self._callback: Optional[_SessionCallback] = None
        self._last_status = Status.default()
        self._subscribers: Dict[str, Subscription] = {}

        self._session_counter = 0
        self._registration_count = 0
        self._closed = False

    @property
    def is_registered(self) -> bool:
        with self._lock:
            return self._callback is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def last_status(self) -> Status:
        """Last status emitted on the live session (default when idle)."""
        with self._lock:
            return self._last_status

    @property
    def registration_count(self) -> int:
        """Total registrations made over the bridge's lifetime."""
        with self._lock:
            return self._registration_count

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def observe(self) -> StatusStream:
        """
        Create a status stream. Does not block and does not register.

        The stream attaches on first consumption; see StatusStream.
        """
        with self._lock:
            if self._closed:
                raise BridgeClosedError("Bridge is closed")
        return StatusStream(self, self._buffer_size)

    def subscribe(
        self,
        on_status: Callable[[Status], None],
        on_error: Optional[Callable[[ConnectivityError], None]] = None,
    ) -> CallbackSubscription:
        """
        Attach a callback subscriber immediately.

        Args:
            on_status: Called with each non-duplicate Status
            on_error: Called once if the subscription terminates with an error

        Returns:
            Subscription handle; cancel() it to detach

        Raises:
            RegistrationError: If the network subsystem refused registration
            BridgeClosedError: If the bridge has been closed
        """
        subscription = CallbackSubscription(self, on_status, on_error)
        self._attach(subscription)
        return subscription

    def close(self) -> None:
        """Tear down: end every subscription and release the registration."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
            self._release("bridge closed")
            for subscription in subscribers:
                subscription._terminate()
        logger.info(f"[Bridge] Closed ({len(subscribers)} subscribers ended)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _attach(self, subscription: Subscription) -> None:
        with self._lock:
            if self._closed:
                raise BridgeClosedError("Bridge is closed")
            if subscription.id in self._subscribers:
                return
            if not subscription._on_attached():
                # Cancelled before it could attach
                return

            self._subscribers[subscription.id] = subscription
            if self._callback is None:
                try:
                    self._register()
                except ConnectivityError:
                    self._subscribers.pop(subscription.id, None)
                    subscription._terminate()
                    raise
                if subscription.id not in self._subscribers:
                    # Terminated by the notifier during registration
                    return

            logger.debug(
                f"[Bridge] Subscriber {subscription.id} attached "
                f"(session {self._callback.session_id}, {len(self._subscribers)} active)"
            )

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if self._subscribers.pop(subscription.id, None) is None:
                return
            subscription._terminate()
            logger.debug(f"[Bridge] Subscriber {subscription.id} detached ({len(self._subscribers)} active)")
            if not self._subscribers:
                self._release("last subscriber detached")

    def _register(self) -> None:
        """Register a fresh session callback (must be called under lock)."""
        self._session_counter += 1
        callback = _SessionCallback(self, self._session_counter)
        self._last_status = Status.default()

        # Set before registering: notifiers may call back during registration
        self._callback = callback
        try:
            self._notifier.register_callback(callback)
        except RegistrationError as e:
            self._callback = None
            logger.error(f"[Bridge] Registration refused: {e}")
            raise
        except Exception as e:
            self._callback = None
            logger.error(f"[Bridge] Registration failed: {e}")
            raise RegistrationError(f"Failed to register network callback: {e}") from e

        self._registration_count += 1
        logger.info(f"[Bridge] Registered network callback (session {callback.session_id})")

    def _release(self, reason: str) -> None:
        """Release the registration if held (must be called under lock)."""
        callback, self._callback = self._callback, None
        self._last_status = Status.default()
        if callback is None:
            return

        try:
            self._notifier.unregister_callback(callback)
        except Exception as e:
            logger.error(f"[Bridge] Failed to unregister session {callback.session_id}: {e}")
        else:
            logger.info(f"[Bridge] Released network callback (session {callback.session_id}, {reason})")

    def _emit(self, callback: _SessionCallback, status: Status) -> None:
        with self._lock:
            if callback is not self._callback:
                logger.debug(f"[Bridge] Ignored {status} from stale session {callback.session_id}")
                return
            if status == self._last_status:
                logger.debug(f"[Bridge] Duplicate {status} suppressed")
                return

            previous = self._last_status
            self._last_status = status
            logger.info(f"[Bridge] Status: {previous} -> {status} ({len(self._subscribers)} subscribers)")

            for subscription in list(self._subscribers.values()):
                if subscription.id not in self._subscribers:
                    # Detached by an earlier subscriber's callback
                    continue
                try:
                    subscription._deliver(status)
                except SubscriberDeliveryFailure as e:
                    logger.warning(f"[Bridge] Detaching subscriber {subscription.id}: {e}")
                    self._subscribers.pop(subscription.id, None)
                    subscription._terminate(e)

            if not self._subscribers and self._callback is callback:
                self._release("no reachable subscribers")

    def _fail(self, callback: _SessionCallback, error: BaseException) -> None:
        with self._lock:
            if callback is not self._callback:
                return
            if isinstance(error, FatalNotifierError):
                fatal = error
            else:
                fatal = FatalNotifierError(f"Network notifier failed: {error}")
                fatal.__cause__ = error

            logger.error(f"[Bridge] Session {callback.session_id} terminated: {error}")
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
            self._release("fatal notifier error")
            for subscription in subscribers:
                subscription._terminate(fatal)
