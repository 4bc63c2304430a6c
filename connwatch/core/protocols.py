"""Protocols for the notifier boundary and observer capability."""
from typing import Protocol

from connwatch.core.status import Status


class NetworkCallback(Protocol):
    """Handlers a notifier invokes on its own thread."""

    def on_available(self) -> None:
        """A network became available."""
        ...

    def on_losing(self, ttl_ms: int) -> None:
        """The network is about to be lost within roughly ttl_ms."""
        ...

    def on_lost(self) -> None:
        """The network was lost."""
        ...

    def on_unavailable(self) -> None:
        """No network is available."""
        ...

    def on_error(self, error: BaseException) -> None:
        """The subsystem failed and will deliver no further events."""
        ...


class NetworkNotifier(Protocol):
    """Push-style source of network change events."""

    def register_callback(self, callback: NetworkCallback) -> None:
        """Start delivering events to callback. Raises RegistrationError on refusal."""
        ...

    def unregister_callback(self, callback: NetworkCallback) -> None:
        """Stop delivering events to callback."""
        ...


class StatusSource(Protocol):
    """Iterable, closeable sequence of Status values."""

    def open(self) -> "StatusSource": ...

    def __iter__(self): ...

    def __next__(self) -> Status: ...

    def close(self) -> None: ...


class ConnectivityObserver(Protocol):
    """Capability to observe connectivity as a stream of Status values."""

    def observe(self) -> StatusSource:
        """Return a new, not yet attached status stream."""
        ...
