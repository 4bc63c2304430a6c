"""Exceptions raised by connwatch."""


class ConnectivityError(Exception):
    """Base class for all connwatch errors."""


class RegistrationError(ConnectivityError):
    """The network subsystem refused or failed to register a callback."""


class FatalNotifierError(ConnectivityError):
    """The network subsystem failed after registration; the session is over."""


class SubscriberDeliveryFailure(ConnectivityError):
    """A single subscriber could not accept a status value."""


class BridgeClosedError(ConnectivityError):
    """An attach was attempted on a bridge that has been torn down."""


class ConfigError(ConnectivityError):
    """Configuration value is invalid."""
