"""Core functionality for connwatch."""

from connwatch.core.bridge import ConnectivityBridge
from connwatch.core.config import Config
from connwatch.core.errors import (
    BridgeClosedError,
    ConfigError,
    ConnectivityError,
    FatalNotifierError,
    RegistrationError,
    SubscriberDeliveryFailure,
)
from connwatch.core.status import Status
from connwatch.core.status_monitor import ConnectivityStatusMonitor
from connwatch.core.stream import CallbackSubscription, StatusStream

__all__ = [
    "BridgeClosedError",
    "CallbackSubscription",
    "Config",
    "ConfigError",
    "ConnectivityBridge",
    "ConnectivityError",
    "ConnectivityStatusMonitor",
    "FatalNotifierError",
    "RegistrationError",
    "Status",
    "StatusStream",
    "SubscriberDeliveryFailure",
]
