"""connwatch - Observe network connectivity as a stream of status changes."""

__version__ = "0.1.0"
__author__ = "connwatch contributors"
__description__ = "Deduplicated, multi-subscriber connectivity status streams"

from connwatch.core.bridge import ConnectivityBridge
from connwatch.core.config import Config
from connwatch.core.status import Status

__all__ = ["Config", "ConnectivityBridge", "Status", "__version__"]
