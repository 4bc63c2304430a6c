"""Network notifier backends."""

from connwatch.core.config import Config
from connwatch.core.errors import ConfigError
from connwatch.notifiers.interface import InterfaceNotifier
from connwatch.notifiers.simulated import SimulatedNotifier

BACKENDS = ("interface", "simulated")


def create_notifier(config: Config, backend: str = None):
    """
    Build the notifier named by backend (or by config).

    Raises:
        ConfigError: If the backend name is unknown or its settings are invalid
    """
    name = (backend or config.get_backend()).lower()

    if name == "interface":
        return InterfaceNotifier(
            poll_interval=config.get_poll_interval(),
            ignored_keywords=config.get_ignored_interfaces(),
        )
    if name == "simulated":
        return SimulatedNotifier()

    raise ConfigError(f"Unknown notifier backend: {name!r} (expected one of {', '.join(BACKENDS)})")


__all__ = ["BACKENDS", "InterfaceNotifier", "SimulatedNotifier", "create_notifier"]
