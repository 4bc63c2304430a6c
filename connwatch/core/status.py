"""Connectivity status vocabulary."""

from enum import Enum


class Status(Enum):
    """Classification of current network reachability."""

    AVAILABLE = "available"
    LOSING = "losing"
    LOST = "lost"
    UNAVAILABLE = "unavailable"

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        """Get the status name as shown to users."""
        return self.value.capitalize()

    @property
    def is_connected(self) -> bool:
        """True while a network is still usable (including one being lost)."""
        return self in (Status.AVAILABLE, Status.LOSING)

    @classmethod
    def default(cls) -> "Status":
        """Status to assume before any notification arrives."""
        return cls.UNAVAILABLE

    @classmethod
    def parse(cls, text: str) -> "Status":
        """
        Parse a status from its name or display name (case-insensitive).

        Raises:
            ValueError: If text does not name a status
        """
        key = text.strip().lower()
        for status in cls:
            if key in (status.value, status.name.lower()):
                return status
        raise ValueError(f"Unknown status: {text!r}")
