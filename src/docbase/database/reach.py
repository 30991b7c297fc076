"""
Reach - minimum visibility an operation must achieve before it completes.

Levels are ordered: LOCAL < SERVER < GLOBAL. An adapter that cannot offer
the requested level raises CapabilityError; it never downgrades.
"""

from enum import IntEnum


class Reach(IntEnum):
    """Ordered consistency/visibility levels."""

    LOCAL = 1   # Visible through this process (e.g. a local cache)
    SERVER = 2  # Acknowledged by the backend server
    GLOBAL = 3  # Visible to every reader of the global master

    @classmethod
    def parse(cls, value: "str | Reach") -> "Reach":
        """Accept a Reach or its case-insensitive name."""
        if isinstance(value, Reach):
            return value
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown reach: {value!r}") from None
