"""Exception types shared by the radio and APRS-IS transports."""

from __future__ import annotations


class TransportError(RuntimeError):
    """Raised when reading from or writing to a link fails."""
