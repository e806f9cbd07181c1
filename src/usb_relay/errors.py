"""Exception hierarchy shared by the transport, controller and daemon."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay board errors."""


class DeviceNotFoundError(RelayError):
    """No board with the expected vendor/product id could be opened."""


class TransportError(RelayError):
    """A bulk transfer errored or timed out at the USB layer."""


class TransportFailureError(RelayError):
    """An apply was aborted; the device session has been dropped.

    Attributes:
        index: Position of the failed frame within the 27-frame program.
    """

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class InvalidRelayError(RelayError, ValueError):
    """A relay number outside 1..8 was supplied."""


class WatchSourceError(RelayError):
    """The filesystem event source failed."""
