"""Relay controller: owns the device session and applies relay masks."""

from __future__ import annotations

import logging

from .errors import TransportError, TransportFailureError
from .models.relay_state import format_mask, relays_from_mask
from .protocol.commands import build_program
from .protocol.framing import FRAME_SIZE, format_frame
from .transport.usb_connection import WRITE_TIMEOUT_MS, DeviceSession, Transport

logger = logging.getLogger(__name__)


class RelayController:
    """Applies relay masks to the board through a transport.

    Holds at most one device session. A failed apply drops the session,
    and the next ``ensure_connected``/``apply`` opens a fresh one. Not
    safe for concurrent use; callers must serialize ``apply``.

    Usage::

        with RelayController(USBTransport()) as controller:
            controller.apply(0b01010001)
    """

    def __init__(self, transport: Transport, write_timeout_ms: int = WRITE_TIMEOUT_MS) -> None:
        self._transport = transport
        self._write_timeout_ms = write_timeout_ms
        self._session: DeviceSession | None = None
        self._last_applied: int | None = None
        self._output_pending = True

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def last_applied(self) -> int | None:
        """Mask written by the most recent successful apply, if any."""
        return self._last_applied

    @property
    def output_pending(self) -> bool:
        """True until a mask has been applied on the current session."""
        return self._output_pending

    def ensure_connected(self) -> None:
        """Open a device session if none is live.

        Makes a single attempt; retrying is up to the caller.

        Raises:
            DeviceNotFoundError: If the board cannot be opened.
        """
        if self._session is not None:
            return
        self._session = self._transport.open()
        self._output_pending = True

    def apply(self, mask: int) -> None:
        """Program ``mask`` into the board.

        Sends the full 27-frame program. Any frame that errors or is
        written short aborts the apply and drops the session.

        Raises:
            DeviceNotFoundError: If no session was live and opening failed.
            TransportFailureError: If a frame could not be written.
        """
        mask &= 0xFF
        self.ensure_connected()
        session = self._session

        logger.debug("Applying relay mask %s", format_mask(mask))
        for index, frame in enumerate(build_program(mask)):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Frame %d:\n%s", index, format_frame(frame))
            try:
                written = self._transport.bulk_write(session, frame, self._write_timeout_ms)
            except TransportError as e:
                self._drop_session()
                raise TransportFailureError(f"Frame {index} failed: {e}", index) from e
            if written != FRAME_SIZE:
                self._drop_session()
                raise TransportFailureError(
                    f"Frame {index} short write: {written} of {FRAME_SIZE} bytes", index
                )

        self._last_applied = mask
        self._output_pending = False
        logger.info(
            "Applied relay mask %s (relays on: %s)",
            format_mask(mask),
            relays_from_mask(mask) or "none",
        )

    def close(self) -> None:
        """Close the device session, if any."""
        if self._session is not None:
            self._drop_session()

    def _drop_session(self) -> None:
        session, self._session = self._session, None
        self._output_pending = True
        if session is None:
            return
        try:
            self._transport.close(session)
        except Exception as e:
            logger.warning("Error closing device session: %s", e)

    def __enter__(self) -> RelayController:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
