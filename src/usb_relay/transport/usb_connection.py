"""USB bulk transport to the CH341-based relay board.

Uses ``pyusb`` on top of libusb. The board presents a single interface
(0); commands go out on bulk endpoint 0x02 and nothing is ever read back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import usb.core
import usb.util

from ..errors import DeviceNotFoundError, TransportError

logger = logging.getLogger(__name__)

VENDOR_ID = 0x1A86
PRODUCT_ID = 0x5512
INTERFACE = 0
EP_OUT = 0x02
WRITE_TIMEOUT_MS = 100


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""
    bus: int | None = None
    address: int | None = None


@dataclass
class DeviceSession:
    """An opened, claimed device. Owned by exactly one controller."""

    device: Any
    info: DeviceInfo = field(default_factory=DeviceInfo)
    kernel_driver_detached: bool = False


class Transport(Protocol):
    def open(self) -> DeviceSession: ...

    def bulk_write(self, session: DeviceSession, data: bytes, timeout_ms: int) -> int: ...

    def close(self, session: DeviceSession) -> None: ...


def _get_string(dev, index: int) -> str:
    if not index:
        return ""
    try:
        return usb.util.get_string(dev, index) or ""
    except (usb.core.USBError, ValueError) as e:
        logger.debug("Cannot read string descriptor %d: %s", index, e)
        return ""


class USBTransport:
    """Opens the relay board by vendor/product id and writes bulk frames.

    Usage::

        transport = USBTransport()
        session = transport.open()
        transport.bulk_write(session, frame, timeout_ms=100)
        transport.close(session)
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        endpoint: int = EP_OUT,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._endpoint = endpoint

    def open(self) -> DeviceSession:
        """Find, detach and claim the relay board.

        Returns:
            A DeviceSession holding the claimed device.

        Raises:
            DeviceNotFoundError: If no matching device is present or it
                cannot be claimed.
        """
        try:
            dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        except usb.core.NoBackendError as e:
            raise DeviceNotFoundError(f"No libusb backend available: {e}") from e

        if dev is None:
            raise DeviceNotFoundError(
                f"Relay board {self._vendor_id:#06x}:{self._product_id:#06x} not found"
            )

        detached = False
        try:
            if dev.is_kernel_driver_active(INTERFACE):
                logger.debug("Kernel driver active on interface %d", INTERFACE)
                dev.detach_kernel_driver(INTERFACE)
                detached = True
                logger.debug("Kernel driver detached")
        except (NotImplementedError, usb.core.USBError) as e:
            # Not supported on every platform; claiming may still succeed.
            logger.warning("Kernel driver detach failed: %s", e)

        try:
            usb.util.claim_interface(dev, INTERFACE)
        except usb.core.USBError as e:
            if detached:
                try:
                    dev.attach_kernel_driver(INTERFACE)
                except (NotImplementedError, usb.core.USBError) as attach_error:
                    logger.warning("Kernel driver re-attach failed: %s", attach_error)
            usb.util.dispose_resources(dev)
            raise DeviceNotFoundError(
                f"Cannot claim interface {INTERFACE} of relay board: {e}"
            ) from e

        info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=_get_string(dev, getattr(dev, "iManufacturer", 0)),
            product=_get_string(dev, getattr(dev, "iProduct", 0)),
            bus=getattr(dev, "bus", None),
            address=getattr(dev, "address", None),
        )
        logger.info(
            "Connected to relay board %s %s (bus %s address %s)",
            info.manufacturer,
            info.product,
            info.bus,
            info.address,
        )
        return DeviceSession(device=dev, info=info, kernel_driver_detached=detached)

    def bulk_write(self, session: DeviceSession, data: bytes, timeout_ms: int = WRITE_TIMEOUT_MS) -> int:
        """Write one frame to the bulk OUT endpoint.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If the transfer errors or times out.
        """
        try:
            return session.device.write(self._endpoint, data, timeout=timeout_ms)
        except usb.core.USBTimeoutError as e:
            raise TransportError(f"Bulk write timed out after {timeout_ms} ms") from e
        except usb.core.USBError as e:
            raise TransportError(f"Bulk write failed: {e}") from e

    def close(self, session: DeviceSession) -> None:
        """Release the interface and free the device handle."""
        dev = session.device
        try:
            usb.util.release_interface(dev, INTERFACE)
            if session.kernel_driver_detached:
                dev.attach_kernel_driver(INTERFACE)
        except (NotImplementedError, usb.core.USBError) as e:
            logger.warning("Error closing device: %s", e)
        finally:
            try:
                usb.util.dispose_resources(dev)
            except usb.core.USBError as e:
                logger.warning("Error freeing device resources: %s", e)
            logger.info("Disconnected")
