"""Tests for the pyusb transport, with the USB stack mocked out."""

from unittest.mock import MagicMock, patch

import pytest
import usb.core

from usb_relay.errors import DeviceNotFoundError, TransportError
from usb_relay.protocol.framing import encode
from usb_relay.transport.usb_connection import (
    EP_OUT,
    PRODUCT_ID,
    VENDOR_ID,
    DeviceSession,
    USBTransport,
)


def _make_device(kernel_driver_active=False):
    dev = MagicMock()
    dev.is_kernel_driver_active.return_value = kernel_driver_active
    dev.iManufacturer = 0
    dev.iProduct = 0
    dev.bus = 1
    dev.address = 7
    return dev


def test_open_not_found():
    """A missing board raises DeviceNotFoundError."""
    with patch("usb.core.find", return_value=None) as find:
        with pytest.raises(DeviceNotFoundError):
            USBTransport().open()
    find.assert_called_once_with(idVendor=VENDOR_ID, idProduct=PRODUCT_ID)


def test_open_detaches_and_claims():
    """An active kernel driver is detached before claiming interface 0."""
    dev = _make_device(kernel_driver_active=True)
    with patch("usb.core.find", return_value=dev), patch(
        "usb.util.claim_interface"
    ) as claim:
        session = USBTransport().open()

    dev.detach_kernel_driver.assert_called_once_with(0)
    claim.assert_called_once_with(dev, 0)
    assert session.device is dev
    assert session.kernel_driver_detached is True
    assert session.info.address == 7


def test_open_claim_failure_is_not_found():
    """A claim failure frees the device and reports it as not found."""
    dev = _make_device()
    with patch("usb.core.find", return_value=dev), patch(
        "usb.util.claim_interface", side_effect=usb.core.USBError("busy")
    ), patch("usb.util.dispose_resources") as dispose:
        with pytest.raises(DeviceNotFoundError):
            USBTransport().open()
    dispose.assert_called_once_with(dev)


def test_bulk_write_uses_endpoint_and_timeout():
    """Frames go to endpoint 0x02 with the caller's timeout."""
    dev = _make_device()
    dev.write.return_value = 11
    session = DeviceSession(device=dev)
    frame = encode(0x20)

    assert USBTransport().bulk_write(session, frame, 100) == 11
    dev.write.assert_called_once_with(EP_OUT, frame, timeout=100)


def test_bulk_write_error_translated():
    """pyusb errors surface as TransportError."""
    dev = _make_device()
    dev.write.side_effect = usb.core.USBError("pipe")
    with pytest.raises(TransportError):
        USBTransport().bulk_write(DeviceSession(device=dev), encode(0), 100)


def test_close_releases_and_reattaches():
    """Close releases the interface and restores the kernel driver."""
    dev = _make_device()
    session = DeviceSession(device=dev, kernel_driver_detached=True)
    with patch("usb.util.release_interface") as release, patch(
        "usb.util.dispose_resources"
    ) as dispose:
        USBTransport().close(session)
    release.assert_called_once_with(dev, 0)
    dev.attach_kernel_driver.assert_called_once_with(0)
    dispose.assert_called_once_with(dev)


def test_close_tolerates_usb_errors():
    """Release errors are logged and resources still freed."""
    dev = _make_device()
    with patch(
        "usb.util.release_interface", side_effect=usb.core.USBError("no device")
    ), patch("usb.util.dispose_resources") as dispose:
        USBTransport().close(DeviceSession(device=dev))
    dispose.assert_called_once_with(dev)


def test_open_claim_failure_reattaches_kernel_driver():
    """A claim failure after detaching restores the kernel driver."""
    dev = _make_device(kernel_driver_active=True)
    with patch("usb.core.find", return_value=dev), patch(
        "usb.util.claim_interface", side_effect=usb.core.USBError("busy")
    ), patch("usb.util.dispose_resources") as dispose:
        with pytest.raises(DeviceNotFoundError):
            USBTransport().open()
    dev.detach_kernel_driver.assert_called_once_with(0)
    dev.attach_kernel_driver.assert_called_once_with(0)
    dispose.assert_called_once_with(dev)
