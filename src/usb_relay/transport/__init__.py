"""USB transport for the relay board."""

from .usb_connection import USBTransport, DeviceSession, DeviceInfo, Transport
