"""Command-line entry point.

Usage::

    usb-relay [-v] 1 5 7            # relays 1, 5 and 7 on, the rest off
    usb-relay -v -s --daemon --dir /tmp
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import signal
import sys
import threading
from typing import Optional, Sequence

from .config import Settings
from .controller import RelayController
from .daemon import RelayDaemon
from .errors import DeviceNotFoundError, InvalidRelayError, TransportFailureError
from .models.relay_state import format_mask, mask_from_relays
from .transport.usb_connection import USBTransport
from .watcher import PollingWatcher

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TRANSPORT_FAILURE = 1
EXIT_INVALID_RELAY = 2
EXIT_DEVICE_NOT_FOUND = 3

SYSLOG_SOCKET = "/dev/log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usb-relay",
        description="Control an 8-channel CH341 USB relay board.",
        epilog="example: usb-relay -v 1 5 7 switches relays 1, 5 and 7 on, the rest off",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug output (frame dumps)"
    )
    parser.add_argument(
        "-s", "--syslog", action="store_true", help="Log to syslog instead of stderr"
    )
    parser.add_argument(
        "-d",
        "--daemon",
        action="store_true",
        help="Keep relays in sync with D_OUT_<n> marker files",
    )
    parser.add_argument(
        "--dir",
        dest="directory",
        default=None,
        help="Directory holding the marker files (default: /tmp)",
    )
    parser.add_argument(
        "relays", nargs="*", help="Relay numbers (1-8) to switch on in one-shot mode"
    )
    return parser


def settings_from_args(argv: Optional[Sequence[str]] = None) -> Settings:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.directory:
        settings.directory = args.directory
    if args.verbose:
        settings.log_level = logging.DEBUG
    settings.use_syslog = args.syslog
    settings.daemon = args.daemon
    settings.relays = list(args.relays)
    return settings


def configure_logging(level: int, use_syslog: bool = False) -> None:
    """Install a single root handler, either syslog or stderr."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if use_syslog:
        address = SYSLOG_SOCKET if os.path.exists(SYSLOG_SOCKET) else ("localhost", 514)
        handler: logging.Handler = logging.handlers.SysLogHandler(
            address=address, facility=logging.handlers.SysLogHandler.LOG_DAEMON
        )
        handler.setFormatter(logging.Formatter("usb-relay[%(process)d]: %(levelname)s %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root.addHandler(handler)
    root.setLevel(level)


def parse_relays(values: Sequence[str]) -> int:
    """Turn relay arguments into a mask.

    Raises:
        InvalidRelayError: If any value is not an integer in 1-8.
    """
    relays = []
    for value in values:
        try:
            relays.append(int(value))
        except ValueError:
            raise InvalidRelayError(f"Relay must be 1-8, got {value!r}") from None
    return mask_from_relays(relays)


def run_once(mask: int, transport=None) -> int:
    """Apply ``mask`` once and return a process exit code.

    The device is opened a single time; a missing board is not retried.
    """
    controller = RelayController(transport or USBTransport())
    try:
        controller.ensure_connected()
    except DeviceNotFoundError as e:
        logger.error("Device not open: %s", e)
        return EXIT_DEVICE_NOT_FOUND

    try:
        controller.apply(mask)
    except TransportFailureError as e:
        logger.error("Writing relay mask %s failed: %s", format_mask(mask), e)
        return EXIT_TRANSPORT_FAILURE
    finally:
        controller.close()
    return EXIT_OK


def _install_stop_handlers(stop_event: threading.Event) -> None:
    def _handle_stop(signum: int, _frame: object) -> None:
        logger.info("Stop requested (%s)", signal.Signals(signum).name)
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, _handle_stop)


def run_daemon(settings: Settings, transport=None) -> int:
    """Run the reconciliation loop until SIGTERM/SIGINT."""
    stop_event = threading.Event()
    _install_stop_handlers(stop_event)

    watcher = PollingWatcher(
        settings.directory, interval=settings.poll_interval_s, stop_event=stop_event
    )
    controller = RelayController(transport or USBTransport())
    daemon = RelayDaemon(
        controller, watcher, backoff=settings.backoff_s, stop_event=stop_event
    )
    logger.info("Watching %s for D_OUT_<1-8> marker files", watcher.directory)
    try:
        daemon.run()
    finally:
        controller.close()
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = settings_from_args(argv)
    configure_logging(settings.log_level, settings.use_syslog)
    logger.debug("verbose = %s", "Yes" if settings.log_level <= logging.DEBUG else "No")

    if settings.daemon:
        if settings.relays:
            logger.warning("Ignoring relay arguments in daemon mode")
        return run_daemon(settings)

    try:
        mask = parse_relays(settings.relays)
    except InvalidRelayError as e:
        print(f"error: {e}", file=sys.stderr)
        print("only give valid relay numbers (1-8) as parameters", file=sys.stderr)
        print(
            "example: usb-relay -v 1 5 7 switches relays 1, 5 and 7 on, the rest off",
            file=sys.stderr,
        )
        return EXIT_INVALID_RELAY

    logger.debug("Writing relay mask %s to usb", format_mask(mask))
    return run_once(mask)


if __name__ == "__main__":
    sys.exit(main())
