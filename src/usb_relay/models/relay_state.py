"""Relay mask helpers and the marker-file driven desired state."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from ..errors import InvalidRelayError
from ..watcher import EventKind, WatchEvent

logger = logging.getLogger(__name__)

RELAY_COUNT = 8
MARKER_PREFIX = "D_OUT_"

_MARKER_RE = re.compile(rf"^{MARKER_PREFIX}(\d+)$")


def _check_relay(relay: int) -> int:
    if not 1 <= relay <= RELAY_COUNT:
        raise InvalidRelayError(f"Relay must be 1-{RELAY_COUNT}, got {relay}")
    return relay


def mask_from_relays(relays: Iterable[int]) -> int:
    """Build a relay mask with the given relays (1-8) energized.

    Raises:
        InvalidRelayError: If any relay number is outside 1-8.
    """
    mask = 0
    for relay in relays:
        mask |= 1 << (_check_relay(relay) - 1)
    return mask


def relays_from_mask(mask: int) -> list[int]:
    """Return the energized relay numbers of ``mask`` in ascending order."""
    return [bit + 1 for bit in range(RELAY_COUNT) if mask & (1 << bit)]


def format_mask(mask: int) -> str:
    return f"0b{mask & 0xFF:08b}"


def parse_marker(name: str) -> int | None:
    """Parse a marker file name into a relay number.

    Returns:
        The relay number for ``D_OUT_<n>`` with ``n`` in 1-8, otherwise
        ``None``. Out-of-range numbers are never folded onto other relays.
    """
    match = _MARKER_RE.match(name)
    if match is None:
        return None
    relay = int(match.group(1))
    if not 1 <= relay <= RELAY_COUNT:
        return None
    return relay


@dataclass
class DesiredState:
    """Desired on/off state for each relay, keyed 1-8.

    The board cannot be queried, so this is the only record of what
    the outputs should be.
    """

    relays: dict[int, bool] = field(
        default_factory=lambda: {n: False for n in range(1, RELAY_COUNT + 1)}
    )

    @property
    def mask(self) -> int:
        mask = 0
        for relay, on in self.relays.items():
            if on:
                mask |= 1 << (relay - 1)
        return mask

    def set(self, relay: int, on: bool) -> None:
        self.relays[_check_relay(relay)] = on

    @classmethod
    def from_names(cls, names: Iterable[str]) -> DesiredState:
        """Seed a state from the file names found by a directory scan."""
        state = cls()
        for name in names:
            relay = parse_marker(name)
            if relay is not None:
                state.set(relay, True)
        return state

    def apply_event(self, event: WatchEvent) -> bool:
        """Fold one watch event into the state.

        Returns:
            True if the event referred to a marker file, False if it was
            ignored.
        """
        if event.is_directory:
            logger.debug("Ignoring directory event %s %s", event.kind.value, event.name)
            return False

        relay = parse_marker(event.name)
        if relay is None:
            logger.debug("Ignoring non-marker file %s %s", event.kind.value, event.name)
            return False

        on = event.kind is EventKind.CREATED
        self.set(relay, on)
        logger.debug("Relay %d desired %s", relay, "on" if on else "off")
        return True
