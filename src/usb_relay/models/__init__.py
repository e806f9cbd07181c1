"""Data models for relay masks and the desired relay state."""

from .relay_state import (
    DesiredState,
    mask_from_relays,
    relays_from_mask,
    parse_marker,
)
