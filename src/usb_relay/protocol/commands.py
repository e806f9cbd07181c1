"""Sub-command vocabulary and the relay programming sequence.

The board is programmed by a fixed-length sequence of frames: a start
marker, one three-step group per relay from relay 8 down to relay 1, and
a two-frame end marker. The firmware is order sensitive, so the whole
8-bit program is resent on every update.
"""

from __future__ import annotations

from .framing import encode


class SubCommand:
    """Sub-command byte values.

    Several steps share the value 0x00, so these are plain constants
    rather than an ``IntEnum`` (which would alias them).
    """

    FRAME_START = 0x00
    RELAY_ON_STEP1 = 0x20
    RELAY_ON_STEP2 = 0x28
    RELAY_OFF_STEP1 = 0x00
    RELAY_OFF_STEP2 = 0x08
    FRAME_END_A = 0x00
    FRAME_END_B = 0x01


RELAY_ON = (
    SubCommand.RELAY_ON_STEP1,
    SubCommand.RELAY_ON_STEP2,
    SubCommand.RELAY_ON_STEP1,
)
RELAY_OFF = (
    SubCommand.RELAY_OFF_STEP1,
    SubCommand.RELAY_OFF_STEP2,
    SubCommand.RELAY_OFF_STEP1,
)
FRAME_END = (SubCommand.FRAME_END_A, SubCommand.FRAME_END_B)

# 1 start + 8 relays * 3 steps + 2 end
PROGRAM_LENGTH = 1 + 8 * len(RELAY_ON) + len(FRAME_END)


def sequence_for(mask: int) -> list[int]:
    """Build the ordered sub-commands that program ``mask`` into the board.

    Bits are walked from bit 7 (relay 8) down to bit 0 (relay 1).

    Args:
        mask: Desired relay mask; bit *i* energizes relay *i+1*. Bits
            above 7 are ignored.

    Returns:
        A list of exactly ``PROGRAM_LENGTH`` (27) sub-command bytes.
    """
    mask &= 0xFF
    sequence = [SubCommand.FRAME_START]
    for bit in range(7, -1, -1):
        sequence.extend(RELAY_ON if mask & (1 << bit) else RELAY_OFF)
    sequence.extend(FRAME_END)
    return sequence


def build_program(mask: int) -> list[bytes]:
    """Build the encoded frames for ``mask``, in transmit order."""
    return [encode(cmd) for cmd in sequence_for(mask)]
