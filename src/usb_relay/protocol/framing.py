"""Command frame builder for the CH341 relay board.

Frame layout::

    +------------------------+-------------+-----------------------+
    |         Prefix         | Sub-command |        Suffix         |
    |        5 bytes         |   1 byte    |        5 bytes        |
    +------------------------+-------------+-----------------------+
    |  A1  6A  1F  00  10    |     xx      |  3F  00  00  00  00   |
    +------------------------+-------------+-----------------------+

- Prefix/Suffix: fixed vendor bytes, identical for every command
- Sub-command: selects frame start/end or one relay programming step

Every frame is sent as a USB bulk OUT transfer; the board never replies.
"""

from __future__ import annotations

PREFIX = b"\xA1\x6A\x1F\x00\x10"
SUFFIX = b"\x3F\x00\x00\x00\x00"
FRAME_SIZE = len(PREFIX) + 1 + len(SUFFIX)  # 11
SUB_COMMAND_OFFSET = len(PREFIX)


def encode(sub_command: int) -> bytes:
    """Build the 11-byte frame carrying a single sub-command byte.

    Args:
        sub_command: The variable byte placed at offset 5. Only the low
            eight bits are used.

    Returns:
        An 11-byte ``bytes`` object ready to send via bulk transfer.
    """
    return PREFIX + bytes([sub_command & 0xFF]) + SUFFIX


def format_frame(frame: bytes) -> str:
    """Render a frame as one ``pos=NN val=XX`` line per byte."""
    return "\n".join(f"pos={i:02d} val={b:02x}" for i, b in enumerate(frame))
