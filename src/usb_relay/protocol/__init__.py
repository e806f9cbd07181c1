"""Protocol layer: command framing and the relay programming sequence."""

from .framing import encode, FRAME_SIZE
from .commands import SubCommand, sequence_for, build_program
