"""Protocol layer: frame building, command builders, and response parsing."""

from .framing import FRAME_SIZE, build_frame, is_synchronized, next_sequence
from .commands import Command, build_command, build_read_request
from .parser import convert_to_g
