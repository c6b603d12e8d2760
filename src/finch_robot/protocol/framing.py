"""Frame builder and sequence helpers for 9-byte Finch HID reports.

Frame layout::

    +-----------+-----+--------------------------------+------+----------+
    | Report ID | Tag |           Parameters           | Echo | Sequence |
    | byte 0    | 1   |           bytes 2-6            |  7   |    8     |
    +-----------+-----+--------------------------------+------+----------+

- Report ID: always 0 on outgoing commands
- Tag: ASCII command character (``O``, ``M``, ``T``, ...)
- Parameters: command-specific, zero-filled when unused
- Echo: written by the device into the response, mirrors the request sequence
- Sequence: set by the host on read-type commands

There is no checksum and no length prefix; the HID transport preserves
report boundaries.
"""

from __future__ import annotations

FRAME_SIZE = 9
TAG_OFFSET = 1
PARAM_OFFSET = 2
MAX_PARAMS = 6
ECHO_OFFSET = 7
SEQUENCE_OFFSET = 8
SEQUENCE_MODULUS = 256


def build_frame(tag: int, params: bytes = b"", sequence: int = 0) -> bytearray:
    """Build a fresh 9-byte frame.

    Args:
        tag: Command tag byte (an ASCII code point).
        params: Up to six parameter bytes placed from byte 2 onward.
        sequence: Sequence number for byte 8 (read commands only).

    Returns:
        A mutable ``bytearray`` so the response can be read into it in place.
    """
    if len(params) > MAX_PARAMS:
        raise ValueError(
            f"At most {MAX_PARAMS} parameter bytes fit in a frame, got {len(params)}"
        )
    frame = bytearray(FRAME_SIZE)
    frame[TAG_OFFSET] = tag
    frame[PARAM_OFFSET : PARAM_OFFSET + len(params)] = params
    frame[SEQUENCE_OFFSET] = sequence
    return frame


def next_sequence(sequence: int) -> int:
    """Return the sequence number following ``sequence``, wrapping 255 to 0."""
    return (sequence + 1) % SEQUENCE_MODULUS


def is_synchronized(frame: bytes | bytearray) -> bool:
    """True when the device echo (byte 7) matches the sent sequence (byte 8)."""
    return frame[ECHO_OFFSET] == frame[SEQUENCE_OFFSET]


def merge_response(frame: bytearray, response: bytes) -> None:
    """Overwrite the leading bytes of ``frame`` with a device response.

    Bytes beyond the length of ``response`` are left untouched, so the
    sequence number written by the host stays in byte 8 when the device
    returns a shorter report.
    """
    n = min(len(response), len(frame))
    frame[:n] = response[:n]
