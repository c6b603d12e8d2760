"""Response parsing for sensor read frames."""

from __future__ import annotations

from ..models.readings import Acceleration, LightReading, Obstacles

TAP_MASK = 0x20
SHAKE_MASK = 0x80


def convert_to_g(raw: int) -> float:
    """Convert a 6-bit two's-complement accelerometer value to g.

    Raw values above 31 are negative and wrap into -32..-1.
    """
    if raw > 31:
        raw -= 64
    return raw * 1.5 / 32


def parse_temperature(frame: bytes | bytearray) -> float:
    """Temperature in degrees Celsius from response byte 0."""
    return (frame[0] - 127) / 2.4 + 25


def parse_light(frame: bytes | bytearray) -> LightReading:
    """Left/right light sensor values from bytes 0 and 1."""
    return LightReading(left=frame[0], right=frame[1])


def parse_acceleration(frame: bytes | bytearray) -> Acceleration:
    """Parse the accelerometer response.

    Bytes 1-3 hold the x, y, z axes. In byte 4, a cleared bit 5 means the
    robot was tapped since the last read. The shake flag keeps the device's
    historical comparison against 1, which a 0x80 mask never satisfies.
    """
    status = frame[4]
    return Acceleration(
        x=convert_to_g(frame[1]),
        y=convert_to_g(frame[2]),
        z=convert_to_g(frame[3]),
        tap=(status & TAP_MASK) == 0,
        shake=(status & SHAKE_MASK) == 1,
    )


def _obstacle_flag(raw: int) -> bool:
    # Only 1 counts; any other value reads as clear.
    return raw == 1


def parse_obstacles(frame: bytes | bytearray) -> Obstacles:
    """Left/right obstacle flags from bytes 0 and 1."""
    return Obstacles(left=_obstacle_flag(frame[0]), right=_obstacle_flag(frame[1]))
