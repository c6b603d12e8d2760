"""Command tags and high-level command builders.

Each command is identified by a single ASCII character in byte 1 of the
frame. Write-only commands carry their parameters in bytes 2-5; read
commands carry only the sequence number in byte 8.
"""

from __future__ import annotations

from enum import IntEnum

from ..errors import InvalidArgument
from .framing import build_frame

FORWARD = 0
REVERSE = 1


class Command(IntEnum):
    """Command tag bytes."""

    LED = ord("O")
    MOTOR = ord("M")
    STOP = ord("X")
    IDLE = ord("R")
    BUZZER = ord("B")
    TEMPERATURE = ord("T")
    LIGHT = ord("L")
    ACCELERATION = ord("A")
    OBSTACLES = ord("I")


READ_COMMANDS = frozenset(
    {Command.TEMPERATURE, Command.LIGHT, Command.ACCELERATION, Command.OBSTACLES}
)


def _check_byte(name: str, value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise InvalidArgument(f"{name} must be 0-255, got {value}")
    return value


def _check_word(name: str, value: int) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise InvalidArgument(f"{name} must be 0-65535, got {value}")
    return value.to_bytes(2, "big")


def build_command(command: Command, payload: bytes = b"", sequence: int = 0) -> bytearray:
    """Build a single 9-byte frame for a command."""
    return build_frame(command.value, payload, sequence)


def build_set_led(red: int, green: int, blue: int) -> bytearray:
    """Build an LED colour command.

    Args:
        red: Red intensity 0-255.
        green: Green intensity 0-255.
        blue: Blue intensity 0-255.
    """
    payload = bytes(
        [
            _check_byte("red", red),
            _check_byte("green", green),
            _check_byte("blue", blue),
        ]
    )
    return build_command(Command.LED, payload)


def build_set_motor(
    left_direction: int,
    left_speed: int,
    right_direction: int,
    right_speed: int,
) -> bytearray:
    """Build a motor command.

    Args:
        left_direction: 0 (forward) or 1 (reverse).
        left_speed: Left wheel speed 0-255.
        right_direction: 0 (forward) or 1 (reverse).
        right_speed: Right wheel speed 0-255.
    """
    if left_direction not in (FORWARD, REVERSE):
        raise InvalidArgument(
            f"Left wheel direction must be 0 or 1, got {left_direction}"
        )
    if right_direction not in (FORWARD, REVERSE):
        raise InvalidArgument(
            f"Right wheel direction must be 0 or 1, got {right_direction}"
        )
    payload = bytes(
        [
            left_direction,
            _check_byte("left_speed", left_speed),
            right_direction,
            _check_byte("right_speed", right_speed),
        ]
    )
    return build_command(Command.MOTOR, payload)


def build_turn_off() -> bytearray:
    """Build a command that switches off both motors and the LED."""
    return build_command(Command.STOP)


def build_set_idle() -> bytearray:
    """Build a command returning the robot to colour-cycling idle mode."""
    return build_command(Command.IDLE)


def build_set_buzzer(duration_ms: int, frequency_hz: int) -> bytearray:
    """Build a buzzer command.

    Duration and frequency are each sent as big-endian 16-bit values.
    """
    payload = _check_word("duration_ms", duration_ms) + _check_word(
        "frequency_hz", frequency_hz
    )
    return build_command(Command.BUZZER, payload)


def build_read_request(command: Command, sequence: int) -> bytearray:
    """Build a sensor read request tagged with ``sequence``."""
    if command not in READ_COMMANDS:
        raise ValueError(f"{command.name} is not a read command")
    return build_command(command, sequence=sequence)
