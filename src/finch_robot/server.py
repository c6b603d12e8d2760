"""MCP server entry point for the Finch robot.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import FinchError
from .finch import Finch, SessionState
from .protocol.commands import FORWARD, REVERSE

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "finch-robot",
    instructions="Control a USB Finch robot: drive motors, set the LED, sound the buzzer, and read its sensors.",
)

# Global session state
_finch: Finch | None = None

# Reads give up after this many stale responses instead of hanging the server.
SERVER_MAX_READ_ATTEMPTS = 50

DIRECTIONS = {"forward": FORWARD, "reverse": REVERSE}


def _get_finch() -> Finch:
    """Get the active session, raising if not connected."""
    if _finch is None or _finch.state is not SessionState.OPEN:
        raise RuntimeError(
            "Not connected to the Finch. Use the 'connect' tool first."
        )
    return _finch


def _direction(name: str, value: str) -> int:
    if value not in DIRECTIONS:
        raise ValueError(
            f"{name} must be one of {list(DIRECTIONS)}, got {value!r}"
        )
    return DIRECTIONS[value]


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect() -> dict[str, Any]:
    """Open a USB connection to the Finch robot.

    Auto-discovers the robot by USB vendor/product ID (0x2354:0x1111).
    """
    global _finch
    if _finch is not None and _finch.state is SessionState.OPEN:
        return {"connected": True, "message": "Already connected"}

    _finch = Finch(max_read_attempts=SERVER_MAX_READ_ATTEMPTS)
    _finch.open()
    return {"connected": True}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Put the robot back in idle mode and close the connection."""
    global _finch
    if _finch is None:
        return {"disconnected": True}
    if _finch.state is SessionState.OPEN:
        _finch.close()
    _finch = None
    return {"disconnected": True}


# ─── OUTPUT TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def set_led(red: int, green: int, blue: int) -> dict[str, Any]:
    """Set the beak LED colour.

    Args:
        red: Red intensity (0-255).
        green: Green intensity (0-255).
        blue: Blue intensity (0-255).
    """
    finch = _get_finch()
    try:
        finch.set_led(red, green, blue)
    except FinchError as e:
        return {"error": str(e)}
    return {"led": {"red": red, "green": green, "blue": blue}}


@mcp.tool()
def set_motor(
    left_speed: int,
    right_speed: int,
    left_direction: str = "forward",
    right_direction: str = "forward",
) -> dict[str, Any]:
    """Drive the wheels. The robot keeps moving until told otherwise.

    Args:
        left_speed: Left wheel speed (0-255).
        right_speed: Right wheel speed (0-255).
        left_direction: "forward" or "reverse".
        right_direction: "forward" or "reverse".
    """
    finch = _get_finch()
    try:
        finch.set_motor(
            _direction("left_direction", left_direction),
            left_speed,
            _direction("right_direction", right_direction),
            right_speed,
        )
    except (ValueError, FinchError) as e:
        return {"error": str(e)}
    return {
        "left": {"direction": left_direction, "speed": left_speed},
        "right": {"direction": right_direction, "speed": right_speed},
    }


@mcp.tool()
def stop() -> dict[str, Any]:
    """Stop both motors and switch off the LED."""
    try:
        _get_finch().turn_off_motor_and_leds()
    except FinchError as e:
        return {"error": str(e)}
    return {"stopped": True}


@mcp.tool()
def set_idle_mode() -> dict[str, Any]:
    """Stop the motors and return the robot to its colour-cycling idle mode."""
    try:
        _get_finch().set_idle_mode()
    except FinchError as e:
        return {"error": str(e)}
    return {"idle": True}


@mcp.tool()
def buzz(duration_ms: int, frequency_hz: int, wait: bool = True) -> dict[str, Any]:
    """Sound the buzzer.

    Args:
        duration_ms: Tone length in milliseconds (0-65535).
        frequency_hz: Tone frequency in Hz (0-65535).
        wait: Block until the tone has finished.
    """
    finch = _get_finch()
    try:
        finch.set_buzzer(duration_ms, frequency_hz, wait=wait)
    except FinchError as e:
        return {"error": str(e)}
    return {"duration_ms": duration_ms, "frequency_hz": frequency_hz}


# ─── SENSOR TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_temperature() -> dict[str, Any]:
    """Read the temperature sensor in degrees Celsius."""
    try:
        celsius = _get_finch().get_temperature()
    except FinchError as e:
        return {"error": str(e)}
    return {"celsius": round(celsius, 2)}


@mcp.tool()
def get_light() -> dict[str, Any]:
    """Read the left and right light sensors (0-255)."""
    try:
        return _get_finch().get_light().to_dict()
    except FinchError as e:
        return {"error": str(e)}


@mcp.tool()
def get_acceleration() -> dict[str, Any]:
    """Read the accelerometer (g) and the tap/shake flags."""
    try:
        return _get_finch().get_acceleration().to_dict()
    except FinchError as e:
        return {"error": str(e)}


@mcp.tool()
def get_obstacles() -> dict[str, Any]:
    """Read the left and right obstacle sensors."""
    try:
        return _get_finch().get_obstacles().to_dict()
    except FinchError as e:
        return {"error": str(e)}


@mcp.tool()
def read_all_sensors() -> dict[str, Any]:
    """Read every sensor once."""
    finch = _get_finch()
    try:
        return {
            "temperature": round(finch.get_temperature(), 2),
            "light": finch.get_light().to_dict(),
            "acceleration": finch.get_acceleration().to_dict(),
            "obstacles": finch.get_obstacles().to_dict(),
        }
    except FinchError as e:
        return {"error": str(e)}


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("finch://device/status")
def resource_device_status() -> str:
    """Connection state and protocol counters."""
    if _finch is None:
        return json.dumps({"connected": False})
    return json.dumps({
        "connected": _finch.state is SessionState.OPEN,
        "state": _finch.state.value,
        "sequence_number": _finch.sequence_number,
        "read_timeout_ms": _finch.read_timeout_ms,
    })


@mcp.resource("finch://sensors")
def resource_sensors() -> str:
    """A fresh snapshot of every sensor."""
    return json.dumps(read_all_sensors(), indent=2)


# ─── PROMPTS ──────────────────────────────────────────────────────────

@mcp.prompt()
def explore_room(seconds: int = 30) -> str:
    """Drive around without bumping into things."""
    return f"""Explore the room with the Finch for about {seconds} seconds.

Loop:
- Call get_obstacles.
- If neither side is blocked, set_motor forward at a moderate speed (about 150).
- If one side is blocked, reverse that side's wheel briefly to turn away.
- If both are blocked, reverse both wheels, then turn.
- Use set_led to show green while driving and red while avoiding.

When finished, call stop and then disconnect."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
