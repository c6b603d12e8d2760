"""Finch device session.

A :class:`Finch` owns one open HID connection and the protocol state that
goes with it: the rolling sequence number stamped on sensor requests and the
read timeout. Every call blocks until the device has accepted the frame and,
for sensor reads, until the matching response has arrived.

Usage::

    with Finch() as finch:
        finch.set_led(255, 0, 0)
        print(finch.get_temperature())
"""

from __future__ import annotations

import enum
import logging
import time

from .errors import InvalidState, ReadFailure, WriteFailure
from .models.readings import Acceleration, LightReading, Obstacles
from .protocol.commands import (
    Command,
    build_read_request,
    build_set_buzzer,
    build_set_idle,
    build_set_led,
    build_set_motor,
    build_turn_off,
)
from .protocol.framing import (
    SEQUENCE_OFFSET,
    is_synchronized,
    merge_response,
    next_sequence,
)
from .protocol.parser import (
    parse_acceleration,
    parse_light,
    parse_obstacles,
    parse_temperature,
)
from .transport.usb_connection import READ_TIMEOUT_MS, USBConnection

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class Finch:
    """A session with one Finch robot.

    Args:
        connection: Transport providing ``open``, ``write``, ``read`` and
            ``close``. Defaults to a :class:`USBConnection` for the Finch
            vendor/product IDs.
        read_timeout_ms: Timeout passed to each transport read.
        max_write_attempts: Cap on write retries while the transport reports
            zero bytes written. ``None`` retries forever.
        max_read_attempts: Cap on reads while waiting for the sequence echo.
            ``None`` reads forever.
    """

    def __init__(
        self,
        connection=None,
        read_timeout_ms: int = READ_TIMEOUT_MS,
        max_write_attempts: int | None = None,
        max_read_attempts: int | None = None,
    ) -> None:
        self._connection = connection if connection is not None else USBConnection()
        self._read_timeout_ms = read_timeout_ms
        self._max_write_attempts = max_write_attempts
        self._max_read_attempts = max_read_attempts
        self._sequence_number = 0
        self._state = SessionState.UNOPENED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def sequence_number(self) -> int:
        return self._sequence_number

    @property
    def read_timeout_ms(self) -> int:
        return self._read_timeout_ms

    # ─── LIFECYCLE ────────────────────────────────────────────────────

    def open(self) -> Finch:
        """Open the HID connection.

        Raises:
            DeviceNotFound: If no Finch is attached or it cannot be opened.
            InvalidState: If the session was already opened.
        """
        if self._state is not SessionState.UNOPENED:
            raise InvalidState(f"Cannot open a session that is {self._state.value}")
        self._connection.open()
        self._sequence_number = 0
        self._state = SessionState.OPEN
        logger.info("Finch session opened")
        return self

    def close(self) -> None:
        """Return the robot to idle mode and release the connection.

        A failure of the idle-mode command is ignored; the connection is
        released regardless.
        """
        self._require_open()
        try:
            self.set_idle_mode()
        except Exception as e:
            logger.debug("Ignoring idle-mode failure during close: %s", e)
        finally:
            self._state = SessionState.CLOSED
            self._connection.close()
            logger.info("Finch session closed")

    def __enter__(self) -> Finch:
        if self._state is SessionState.UNOPENED:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._state is SessionState.OPEN:
            self.close()

    # ─── OUTPUTS ──────────────────────────────────────────────────────

    def set_led(self, red: int, green: int, blue: int) -> int:
        """Set the beak LED colour. Each channel is 0-255."""
        self._require_open()
        return self._write(build_set_led(red, green, blue))

    def set_motor(
        self,
        left_direction: int,
        left_speed: int,
        right_direction: int,
        right_speed: int,
    ) -> int:
        """Drive the wheels.

        Directions are 0 (forward) or 1 (reverse); speeds are 0-255.

        Raises:
            InvalidArgument: If a direction is not 0 or 1. Nothing is written.
        """
        self._require_open()
        frame = build_set_motor(left_direction, left_speed, right_direction, right_speed)
        return self._write(frame)

    def turn_off_motor_and_leds(self) -> int:
        """Stop both motors and switch off the LED."""
        self._require_open()
        return self._write(build_turn_off())

    def set_idle_mode(self) -> int:
        """Stop the motors and return the robot to colour cycling."""
        self._require_open()
        return self._write(build_set_idle())

    def set_buzzer(self, duration_ms: int, frequency_hz: int, wait: bool = False) -> int:
        """Sound the buzzer.

        If ``wait`` is true, blocks for ``duration_ms`` after the write so
        that consecutive calls play one after another.
        """
        self._require_open()
        written = self._write(build_set_buzzer(duration_ms, frequency_hz))
        if wait:
            time.sleep(duration_ms / 1000)
        return written

    # ─── SENSORS ──────────────────────────────────────────────────────

    def get_temperature(self) -> float:
        """Temperature in degrees Celsius."""
        return parse_temperature(self._request(Command.TEMPERATURE))

    def get_light(self) -> LightReading:
        """Left and right light sensor values, 0-255."""
        return parse_light(self._request(Command.LIGHT))

    def get_acceleration(self) -> Acceleration:
        """Accelerometer x/y/z in g, with tap and shake flags."""
        return parse_acceleration(self._request(Command.ACCELERATION))

    def get_obstacles(self) -> Obstacles:
        """Obstacle sensor flags; True means an obstacle is present."""
        return parse_obstacles(self._request(Command.OBSTACLES))

    # ─── INTERNALS ────────────────────────────────────────────────────

    def _require_open(self) -> None:
        if self._state is not SessionState.OPEN:
            raise InvalidState(f"Finch session is {self._state.value}")

    def _write(self, frame: bytearray) -> int:
        """Write ``frame``, retrying while the transport writes nothing."""
        attempts = 0
        written = 0
        while written == 0:
            if self._max_write_attempts is not None and attempts >= self._max_write_attempts:
                raise WriteFailure(
                    f"Device accepted no data after {attempts} write attempts"
                )
            attempts += 1
            try:
                written = self._connection.write(frame)
            except OSError as e:
                raise WriteFailure(f"Write failed: {e}") from e
        logger.debug("Wrote %s (%d bytes, %d attempts)", bytes(frame).hex(" "), written, attempts)
        return written

    def _read(self, frame: bytearray) -> None:
        """Read into ``frame`` until the device echoes its sequence number."""
        attempts = 0
        while True:
            if self._max_read_attempts is not None and attempts >= self._max_read_attempts:
                raise ReadFailure(
                    f"No response with sequence {frame[SEQUENCE_OFFSET]} after {attempts} reads"
                )
            attempts += 1
            try:
                response = self._connection.read(len(frame), self._read_timeout_ms)
            except OSError as e:
                raise ReadFailure(f"Read failed: {e}") from e
            if not response:
                logger.debug("Read timed out, reading again")
                continue
            merge_response(frame, response)
            if is_synchronized(frame):
                break
            logger.debug("Stale response %s, reading again", bytes(frame).hex(" "))
        logger.debug("Read %s (%d attempts)", bytes(frame).hex(" "), attempts)

    def _request(self, command: Command) -> bytearray:
        """Send a sensor request and return the synchronized response frame."""
        self._require_open()
        self._sequence_number = next_sequence(self._sequence_number)
        frame = build_read_request(command, self._sequence_number)
        self._write(frame)
        self._read(frame)
        return frame


def connect(**kwargs) -> Finch:
    """Open a session with the attached Finch.

    Keyword arguments are passed to :class:`Finch`.
    """
    return Finch(**kwargs).open()
