"""Tests for the Finch device session."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from finch_robot.errors import (
    InvalidArgument,
    InvalidState,
    ReadFailure,
    WriteFailure,
)
from finch_robot.finch import Finch, SessionState, connect
from finch_robot.protocol.commands import Command

from conftest import FakeConnection, echo


def _stale(last: bytes) -> bytes:
    """A report whose echo never matches the request."""
    return echo(b"", (last[8] + 100) % 256)


# ─── LIFECYCLE ────────────────────────────────────────────────────────


def test_open_starts_at_sequence_zero(connection):
    finch = Finch(connection=connection)
    assert finch.state is SessionState.UNOPENED
    finch.open()
    assert connection.opened
    assert finch.state is SessionState.OPEN
    assert finch.sequence_number == 0
    assert finch.read_timeout_ms == 1000


def test_connect_helper(connection):
    finch = connect(connection=connection)
    assert finch.state is SessionState.OPEN


def test_open_twice_raises(finch):
    with pytest.raises(InvalidState):
        finch.open()


def test_commands_before_open_raise(connection):
    finch = Finch(connection=connection)
    with pytest.raises(InvalidState):
        finch.set_led(1, 2, 3)
    with pytest.raises(InvalidState):
        finch.get_temperature()
    assert connection.writes == []


def test_close_sends_idle_and_releases(finch, connection):
    finch.close()
    assert connection.writes[-1][1] == ord("R")
    assert connection.closed
    assert finch.state is SessionState.CLOSED


def test_close_releases_even_if_idle_write_fails(finch, connection):
    """The handle is released when the idle-mode write errors."""
    connection.write_results = [OSError("device unplugged")]
    finch.close()
    assert connection.closed
    assert finch.state is SessionState.CLOSED


def test_commands_after_close_raise(finch, connection):
    finch.close()
    writes = len(connection.writes)
    with pytest.raises(InvalidState):
        finch.get_light()
    with pytest.raises(InvalidState):
        finch.close()
    assert len(connection.writes) == writes


def test_context_manager(connection):
    with Finch(connection=connection) as finch:
        assert finch.state is SessionState.OPEN
    assert connection.closed
    assert finch.state is SessionState.CLOSED


# ─── WRITE-ONLY COMMANDS ──────────────────────────────────────────────


def test_set_led(finch, connection):
    assert finch.set_led(10, 20, 30) == 9
    assert connection.writes == [b"\x00O\x0a\x14\x1e\x00\x00\x00\x00"]


def test_set_motor(finch, connection):
    finch.set_motor(0, 255, 1, 128)
    frame = connection.writes[-1]
    assert frame[1] == ord("M")
    assert frame[2:6] == bytes([0, 255, 1, 128])


def test_set_motor_invalid_direction_writes_nothing(finch, connection):
    with pytest.raises(InvalidArgument):
        finch.set_motor(2, 100, 0, 100)
    with pytest.raises(InvalidArgument):
        finch.set_motor(0, 100, 3, 100)
    assert connection.writes == []


def test_write_only_commands_keep_sequence(finch):
    finch.set_led(1, 1, 1)
    finch.set_motor(0, 1, 0, 1)
    finch.turn_off_motor_and_leds()
    finch.set_idle_mode()
    finch.set_buzzer(10, 440)
    assert finch.sequence_number == 0


def test_turn_off_and_idle_tags(finch, connection):
    finch.turn_off_motor_and_leds()
    finch.set_idle_mode()
    assert [w[1] for w in connection.writes] == [ord("X"), ord("R")]


def test_set_buzzer_no_wait(finch, connection):
    with patch("finch_robot.finch.time.sleep") as sleep:
        finch.set_buzzer(500, 880)
    sleep.assert_not_called()
    assert connection.writes[-1][2:6] == bytes([0x01, 0xF4, 0x03, 0x70])


def test_set_buzzer_wait_sleeps_for_duration(finch):
    with patch("finch_robot.finch.time.sleep") as sleep:
        finch.set_buzzer(250, 440, wait=True)
    sleep.assert_called_once_with(0.25)


def test_write_retries_while_nothing_written(finch, connection):
    connection.write_results = [0, 0, 0, 9]
    assert finch.set_led(1, 2, 3) == 9
    assert len(connection.writes) == 4


def test_write_retry_cap(connection):
    finch = Finch(connection=connection, max_write_attempts=3).open()
    connection.write_results = [0] * 10
    with pytest.raises(WriteFailure):
        finch.set_idle_mode()
    assert len(connection.writes) == 3


def test_write_error_is_wrapped(finch, connection):
    connection.write_results = [OSError("broken pipe")]
    with pytest.raises(WriteFailure) as exc_info:
        finch.set_led(0, 0, 0)
    assert isinstance(exc_info.value.__cause__, OSError)


# ─── READ COMMANDS ────────────────────────────────────────────────────


def test_get_temperature(finch, connection):
    connection.responses = [lambda last: echo(bytes([127]), last[8])]
    assert finch.get_temperature() == pytest.approx(25.0)
    assert connection.writes[-1][1] == ord("T")


def test_get_temperature_low(finch, connection):
    connection.responses = [lambda last: echo(bytes([0]), last[8])]
    assert finch.get_temperature() == pytest.approx(25 - 127 / 2.4)


def test_get_light(finch, connection):
    connection.responses = [lambda last: echo(bytes([40, 200]), last[8])]
    left, right = finch.get_light()
    assert (left, right) == (40, 200)


def test_get_acceleration(finch, connection):
    connection.responses = [lambda last: echo(bytes([0, 40, 16, 0, 0x00]), last[8])]
    accel = finch.get_acceleration()
    assert accel.x == pytest.approx(-1.125)
    assert accel.y == pytest.approx(0.75)
    assert accel.z == 0.0
    assert accel.tap is True
    assert accel.shake is False


def test_get_obstacles(finch, connection):
    connection.responses = [lambda last: echo(bytes([1, 0]), last[8])]
    assert tuple(finch.get_obstacles()) == (True, False)


def test_get_obstacles_unexpected_value(finch, connection):
    connection.responses = [lambda last: echo(bytes([2, 1]), last[8])]
    assert tuple(finch.get_obstacles()) == (False, True)


def test_read_commands_increment_sequence(finch, connection):
    finch.get_temperature()
    finch.get_light()
    finch.get_acceleration()
    finch.get_obstacles()
    assert finch.sequence_number == 4
    assert [w[8] for w in connection.writes] == [1, 2, 3, 4]
    assert [w[1] for w in connection.writes] == [
        Command.TEMPERATURE,
        Command.LIGHT,
        Command.ACCELERATION,
        Command.OBSTACLES,
    ]


def test_sequence_wraps_to_zero(finch, connection):
    for _ in range(256):
        finch.get_light()
    assert finch.sequence_number == 0
    assert connection.writes[254][8] == 255
    assert connection.writes[255][8] == 0


@pytest.mark.parametrize("stale_reads", [0, 1, 5])
def test_read_loop_stops_on_first_match(finch, connection, stale_reads):
    """N stale responses followed by a match take exactly N+1 reads."""
    connection.responses = [_stale] * stale_reads + [
        lambda last: echo(bytes([127]), last[8])
    ]
    assert finch.get_temperature() == pytest.approx(25.0)
    assert connection.reads == stale_reads + 1


def test_read_loop_skips_timeouts(finch, connection):
    """Empty reads are retried."""
    connection.responses = [b"", b"", lambda last: echo(bytes([50, 60]), last[8])]
    assert tuple(finch.get_light()) == (50, 60)
    assert connection.reads == 3


def test_timeout_at_sequence_zero_is_not_a_match(finch, connection):
    """After wrapping to 0, an empty read must not pass for the device echo."""
    for _ in range(255):
        finch.get_light()
    connection.reads = 0
    connection.responses = [b"", lambda last: echo(bytes([50, 60]), last[8])]

    assert tuple(finch.get_light()) == (50, 60)
    assert finch.sequence_number == 0
    assert connection.reads == 2


def test_read_error_surfaces(finch, connection):
    connection.read_errors = [OSError("read failed")]
    with pytest.raises(ReadFailure):
        finch.get_light()
    assert connection.reads == 1


def test_write_failure_skips_read(finch, connection):
    connection.write_results = [OSError("write failed")]
    with pytest.raises(WriteFailure):
        finch.get_temperature()
    assert connection.reads == 0
    assert finch.sequence_number == 1


def test_read_retry_cap():
    connection = FakeConnection()
    finch = Finch(connection=connection, max_read_attempts=4).open()
    connection.responses = [_stale] * 10
    with pytest.raises(ReadFailure):
        finch.get_obstacles()
    assert connection.reads == 4


def test_read_uses_configured_timeout():
    connection = FakeConnection()
    finch = Finch(connection=connection, read_timeout_ms=250).open()
    with patch.object(connection, "read", wraps=connection.read) as read:
        finch.get_light()
    read.assert_called_once_with(9, 250)
