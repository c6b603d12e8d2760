"""Shared fixtures: a scripted stand-in for the USB connection."""

from __future__ import annotations

import pytest

from finch_robot.finch import Finch


class FakeConnection:
    """Records writes and replays queued read responses.

    Each queued response may be bytes, or a callable taking the last
    written frame and returning bytes. When the queue is empty the fake
    echoes the last request's sequence number, like a healthy device.
    """

    def __init__(self) -> None:
        self.opened = False
        self.closed = False
        self.writes: list[bytes] = []
        self.reads = 0
        self.responses: list = []
        self.write_results: list = []
        self.read_errors: list = []

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def write(self, data) -> int:
        self.writes.append(bytes(data))
        if self.write_results:
            result = self.write_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return len(data)

    def read(self, size: int, timeout_ms: int) -> bytes:
        self.reads += 1
        if self.read_errors:
            raise self.read_errors.pop(0)
        last = self.writes[-1]
        if self.responses:
            response = self.responses.pop(0)
            return response(last) if callable(response) else response
        return echo(b"", last[8])


def echo(payload: bytes, sequence: int) -> bytes:
    """An 8-byte device report whose byte 7 echoes ``sequence``."""
    return payload.ljust(7, b"\x00")[:7] + bytes([sequence])


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def finch(connection: FakeConnection) -> Finch:
    return Finch(connection=connection).open()
