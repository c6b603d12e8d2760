"""Exceptions raised by the Finch client.

Each error also derives from the builtin exception a caller would expect
for the same condition, so ``except ConnectionError`` or ``except ValueError``
keep working.
"""

from __future__ import annotations


class FinchError(Exception):
    """Base class for all Finch errors."""


class DeviceNotFound(FinchError, ConnectionError):
    """No matching device is present, or the transport failed to open it."""


class InvalidArgument(FinchError, ValueError):
    """A command argument is outside the range the device accepts."""


class WriteFailure(FinchError, IOError):
    """The transport failed to write a frame."""


class ReadFailure(FinchError, IOError):
    """The transport failed to read a response frame."""


class InvalidState(FinchError, RuntimeError):
    """A command was issued on a session that is not open."""
