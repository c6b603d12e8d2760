"""Client library for the USB Finch robot."""

from .errors import (
    DeviceNotFound,
    FinchError,
    InvalidArgument,
    InvalidState,
    ReadFailure,
    WriteFailure,
)
from .finch import Finch, SessionState, connect
from .models import Acceleration, LightReading, Obstacles

__all__ = [
    "Finch",
    "SessionState",
    "connect",
    "LightReading",
    "Acceleration",
    "Obstacles",
    "FinchError",
    "DeviceNotFound",
    "InvalidArgument",
    "InvalidState",
    "ReadFailure",
    "WriteFailure",
]
