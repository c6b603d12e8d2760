"""Sensor reading models."""

from __future__ import annotations

from dataclasses import astuple, dataclass


@dataclass(frozen=True)
class LightReading:
    """Left and right light sensor intensities, 0-255 each."""

    left: int
    right: int

    def __iter__(self):
        return iter(astuple(self))

    def to_dict(self) -> dict:
        return {"left": self.left, "right": self.right}


@dataclass(frozen=True)
class Acceleration:
    """Accelerometer sample in g, plus the tap/shake flags."""

    x: float
    y: float
    z: float
    tap: bool = False
    shake: bool = False

    def __iter__(self):
        return iter(astuple(self))

    def to_dict(self) -> dict:
        return {
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "z": round(self.z, 4),
            "tap": self.tap,
            "shake": self.shake,
        }


@dataclass(frozen=True)
class Obstacles:
    """Obstacle sensor state; True means an obstacle is present."""

    left: bool
    right: bool

    def __iter__(self):
        return iter(astuple(self))

    def to_dict(self) -> dict:
        return {"left": self.left, "right": self.right}
