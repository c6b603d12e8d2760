"""Data models for sensor readings."""

from .readings import Acceleration, LightReading, Obstacles
