"""Data models for the simulated system and its persisted telemetry."""

from pyspeedlimiter.models._base import CamelModel
from pyspeedlimiter.models.state import SpeedStatus, SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample

__all__ = [
    "CamelModel",
    "SpeedStatus",
    "SystemState",
    "TelemetrySample",
]
