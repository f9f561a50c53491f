"""Simulated system state."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyspeedlimiter._constants import DEFAULT_BATTERY_LEVEL, DEFAULT_SPEED_LIMIT, WARNING_RATIO


class SpeedStatus(StrEnum):
    """Speed badge shown next to the limit."""

    NORMAL = "NORMAL"
    WARNING = "WARNING"
    OVERSPEED = "OVERSPEED"


class SystemState(BaseModel):
    """Snapshot of the simulated vehicle.

    Instances are immutable; the engine derives a new snapshot on every
    tick with :meth:`model_copy`.

    Parameters
    ----------
    is_running : bool
        Whether ticks advance the simulation.
    current_speed : float
        Speed in km/h, never negative.
    speed_limit : float
        Speed limit in km/h.
    obstacle_detected : bool
        Whether an obstacle was synthesized on the last tick.
    battery_level : float
        Battery charge in percent.
    alerts : tuple of str
        Messages for the last tick only.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_running: bool = False
    current_speed: float = Field(default=0.0, ge=0.0)
    speed_limit: float = Field(default=DEFAULT_SPEED_LIMIT, gt=0.0)
    obstacle_detected: bool = False
    battery_level: float = Field(default=DEFAULT_BATTERY_LEVEL, ge=0.0, le=100.0)
    alerts: tuple[str, ...] = ()

    @property
    def is_overspeed(self) -> bool:
        return self.current_speed > self.speed_limit

    @property
    def speed_status(self) -> SpeedStatus:
        if self.current_speed > self.speed_limit:
            return SpeedStatus.OVERSPEED
        if self.current_speed > self.speed_limit * WARNING_RATIO:
            return SpeedStatus.WARNING
        return SpeedStatus.NORMAL

    @property
    def limit_utilization(self) -> float:
        """Speed as a percentage of the limit."""
        return self.current_speed / self.speed_limit * 100.0
