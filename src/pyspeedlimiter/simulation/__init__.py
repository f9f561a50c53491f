"""Simulation core: engine, alert policy, and persistence sampler."""

from pyspeedlimiter.simulation._random import RandomSource
from pyspeedlimiter.simulation.alerts import AlertKind, AlertPolicy, AlertRequest, CooldownTimers
from pyspeedlimiter.simulation.engine import (
    TelemetryEngine,
    TickOutcome,
    draw_obstacle,
    next_speed,
    start_system,
    stop_system,
    toggle_system,
)
from pyspeedlimiter.simulation.sampler import PersistenceSampler

__all__ = [
    "AlertKind",
    "AlertPolicy",
    "AlertRequest",
    "CooldownTimers",
    "PersistenceSampler",
    "RandomSource",
    "TelemetryEngine",
    "TickOutcome",
    "draw_obstacle",
    "next_speed",
    "start_system",
    "stop_system",
    "toggle_system",
]
