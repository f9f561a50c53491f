"""Telemetry simulation engine.

A tick advances the speed random walk, synthesizes obstacle events,
drains the battery, and asks the alert policy and persistence sampler
what side effects the new state calls for. The engine performs none of
those side effects itself; it returns them in a :class:`TickOutcome`.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from pyspeedlimiter._constants import (
    ACCELERATION_CEILING,
    ACCELERATION_DELTA,
    BATTERY_DRAIN_PER_TICK,
    CRUISE_BIAS,
    CRUISE_CEILING,
    CRUISE_RECOVERY_DELTA,
    CRUISE_SPAN,
    HIGH_DRIFT_DELTA,
    HIGH_RECOVERY_DELTA,
    OBSTACLE_MESSAGE,
    OBSTACLE_PROBABILITY,
    OVERSPEED_MESSAGE,
    START_SPEED,
)
from pyspeedlimiter.models.state import SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.simulation._random import RandomSource, uniform
from pyspeedlimiter.simulation.alerts import AlertPolicy, AlertRequest
from pyspeedlimiter.simulation.sampler import PersistenceSampler

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickOutcome:
    """New state plus the side effects requested by one tick."""

    state: SystemState
    alerts: tuple[AlertRequest, ...] = ()
    sample: TelemetrySample | None = None


def next_speed(current: float, recently_overspeed: bool, rng: RandomSource) -> float:
    """Advance the speed random walk by one tick.

    Below 50 km/h the vehicle only accelerates. Between 50 and 70 it drifts
    upwards unless an overspeed alert fired recently, in which case it is
    forced down; above 70 the recovery is steeper.
    """
    if current < ACCELERATION_CEILING:
        delta = uniform(rng, *ACCELERATION_DELTA)
    elif current < CRUISE_CEILING:
        if recently_overspeed:
            delta = uniform(rng, *CRUISE_RECOVERY_DELTA)
        else:
            delta = (rng.random() - CRUISE_BIAS) * CRUISE_SPAN
    elif recently_overspeed:
        delta = uniform(rng, *HIGH_RECOVERY_DELTA)
    else:
        delta = uniform(rng, *HIGH_DRIFT_DELTA)
    return max(0.0, current + delta)


def draw_obstacle(eligible: bool, rng: RandomSource) -> bool:
    """Synthesize an obstacle event; ineligible ticks consume no randomness."""
    if not eligible:
        return False
    return rng.random() < OBSTACLE_PROBABILITY


def alert_messages(obstacle: bool, overspeed: bool) -> tuple[str, ...]:
    # Obstacle wins over overspeed; one message at most.
    if obstacle:
        return (OBSTACLE_MESSAGE,)
    if overspeed:
        return (OVERSPEED_MESSAGE,)
    return ()


def start_system(state: SystemState) -> SystemState:
    """Switch the simulation on, seeding a speed close to the limit."""
    return state.model_copy(update={"is_running": True, "current_speed": START_SPEED})


def stop_system(state: SystemState) -> SystemState:
    return state.model_copy(update={"is_running": False, "current_speed": 0.0})


def toggle_system(state: SystemState) -> SystemState:
    return stop_system(state) if state.is_running else start_system(state)


class TelemetryEngine:
    """Owns the randomness, alert policy, and sampler behind each tick."""

    def __init__(
        self,
        *,
        rng: RandomSource | None = None,
        policy: AlertPolicy | None = None,
        sampler: PersistenceSampler | None = None,
    ) -> None:
        self.rng: RandomSource = rng if rng is not None else random.Random()
        self.policy = policy if policy is not None else AlertPolicy()
        self.sampler = sampler if sampler is not None else PersistenceSampler()

    def tick(
        self,
        state: SystemState,
        now_ms: int,
        *,
        alerts_enabled: bool,
        is_speaking: bool,
    ) -> TickOutcome:
        """Advance *state* by one tick at wall-clock *now_ms*."""
        if not state.is_running:
            return TickOutcome(state=state)

        speed = next_speed(state.current_speed, self.policy.recently_overspeed(now_ms), self.rng)
        obstacle = draw_obstacle(self.policy.obstacle_cooled_down(now_ms), self.rng)
        overspeed = speed > state.speed_limit

        new_state = state.model_copy(
            update={
                "current_speed": speed,
                "obstacle_detected": obstacle,
                "battery_level": max(0.0, state.battery_level - BATTERY_DRAIN_PER_TICK),
                "alerts": alert_messages(obstacle, overspeed),
            }
        )

        requests = self.policy.evaluate(
            new_state,
            now_ms,
            alerts_enabled=alerts_enabled,
            is_speaking=is_speaking,
        )
        sample = self.sampler.maybe_sample(new_state, now_ms, self.rng)

        _logger.debug(
            "Tick now=%s speed=%.2f obstacle=%s overspeed=%s alerts=%d sample=%s",
            now_ms,
            speed,
            obstacle,
            overspeed,
            len(requests),
            sample is not None,
        )
        return TickOutcome(state=new_state, alerts=requests, sample=sample)
