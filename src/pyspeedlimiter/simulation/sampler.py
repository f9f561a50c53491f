"""Persistence sampling gate and payload shaping."""

from __future__ import annotations

from pyspeedlimiter._constants import (
    OBSTACLE_DISTANCE_CLEAR,
    OBSTACLE_DISTANCE_NEAR,
    SAMPLE_PERIOD_MS,
    SAMPLE_WINDOW_MS,
)
from pyspeedlimiter.models.state import SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.simulation._random import RandomSource, uniform


class PersistenceSampler:
    """Coarse wall-clock gate: a one-second window opening every five seconds.

    With one-second ticks this persists roughly one sample in five. It is
    not a rate limiter; clock drift can skip or double a window.
    """

    def __init__(self, *, period_ms: int = SAMPLE_PERIOD_MS, window_ms: int = SAMPLE_WINDOW_MS) -> None:
        if not 0 < window_ms <= period_ms:
            raise ValueError(f"window_ms must be in (0, {period_ms}], got {window_ms}")
        self._period_ms = period_ms
        self._window_ms = window_ms

    def should_persist(self, now_ms: int) -> bool:
        return now_ms % self._period_ms < self._window_ms

    @staticmethod
    def build_sample(state: SystemState, now_ms: int, rng: RandomSource) -> TelemetrySample:
        low, high = OBSTACLE_DISTANCE_NEAR if state.obstacle_detected else OBSTACLE_DISTANCE_CLEAR
        return TelemetrySample(
            speed=state.current_speed,
            obstacle_distance=uniform(rng, low, high),
            timestamp=str(now_ms),
        )

    def maybe_sample(self, state: SystemState, now_ms: int, rng: RandomSource) -> TelemetrySample | None:
        if not self.should_persist(now_ms):
            return None
        return self.build_sample(state, now_ms, rng)
