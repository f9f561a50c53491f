"""Alert throttling policy.

Decides, once per tick, whether an obstacle or overspeed utterance should
be requested, and keeps the per-kind cooldown timestamps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pyspeedlimiter._constants import (
    OBSTACLE_COOLDOWN_MS,
    OBSTACLE_MESSAGE,
    OVERSPEED_COOLDOWN_MS,
    OVERSPEED_MESSAGE,
    OVERSPEED_RECOVERY_WINDOW_MS,
)
from pyspeedlimiter.models.state import SystemState

_logger = logging.getLogger(__name__)


class AlertKind(StrEnum):
    OBSTACLE = "obstacle"
    OVERSPEED = "overspeed"


@dataclass(frozen=True)
class AlertRequest:
    """A spoken alert the policy wants issued this tick."""

    kind: AlertKind
    text: str


@dataclass
class CooldownTimers:
    """Last-fired timestamps in epoch milliseconds, ``None`` until first firing.

    ``last_alert_at`` records the most recent firing of either kind. It is
    written on every firing but no gating decision reads it.
    """

    last_obstacle_alert_at: int | None = None
    last_overspeed_alert_at: int | None = None
    last_alert_at: int | None = None


class AlertPolicy:
    """Cooldown-gated alert decisions.

    Both kinds require audio alerts to be enabled and no utterance to be in
    flight. Obstacle is evaluated first; once it fires the tick counts as
    speaking, so a single tick never requests two utterances.
    """

    def __init__(self, timers: CooldownTimers | None = None) -> None:
        self.timers = timers if timers is not None else CooldownTimers()

    def obstacle_cooled_down(self, now_ms: int) -> bool:
        last = self.timers.last_obstacle_alert_at
        return last is None or now_ms - last > OBSTACLE_COOLDOWN_MS

    def overspeed_cooled_down(self, now_ms: int) -> bool:
        last = self.timers.last_overspeed_alert_at
        return last is None or now_ms - last > OVERSPEED_COOLDOWN_MS

    def recently_overspeed(self, now_ms: int) -> bool:
        """Whether an overspeed alert fired inside the recovery window."""
        last = self.timers.last_overspeed_alert_at
        return last is not None and now_ms - last < OVERSPEED_RECOVERY_WINDOW_MS

    def evaluate(
        self,
        state: SystemState,
        now_ms: int,
        *,
        alerts_enabled: bool,
        is_speaking: bool,
    ) -> tuple[AlertRequest, ...]:
        """Return the alert requests for *state* and record their firing."""
        if not alerts_enabled:
            return ()

        requests: list[AlertRequest] = []
        speaking = is_speaking

        if state.obstacle_detected and not speaking and self.obstacle_cooled_down(now_ms):
            self.timers.last_obstacle_alert_at = now_ms
            self.timers.last_alert_at = now_ms
            requests.append(AlertRequest(AlertKind.OBSTACLE, OBSTACLE_MESSAGE))
            speaking = True

        if state.is_overspeed and not speaking and self.overspeed_cooled_down(now_ms):
            self.timers.last_overspeed_alert_at = now_ms
            self.timers.last_alert_at = now_ms
            requests.append(AlertRequest(AlertKind.OVERSPEED, OVERSPEED_MESSAGE))

        if requests:
            _logger.debug("Alert fired kind=%s now=%s", requests[0].kind, now_ms)
        return tuple(requests)
