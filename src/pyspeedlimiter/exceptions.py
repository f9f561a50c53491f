"""Custom exception hierarchy for pyspeedlimiter."""

from __future__ import annotations


class SpeedLimiterError(Exception):
    """Base exception for all pyspeedlimiter errors."""


class SpeedLimiterConfigError(SpeedLimiterError):
    """Invalid or missing configuration."""


class StoreError(SpeedLimiterError):
    """Remote telemetry store failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


class SpeechError(SpeedLimiterError):
    """Speech backend failed to produce an utterance."""
