"""Persisted telemetry sample model."""

from __future__ import annotations

from pydantic import field_validator

from pyspeedlimiter.models._base import CamelModel


class TelemetrySample(CamelModel):
    """One persisted telemetry record.

    Parameters
    ----------
    speed : float
        Vehicle speed in km/h at the time of the sample.
    obstacle_distance : float
        Synthetic distance to the nearest obstacle (proxy value, no unit).
    timestamp : str
        Epoch milliseconds as a decimal string. Doubles as the record key
        in the store, so two samples in the same millisecond collide.
    """

    speed: float
    obstacle_distance: float
    timestamp: str

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: object) -> str:
        if isinstance(value, bool):
            raise ValueError("timestamp must be epoch milliseconds")
        if isinstance(value, int):
            value = str(value)
        if not isinstance(value, str):
            raise ValueError("timestamp must be epoch milliseconds")
        text = value.strip()
        if not text.isdigit():
            raise ValueError(f"timestamp must be a decimal string, got {value!r}")
        return text

    @property
    def key(self) -> str:
        """Storage key under the collection path."""
        return self.timestamp

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp)
