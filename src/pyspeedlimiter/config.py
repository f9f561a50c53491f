"""Runtime configuration for pyspeedlimiter."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyspeedlimiter._constants import COLLECTION_PATH, TICK_INTERVAL_S
from pyspeedlimiter.exceptions import SpeedLimiterConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise SpeedLimiterConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SpeedLimiterConfig:
    """Monitor configuration.

    Only adapter and scheduling settings live here; the simulation
    thresholds are fixed constants.

    Parameters
    ----------
    database_url : str or None
        Firebase Realtime Database root URL
        (e.g. ``"https://<project>-default-rtdb.firebaseio.com"``).
        ``None`` keeps telemetry in a process-local in-memory store.
    collection_path : str
        Path under the database root holding one child per sample.
    tick_interval : float
        Seconds between simulation ticks.
    alerts_enabled : bool
        Initial state of the audio alert switch.
    speech_command : str or None
        Text-to-speech executable. When ``None`` the first of
        ``espeak-ng`` / ``espeak`` found on ``PATH`` is used; if none is
        found alerts fall back to a console notification.
    speech_rate : float
        Speaking rate, ``1.0`` is nominal (0.1 - 10).
    speech_pitch : float
        Pitch, ``1.0`` is nominal (0 - 2).
    speech_volume : float
        Volume from ``0.0`` to ``1.0``.
    request_timeout : float
        Total timeout in seconds for a single store read or write.
    stream_retry_delay : float
        Seconds to wait before reconnecting a dropped history stream.
    subscribe_history : bool
        Subscribe to the stored history when the monitor starts.
    """

    database_url: str | None = None
    collection_path: str = COLLECTION_PATH
    tick_interval: float = TICK_INTERVAL_S
    alerts_enabled: bool = True
    speech_command: str | None = None
    speech_rate: float = 1.0
    speech_pitch: float = 1.0
    speech_volume: float = 1.0
    request_timeout: float = 10.0
    stream_retry_delay: float = 5.0
    subscribe_history: bool = True

    def __post_init__(self) -> None:
        if not self.collection_path.strip("/"):
            raise SpeedLimiterConfigError("collection_path must be non-empty")
        for name in ("tick_interval", "request_timeout", "stream_retry_delay"):
            if getattr(self, name) <= 0:
                raise SpeedLimiterConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0.1 <= self.speech_rate <= 10.0:
            raise SpeedLimiterConfigError(f"speech_rate must be between 0.1 and 10, got {self.speech_rate}")
        if not 0.0 <= self.speech_pitch <= 2.0:
            raise SpeedLimiterConfigError(f"speech_pitch must be between 0 and 2, got {self.speech_pitch}")
        if not 0.0 <= self.speech_volume <= 1.0:
            raise SpeedLimiterConfigError(f"speech_volume must be between 0 and 1, got {self.speech_volume}")

    @classmethod
    def from_env(cls, **overrides: Any) -> SpeedLimiterConfig:
        """Create configuration from ``SPEEDLIMITER_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}

        # Blank optional values mean "unset".
        _ENV_OPTIONAL_MAP = {
            "SPEEDLIMITER_DATABASE_URL": "database_url",
            "SPEEDLIMITER_SPEECH_COMMAND": "speech_command",
        }
        for env_key, field_name in _ENV_OPTIONAL_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val.strip() or None

        collection_env = env.get("SPEEDLIMITER_COLLECTION_PATH")
        if collection_env is not None and "collection_path" not in overrides:
            config_kwargs["collection_path"] = collection_env.strip()

        _ENV_FLOAT_MAP = {
            "SPEEDLIMITER_TICK_INTERVAL": "tick_interval",
            "SPEEDLIMITER_SPEECH_RATE": "speech_rate",
            "SPEEDLIMITER_SPEECH_PITCH": "speech_pitch",
            "SPEEDLIMITER_SPEECH_VOLUME": "speech_volume",
            "SPEEDLIMITER_REQUEST_TIMEOUT": "request_timeout",
            "SPEEDLIMITER_STREAM_RETRY_DELAY": "stream_retry_delay",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "alerts_enabled" not in overrides:
            config_kwargs["alerts_enabled"] = _env_bool(env.get("SPEEDLIMITER_ALERTS_ENABLED"), True)

        if "subscribe_history" not in overrides:
            config_kwargs["subscribe_history"] = _env_bool(env.get("SPEEDLIMITER_SUBSCRIBE_HISTORY"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
