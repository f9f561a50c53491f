"""pyspeedlimiter - Async simulation of a vehicle speed-monitoring and alert system."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyspeedlimiter")
except PackageNotFoundError:
    __version__ = "0+local"
from pyspeedlimiter.config import SpeedLimiterConfig
from pyspeedlimiter.dashboard import DashboardSnapshot, format_snapshot
from pyspeedlimiter.exceptions import (
    SpeechError,
    SpeedLimiterConfigError,
    SpeedLimiterError,
    StoreError,
)
from pyspeedlimiter.models import SpeedStatus, SystemState, TelemetrySample
from pyspeedlimiter.monitor import Module, SpeedMonitor
from pyspeedlimiter.simulation import (
    AlertKind,
    AlertPolicy,
    AlertRequest,
    CooldownTimers,
    PersistenceSampler,
    TelemetryEngine,
    TickOutcome,
)
from pyspeedlimiter.speech import SpeechAlertManager, create_speech_backend
from pyspeedlimiter.store import (
    InMemoryTelemetryStore,
    RealtimeDatabaseStore,
    Subscription,
    TelemetryStore,
)

__all__ = [
    "__version__",
    "AlertKind",
    "AlertPolicy",
    "AlertRequest",
    "CooldownTimers",
    "DashboardSnapshot",
    "InMemoryTelemetryStore",
    "Module",
    "PersistenceSampler",
    "RealtimeDatabaseStore",
    "SpeechAlertManager",
    "SpeechError",
    "SpeedLimiterConfig",
    "SpeedLimiterConfigError",
    "SpeedLimiterError",
    "SpeedMonitor",
    "SpeedStatus",
    "StoreError",
    "Subscription",
    "SystemState",
    "TelemetryEngine",
    "TelemetrySample",
    "TelemetryStore",
    "TickOutcome",
    "create_speech_backend",
    "format_snapshot",
]
