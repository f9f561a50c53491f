"""Remote telemetry store adapters."""

from pyspeedlimiter.store.base import (
    SnapshotCallback,
    Subscription,
    TelemetryStore,
    latest_sample,
    parse_collection,
)
from pyspeedlimiter.store.memory import InMemoryTelemetryStore
from pyspeedlimiter.store.realtime_db import RealtimeDatabaseStore

__all__ = [
    "InMemoryTelemetryStore",
    "RealtimeDatabaseStore",
    "SnapshotCallback",
    "Subscription",
    "TelemetryStore",
    "latest_sample",
    "parse_collection",
]
