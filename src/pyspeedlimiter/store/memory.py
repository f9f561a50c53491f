"""Process-local telemetry store."""

from __future__ import annotations

import asyncio

from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.store.base import SnapshotCallback, Subscription, deliver, latest_sample


class InMemoryTelemetryStore:
    """Dict-backed store with the same contract as the remote one.

    Subscribers receive the current collection on subscribe and after every
    write, scheduled on the running event loop.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TelemetrySample] = {}
        self._subscribers: list[tuple[Subscription, SnapshotCallback]] = []

    def _snapshot(self) -> dict[str, TelemetrySample] | None:
        return dict(self._entries) or None

    def _schedule(self, subscription: Subscription, callback: SnapshotCallback) -> None:
        snapshot = self._snapshot()

        def _run() -> None:
            if not subscription.cancelled:
                deliver(callback, snapshot)

        asyncio.get_running_loop().call_soon(_run)

    async def write(self, sample: TelemetrySample) -> None:
        self._entries[sample.key] = sample
        for subscription, callback in list(self._subscribers):
            self._schedule(subscription, callback)

    async def read_all(self) -> dict[str, TelemetrySample] | None:
        return self._snapshot()

    async def read_latest(self) -> TelemetrySample | None:
        return latest_sample(self._snapshot())

    def subscribe_all(self, callback: SnapshotCallback) -> Subscription:
        entry: tuple[Subscription, SnapshotCallback]

        def _remove() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        subscription = Subscription(on_cancel=_remove)
        subscription.connected = True
        entry = (subscription, callback)
        self._subscribers.append(entry)
        self._schedule(subscription, callback)
        return subscription
