"""Telemetry store contract shared by every backend."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from pyspeedlimiter.models.telemetry import TelemetrySample

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, TelemetrySample] | None], None]
"""Receives the full collection (not a diff) on every change, ``None`` when empty or unavailable."""


class Subscription:
    """Handle returned by :meth:`TelemetryStore.subscribe_all`.

    ``connected`` reflects whether the backing channel is currently live;
    :meth:`cancel` stops further deliveries.
    """

    def __init__(self, *, on_cancel: Callable[[], None] | None = None) -> None:
        self.connected = False
        self._cancelled = False
        self._on_cancel = on_cancel
        self._task: asyncio.Task[None] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def attach(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.connected = False
        if self._on_cancel is not None:
            self._on_cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Cancel and wait for the backing task to finish."""
        self.cancel()
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task


class TelemetryStore(Protocol):
    """Structural store interface consumed by the monitor.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete.
    """

    async def write(self, sample: TelemetrySample) -> None: ...

    async def read_all(self) -> dict[str, TelemetrySample] | None: ...

    async def read_latest(self) -> TelemetrySample | None: ...

    def subscribe_all(self, callback: SnapshotCallback) -> Subscription: ...


def parse_collection(raw: Any) -> dict[str, TelemetrySample] | None:
    """Turn a raw collection node into samples keyed by timestamp.

    Entries that do not validate are skipped. Returns ``None`` for an empty
    or missing node.
    """
    if raw is None:
        return None
    items: list[tuple[str, Any]]
    if isinstance(raw, Mapping):
        items = [(str(k), v) for k, v in raw.items()]
    elif isinstance(raw, list):
        # Sequential integer keys come back as a JSON array with null holes.
        items = [(str(i), v) for i, v in enumerate(raw) if v is not None]
    else:
        _logger.debug("Ignoring non-collection node type=%s", type(raw).__name__)
        return None

    samples: dict[str, TelemetrySample] = {}
    for key, value in items:
        if not isinstance(value, Mapping):
            continue
        try:
            samples[key] = TelemetrySample.model_validate(value)
        except ValidationError:
            _logger.debug("Skipping malformed sample key=%s", key, exc_info=True)
    return samples or None


def latest_sample(samples: Mapping[str, TelemetrySample] | None) -> TelemetrySample | None:
    """Return the entry whose key is numerically greatest."""
    if not samples:
        return None
    numeric_keys = [key for key in samples if key.isdigit()]
    if not numeric_keys:
        return None
    return samples[max(numeric_keys, key=int)]


def deliver(callback: SnapshotCallback, snapshot: dict[str, TelemetrySample] | None) -> None:
    """Invoke a subscriber without letting its failure break the channel."""
    try:
        callback(snapshot)
    except Exception:
        _logger.debug("Subscription callback failed", exc_info=True)
