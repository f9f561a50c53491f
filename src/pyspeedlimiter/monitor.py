"""High-level async runtime driving the simulation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from pyspeedlimiter._constants import TEST_ALERT_MESSAGE
from pyspeedlimiter.config import SpeedLimiterConfig
from pyspeedlimiter.dashboard import DashboardSnapshot, Module, build_snapshot
from pyspeedlimiter.exceptions import SpeedLimiterError
from pyspeedlimiter.models.state import SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.simulation import engine as _engine
from pyspeedlimiter.simulation._random import RandomSource
from pyspeedlimiter.simulation.alerts import CooldownTimers
from pyspeedlimiter.simulation.engine import TelemetryEngine, TickOutcome
from pyspeedlimiter.speech import SpeechAlertManager, create_speech_backend
from pyspeedlimiter.store.base import Subscription, TelemetryStore
from pyspeedlimiter.store.memory import InMemoryTelemetryStore
from pyspeedlimiter.store.realtime_db import RealtimeDatabaseStore

_logger = logging.getLogger(__name__)

__all__ = ["Module", "SpeedMonitor"]


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class SpeedMonitor:
    """Runs the simulation on a fixed-period tick and wires its side effects.

    The tick is the only writer of the system state. Speech requests and
    telemetry writes it produces run as independent tasks, so a slow store
    never delays the next tick.

    Usage::

        async with SpeedMonitor(SpeedLimiterConfig.from_env()) as monitor:
            monitor.start_system()
            await asyncio.sleep(30)
            print(monitor.snapshot())
    """

    def __init__(
        self,
        config: SpeedLimiterConfig | None = None,
        *,
        store: TelemetryStore | None = None,
        speech: SpeechAlertManager | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], int] = _now_ms,
        on_tick: Callable[[SystemState], None] | None = None,
    ) -> None:
        self._config = config if config is not None else SpeedLimiterConfig()
        self._store = store
        self._owned_store: RealtimeDatabaseStore | None = None
        self._speech = speech
        self._engine = TelemetryEngine(rng=rng)
        self._clock = clock
        self._on_tick = on_tick

        self._state = SystemState()
        self._alerts_enabled = self._config.alerts_enabled
        self._modules: dict[Module, bool] = {module: True for module in Module}

        self._history: dict[str, TelemetrySample] | None = None
        self._subscription: Subscription | None = None
        self._store_error: str | None = None
        self._store_error_sample_at: int | None = None

        self._tick_task: asyncio.Task[None] | None = None
        self._pending_writes: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SpeedMonitor:
        config = self._config
        if self._store is None:
            if config.database_url:
                store = RealtimeDatabaseStore(
                    config.database_url,
                    collection_path=config.collection_path,
                    request_timeout=config.request_timeout,
                    stream_retry_delay=config.stream_retry_delay,
                )
                await store.__aenter__()
                self._owned_store = store
                self._store = store
            else:
                _logger.info("No database URL configured; telemetry stays in memory")
                self._store = InMemoryTelemetryStore()

        if self._speech is None:
            self._speech = SpeechAlertManager(
                create_speech_backend(config.speech_command),
                rate=config.speech_rate,
                pitch=config.speech_pitch,
                volume=config.speech_volume,
            )

        if config.subscribe_history:
            self._subscription = self._store.subscribe_all(self._on_history)

        self._tick_task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def __aexit__(self, *exc: Any) -> None:
        task = self._tick_task
        self._tick_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            await subscription.aclose()

        # In-flight work issued by earlier ticks is allowed to finish.
        await self.wait_for_writes()
        if self._speech is not None:
            await self._speech.wait_idle()

        owned = self._owned_store
        self._owned_store = None
        if owned is not None:
            await owned.__aexit__(*exc)
            self._store = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_store(self) -> TelemetryStore:
        if self._store is None:
            raise SpeedLimiterError("Monitor not started. Use 'async with SpeedMonitor(...) as monitor:'")
        return self._store

    def _require_speech(self) -> SpeechAlertManager:
        if self._speech is None:
            raise SpeedLimiterError("Monitor not started. Use 'async with SpeedMonitor(...) as monitor:'")
        return self._speech

    async def _run(self) -> None:
        interval = self._config.tick_interval
        while True:
            await asyncio.sleep(interval)
            self.tick_once()

    def _on_history(self, snapshot: dict[str, TelemetrySample] | None) -> None:
        self._history = snapshot

    def _schedule_write(self, sample: TelemetrySample) -> None:
        task = asyncio.get_running_loop().create_task(self._persist(sample))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(self, sample: TelemetrySample) -> None:
        store = self._require_store()
        error: str | None = None
        try:
            await store.write(sample)
        except Exception as exc:
            # Best effort: a failed write is reported, never retried.
            _logger.warning("Telemetry write failed for %s: %s", sample.key, exc)
            _logger.debug("Telemetry write failure detail", exc_info=True)
            error = str(exc) or type(exc).__name__

        # Writes overlap; a result older than the one already recorded is stale.
        recorded_at = self._store_error_sample_at
        if recorded_at is not None and sample.timestamp_ms < recorded_at:
            return
        self._store_error_sample_at = sample.timestamp_ms
        self._store_error = error

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick_once(self) -> TickOutcome:
        """Run one tick now and dispatch its side effects.

        Must be called from the event loop. The periodic task calls this
        every ``tick_interval`` seconds; deterministic callers step it directly.
        """
        speech = self._require_speech()
        self._require_store()

        outcome = self._engine.tick(
            self._state,
            self._clock(),
            alerts_enabled=self._alerts_enabled,
            is_speaking=speech.is_speaking,
        )
        self._state = outcome.state

        for request in outcome.alerts:
            speech.speak(request.text)
        if outcome.sample is not None:
            self._schedule_write(outcome.sample)

        if self._on_tick is not None:
            try:
                self._on_tick(outcome.state)
            except Exception:
                _logger.debug("on_tick callback failed", exc_info=True)
        return outcome

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_system(self) -> SystemState:
        self._state = _engine.start_system(self._state)
        _logger.info("System started at %.1f km/h", self._state.current_speed)
        return self._state

    def stop_system(self) -> SystemState:
        self._state = _engine.stop_system(self._state)
        _logger.info("System stopped")
        return self._state

    def toggle_system(self) -> SystemState:
        if self._state.is_running:
            return self.stop_system()
        return self.start_system()

    def set_alerts_enabled(self, enabled: bool) -> None:
        self._alerts_enabled = enabled
        _logger.debug("Audio alerts %s", "enabled" if enabled else "disabled")

    def set_module_active(self, module: Module, active: bool) -> None:
        """Toggle a module badge. Display only; the simulation ignores it."""
        self._modules[Module(module)] = active

    def module_active(self, module: Module) -> bool:
        return self._modules[Module(module)]

    def test_audio_alert(self) -> bool:
        """Speak a test phrase; ``False`` if an utterance is already in flight."""
        return self._require_speech().speak(TEST_ALERT_MESSAGE)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SystemState:
        return self._state

    @property
    def timers(self) -> CooldownTimers:
        return self._engine.policy.timers

    @property
    def store(self) -> TelemetryStore:
        return self._require_store()

    @property
    def engine(self) -> TelemetryEngine:
        return self._engine

    @property
    def alerts_enabled(self) -> bool:
        return self._alerts_enabled

    @property
    def history(self) -> dict[str, TelemetrySample] | None:
        """Last collection delivered by the history subscription."""
        return self._history

    @property
    def store_connected(self) -> bool:
        return self._subscription is not None and self._subscription.connected

    @property
    def store_error(self) -> str | None:
        """Outcome of the newest settled write: its error message, or ``None``."""
        return self._store_error

    async def wait_for_writes(self) -> None:
        """Wait until every write issued so far has settled."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    def snapshot(self) -> DashboardSnapshot:
        return build_snapshot(
            self._state,
            alerts_enabled=self._alerts_enabled,
            modules=self._modules,
            store_connected=self.store_connected,
            store_error=self._store_error,
            history=self._history,
        )
