from __future__ import annotations

import asyncio
import random

import pytest

from pyspeedlimiter._constants import OBSTACLE_MESSAGE, TEST_ALERT_MESSAGE
from pyspeedlimiter.config import SpeedLimiterConfig
from pyspeedlimiter.dashboard import Module
from pyspeedlimiter.exceptions import SpeedLimiterError, StoreError
from pyspeedlimiter.models.state import SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.monitor import SpeedMonitor
from pyspeedlimiter.speech import SpeechAlertManager
from pyspeedlimiter.store.memory import InMemoryTelemetryStore

# Large interval so only explicit tick_once() calls advance the simulation.
_MANUAL = SpeedLimiterConfig(tick_interval=3600)


class ScriptedRandom:
    def __init__(self, *values: float) -> None:
        self._values = list(values)

    def random(self) -> float:
        return self._values.pop(0)


class Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class GatedBackend:
    """Records utterances; with *hold* each one blocks until the gate opens."""

    def __init__(self, *, hold: bool = False) -> None:
        self.spoken: list[str] = []
        self.gate = asyncio.Event()
        if not hold:
            self.gate.set()

    async def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None:
        self.spoken.append(text)
        await self.gate.wait()


class FlakyStore(InMemoryTelemetryStore):
    """Rejects the first *failures* writes like a database without write permission."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def write(self, sample: TelemetrySample) -> None:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise StoreError(f"HTTP 401 from vehicleData/{sample.key}: Permission denied", status_code=401)
        await super().write(sample)


class ScheduledStore(InMemoryTelemetryStore):
    """Per-key write delay and failure, so writes can settle out of order."""

    def __init__(self, *, delays: dict[str, float], failing: set[str]) -> None:
        super().__init__()
        self.delays = delays
        self.failing = failing

    async def write(self, sample: TelemetrySample) -> None:
        await asyncio.sleep(self.delays.get(sample.key, 0.0))
        if sample.key in self.failing:
            raise StoreError(f"HTTP 503 from vehicleData/{sample.key}", status_code=503)
        await super().write(sample)


class SlowStore(InMemoryTelemetryStore):
    async def write(self, sample: TelemetrySample) -> None:
        await asyncio.sleep(0.05)
        await super().write(sample)


def _monitor(*, hold: bool = False, **kwargs: object) -> tuple[SpeedMonitor, GatedBackend]:
    backend = GatedBackend(hold=hold)
    kwargs.setdefault("config", _MANUAL)
    kwargs.setdefault("store", InMemoryTelemetryStore())
    monitor = SpeedMonitor(speech=SpeechAlertManager(backend), **kwargs)  # type: ignore[arg-type]
    return monitor, backend


async def _drain() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_failed_write_is_reported_and_ticks_continue() -> None:
    store = FlakyStore(failures=1)
    clock = Clock(10_500)
    monitor, backend = _monitor(
        config=SpeedLimiterConfig(tick_interval=3600, alerts_enabled=False),
        store=store,
        rng=random.Random(4),
        clock=clock,
    )

    async with monitor:
        monitor.start_system()
        first = monitor.tick_once()
        await monitor.wait_for_writes()

        assert first.sample is not None
        assert monitor.store_error is not None and "401" in monitor.store_error
        assert monitor.snapshot().store_error == monitor.store_error

        clock.now = 15_500
        second = monitor.tick_once()
        await monitor.wait_for_writes()

    assert second.state.is_running is True
    assert second.state.battery_level == pytest.approx(84.98)
    assert store.attempts == 2
    assert monitor.store_error is None
    assert backend.spoken == []


@pytest.mark.asyncio
async def test_alerts_are_single_flight_across_ticks() -> None:
    clock = Clock(12_005)
    monitor, backend = _monitor(hold=True, rng=ScriptedRandom(0.0, 0.0, 0.0, 0.0), clock=clock)

    async with monitor:
        monitor.start_system()
        first = monitor.tick_once()
        clock.now = 22_006
        second = monitor.tick_once()

        assert first.state.alerts == (OBSTACLE_MESSAGE,)
        assert second.state.obstacle_detected is True
        assert second.alerts == ()
        assert monitor.timers.last_obstacle_alert_at == 12_005
        backend.gate.set()

    assert backend.spoken == [OBSTACLE_MESSAGE]


@pytest.mark.asyncio
async def test_disabling_alerts_silences_speech() -> None:
    monitor, backend = _monitor(rng=ScriptedRandom(0.0, 0.0), clock=Clock(12_005))

    async with monitor:
        monitor.set_alerts_enabled(False)
        monitor.start_system()
        outcome = monitor.tick_once()

    assert outcome.state.alerts == (OBSTACLE_MESSAGE,)
    assert outcome.alerts == ()
    assert backend.spoken == []
    assert monitor.alerts_enabled is False


@pytest.mark.asyncio
async def test_history_subscription_tracks_writes() -> None:
    monitor, backend = _monitor(rng=random.Random(9), clock=Clock(10_500))

    async with monitor:
        monitor.start_system()
        monitor.tick_once()
        await monitor.wait_for_writes()
        await _drain()

        assert monitor.store_connected is True
        assert monitor.history is not None and set(monitor.history) == {"10500"}
        snapshot = monitor.snapshot()
        assert snapshot.store_status == "CONNECTED"
        assert snapshot.history_size == 1
        assert snapshot.latest_sample is not None
        assert snapshot.latest_sample.timestamp == "10500"

    assert monitor.store_connected is False


@pytest.mark.asyncio
async def test_stopped_monitor_does_not_advance_or_write() -> None:
    store = InMemoryTelemetryStore()
    monitor, _ = _monitor(store=store, rng=ScriptedRandom(), clock=Clock(10_500))

    async with monitor:
        before = monitor.state
        outcome = monitor.tick_once()
        await monitor.wait_for_writes()

    assert outcome.state is before
    assert outcome.sample is None
    assert await store.read_all() is None


@pytest.mark.asyncio
async def test_exit_waits_for_in_flight_writes() -> None:
    store = SlowStore()
    monitor, _ = _monitor(store=store, rng=random.Random(2), clock=Clock(10_500))

    async with monitor:
        monitor.start_system()
        monitor.tick_once()

    latest = await store.read_latest()
    assert latest is not None
    assert latest.timestamp == "10500"


@pytest.mark.asyncio
async def test_periodic_ticks_run_on_interval() -> None:
    ticks: list[SystemState] = []
    monitor, backend = _monitor(
        config=SpeedLimiterConfig(tick_interval=0.01, alerts_enabled=False),
        rng=random.Random(1),
        on_tick=ticks.append,
    )

    async with monitor:
        monitor.start_system()
        await asyncio.sleep(0.1)

    assert len(ticks) >= 2
    assert all(state.is_running for state in ticks)
    assert ticks[-1].battery_level < 85.0


@pytest.mark.asyncio
async def test_on_tick_failure_does_not_break_tick() -> None:
    def _boom(_state: SystemState) -> None:
        raise RuntimeError("renderer bug")

    monitor, _ = _monitor(rng=random.Random(1), clock=Clock(12_005), on_tick=_boom)

    async with monitor:
        monitor.start_system()
        outcome = monitor.tick_once()

    assert outcome.state.is_running is True


@pytest.mark.asyncio
async def test_commands_and_module_badges() -> None:
    monitor, backend = _monitor(hold=True)

    async with monitor:
        assert monitor.toggle_system().current_speed == 45.0
        assert monitor.toggle_system().is_running is False

        monitor.set_module_active(Module.SPEED_CONTROL, False)
        assert monitor.module_active(Module.SPEED_CONTROL) is False
        badges = monitor.snapshot().module_badges
        assert badges[Module.SPEED_CONTROL] == "MANUAL"
        assert badges[Module.SPEED_MEASUREMENT] == "ONLINE"

        assert monitor.test_audio_alert() is True
        assert monitor.test_audio_alert() is False
        backend.gate.set()

    assert backend.spoken == [TEST_ALERT_MESSAGE]


@pytest.mark.asyncio
async def test_defaults_to_in_memory_store() -> None:
    monitor = SpeedMonitor(_MANUAL, speech=SpeechAlertManager(GatedBackend()))

    async with monitor:
        assert isinstance(monitor.store, InMemoryTelemetryStore)


def test_monitor_must_be_started() -> None:
    monitor = SpeedMonitor()

    with pytest.raises(SpeedLimiterError):
        monitor.tick_once()
    with pytest.raises(SpeedLimiterError):
        _ = monitor.store


async def _two_overlapping_writes(store: InMemoryTelemetryStore) -> SpeedMonitor:
    clock = Clock(10_500)
    monitor, _ = _monitor(
        config=SpeedLimiterConfig(tick_interval=3600, alerts_enabled=False),
        store=store,
        rng=random.Random(3),
        clock=clock,
    )
    async with monitor:
        monitor.start_system()
        monitor.tick_once()
        clock.now = 15_500
        monitor.tick_once()
        await monitor.wait_for_writes()
    return monitor


@pytest.mark.asyncio
async def test_slow_older_success_does_not_clear_newer_failure() -> None:
    store = ScheduledStore(delays={"10500": 0.05}, failing={"15500"})

    monitor = await _two_overlapping_writes(store)

    assert monitor.store_error is not None and "503" in monitor.store_error
    latest = await store.read_latest()
    assert latest is not None and latest.timestamp == "10500"


@pytest.mark.asyncio
async def test_slow_older_failure_does_not_mask_newer_success() -> None:
    store = ScheduledStore(delays={"10500": 0.05}, failing={"10500"})

    monitor = await _two_overlapping_writes(store)

    assert monitor.store_error is None
