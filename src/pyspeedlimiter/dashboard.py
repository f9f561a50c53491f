"""Headless rendering of the dashboard cards."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyspeedlimiter.models.state import SpeedStatus, SystemState
from pyspeedlimiter.models.telemetry import TelemetrySample
from pyspeedlimiter.store.base import latest_sample


class Module(StrEnum):
    """Dashboard modules with a cosmetic on/off toggle."""

    SPEED_MEASUREMENT = "speed_measurement"
    DETECTION_ALERTS = "detection_alerts"
    SPEED_CONTROL = "speed_control"


_MODULE_BADGES: dict[Module, tuple[str, str]] = {
    Module.SPEED_MEASUREMENT: ("ONLINE", "OFFLINE"),
    Module.DETECTION_ALERTS: ("MONITORING", "STANDBY"),
    Module.SPEED_CONTROL: ("CONTROL", "MANUAL"),
}


class DashboardSnapshot(BaseModel):
    """Everything the dashboard shows for one moment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    system_badge: str
    motor_mode: str
    battery_level: float
    speed: float
    speed_limit: float
    speed_status: SpeedStatus
    limit_utilization: float
    obstacle_label: str
    alerts: tuple[str, ...] = ()
    alerts_enabled: bool
    module_badges: dict[Module, str] = Field(default_factory=dict)
    store_status: str
    store_error: str | None = None
    history_size: int = 0
    latest_sample: TelemetrySample | None = None


def build_snapshot(
    state: SystemState,
    *,
    alerts_enabled: bool,
    modules: Mapping[Module, bool],
    store_connected: bool,
    store_error: str | None,
    history: Mapping[str, TelemetrySample] | None,
) -> DashboardSnapshot:
    badges = {module: on if modules.get(module, True) else off for module, (on, off) in _MODULE_BADGES.items()}
    return DashboardSnapshot(
        system_badge="ACTIVE" if state.is_running else "STANDBY",
        motor_mode="AUTO" if state.is_running else "MANUAL",
        battery_level=state.battery_level,
        speed=state.current_speed,
        speed_limit=state.speed_limit,
        speed_status=state.speed_status,
        limit_utilization=state.limit_utilization,
        obstacle_label="OBSTACLE DETECTED" if state.obstacle_detected else "CLEAR PATH",
        alerts=state.alerts,
        alerts_enabled=alerts_enabled,
        module_badges=badges,
        store_status="CONNECTED" if store_connected else "OFFLINE",
        store_error=store_error,
        history_size=len(history) if history else 0,
        latest_sample=latest_sample(history),
    )


def format_snapshot(snapshot: DashboardSnapshot) -> str:
    """One console line per snapshot."""
    parts = [
        f"[{snapshot.system_badge}]",
        f"speed {snapshot.speed:5.1f}/{snapshot.speed_limit:.0f} km/h {snapshot.speed_status.value}",
        snapshot.obstacle_label,
        f"battery {snapshot.battery_level:.1f}%",
        f"audio {'on' if snapshot.alerts_enabled else 'off'}",
        f"store {snapshot.store_status} ({snapshot.history_size} samples)",
    ]
    if snapshot.store_error:
        parts.append(f"store error: {snapshot.store_error}")
    if snapshot.alerts:
        parts.append(" / ".join(snapshot.alerts))
    return " | ".join(parts)
