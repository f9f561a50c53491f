from __future__ import annotations

import pytest
from pydantic import ValidationError

from pyspeedlimiter.models import SpeedStatus, SystemState, TelemetrySample


def test_sample_serializes_camel_case() -> None:
    sample = TelemetrySample(speed=52.5, obstacle_distance=140.0, timestamp="1700000000000")

    assert sample.to_wire() == {
        "speed": 52.5,
        "obstacleDistance": 140.0,
        "timestamp": "1700000000000",
    }


def test_sample_accepts_wire_and_field_names() -> None:
    wire = TelemetrySample.model_validate({"speed": 40, "obstacleDistance": 30, "timestamp": "1"})
    python = TelemetrySample(speed=40, obstacle_distance=30, timestamp="1")

    assert wire == python


def test_sample_ignores_unknown_fields() -> None:
    sample = TelemetrySample.model_validate(
        {"speed": 40, "obstacleDistance": 30, "timestamp": "1", "driver": "x"}
    )
    assert "driver" not in sample.to_wire()


def test_integer_timestamp_is_normalized() -> None:
    sample = TelemetrySample(speed=0, obstacle_distance=100, timestamp=1_700_000_000_123)

    assert sample.timestamp == "1700000000123"
    assert sample.key == "1700000000123"
    assert sample.timestamp_ms == 1_700_000_000_123


@pytest.mark.parametrize("bad", ["", "abc", "12.5", "-5", True, 12.5, None])
def test_invalid_timestamps_rejected(bad: object) -> None:
    with pytest.raises(ValidationError):
        TelemetrySample(speed=0, obstacle_distance=100, timestamp=bad)


def test_sample_is_frozen() -> None:
    sample = TelemetrySample(speed=0, obstacle_distance=100, timestamp="1")
    with pytest.raises(ValidationError):
        sample.speed = 10  # type: ignore[misc]


def test_state_defaults() -> None:
    state = SystemState()

    assert state.is_running is False
    assert state.current_speed == 0.0
    assert state.speed_limit == 60.0
    assert state.battery_level == 85.0
    assert state.alerts == ()


@pytest.mark.parametrize(
    ("speed", "status"),
    [
        (0.0, SpeedStatus.NORMAL),
        (48.0, SpeedStatus.NORMAL),
        (48.1, SpeedStatus.WARNING),
        (60.0, SpeedStatus.WARNING),
        (60.1, SpeedStatus.OVERSPEED),
    ],
)
def test_speed_status_thresholds(speed: float, status: SpeedStatus) -> None:
    state = SystemState(current_speed=speed)

    assert state.speed_status is status
    assert state.is_overspeed is (status is SpeedStatus.OVERSPEED)


def test_limit_utilization() -> None:
    assert SystemState(current_speed=45.0).limit_utilization == pytest.approx(75.0)


def test_state_rejects_out_of_range_values() -> None:
    with pytest.raises(ValidationError):
        SystemState(current_speed=-1.0)
    with pytest.raises(ValidationError):
        SystemState(battery_level=101.0)
    with pytest.raises(ValidationError):
        SystemState(speed_limit=0.0)
    with pytest.raises(ValidationError):
        SystemState(unknown=True)  # type: ignore[call-arg]


def test_state_copy_produces_new_snapshot() -> None:
    state = SystemState()
    moved = state.model_copy(update={"current_speed": 30.0})

    assert state.current_speed == 0.0
    assert moved.current_speed == 30.0
