"""Unit tests for the duty-cycle power model."""

from __future__ import annotations

import pytest

from models.records import SensorReading
from services.power_model import (
    PowerSpecs,
    Tariff,
    estimate_incremental_energy,
    instantaneous_watts,
)

SPECS = PowerSpecs(max_pwm=255, min_effective_duty_fraction=0.1, max_power_watts=100)
TARIFF = Tariff(per_kwh=1500)


def _reading(pwm: float) -> SensorReading:
    return SensorReading(pwm=pwm, rpm=0.0, load_weight=0.0)


def test_half_duty_over_half_hour() -> None:
    increment = estimate_incremental_energy(_reading(128), 0.5, SPECS, TARIFF)

    assert increment.watts == pytest.approx(50.196, rel=1e-3)
    assert increment.kwh == pytest.approx(0.0251, rel=1e-2)
    assert increment.cost == pytest.approx(37.65, rel=1e-2)


def test_sub_threshold_duty_draws_nothing() -> None:
    increment = estimate_incremental_energy(_reading(10), 0.1, SPECS, TARIFF)

    assert increment.watts == 0.0
    assert increment.kwh == 0.0
    assert increment.cost == 0.0


@pytest.mark.parametrize(
    ("pwm", "expected"),
    [(-40, 0.0), (0, 0.0), (255, 100.0), (1000, 100.0)],
)
def test_pwm_is_clamped_to_valid_range(pwm: float, expected: float) -> None:
    assert instantaneous_watts(pwm, SPECS) == pytest.approx(expected)


def test_zero_elapsed_time_yields_no_energy() -> None:
    increment = estimate_incremental_energy(_reading(200), 0.0, SPECS, TARIFF)

    assert increment.watts > 0
    assert increment.kwh == 0.0


def test_specs_reject_non_positive_max_pwm() -> None:
    with pytest.raises(ValueError):
        PowerSpecs(max_pwm=0)
