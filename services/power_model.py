"""Duty-cycle based power and cost estimation."""

from __future__ import annotations

from dataclasses import dataclass

from models.records import SensorReading


@dataclass(frozen=True)
class PowerSpecs:
    """Electrical characteristics of the driven motor."""

    max_pwm: float = 255.0
    min_effective_duty_fraction: float = 0.1
    max_power_watts: float = 100.0

    def __post_init__(self) -> None:
        if self.max_pwm <= 0:
            raise ValueError("max_pwm must be positive.")


@dataclass(frozen=True)
class Tariff:
    per_kwh: float = 1500.0


@dataclass(frozen=True)
class EnergyIncrement:
    watts: float
    kwh: float
    cost: float


def instantaneous_watts(pwm: float, specs: PowerSpecs) -> float:
    """Estimated draw for a PWM value; stepped to zero below the effective duty."""
    clamped = max(0.0, min(pwm, specs.max_pwm))
    duty = clamped / specs.max_pwm
    if duty < specs.min_effective_duty_fraction:
        return 0.0
    return duty * specs.max_power_watts


def estimate_incremental_energy(
    reading: SensorReading,
    elapsed_hours: float,
    specs: PowerSpecs,
    tariff: Tariff,
) -> EnergyIncrement:
    watts = instantaneous_watts(reading.pwm, specs)
    kwh = (watts / 1000.0) * elapsed_hours
    return EnergyIncrement(watts=watts, kwh=kwh, cost=kwh * tariff.per_kwh)
