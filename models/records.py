"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

_LOAD_WEIGHT_ALIASES = ("load_weight", "berat")


def coerce_number(value: Any) -> float:
    """Return ``value`` as a finite float, falling back to ``0.0``."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A raw motor snapshot as pushed by the sensor producer."""

    pwm: float
    rpm: float
    load_weight: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SensorReading":
        weight: Any = None
        for key in _LOAD_WEIGHT_ALIASES:
            if key in payload:
                weight = payload[key]
                break
        return cls(
            pwm=coerce_number(payload.get("pwm")),
            rpm=coerce_number(payload.get("rpm")),
            load_weight=coerce_number(weight),
        )


@dataclass(frozen=True, slots=True)
class EnrichedRecord:
    """A reading stamped with the day's running totals at processing time."""

    reading: SensorReading
    cumulative_kwh: float
    cumulative_cost: float
    observed_at_millis: int

    @property
    def pwm(self) -> float:
        return self.reading.pwm

    @property
    def rpm(self) -> float:
        return self.reading.rpm

    @property
    def load_weight(self) -> float:
        return self.reading.load_weight
