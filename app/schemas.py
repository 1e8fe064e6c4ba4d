"""Pydantic schemas for the HTTP API layer and the persisted stores."""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from models.records import EnrichedRecord, SensorReading


class SensorReadingIn(BaseModel):
    """Payload accepted when a producer writes a raw reading."""

    pwm: float = Field(..., description="PWM duty value sent to the motor driver.")
    rpm: float = Field(..., description="Measured motor speed.")
    load_weight: float = Field(
        ...,
        validation_alias=AliasChoices("load_weight", "berat"),
        description="Weight currently on the load cell.",
    )

    def to_reading(self) -> SensorReading:
        return SensorReading.from_mapping(self.model_dump())


class StoredReading(BaseModel):
    """The latest raw reading as kept by the reading store."""

    pwm: float
    rpm: float
    load_weight: float
    timestamp: int = Field(..., description="Write time in epoch milliseconds.")


class WriteAck(BaseModel):
    success: bool = True
    message: str


class DailyLedgerEntry(BaseModel):
    """Running energy and cost totals for one local calendar date."""

    date: Date
    total_kwh: float = Field(default=0.0, ge=0)
    total_cost: float = Field(default=0.0, ge=0)
    updated_at: Optional[datetime] = None


class EnrichedRecordOut(BaseModel):
    pwm: float
    rpm: float
    load_weight: float
    total_kwh: float
    total_cost: float
    timestamp: int

    @classmethod
    def from_record(cls, record: EnrichedRecord) -> "EnrichedRecordOut":
        return cls(
            pwm=record.pwm,
            rpm=record.rpm,
            load_weight=record.load_weight,
            total_kwh=record.cumulative_kwh,
            total_cost=record.cumulative_cost,
            timestamp=record.observed_at_millis,
        )


class HistoryResponse(BaseModel):
    data: List[EnrichedRecordOut] = Field(default_factory=list)
    count: int = Field(..., ge=0)
