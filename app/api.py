"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    DailyLedgerEntry,
    EnrichedRecordOut,
    HistoryResponse,
    SensorReadingIn,
    StoredReading,
    WriteAck,
)
from services.sensors import SensorService, build_default_sensor_service
from storage.readings import ReadingStoreError

router = APIRouter()


def get_sensor_service() -> SensorService:
    return build_default_sensor_service()


@router.post(
    "/sensors",
    status_code=status.HTTP_201_CREATED,
    response_model=WriteAck,
    summary="Write the latest raw sensor reading.",
)
async def write_sensor_reading(
    payload: SensorReadingIn,
    service: SensorService = Depends(get_sensor_service),
) -> WriteAck:
    try:
        service.write_reading(payload.to_reading())
    except ReadingStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return WriteAck(message="Sensor data written successfully")


@router.get(
    "/sensors",
    response_model=StoredReading,
    summary="Fetch the most recently written raw reading.",
)
async def read_sensor_reading(
    service: SensorService = Depends(get_sensor_service),
) -> StoredReading:
    reading = service.read_latest_reading()
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sensor data not found",
        )
    return reading


@router.get(
    "/sensors/history",
    response_model=HistoryResponse,
    summary="Recent readings enriched with the day's running energy totals.",
)
async def read_sensor_history(
    service: SensorService = Depends(get_sensor_service),
) -> HistoryResponse:
    records = [EnrichedRecordOut.from_record(record) for record in service.get_history()]
    return HistoryResponse(data=records, count=len(records))


@router.get(
    "/ledger",
    response_model=list[DailyLedgerEntry],
    summary="All daily ledger entries, newest first.",
)
async def list_ledger_entries(
    service: SensorService = Depends(get_sensor_service),
) -> list[DailyLedgerEntry]:
    return service.list_daily_entries()


@router.get(
    "/ledger/{day}",
    response_model=DailyLedgerEntry,
    summary="Energy and cost totals for one calendar date.",
)
async def read_ledger_entry(
    day: date,
    service: SensorService = Depends(get_sensor_service),
) -> DailyLedgerEntry:
    try:
        return service.get_daily_entry(day)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
