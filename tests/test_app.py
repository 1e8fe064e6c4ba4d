import time
from datetime import date
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.ledger import MockLedgerTable, build_default_ledger
from services.engine import EnergyAccumulationEngine
from services.sensors import SensorService, build_default_sensor_service
from settings import get_settings
from storage.readings import MockReadingStore, build_default_reading_store


@pytest.fixture
def services() -> Dict[str, SensorService]:
    return {}


@pytest.fixture
def api_client(tmp_path, monkeypatch, services) -> Iterator[TestClient]:
    def build_test_service(clock=None) -> SensorService:
        service = services.get("default")
        if service is None:
            ledger = MockLedgerTable(name="test", persistence_path=tmp_path / "ledger.json")
            store = MockReadingStore(name="test", persistence_path=tmp_path / "latest.json")
            engine = EnergyAccumulationEngine(ledger, sleep=lambda _s: None)
            service = SensorService(store=store, ledger=ledger, engine=engine)
            services["default"] = service
        return service

    def cache_clear() -> None:
        while services:
            _, service = services.popitem()
            service.shutdown()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_sensor_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_sensor_service", build_test_service)
    monkeypatch.setattr("services.sensors.build_default_sensor_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def _poll_history(client: TestClient, expected: int, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    last_payload: dict | None = None
    while time.monotonic() < deadline:
        response = client.get("/sensors/history")
        assert response.status_code == 200
        payload = response.json()
        last_payload = payload
        if payload["count"] >= expected:
            return payload
        time.sleep(0.02)
    pytest.fail(f"History never reached {expected} records: {last_payload}")


def test_lifespan_starts_and_shuts_down_service(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LEDGER_PERSISTENCE_PATH", str(tmp_path / "ledger.json"))
    monkeypatch.setenv("READING_STORE_PATH", str(tmp_path / "latest.json"))
    caches = (get_settings, build_default_ledger, build_default_reading_store, build_default_sensor_service)
    for cache in caches:
        cache.cache_clear()

    app = create_app()
    try:
        with TestClient(app):
            service_during = build_default_sensor_service()
            assert service_during.pump.is_running
            assert service_during.scheduler.is_running

        assert not service_during.pump.is_running
        assert not service_during.scheduler.is_running
        service_after = build_default_sensor_service()
        assert service_after is not service_during
    finally:
        build_default_sensor_service.cache_clear()
        for cache in caches:
            cache.cache_clear()


def test_write_then_read_latest(api_client: TestClient) -> None:
    response = api_client.post("/sensors", json={"pwm": 128, "rpm": 1500, "load_weight": 2.0})

    assert response.status_code == 201
    assert response.json() == {"success": True, "message": "Sensor data written successfully"}

    latest = api_client.get("/sensors")
    assert latest.status_code == 200
    body = latest.json()
    assert body["pwm"] == 128
    assert body["load_weight"] == 2.0
    assert isinstance(body["timestamp"], int)


def test_written_readings_appear_in_history(api_client: TestClient) -> None:
    for pwm in (50, 60):
        assert api_client.post("/sensors", json={"pwm": pwm, "rpm": 0, "load_weight": 0}).status_code == 201

    payload = _poll_history(api_client, expected=2)

    assert payload["count"] == 2
    assert [record["pwm"] for record in payload["data"]] == [50, 60]
    assert set(payload["data"][0]) == {"pwm", "rpm", "load_weight", "total_kwh", "total_cost", "timestamp"}


def test_write_accepts_legacy_weight_key(api_client: TestClient) -> None:
    response = api_client.post("/sensors", json={"pwm": 100, "rpm": 900, "berat": 2.5})

    assert response.status_code == 201
    assert api_client.get("/sensors").json()["load_weight"] == 2.5


def test_write_missing_field_is_rejected(api_client: TestClient) -> None:
    response = api_client.post("/sensors", json={"pwm": 10, "rpm": 5})

    assert response.status_code == 422


def test_read_latest_when_empty_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/sensors")

    assert response.status_code == 404
    assert response.json()["detail"] == "Sensor data not found"


def test_ledger_endpoints(api_client: TestClient, services) -> None:
    service = services["default"]
    service.ledger.transactional_accumulate(date(2024, 2, 1), 0.3, 450.0)

    entry = api_client.get("/ledger/2024-02-01")
    assert entry.status_code == 200
    assert entry.json()["total_cost"] == pytest.approx(450.0)

    listing = api_client.get("/ledger")
    assert listing.status_code == 200
    assert "2024-02-01" in [item["date"] for item in listing.json()]

    missing = api_client.get("/ledger/2023-02-01")
    assert missing.status_code == 404
    assert "2023-02-01" in missing.json()["detail"]

    assert api_client.get("/ledger/not-a-date").status_code == 422


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
