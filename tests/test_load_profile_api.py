"""
tests/test_load_profile_api.py

HTTP tests for the load-profile router using FastAPI's TestClient against an
in-memory SQLite database.
"""

from __future__ import annotations

from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.api.routers.load_profile import router as load_profile_router
from app.config import ProfilingSettings
from app.services.load_profile_service import LoadProfileService, get_load_profile_service
from db.repositories.load_profile_repository import LoadProfileRepository
from db.session import get_db


@pytest.fixture()
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    app = FastAPI()
    app.include_router(load_profile_router)

    def _get_test_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_load_profile_service] = lambda: LoadProfileService(
        settings=ProfilingSettings()
    )
    with TestClient(app) as test_client:
        yield test_client


def _upload(text: str, filename: str = "shop12.csv", content_type: str = "text/csv") -> dict:
    return {"file": (filename, text.encode("utf-8"), content_type)}


class TestPreview:
    def test_returns_headers_and_rows(self, client: TestClient, hourly_export: Callable[..., str]) -> None:
        response = client.post("/load-profiles/preview", files=_upload(hourly_export(days=2)))

        assert response.status_code == 200
        body = response.json()
        assert body["headers"] == ["Date", "Time", "kWh"]
        assert body["rows"][0] == ["2024-01-01", "00:00", "1.0"]
        assert body["total_rows"] == 48
        assert body["detection"]["delimiters"] == [","]
        assert body["detection"]["start_row"] == 1

    def test_rejects_non_text_upload(self, client: TestClient) -> None:
        response = client.post(
            "/load-profiles/preview",
            files=_upload("irrelevant", filename="meter.xlsx", content_type="application/octet-stream"),
        )

        assert response.status_code == 400


class TestProcess:
    def test_processes_and_stores(
        self,
        client: TestClient,
        session_factory: sessionmaker,
        hourly_export: Callable[..., str],
    ) -> None:
        response = client.post("/load-profiles/process", files=_upload(hourly_export()))

        assert response.status_code == 200
        body = response.json()
        assert body["meter_name"] == "shop12"
        assert body["value_column"] == "kWh"
        assert body["unit"] == "kWh"
        assert body["rows_skipped"] == 0
        profile = body["profile"]
        assert profile["weekday_days"] == 10
        assert profile["weekend_days"] == 4
        assert profile["peak_kw"] == pytest.approx(3.0)
        assert sum(profile["weekday_profile"]) == pytest.approx(100.0, abs=0.01)

        session = session_factory()
        try:
            assert LoadProfileRepository(session).get_by_meter_name("shop12") is not None
        finally:
            session.close()

    def test_explicit_meter_name_wins(self, client: TestClient, hourly_export: Callable[..., str]) -> None:
        response = client.post(
            "/load-profiles/process",
            params={"meter_name": "Main Feeder"},
            files=_upload(hourly_export()),
        )

        assert response.status_code == 200
        assert response.json()["meter_name"] == "Main Feeder"

    def test_rerun_reuses_stored_column(self, client: TestClient) -> None:
        lines = ["Date,Time,kWh A,kWh B"]
        for day in (1, 2, 3):
            for hour in range(24):
                lines.append(f"2024-01-0{day},{hour:02d}:00,{1.0 + hour % 3},{5.0 if hour == 7 else 0.5}")
        text = "\n".join(lines)

        first = client.post(
            "/load-profiles/process",
            params={"meter_name": "M1", "value_column_index": 3},
            files=_upload(text),
        )
        second = client.post(
            "/load-profiles/process",
            params={"meter_name": "M1"},
            files=_upload(text),
        )

        assert first.json()["value_column"] == "kWh B"
        assert second.json()["value_column"] == "kWh B"

    def test_invalid_unit_is_unprocessable(self, client: TestClient, hourly_export: Callable[..., str]) -> None:
        response = client.post(
            "/load-profiles/process",
            params={"unit": "furlongs"},
            files=_upload(hourly_export()),
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_unit"
        assert detail["needs_reconfiguration"] is False

    def test_empty_export_needs_reconfiguration(self, client: TestClient) -> None:
        response = client.post("/load-profiles/process", files=_upload("Date,Time,kWh\n"))

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "empty_profile"
        assert detail["needs_reconfiguration"] is True

    def test_rejects_power_factor_out_of_range(
        self, client: TestClient, hourly_export: Callable[..., str]
    ) -> None:
        response = client.post(
            "/load-profiles/process",
            params={"power_factor": 1.5},
            files=_upload(hourly_export()),
        )

        assert response.status_code == 422


class TestGetStored:
    def test_unknown_meter_is_404(self, client: TestClient) -> None:
        assert client.get("/load-profiles/nobody").status_code == 404

    def test_returns_stored_profile(self, client: TestClient, hourly_export: Callable[..., str]) -> None:
        client.post(
            "/load-profiles/process",
            params={"meter_name": "M1"},
            files=_upload(hourly_export()),
        )

        response = client.get("/load-profiles/M1")

        assert response.status_code == 200
        body = response.json()
        assert len(body["weekday_profile"]) == 24
        assert body["date_range_start"] == "2024-01-01"
        assert body["date_range_end"] == "2024-01-14"
        assert body["detected_interval_minutes"] == 60
