"""
Tests del contrato HTTP de la API de monitoreo.

El store se reemplaza via dependency_overrides; el validador se
reemplaza en el modulo del endpoint.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FakeReportStore
from mentor_sync.api.v1.dependencies.repository_deps import get_report_store
from mentor_sync.api.v1.endpoints import monitoring
from mentor_sync.infrastructure.external.sheets_sync.drift_validator import (
    CheckResult,
    Severity,
    ValidationReport,
)
from mentor_sync.shared.exceptions.sync import DestinationQueryError

T0 = datetime(2025, 3, 5, 6, 30, tzinfo=timezone.utc)


def _log(record_id: str, *, program: str = "Bangkit", table: str = "reports", minutes: int = 0) -> dict:
    return {
        "operation_type": "sync",
        "table_name": table,
        "record_id": record_id,
        "program": program,
        "user_email": "system@sync",
        "sheets_success": True,
        "supabase_success": False,
        "supabase_error": "Mentor not found: x@y.com",
        "created_at": T0 + timedelta(minutes=minutes),
    }


@pytest.fixture
def store() -> FakeReportStore:
    return FakeReportStore(
        {
            "dual_write_logs": [
                _log("row_2", minutes=0),
                _log("row_3", minutes=5),
                _log("entrepreneur_e1_Sesi 2", program="UM", table="upward_mobility_reports", minutes=10),
            ]
        }
    )


@pytest.fixture
def app_with_store(store: FakeReportStore):
    from mentor_sync.main import create_application
    app = create_application()
    app.dependency_overrides[get_report_store] = lambda: store
    yield app
    app.dependency_overrides.clear()


async def _get(app, url: str, **params):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(url, params=params)


@pytest.mark.asyncio
async def test_health_ok(app_with_store) -> None:
    response = await _get(app_with_store, "/api/v1/monitoring/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"


@pytest.mark.asyncio
async def test_health_degraded_when_destination_fails(app_with_store, store: FakeReportStore) -> None:
    store.fail_reads["dual_write_logs"] = DestinationQueryError("permission denied", table="dual_write_logs")

    response = await _get(app_with_store, "/api/v1/monitoring/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "permission denied"


@pytest.mark.asyncio
async def test_discrepancies_newest_first(app_with_store) -> None:
    response = await _get(app_with_store, "/api/v1/monitoring/discrepancies")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [item["record_id"] for item in data["items"]] == [
        "entrepreneur_e1_Sesi 2",
        "row_3",
        "row_2",
    ]


@pytest.mark.asyncio
async def test_discrepancies_filters(app_with_store) -> None:
    response = await _get(app_with_store, "/api/v1/monitoring/discrepancies", program="Bangkit", limit=1)

    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["record_id"] == "row_3"

    response = await _get(app_with_store, "/api/v1/monitoring/discrepancies", table="upward_mobility_reports")
    assert [i["program"] for i in response.json()["items"]] == ["UM"]


@pytest.mark.asyncio
async def test_discrepancies_limit_is_bounded(app_with_store) -> None:
    response = await _get(app_with_store, "/api/v1/monitoring/discrepancies", limit=500)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_runs_read_only(app_with_store, monkeypatch) -> None:
    calls = []

    def fake_run_validation(settings, *, limit=None, live=False):
        calls.append({"limit": limit, "live": live})
        report = ValidationReport(started_at=T0)
        report.add(CheckResult(name="count:Bangkit", severity=Severity.CRITICAL, message="diff 6", program="Bangkit"))
        report.finished_at = T0
        return report

    monkeypatch.setattr(monitoring, "run_validation", fake_run_validation)

    response = await _get(app_with_store, "/api/v1/monitoring/validate", limit=3)

    assert response.status_code == 200
    data = response.json()
    assert data["exit_code"] == 1
    assert data["totals"]["CRITICAL"] == 1
    assert data["checks"][0]["name"] == "count:Bangkit"
    assert calls == [{"limit": 3, "live": False}]


@pytest.mark.asyncio
async def test_lifespan_configures_logging_once(monkeypatch) -> None:
    from mentor_sync.core import events
    from mentor_sync.main import create_application

    calls = []
    monkeypatch.setattr(events, "configure_logging", lambda: calls.append("configured"))
    app = create_application()

    async with app.router.lifespan_context(app):
        assert calls == ["configured"]

    assert calls == ["configured"]
