from __future__ import annotations

import pytest

from conftest import (
    FakePgRepository,
    FakeReportStore,
    FakeRowSource,
    bangkit_record,
    bangkit_specs,
    sheet_values,
    um_record,
    um_specs,
)
from mentor_sync.infrastructure.external.sheets_sync.drift_validator import (
    DriftThresholds,
    DriftValidator,
    Severity,
    classify_count_drift,
    run_validation,
)
from mentor_sync.infrastructure.external.sheets_sync.sync_service import build_job
from mentor_sync.infrastructure.external.sheets_sync.table_mappings import get_report_sync_config
from mentor_sync.infrastructure.external.sheets_sync.types import build_rows
from mentor_sync.shared.constants.sync_constants import Program
from mentor_sync.shared.exceptions.sync import DestinationQueryError


@pytest.mark.parametrize(
    "diff, expected",
    [
        (0, Severity.PASS),
        (3, Severity.WARNING),
        (-5, Severity.WARNING),
        (6, Severity.CRITICAL),
        (-6, Severity.CRITICAL),
    ],
)
def test_classify_count_drift(diff, expected) -> None:
    assert classify_count_drift(diff, threshold=5) is expected


def _bangkit_sheet(n: int = 10) -> dict[str, list[list[str]]]:
    records = [bangkit_record(**{"Sesi Laporan": f"Sesi #{i + 2}"}) for i in range(n)]
    return {"V8": sheet_values(bangkit_specs(), records)}


def _synced(store: FakeReportStore, settings, sheets, *, limit=None, program=Program.BANGKIT) -> None:
    config = get_report_sync_config(program, settings)
    rows = build_rows(sheets[config.tab_name])
    build_job(config, store, settings).run(rows, limit=limit)


def _validator(store, settings, sheets, program=Program.BANGKIT) -> DriftValidator:
    return DriftValidator(
        source=FakeRowSource(sheets),
        store=store,
        configs={program: get_report_sync_config(program, settings)},
        thresholds=DriftThresholds(),
    )


def _by_name(report):
    return {c.name: c for c in report.checks}


def test_missing_rows_beyond_threshold_is_critical(seeded_store, settings) -> None:
    sheets = _bangkit_sheet(10)
    _synced(seeded_store, settings, sheets, limit=4)

    report = _validator(seeded_store, settings, sheets).run()
    checks = _by_name(report)

    assert checks["count:Bangkit"].severity is Severity.CRITICAL
    assert checks["count:Bangkit"].details == {"sheets_count": 10, "db_count": 4, "diff": -6}
    assert checks["recent:Bangkit"].severity is Severity.CRITICAL
    assert checks["recent:Bangkit"].details["missing_rows"] == [6, 7, 8, 9, 10, 11]
    assert report.exit_code == 1


def test_small_drift_is_warning_and_exits_zero(seeded_store, settings) -> None:
    sheets = _bangkit_sheet(10)
    _synced(seeded_store, settings, sheets)
    session_id = seeded_store.committed_rows("sessions")[0]["id"]
    # Tres reportes en Postgres que ya no estan en la hoja
    for position in (200, 201, 202):
        seeded_store.insert(
            "reports",
            {
                "program": "Bangkit",
                "sheets_row_number": position,
                "session_id": session_id,
                "doc_url": "https://docs.google.com/document/d/old",
            },
        )
    seeded_store.commit()

    report = _validator(seeded_store, settings, sheets).run()
    checks = _by_name(report)

    assert checks["count:Bangkit"].severity is Severity.WARNING
    assert checks["count:Bangkit"].details["diff"] == 3
    assert checks["recent:Bangkit"].severity is Severity.PASS
    assert checks["spot_check:Bangkit"].severity is Severity.WARNING
    assert checks["doc_url:Bangkit"].severity is Severity.PASS
    assert checks["integrity:reports_without_session"].severity is Severity.PASS
    assert checks["integrity:orphan_sessions"].severity is Severity.PASS
    assert report.exit_code == 0


def test_in_sync_everything_passes(seeded_store, settings) -> None:
    sheets = _bangkit_sheet(3)
    _synced(seeded_store, settings, sheets)

    report = _validator(seeded_store, settings, sheets).run()

    assert report.count(Severity.CRITICAL) == 0
    assert report.count(Severity.WARNING) == 0
    assert _by_name(report)["spot_check:Bangkit"].message == "3 registros revisados: 0 diferencias"


def test_spot_check_reports_field_mismatch(seeded_store, settings) -> None:
    sheets = _bangkit_sheet(1)
    _synced(seeded_store, settings, sheets)
    report_id = seeded_store.committed_rows("reports")[0]["id"]
    seeded_store.update("reports", report_id, {"mia_status": "MIA"})
    seeded_store.commit()

    check = _validator(seeded_store, settings, sheets).check_spot(Program.BANGKIT)

    assert check.severity is Severity.WARNING
    assert check.details["mismatches"] == [
        {"row": 2, "field": "mia_status", "db": "MIA", "sheets": "Selesai"}
    ]


def test_orphan_sessions_are_reported(seeded_store, settings) -> None:
    seeded_store.insert("sessions", {"mentor_id": "mentor-a", "entrepreneur_id": "ent-siti", "program": "Bangkit"})
    seeded_store.commit()

    check = _validator(seeded_store, settings, {}).check_orphan_sessions()

    assert check.severity is Severity.WARNING
    assert len(check.details["session_ids"]) == 1


def test_um_count_uses_latest_row_per_key(seeded_store, settings) -> None:
    sheets = {
        "UM": sheet_values(
            um_specs(),
            [
                um_record(),
                um_record(**{"Jumlah Pendapatan (Selepas)": "RM 3,000"}),
                um_record(**{"Nama Penuh Usahawan": "Ali Bakar", "Sesi Mentoring": "Sesi 1"}),
            ],
        )
    }
    _synced(seeded_store, settings, sheets, program=Program.UPWARD_MOBILITY)

    validator = _validator(seeded_store, settings, sheets, program=Program.UPWARD_MOBILITY)
    count = validator.check_count(Program.UPWARD_MOBILITY)
    recent = validator.check_recent(Program.UPWARD_MOBILITY)

    assert count.severity is Severity.PASS
    assert count.details["sheets_count"] == 2
    assert recent.severity is Severity.PASS


def test_failed_query_becomes_check_result(seeded_store, settings) -> None:
    seeded_store.fail_reads["reports"] = DestinationQueryError("relation \"reports\" does not exist", table="reports")

    report = _validator(seeded_store, settings, _bangkit_sheet(2)).run()
    count = _by_name(report)["count:Bangkit"]

    assert count.severity is Severity.CRITICAL
    assert count.message.startswith("No se pudo ejecutar el check")
    assert count.details["error_code"] == "DESTINATION_QUERY_FAILED"
    assert _by_name(report)["spot_check:Bangkit"].severity is Severity.WARNING
    assert report.exit_code == 1


def test_thresholds_are_capped_by_test_limit(settings) -> None:
    thresholds = DriftThresholds.from_settings(settings, limit=3)

    assert thresholds.recent_window == 3
    assert thresholds.spot_check_sample == 3
    assert thresholds.count_warning == settings.DRIFT_WARNING_THRESHOLD


def _store_with_unsynced_reports() -> FakeReportStore:
    return FakeReportStore(
        {
            "reports": [
                {"program": "Bangkit", "sheets_row_number": 2, "doc_url": None, "session_id": None},
                {"program": "Bangkit", "sheets_row_number": 3, "doc_url": None, "session_id": None},
            ]
        }
    )


def test_run_validation_dry_run_writes_nothing(settings) -> None:
    store = _store_with_unsynced_reports()

    report = run_validation(settings, source=FakeRowSource(), pg_repo=FakePgRepository(store))

    assert report.exit_code == 0
    assert report.count(Severity.WARNING) == 3
    assert store.committed_rows("dual_write_logs") == []


def test_run_validation_live_records_findings(settings) -> None:
    store = _store_with_unsynced_reports()

    report = run_validation(settings, live=True, source=FakeRowSource(), pg_repo=FakePgRepository(store))

    entries = store.committed_rows("dual_write_logs")
    assert {e["record_id"] for e in entries} == {
        "count:Bangkit",
        "spot_check:Bangkit",
        "integrity:reports_without_session",
    }
    assert all(e["operation_type"] == "validate" for e in entries)
    assert report.to_dict()["totals"]["WARNING"] == 3
