from __future__ import annotations

from conftest import FakeReportStore
from mentor_sync.infrastructure.external.sheets_sync.discrepancy_logger import (
    DiscrepancyLogger,
    row_record_id,
    um_record_id,
)
from mentor_sync.shared.constants.sync_constants import OperationType, Program, Table
from mentor_sync.shared.exceptions.sync import UpsertFailedError


def test_log_sync_failure_writes_and_commits() -> None:
    store = FakeReportStore()
    logger_ = DiscrepancyLogger(store, user_email="cron@sync")

    ok = logger_.log_sync_failure(
        table=Table.REPORTS,
        record_id=row_record_id(7),
        program=Program.BANGKIT,
        error="Mentor not found: x@y.com",
    )

    assert ok is True
    assert store.commits == 1
    [entry] = store.committed_rows("dual_write_logs")
    assert entry["operation_type"] == "sync"
    assert entry["table_name"] == "reports"
    assert entry["record_id"] == "row_7"
    assert entry["program"] == "Bangkit"
    assert entry["user_email"] == "cron@sync"
    assert entry["sheets_success"] is True
    assert entry["supabase_success"] is False
    assert entry["supabase_error"] == "Mentor not found: x@y.com"


def test_log_truncates_long_errors() -> None:
    store = FakeReportStore()
    DiscrepancyLogger(store).log_sync_failure(
        table=Table.REPORTS,
        record_id="row_2",
        program="Maju",
        error="x" * 5000,
        operation_type=OperationType.BACKFILL,
    )

    [entry] = store.rows("dual_write_logs")
    assert len(entry["supabase_error"]) == 2000
    assert entry["operation_type"] == "backfill"
    assert entry["program"] == "Maju"


def test_log_failure_never_raises() -> None:
    store = FakeReportStore()
    store.fail_inserts["dual_write_logs"] = UpsertFailedError("tabla no existe", table="dual_write_logs")

    ok = DiscrepancyLogger(store).log_sync_failure(
        table=Table.REPORTS, record_id="row_2", program=Program.BANGKIT, error="boom"
    )

    assert ok is False
    assert store.rollbacks == 1


def test_record_id_formats() -> None:
    assert row_record_id(5) == "row_5"
    assert um_record_id("e1", "Sesi 2") == "entrepreneur_e1_Sesi 2"
