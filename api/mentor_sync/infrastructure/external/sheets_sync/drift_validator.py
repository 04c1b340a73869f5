"""
DriftValidator: chequeos de solo lectura entre Sheets y Postgres.

Checks (cada uno clasificado PASS / INFO / WARNING / CRITICAL):
1. Conteo por programa/tipo de reporte
2. Recencia: las ultimas N filas del origen existen en destino
3. Spot check de campos en registros ya sincronizados
4. Completitud de doc_url (se genera de forma asincrona)
5. Integridad referencial reporte <-> sesion

El exit code es distinto de 0 si y solo si hay algun CRITICAL. Nunca escribe
en las tablas de reportes; con --live los hallazgos se registran en
dual_write_logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from loguru import logger

from mentor_sync.core.config import Settings
from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.shared.constants.sync_constants import OperationType, Program, Table
from mentor_sync.shared.exceptions.sync import SyncException

from .discrepancy_logger import DiscrepancyEntry, DiscrepancyLogger
from .field_mappers import find_missing_identity, get_mapper
from .sheets_client import SheetRef, SheetsRowSource
from .sync_config import ReportSyncConfig
from .sync_service import build_pg_repository
from .table_mappings import UMColumns, get_report_sync_config
from .types import ColumnAccessor, SourceRow, utc_now
from .upserter import diff_fields

REPORT_PROGRAMS = (Program.BANGKIT, Program.MAJU)

# Campos comparados en el spot check, por variante
SPOT_CHECK_FIELDS: dict[Program, tuple[str, ...]] = {
    Program.BANGKIT: ("nama_usahawan", "mentor_email", "session_number", "session_date", "mia_status"),
    Program.MAJU: ("nama_mentee", "mentor_email", "session_number", "session_date", "mia_status"),
    Program.UPWARD_MOBILITY: ("sesi_mentoring", "upward_mobility_status", "pendapatan_selepas"),
}

# Mismatches listados en details
_MAX_DETAILS = 5


class Severity(str, Enum):
    PASS = "PASS"
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class CheckResult:
    name: str
    severity: Severity
    message: str
    program: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "severity": self.severity.value,
            "message": self.message,
            "program": self.program,
            "details": self.details,
        }


@dataclass
class ValidationReport:
    checks: list[CheckResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    def add(self, check: CheckResult) -> None:
        self.checks.append(check)
        log = {
            Severity.PASS: logger.info,
            Severity.INFO: logger.info,
            Severity.WARNING: logger.warning,
            Severity.CRITICAL: logger.error,
        }[check.severity]
        log(f"[{check.severity.value}] {check.name}: {check.message}")

    def count(self, severity: Severity) -> int:
        return sum(1 for c in self.checks if c.severity is severity)

    @property
    def has_critical(self) -> bool:
        return self.count(Severity.CRITICAL) > 0

    @property
    def exit_code(self) -> int:
        return 1 if self.has_critical else 0

    def summary_lines(self) -> list[str]:
        lines = [
            "Resumen de validacion:",
            f"  PASS:     {self.count(Severity.PASS)}",
            f"  INFO:     {self.count(Severity.INFO)}",
            f"  WARNING:  {self.count(Severity.WARNING)}",
            f"  CRITICAL: {self.count(Severity.CRITICAL)}",
        ]
        for check in self.checks:
            if check.severity in (Severity.WARNING, Severity.CRITICAL):
                lines.append(f"  - [{check.severity.value}] {check.name}: {check.message}")
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "exit_code": self.exit_code,
            "totals": {s.value: self.count(s) for s in Severity},
            "checks": [c.to_dict() for c in self.checks],
        }


def classify_count_drift(diff: int, threshold: int) -> Severity:
    """|diff| == 0 PASS, <= threshold WARNING, > threshold CRITICAL."""
    magnitude = abs(diff)
    if magnitude == 0:
        return Severity.PASS
    if magnitude <= threshold:
        return Severity.WARNING
    return Severity.CRITICAL


class RowFetcher(Protocol):
    def fetch(self, ref: SheetRef) -> list[SourceRow]:
        ...


@dataclass(frozen=True)
class DriftThresholds:
    count_warning: int = 5
    recent_window: int = 10
    spot_check_sample: int = 10
    doc_url_warning: int = 10
    missing_session_critical: int = 10

    @classmethod
    def from_settings(cls, settings: Settings, *, limit: Optional[int] = None) -> "DriftThresholds":
        recent = settings.RECENT_ROWS_WINDOW
        sample = settings.SPOT_CHECK_SAMPLE_SIZE
        if limit is not None:
            recent = min(recent, limit)
            sample = min(sample, limit)
        return cls(
            count_warning=settings.DRIFT_WARNING_THRESHOLD,
            recent_window=recent,
            spot_check_sample=sample,
            doc_url_warning=settings.DOC_URL_WARNING_THRESHOLD,
            missing_session_critical=settings.MISSING_SESSION_CRITICAL_THRESHOLD,
        )


class DriftValidator:
    def __init__(
        self,
        *,
        source: RowFetcher,
        store: IReportStore,
        configs: dict[Program, ReportSyncConfig],
        thresholds: DriftThresholds = DriftThresholds(),
    ) -> None:
        self._source = source
        self._store = store
        self._configs = configs
        self._thresholds = thresholds
        self._rows_cache: dict[Program, list[SourceRow]] = {}

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _complete_rows(self, program: Program) -> list[SourceRow]:
        """Filas que el sync procesaria (identidad completa). Cacheadas por corrida."""
        if program not in self._rows_cache:
            config = self._configs[program]
            rows = self._source.fetch(config.sheet_ref)
            self._rows_cache[program] = [r for r in rows if not find_missing_identity(r, config)]
        return self._rows_cache[program]

    def _destination_filter(self, program: Program) -> dict[str, Any]:
        if program is Program.UPWARD_MOBILITY:
            return {}
        return {"program": program.value}

    def _run_check(
        self,
        report: ValidationReport,
        name: str,
        program: Optional[Program],
        check: Callable[[], CheckResult],
        failure_severity: Severity,
    ) -> None:
        try:
            report.add(check())
        except SyncException as e:
            # Una consulta fallida deja la transaccion abortada para los checks siguientes
            self._safe_rollback()
            report.add(
                CheckResult(
                    name=name,
                    severity=failure_severity,
                    message=f"No se pudo ejecutar el check: {e.message}",
                    program=program.value if program else None,
                    details={"error": e.message, "error_code": e.error_code},
                )
            )

    def _safe_rollback(self) -> None:
        try:
            self._store.rollback()
        except SyncException as e:
            logger.error(f"Rollback fallo durante la validacion: {e.message}")

    # ------------------------------------------------------------------
    # checks
    # ------------------------------------------------------------------
    def check_count(self, program: Program) -> CheckResult:
        config = self._configs[program]
        rows = self._complete_rows(program)
        if program is Program.UPWARD_MOBILITY:
            rows = _latest_per_um_key(rows)
        source_count = len(rows)
        db_count = self._store.count(config.target_table.value, self._destination_filter(program))
        diff = db_count - source_count
        severity = classify_count_drift(diff, self._thresholds.count_warning)

        if diff == 0:
            message = f"Sheets: {source_count} | Postgres: {db_count}"
        else:
            side = "Postgres tiene mas" if diff > 0 else "Sheets tiene mas"
            message = f"Sheets: {source_count} | Postgres: {db_count} ({side}, diff: {abs(diff)})"
        return CheckResult(
            name=f"count:{program.value}",
            severity=severity,
            message=message,
            program=program.value,
            details={"sheets_count": source_count, "db_count": db_count, "diff": diff},
        )

    def check_recent(self, program: Program) -> CheckResult:
        config = self._configs[program]
        window = self._thresholds.recent_window
        rows = self._complete_rows(program)
        if program is Program.UPWARD_MOBILITY:
            rows = _latest_per_um_key(rows)
        recent = rows[-window:] if window > 0 else []

        missing = []
        for row in recent:
            where = {"sheets_row_number": row.position, **self._destination_filter(program)}
            if self._store.find_one(config.target_table.value, where) is None:
                missing.append(row.position)

        if missing:
            return CheckResult(
                name=f"recent:{program.value}",
                severity=Severity.CRITICAL,
                message=f"{len(missing)} de las ultimas {len(recent)} filas no estan en Postgres",
                program=program.value,
                details={"missing_rows": missing},
            )
        return CheckResult(
            name=f"recent:{program.value}",
            severity=Severity.PASS,
            message=f"Ultimas {len(recent)} filas presentes",
            program=program.value,
        )

    def check_spot(self, program: Program) -> CheckResult:
        config = self._configs[program]
        fields = SPOT_CHECK_FIELDS[program]
        samples = self._store.find_many(
            config.target_table.value,
            self._destination_filter(program),
            columns=("id", "sheets_row_number") + fields,
            not_null_columns=("sheets_row_number",),
            order_by=("-sheets_row_number",),
            limit=self._thresholds.spot_check_sample,
        )
        by_position = {row.position: row for row in self._complete_rows(program)}
        mapper = get_mapper(program)

        mismatches: list[dict[str, Any]] = []
        for db_record in samples:
            position = db_record["sheets_row_number"]
            source_row = by_position.get(position)
            if source_row is None:
                mismatches.append({"row": position, "issue": "fila no encontrada en Sheets"})
                continue
            expected = mapper(source_row).base_record()
            changed = diff_fields(db_record, {f: expected.get(f) for f in fields})
            for f in changed:
                mismatches.append(
                    {"row": position, "field": f, "db": db_record.get(f), "sheets": expected.get(f)}
                )

        severity = Severity.WARNING if mismatches else Severity.PASS
        return CheckResult(
            name=f"spot_check:{program.value}",
            severity=severity,
            message=f"{len(samples)} registros revisados: {len(mismatches)} diferencias",
            program=program.value,
            details={"mismatches": [_jsonable(m) for m in mismatches[:_MAX_DETAILS]]},
        )

    def check_doc_urls(self, program: Program) -> CheckResult:
        missing = self._store.count(
            Table.REPORTS.value,
            {"program": program.value},
            null_columns=("doc_url",),
        )
        if missing == 0:
            severity = Severity.PASS
        elif missing <= self._thresholds.doc_url_warning:
            severity = Severity.INFO
        else:
            severity = Severity.WARNING
        return CheckResult(
            name=f"doc_url:{program.value}",
            severity=severity,
            message=f"{missing} reportes sin doc_url",
            program=program.value,
            details={"missing": missing},
        )

    def check_missing_sessions(self) -> CheckResult:
        missing = 0
        for program in REPORT_PROGRAMS:
            missing += self._store.count(
                Table.REPORTS.value,
                {"program": program.value},
                null_columns=("session_id",),
            )
        if missing == 0:
            severity = Severity.PASS
        elif missing <= self._thresholds.missing_session_critical:
            severity = Severity.WARNING
        else:
            severity = Severity.CRITICAL
        return CheckResult(
            name="integrity:reports_without_session",
            severity=severity,
            message=f"{missing} reportes con session_id NULL",
            details={"missing": missing},
        )

    def check_orphan_sessions(self) -> CheckResult:
        orphans = self._store.list_orphan_session_ids(limit=100)
        severity = Severity.WARNING if orphans else Severity.PASS
        return CheckResult(
            name="integrity:orphan_sessions",
            severity=severity,
            message=f"{len(orphans)} sesiones sin reporte",
            details={"session_ids": [str(s) for s in orphans[:_MAX_DETAILS]]},
        )

    # ------------------------------------------------------------------
    def run(self) -> ValidationReport:
        report = ValidationReport()
        programs = list(self._configs)

        for program in programs:
            self._run_check(report, f"count:{program.value}", program,
                            lambda p=program: self.check_count(p), Severity.CRITICAL)
        for program in programs:
            self._run_check(report, f"recent:{program.value}", program,
                            lambda p=program: self.check_recent(p), Severity.WARNING)
        for program in programs:
            self._run_check(report, f"spot_check:{program.value}", program,
                            lambda p=program: self.check_spot(p), Severity.WARNING)
        for program in programs:
            if program in REPORT_PROGRAMS:
                self._run_check(report, f"doc_url:{program.value}", program,
                                lambda p=program: self.check_doc_urls(p), Severity.WARNING)

        self._run_check(report, "integrity:reports_without_session", None,
                        self.check_missing_sessions, Severity.WARNING)
        self._run_check(report, "integrity:orphan_sessions", None,
                        self.check_orphan_sessions, Severity.WARNING)

        report.finished_at = utc_now()
        return report


def _latest_per_um_key(rows: list[SourceRow]) -> list[SourceRow]:
    """
    UM sobrescribe por (emprendedor, sesion): solo la ultima fila de cada
    clave puede existir en destino.
    """
    latest: dict[tuple[str, str], SourceRow] = {}
    for row in rows:
        accessor = ColumnAccessor(row)
        key = (
            accessor.raw(UMColumns.NAMA_USAHAWAN).casefold(),
            accessor.raw(UMColumns.SESI_MENTORING).casefold(),
        )
        latest.pop(key, None)
        latest[key] = row
    return list(latest.values())


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def record_findings(report: ValidationReport, discrepancy_logger: DiscrepancyLogger, *, user_email: str) -> int:
    """Registra WARNING/CRITICAL en dual_write_logs (modo --live)."""
    written = 0
    for check in report.checks:
        if check.severity not in (Severity.WARNING, Severity.CRITICAL):
            continue
        if check.name == "integrity:orphan_sessions":
            table = Table.SESSIONS
        elif check.program == Program.UPWARD_MOBILITY.value:
            table = Table.UPWARD_MOBILITY_REPORTS
        else:
            table = Table.REPORTS
        entry = DiscrepancyEntry(
            operation_type=OperationType.VALIDATE,
            table_name=table.value,
            record_id=check.name,
            program=check.program,
            user_email=user_email,
            sheets_success=True,
            supabase_success=False,
            supabase_error=check.message,
        )
        if discrepancy_logger.log(entry):
            written += 1
    return written


def run_validation(
    settings: Settings,
    *,
    limit: Optional[int] = None,
    live: bool = False,
    source: Optional[RowFetcher] = None,
    pg_repo=None,
) -> ValidationReport:
    """Arma el validador productivo (Sheets + Postgres) y lo ejecuta."""
    configs = {p: get_report_sync_config(p, settings) for p in Program}
    source = source or SheetsRowSource.from_settings(settings)
    pg_repo = pg_repo or build_pg_repository(settings)

    with logger.contextualize(job="validate-sync"):
        with pg_repo.store(statement_timeout_s=settings.ROW_TIMEOUT_S) as store:
            validator = DriftValidator(
                source=source,
                store=store,
                configs=configs,
                thresholds=DriftThresholds.from_settings(settings, limit=limit),
            )
            report = validator.run()
            # Lecturas solamente: se cierra la transaccion implicita
            store.rollback()

            if live:
                written = record_findings(
                    report,
                    DiscrepancyLogger(store, user_email=settings.SYNC_USER_EMAIL),
                    user_email=settings.SYNC_USER_EMAIL,
                )
                logger.info(f"{written} hallazgos registrados en dual_write_logs")

        for line in report.summary_lines():
            (logger.error if report.has_critical else logger.info)(line)
    return report
