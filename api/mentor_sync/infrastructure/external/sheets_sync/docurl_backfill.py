"""
Backfill de doc_url: completa reportes que quedaron sin enlace al documento.

El doc_url lo genera un proceso asincrono que escribe en la hoja despues del
envio del formulario; si el sync corrio antes, el reporte queda con NULL.
Por defecto es dry-run (solo planifica); con live=True escribe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from loguru import logger

from mentor_sync.core.config import Settings
from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.shared.constants.sync_constants import OperationType, Program, Table
from mentor_sync.shared.exceptions.sync import SyncException

from .discrepancy_logger import DiscrepancyLogger, row_record_id
from .drift_validator import RowFetcher
from .sheets_client import SheetsRowSource
from .sync_config import ReportSyncConfig
from .sync_service import build_pg_repository
from .table_mappings import get_report_sync_config
from .types import ColumnAccessor, utc_now

BACKFILL_PROGRAMS = (Program.BANGKIT, Program.MAJU)

# Columna con el nombre del emprendedor en reports, por variante
_NAME_COLUMNS = {
    Program.BANGKIT: "nama_usahawan",
    Program.MAJU: "nama_mentee",
}


@dataclass(frozen=True)
class PlannedUpdate:
    report_id: Any
    position: int
    entrepreneur: Optional[str]
    doc_url: str


@dataclass
class BackfillResult:
    program: str
    total: int = 0
    missing: int = 0
    found: int = 0
    not_in_sheet: int = 0
    updated: int = 0
    failed: int = 0
    planned: list[PlannedUpdate] = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 and self.fatal_error is None else 1

    def summary_lines(self, *, live: bool) -> list[str]:
        lines = [
            f"Backfill doc_url {self.program}:",
            f"  Reportes en Postgres: {self.total}",
            f"  Sin doc_url:          {self.missing}",
            f"  URL encontrada:       {self.found}",
            f"  Fila no encontrada:   {self.not_in_sheet}",
        ]
        if live:
            lines.append(f"  Actualizados:         {self.updated}")
            lines.append(f"  Fallidos:             {self.failed}")
        else:
            lines.append(f"  [DRY RUN] {len(self.planned)} actualizaciones planificadas (usar --live)")
        if self.fatal_error:
            lines.append(f"  ERROR FATAL: {self.fatal_error}")
        return lines


class DocUrlBackfill:
    def __init__(
        self,
        *,
        source: RowFetcher,
        store: IReportStore,
        discrepancy_logger: DiscrepancyLogger,
        live: bool = False,
    ) -> None:
        self._source = source
        self._store = store
        self._discrepancies = discrepancy_logger
        self._live = live

    def run_program(self, config: ReportSyncConfig, *, limit: Optional[int] = None) -> BackfillResult:
        program = config.program
        result = BackfillResult(program=program.value)
        if config.doc_url_column is None:
            logger.info(f"{program.value} no tiene columna de doc_url; nada que hacer")
            return result

        table = Table.REPORTS.value
        name_column = _NAME_COLUMNS.get(program, "nama_usahawan")
        result.total = self._store.count(table, {"program": program.value})
        missing = self._store.find_many(
            table,
            {"program": program.value},
            columns=("id", "sheets_row_number", name_column),
            null_columns=("doc_url",),
            not_null_columns=("sheets_row_number",),
            order_by=("sheets_row_number",),
            limit=limit,
        )
        result.missing = len(missing)
        logger.info(f"{program.value}: {result.total} reportes, {result.missing} sin doc_url")
        if not missing:
            return result

        by_position = {row.position: row for row in self._source.fetch(config.sheet_ref)}

        for report in missing:
            position = report["sheets_row_number"]
            row = by_position.get(position)
            if row is None:
                result.not_in_sheet += 1
                logger.warning(f"Fila {position}: no encontrada en '{config.tab_name}'")
                continue

            doc_url = ColumnAccessor(row).text(config.doc_url_column)
            if not doc_url:
                continue

            result.found += 1
            update = PlannedUpdate(
                report_id=report["id"],
                position=position,
                entrepreneur=report.get(name_column),
                doc_url=doc_url,
            )
            result.planned.append(update)

            if self._live:
                self._apply(result, update, program)
            else:
                logger.info(f"[DRY RUN] Fila {position} ({update.entrepreneur}): {doc_url[:60]}")

        return result

    def _apply(self, result: BackfillResult, update: PlannedUpdate, program: Program) -> None:
        try:
            self._store.update(
                Table.REPORTS.value,
                update.report_id,
                {"doc_url": update.doc_url, "google_doc_url": update.doc_url, "updated_at": utc_now()},
            )
            self._store.commit()
        except SyncException as e:
            if e.fatal:
                raise
            self._store.rollback()
            result.failed += 1
            logger.error(f"Fila {update.position}: actualizacion fallida - {e.message}")
            self._discrepancies.log_sync_failure(
                table=Table.REPORTS,
                record_id=row_record_id(update.position),
                program=program,
                error=e.message,
                operation_type=OperationType.BACKFILL,
            )
            return
        result.updated += 1
        logger.info(f"Fila {update.position}: doc_url actualizado ({update.entrepreneur})")


def run_docurl_backfill(
    settings: Settings,
    *,
    live: bool = False,
    limit: Optional[int] = None,
    programs: Iterable[Program] = BACKFILL_PROGRAMS,
    source: Optional[RowFetcher] = None,
    pg_repo=None,
) -> list[BackfillResult]:
    """Corre el backfill para cada variante; un fallo fatal solo corta esa variante."""
    results: list[BackfillResult] = []
    with logger.contextualize(job="sync-docurl"):
        if not live:
            logger.info("Modo DRY RUN: no se escribira en la base de datos")
        source = source or SheetsRowSource.from_settings(settings)
        pg_repo = pg_repo or build_pg_repository(settings)

        with pg_repo.store(statement_timeout_s=settings.ROW_TIMEOUT_S) as store:
            backfill = DocUrlBackfill(
                source=source,
                store=store,
                discrepancy_logger=DiscrepancyLogger(store, user_email=settings.SYNC_USER_EMAIL),
                live=live,
            )
            for program in programs:
                config = get_report_sync_config(program, settings)
                try:
                    result = backfill.run_program(config, limit=limit)
                    if not live:
                        store.rollback()
                except SyncException as e:
                    logger.error(f"Backfill {program.value} abortado: {e.message}")
                    _safe_rollback(store)
                    result = BackfillResult(program=program.value, fatal_error=e.message)
                for line in result.summary_lines(live=live):
                    logger.info(line)
                results.append(result)
    return results


def _safe_rollback(store: IReportStore) -> None:
    try:
        store.rollback()
    except SyncException as e:
        logger.error(f"Rollback fallo durante el backfill: {e.message}")
