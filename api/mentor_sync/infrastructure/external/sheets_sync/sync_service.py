"""
Servicio de sincronizacion Sheets -> Postgres (un job por variante).

Diseno (resumen):
- Lee la pestana completa (SheetsRowSource); un fallo aqui aborta el job
- Filtra filas sin identidad obligatoria (se saltan, no son error)
- Por fila, en orden: FieldMapper -> EntityResolver -> Upserter
- Cada fila es su propia transaccion: commit al terminar, rollback si falla
- Las filas fallidas quedan en dual_write_logs y el job sigue con la siguiente
- Retorna un SyncResult; no hay contadores globales

Estrategia de idempotencia:
- Clave natural por variante (ver Upserter); re-ejecutar sobre el mismo
  origen no inserta ni reescribe nada.
- Advisory lock por job para que dos corridas del mismo job no se solapen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from mentor_sync.core.config import Settings, normalize_psycopg_dsn
from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.shared.constants.sync_constants import OperationType, Program
from mentor_sync.shared.exceptions.sync import RowIncompleteError, SyncConfigError, SyncException

from .discrepancy_logger import DiscrepancyLogger, row_record_id, um_record_id
from .entity_resolver import EntityResolver, PartialMatchPolicy
from .field_mappers import RowMapper, get_mapper, require_identity
from .pg_repository import PostgresSyncRepository
from .records import NormalizedReport, UpwardMobilityReport
from .sheets_client import SheetsRowSource
from .sync_config import ReportSyncConfig
from .table_mappings import get_report_sync_config
from .types import SourceRow, utc_now
from .upserter import Upserter

# Errores mostrados en el resumen final (el resto queda en dual_write_logs)
MAX_ERRORS_IN_SUMMARY = 10


@dataclass(frozen=True)
class RowError:
    position: int
    message: str
    error_code: str = "SYNC_ERROR"


@dataclass
class SyncResult:
    """Resultado estructurado de una corrida."""

    program: str
    total: int = 0
    processed: int = 0
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    errored: int = 0
    new_sessions: int = 0
    errors: list[RowError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    fatal_error: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.errored == 0 and self.fatal_error is None else 1

    def summary_lines(self) -> list[str]:
        lines = [
            f"Resumen {self.program}:",
            f"  Filas en origen:   {self.total}",
            f"  Procesadas:        {self.processed}",
            f"  Nuevas:            {self.new}",
            f"  Actualizadas:      {self.updated}",
            f"  Sin cambios:       {self.unchanged}",
            f"  Saltadas:          {self.skipped}",
            f"  Con error:         {self.errored}",
            f"  Sesiones creadas:  {self.new_sessions}",
        ]
        if self.warnings:
            lines.append(f"  Advertencias:      {len(self.warnings)}")
        if self.fatal_error:
            lines.append(f"  ERROR FATAL: {self.fatal_error}")
        for err in self.errors[:MAX_ERRORS_IN_SUMMARY]:
            lines.append(f"  - Fila {err.position}: {err.message}")
        if len(self.errors) > MAX_ERRORS_IN_SUMMARY:
            lines.append(f"  ... y {len(self.errors) - MAX_ERRORS_IN_SUMMARY} errores mas (ver dual_write_logs)")
        return lines

    def log_summary(self) -> None:
        log = logger.error if self.exit_code else logger.success
        for line in self.summary_lines():
            log(line)


class ReportSyncJob:
    """
    Orquestador del pipeline para una variante de reporte.

    Recibe sus colaboradores ya construidos; `run_report_sync` arma la
    version productiva (Sheets + Postgres).
    """

    def __init__(
        self,
        *,
        config: ReportSyncConfig,
        store: IReportStore,
        resolver: EntityResolver,
        upserter: Upserter,
        discrepancy_logger: DiscrepancyLogger,
        mapper: Optional[RowMapper] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._resolver = resolver
        self._upserter = upserter
        self._discrepancies = discrepancy_logger
        self._mapper = mapper or get_mapper(config.program)

    def run(self, rows: Iterable[SourceRow], *, limit: Optional[int] = None) -> SyncResult:
        """
        Procesa las filas en orden de origen.

        Solo los errores fatales (origen/destino caido) se propagan.
        """
        rows = list(rows)
        result = SyncResult(program=self._config.program.value, total=len(rows))
        if limit is not None:
            rows = rows[:limit]
            logger.info(f"Modo test: procesando las primeras {len(rows)} filas")

        for row in rows:
            result.processed += 1
            self._process_row(row, result)

        result.finished_at = utc_now()
        return result

    def _process_row(self, row: SourceRow, result: SyncResult) -> None:
        try:
            require_identity(row, self._config)
        except RowIncompleteError as e:
            result.skipped += 1
            logger.debug(f"{e.message}; fila saltada")
            return

        report: Optional[NormalizedReport] = None
        entrepreneur_id = None
        try:
            report = self._mapper(row)
            for field_name in report.malformed_fields:
                result.warnings.append(f"Fila {row.position}: subcampo '{field_name}' mal formado (NULL)")

            entities = self._resolver.resolve_report_entities(report)
            entrepreneur_id = entities.entrepreneur_id
            if not entities.ok:
                self._fail_row(result, row, report, entities.error_message(), "ENTITY_NOT_RESOLVED", entrepreneur_id)
                return

            record = report.to_record(
                mentor_id=entities.mentor_id,
                entrepreneur_id=entities.entrepreneur_id,
                session_id=entities.session_id,
                folder_id=entities.folder_id,
            )
            outcome = self._upserter.upsert(report, record)
            if not outcome.success:
                self._fail_row(result, row, report, outcome.error.message, outcome.error.error_code, entrepreneur_id)
                return

            self._store.commit()
        except SyncException as e:
            if e.fatal:
                raise
            self._fail_row(result, row, report, e.message, e.error_code, entrepreneur_id)
            return
        except Exception as e:
            logger.exception(f"Fila {row.position}: error inesperado")
            self._fail_row(result, row, report, f"{type(e).__name__}: {e}", "UNEXPECTED", entrepreneur_id)
            return

        if entities.session_is_new:
            result.new_sessions += 1
        if outcome.is_new:
            result.new += 1
            logger.info(f"Fila {row.position}: creado {report.target_table.value} id={outcome.record['id']}")
        elif outcome.changed_fields:
            result.updated += 1
            logger.info(f"Fila {row.position}: actualizado id={outcome.record['id']} ({len(outcome.changed_fields)} columnas)")
        else:
            result.unchanged += 1

        if isinstance(report, UpwardMobilityReport) and outcome.previous is not None:
            self._check_um_overwrite(result, report, outcome.previous)

    def _check_um_overwrite(self, result: SyncResult, report: UpwardMobilityReport, previous: dict) -> None:
        """
        La clave UM (emprendedor, sesion) no distingue un reenvio de un
        duplicado: si el registro venia de otra fila se sobrescribe y se deja
        constancia.
        """
        previous_row = previous.get("sheets_row_number")
        if previous_row is None or previous_row == report.position:
            return
        message = (
            f"UM '{report.session_label}' de emprendedor {previous.get('entrepreneur_id')} "
            f"sobrescrito: fila {previous_row} -> fila {report.position}"
        )
        result.warnings.append(message)
        logger.warning(message)
        self._discrepancies.log_sync_failure(
            table=report.target_table,
            record_id=um_record_id(previous.get("entrepreneur_id"), report.session_label),
            program=report.program,
            error=message,
            operation_type=OperationType.SYNC_OVERWRITE,
        )

    def _fail_row(
        self,
        result: SyncResult,
        row: SourceRow,
        report: Optional[NormalizedReport],
        message: str,
        error_code: str,
        entrepreneur_id=None,
    ) -> None:
        # Nada de la fila (p.ej. una sesion recien creada) debe quedar escrito
        self._store.rollback()

        result.errored += 1
        result.errors.append(RowError(position=row.position, message=message, error_code=error_code))
        logger.error(f"Fila {row.position}: {message}")

        if isinstance(report, UpwardMobilityReport) and entrepreneur_id is not None:
            record_id = um_record_id(entrepreneur_id, report.session_label)
        else:
            record_id = row_record_id(row.position)

        self._discrepancies.log_sync_failure(
            table=self._config.target_table,
            record_id=record_id,
            program=self._config.program,
            error=message,
        )


def build_job(config: ReportSyncConfig, store: IReportStore, settings: Settings) -> ReportSyncJob:
    return ReportSyncJob(
        config=config,
        store=store,
        resolver=EntityResolver(
            store,
            partial_match_policy=PartialMatchPolicy(settings.RESOLVER_PARTIAL_MATCH_POLICY),
        ),
        upserter=Upserter(store),
        discrepancy_logger=DiscrepancyLogger(store, user_email=settings.SYNC_USER_EMAIL),
    )


def build_pg_repository(settings: Settings) -> PostgresSyncRepository:
    """
    Repositorio Postgres desde Settings.

    Requisito: destino es Postgres. Evitamos errores silenciosos en SQLite.
    """
    dsn_raw = settings.effective_database_url
    dsn = normalize_psycopg_dsn(dsn_raw)
    if "postgres" not in dsn:
        raise SyncConfigError(f"DATABASE_URL debe apuntar a Postgres. Valor actual: {dsn_raw}")
    return PostgresSyncRepository(dsn)


def run_report_sync(
    program: Program,
    settings: Settings,
    *,
    limit: Optional[int] = None,
    source: Optional[SheetsRowSource] = None,
    pg_repo: Optional[PostgresSyncRepository] = None,
) -> SyncResult:
    """
    Ejecuta una corrida completa de la variante indicada.

    Los errores fatales no se propagan: quedan en SyncResult.fatal_error
    (exit code 1) para que el master sync pueda seguir con el siguiente job.
    """
    config = get_report_sync_config(program, settings)
    result = SyncResult(program=program.value)

    with logger.contextualize(job=config.job_name):
        logger.info(f"Iniciando sync {program.value}: '{config.tab_name}' -> {config.target_table.value}")
        try:
            source = source or SheetsRowSource.from_settings(settings)
            pg_repo = pg_repo or build_pg_repository(settings)

            rows = source.fetch(config.sheet_ref)
            if not rows:
                result.finished_at = utc_now()
                result.log_summary()
                return result

            with pg_repo.store(statement_timeout_s=settings.ROW_TIMEOUT_S) as store:
                conn = store.connection
                if not pg_repo.try_advisory_lock(conn, config.lock_key):
                    logger.warning("Sync ya esta corriendo (advisory lock ocupado). Saliendo.")
                    result.warnings.append("advisory lock ocupado")
                    result.finished_at = utc_now()
                    return result
                try:
                    result = build_job(config, store, settings).run(rows, limit=limit)
                finally:
                    if not conn.closed:
                        pg_repo.release_advisory_lock(conn, config.lock_key)
        except SyncException as e:
            if not e.fatal:
                raise
            logger.error(f"Sync {program.value} abortado: {e.message}")
            result.fatal_error = e.message
            result.finished_at = utc_now()

        result.log_summary()
        return result


@dataclass
class MasterSyncResult:
    results: list[SyncResult] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if any(r.exit_code for r in self.results) else 0


MASTER_SYNC_ORDER = (Program.BANGKIT, Program.MAJU, Program.UPWARD_MOBILITY)


def run_master_sync(
    settings: Settings,
    *,
    limit: Optional[int] = None,
    programs: Iterable[Program] = MASTER_SYNC_ORDER,
    runner=run_report_sync,
) -> MasterSyncResult:
    """
    Corre los syncs de reportes en orden. Un job fallido no detiene a los
    siguientes.
    """
    master = MasterSyncResult()
    for program in programs:
        try:
            master.results.append(runner(program, settings, limit=limit))
        except Exception as e:  # noqa: BLE001 - un job roto no detiene a los demas
            logger.exception(f"Sync {program.value} fallo de forma inesperada")
            master.results.append(
                SyncResult(program=program.value, fatal_error=str(e), finished_at=utc_now())
            )

    logger.info("=" * 50)
    for r in master.results:
        status = "OK" if r.exit_code == 0 else "FALLO"
        logger.info(
            f"{r.program}: {status} (nuevas={r.new}, actualizadas={r.updated}, "
            f"saltadas={r.skipped}, errores={r.errored})"
        )
    return master
