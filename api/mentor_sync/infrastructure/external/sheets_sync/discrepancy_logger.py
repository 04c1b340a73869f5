"""
DiscrepancyLogger: registro append-only en dual_write_logs.

Cada fila que no se pudo escribir deja una entrada con el lado que fallo.
Un fallo al registrar nunca aborta al caller: se loguea y retorna False.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.shared.constants.sync_constants import OperationType, Program, Table
from mentor_sync.shared.exceptions.sync import SyncException

# Columna TEXT; los mensajes de psycopg pueden ser largos
_MAX_ERROR_LEN = 2000


@dataclass(frozen=True)
class DiscrepancyEntry:
    operation_type: OperationType
    table_name: str
    record_id: Optional[str]
    program: Optional[str]
    user_email: str
    sheets_success: bool = True
    sheets_error: Optional[str] = None
    supabase_success: bool = False
    supabase_error: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return {
            "operation_type": self.operation_type.value,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "program": self.program,
            "user_email": self.user_email,
            "sheets_success": self.sheets_success,
            "sheets_error": _truncate(self.sheets_error),
            "supabase_success": self.supabase_success,
            "supabase_error": _truncate(self.supabase_error),
        }


def _truncate(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text[:_MAX_ERROR_LEN]


def row_record_id(position: int) -> str:
    return f"row_{position}"


def um_record_id(entrepreneur_id: Any, session_label: str) -> str:
    return f"entrepreneur_{entrepreneur_id}_{session_label}"


class DiscrepancyLogger:
    """
    Inserta en dual_write_logs en su propia transaccion.

    El caller ya hizo rollback del trabajo de la fila; aqui se hace commit
    solo de la entrada de log.
    """

    def __init__(self, store: IReportStore, *, user_email: str = "system@sync") -> None:
        self._store = store
        self._user_email = user_email

    def log(self, entry: DiscrepancyEntry) -> bool:
        try:
            self._store.insert(Table.DUAL_WRITE_LOGS.value, entry.to_record())
            self._store.commit()
            return True
        except Exception as e:  # noqa: BLE001 - el log nunca debe abortar al caller
            logger.error(f"No se pudo registrar discrepancia ({entry.table_name}/{entry.record_id}): {e}")
            try:
                self._store.rollback()
            except SyncException as rollback_error:
                logger.error(f"Rollback tras fallo de log tambien fallo: {rollback_error}")
            return False

    def log_sync_failure(
        self,
        *,
        table: Table,
        record_id: Optional[str],
        program: Optional[Program | str],
        error: str,
        operation_type: OperationType = OperationType.SYNC,
    ) -> bool:
        """Fila leida de Sheets (ok) que no llego a Postgres."""
        program_value = program.value if isinstance(program, Program) else program
        return self.log(
            DiscrepancyEntry(
                operation_type=operation_type,
                table_name=table.value,
                record_id=record_id,
                program=program_value,
                user_email=self._user_email,
                sheets_success=True,
                supabase_success=False,
                supabase_error=error,
            )
        )
