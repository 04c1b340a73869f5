"""
Configuracion del sync (pestana Sheets -> tabla Postgres).

Este modulo no realiza I/O: solo define configuracion. Los layouts concretos
por variante viven en `table_mappings`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mentor_sync.shared.constants.sync_constants import Program, Table

from .sheets_client import DEFAULT_RANGE, SheetRef
from .types import ColumnSpec


@dataclass(frozen=True)
class ReportSyncConfig:
    """
    Config de una pestana origen -> una tabla Postgres.

    identity_columns: columnas obligatorias; si alguna esta vacia la fila se
    salta (RowIncomplete) sin contarse como error.
    """

    program: Program
    spreadsheet_id: str
    tab_name: str
    target_table: Table
    identity_columns: tuple[ColumnSpec, ...]
    doc_url_column: Optional[ColumnSpec]
    lock_key: int
    # Columna que debe contener un numero de sesion parseable (Bangkit/Maju)
    session_number_column: Optional[ColumnSpec] = None
    cell_range: str = DEFAULT_RANGE

    @property
    def sheet_ref(self) -> SheetRef:
        return SheetRef(
            spreadsheet_id=self.spreadsheet_id,
            tab_name=self.tab_name,
            cell_range=self.cell_range,
        )

    @property
    def job_name(self) -> str:
        return f"sync-{self.program.value.lower()}"
