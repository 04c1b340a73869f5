"""
Upserter idempotente por clave natural.

- reports: (program, sheets_row_number)
- upward_mobility_reports: (entrepreneur_id, sesi_mentoring)

Si el registro existe se actualiza en sitio (se conserva el id) y solo se
reescriben las columnas que cambiaron; sin cambios no hay escritura.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from loguru import logger

from mentor_sync.domain.repositories.report_store import IReportStore, Record
from mentor_sync.shared.exceptions.sync import (
    DestinationQueryError,
    SyncException,
    UpsertFailedError,
)

from .records import NormalizedReport
from .types import ensure_utc, utc_now

# Columnas tecnicas que no cuentan como cambio de contenido
IGNORED_DIFF_COLUMNS = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True)
class UpsertResult:
    success: bool
    record: Optional[Record] = None
    is_new: bool = False
    error: Optional[SyncException] = None
    changed_fields: tuple[str, ...] = ()
    previous: Optional[Record] = None

    @property
    def is_unchanged(self) -> bool:
        return self.success and not self.is_new and not self.changed_fields


def _normalize(value: Any) -> Any:
    """Lleva valores de Postgres y del mapper a una forma comparable."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if hasattr(value, "obj"):
        # psycopg Jsonb envuelve el valor en .obj
        return _normalize(value.obj)
    return value


def diff_fields(existing: Record, incoming: Record) -> tuple[str, ...]:
    """Columnas de `incoming` cuyo valor difiere del registro existente."""
    changed = []
    for column, value in incoming.items():
        if column in IGNORED_DIFF_COLUMNS:
            continue
        if _normalize(existing.get(column)) != _normalize(value):
            changed.append(column)
    return tuple(changed)


class Upserter:
    def __init__(self, store: IReportStore) -> None:
        self._store = store

    def upsert(self, report: NormalizedReport, record: Record) -> UpsertResult:
        """Upsert de un reporte normalizado en su tabla y clave natural."""
        return self.upsert_record(
            report.target_table.value,
            report.natural_key_values(record),
            record,
        )

    def upsert_record(self, table: str, key: Record, record: Record) -> UpsertResult:
        """
        Busca por `key`; actualiza solo lo que cambio o inserta.

        Errores de escritura/consulta se devuelven en el resultado; la caida
        del destino (DestinationUnavailableError) se propaga.
        """
        try:
            existing = self._store.find_one(table, key)

            if existing is None:
                created = self._store.insert(table, {**record, "updated_at": utc_now()})
                return UpsertResult(success=True, record=created, is_new=True)

            changed = diff_fields(existing, record)
            if not changed:
                return UpsertResult(success=True, record=existing, is_new=False, previous=existing)

            values = {column: record[column] for column in changed}
            values["updated_at"] = utc_now()
            updated = self._store.update(table, existing["id"], values)
            logger.debug(f"{table} id={existing['id']}: columnas actualizadas {', '.join(changed)}")
            return UpsertResult(
                success=True,
                record=updated,
                is_new=False,
                changed_fields=changed,
                previous=existing,
            )
        except (UpsertFailedError, DestinationQueryError) as e:
            return UpsertResult(success=False, error=e)
