"""
Excepciones del pipeline Sheets -> Postgres.

Taxonomia:
- Fatales (abortan el job completo): SourceUnavailableError,
  DestinationUnavailableError, SyncConfigError.
- Por fila (la fila no se escribe, el job continua): EntityNotFoundError,
  AmbiguousEntityError, UpsertFailedError, DestinationQueryError.
- RowIncompleteError: la fila se salta y se cuenta, no es un error.
- MalformedSubfieldError: solo uso interno de los parsers; el campo queda en None.
"""
from typing import Any, Optional

from mentor_sync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base del pipeline de sincronizacion."""

    fatal: bool = False

    def __init__(self, message: str, error_code: str = "SYNC_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=500,
            error_code=error_code,
            details=details
        )


class SourceUnavailableError(SyncException):
    """No se pudo leer el origen (conexion, auth, rango invalido)."""

    fatal = True

    def __init__(self, message: str, spreadsheet_id: Optional[str] = None, status: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="SOURCE_UNAVAILABLE",
            details={"spreadsheet_id": spreadsheet_id, "status": status}
        )
        self.status_code = 503


class DestinationUnavailableError(SyncException):
    """Se perdio la conexion con PostgreSQL."""

    fatal = True

    def __init__(self, message: str):
        super().__init__(message=message, error_code="DESTINATION_UNAVAILABLE")
        self.status_code = 503


class SyncConfigError(SyncException):
    """Error de configuracion del pipeline (variables de entorno faltantes, etc)."""

    fatal = True

    def __init__(self, message: str):
        super().__init__(message=message, error_code="SYNC_CONFIG_ERROR")


class RowIncompleteError(SyncException):
    """La fila no tiene los campos de identidad obligatorios."""

    def __init__(self, position: int, missing: list[str]):
        super().__init__(
            message=f"Fila {position}: faltan campos obligatorios ({', '.join(missing)})",
            error_code="ROW_INCOMPLETE",
            details={"position": position, "missing": missing}
        )
        self.position = position
        self.missing = missing


class EntityNotFoundError(SyncException):
    """No existe la entidad canonica para el texto ingresado."""

    def __init__(self, entity_name: str, raw_input: Any):
        super().__init__(
            message=f"{entity_name} not found: {raw_input}",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "raw_input": str(raw_input)}
        )
        self.status_code = 404
        self.entity_name = entity_name
        self.raw_input = raw_input


class AmbiguousEntityError(SyncException):
    """Varias entidades coinciden parcialmente con el texto ingresado."""

    def __init__(self, entity_name: str, raw_input: Any, candidates: list[str]):
        super().__init__(
            message=(
                f"{entity_name} ambiguous: {raw_input} "
                f"({len(candidates)} partial matches: {', '.join(candidates[:5])})"
            ),
            error_code="ENTITY_AMBIGUOUS",
            details={"entity": entity_name, "raw_input": str(raw_input), "candidates": candidates}
        )
        self.status_code = 409
        self.entity_name = entity_name
        self.raw_input = raw_input
        self.candidates = candidates


class DestinationQueryError(SyncException):
    """Una consulta de lectura fue rechazada por PostgreSQL."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="DESTINATION_QUERY_FAILED",
            details={"table": table}
        )


class UpsertFailedError(SyncException):
    """PostgreSQL rechazo el INSERT/UPDATE de un registro."""

    def __init__(self, message: str, table: Optional[str] = None, record_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="UPSERT_FAILED",
            details={"table": table, "record_id": record_id}
        )


class MalformedSubfieldError(SyncException):
    """Un subcampo JSON/numerico no se pudo parsear."""

    def __init__(self, field: str, raw_value: Any):
        preview = str(raw_value)[:50]
        super().__init__(
            message=f"Subcampo '{field}' mal formado: {preview}",
            error_code="MALFORMED_SUBFIELD",
            details={"field": field, "raw_value": preview}
        )
