"""
Dependencias para inyeccion del store destino.
"""
from typing import Iterator

from mentor_sync.core.config import settings
from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.infrastructure.external.sheets_sync.sync_service import build_pg_repository


def get_report_store() -> Iterator[IReportStore]:
    """
    Dependencia para obtener un store Postgres de solo lectura.

    La conexion se abre por request y se cierra al terminar.

    Yields:
        IReportStore: Store sobre una conexion psycopg
    """
    pg_repo = build_pg_repository(settings)
    with pg_repo.store(statement_timeout_s=settings.ROW_TIMEOUT_S) as store:
        yield store
