"""
Endpoints de monitoreo del pipeline de sincronizacion.
Solo lectura: estado, discrepancias registradas y validacion de drift.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from mentor_sync.application.dto.monitoring_dto import (
    DiscrepancyDTO,
    DiscrepancyListDTO,
    HealthDTO,
    ValidationReportDTO,
)
from mentor_sync.api.v1.dependencies.repository_deps import get_report_store
from mentor_sync.core.config import settings
from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.infrastructure.external.sheets_sync.drift_validator import run_validation
from mentor_sync.shared.constants.sync_constants import Table
from mentor_sync.shared.exceptions.sync import SyncException


router = APIRouter(prefix="/monitoring", tags=["Monitoring"])

MAX_DISCREPANCIES = 200


@router.get("/health", response_model=HealthDTO, summary="Estado de la API y de PostgreSQL")
def health(store: IReportStore = Depends(get_report_store)) -> HealthDTO:
    """Verifica que el destino responda con una consulta trivial."""
    database = "ok"
    try:
        store.count(Table.DUAL_WRITE_LOGS.value)
    except SyncException as e:
        logger.warning(f"Health check: destino no disponible: {e.message}")
        database = e.message
    return HealthDTO(
        status="healthy" if database == "ok" else "degraded",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        database=database,
    )


@router.get(
    "/discrepancies",
    response_model=DiscrepancyListDTO,
    summary="Ultimas entradas de dual_write_logs",
)
def list_discrepancies(
    table: Optional[str] = Query(default=None, description="Filtrar por table_name"),
    program: Optional[str] = Query(default=None, description="Filtrar por programa"),
    limit: int = Query(default=50, ge=1, le=MAX_DISCREPANCIES),
    store: IReportStore = Depends(get_report_store),
) -> DiscrepancyListDTO:
    """
    Lista las discrepancias mas recientes (orden created_at descendente).

    Args:
        table: Tabla destino afectada (reports, upward_mobility_reports, ...)
        program: Bangkit, Maju o UM
        limit: Maximo de entradas (1-200)
    """
    where = {}
    if table:
        where["table_name"] = table
    if program:
        where["program"] = program

    rows = store.find_many(
        Table.DUAL_WRITE_LOGS.value,
        where,
        order_by=("-created_at", "-id"),
        limit=limit,
    )
    items = [DiscrepancyDTO.model_validate(row) for row in rows]
    return DiscrepancyListDTO(total=len(items), items=items)


@router.get(
    "/validate",
    response_model=ValidationReportDTO,
    status_code=status.HTTP_200_OK,
    summary="Ejecutar el validador de drift Sheets vs PostgreSQL",
)
async def validate(
    limit: Optional[int] = Query(default=None, ge=1, description="Acota ventana y muestra (modo test)"),
) -> ValidationReportDTO:
    """
    Ejecuta los checks de drift sin escribir nada.

    Corre en un thread separado para no bloquear el event loop.
    """
    logger.info("Validacion de drift solicitada desde la API")
    report = await asyncio.to_thread(run_validation, settings, limit=limit, live=False)
    return ValidationReportDTO.model_validate(report.to_dict())
