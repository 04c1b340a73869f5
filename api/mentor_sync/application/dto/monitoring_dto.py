"""
DTOs de la API de monitoreo.

Exponen dual_write_logs y el reporte del DriftValidator como JSON.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field


class HealthDTO(BaseModel):
    """Estado de la API y del destino."""

    status: str = Field(..., description="healthy o degraded")
    app_name: str
    version: str
    environment: str
    database: str = Field(..., description="ok o mensaje de error")


class DiscrepancyDTO(BaseModel):
    """
    Entrada de dual_write_logs.

    Los nombres de columna se mantienen tal cual estan en la tabla
    (supabase_* corresponde al lado Postgres).
    """

    id: Any = Field(..., description="Identificador de la entrada")
    operation_type: str = Field(..., description="sync, sync_overwrite, validate, backfill")
    table_name: str
    record_id: Optional[str] = None
    program: Optional[str] = None
    user_email: Optional[str] = None
    sheets_success: Optional[bool] = None
    sheets_error: Optional[str] = None
    supabase_success: Optional[bool] = None
    supabase_error: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscrepancyListDTO(BaseModel):
    total: int = Field(..., description="Entradas devueltas")
    items: List[DiscrepancyDTO] = Field(default_factory=list)


class CheckResultDTO(BaseModel):
    name: str
    severity: str = Field(..., description="PASS, INFO, WARNING, CRITICAL")
    message: str
    program: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class ValidationReportDTO(BaseModel):
    """Resultado completo de una corrida del validador de drift."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    exit_code: int = Field(..., description="1 si hay algun CRITICAL")
    totals: Dict[str, int] = Field(default_factory=dict)
    checks: List[CheckResultDTO] = Field(default_factory=list)
