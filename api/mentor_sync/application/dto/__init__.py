"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .monitoring_dto import (
    CheckResultDTO,
    DiscrepancyDTO,
    DiscrepancyListDTO,
    HealthDTO,
    ValidationReportDTO,
)
