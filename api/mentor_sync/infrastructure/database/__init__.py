"""
Configuracion de base de datos.

Importa todos los modelos para que se registren con Base
antes de generar migraciones.
"""
from mentor_sync.infrastructure.database.models import (
    Base,
    DualWriteLogModel,
    EntrepreneurModel,
    MentorModel,
    ReportModel,
    SessionModel,
    UpwardMobilityReportModel,
)
