"""
Constantes del pipeline de sincronizacion.
Define programas, tablas destino, estados y enums de texto libre.
"""
from enum import Enum


class Program(str, Enum):
    """Programas de mentoria (cada uno con su propio esquema de reporte)."""
    BANGKIT = "Bangkit"
    MAJU = "Maju"
    UPWARD_MOBILITY = "UM"


class Table(str, Enum):
    """Tablas destino en PostgreSQL."""
    ENTREPRENEURS = "entrepreneurs"
    MENTORS = "mentors"
    SESSIONS = "sessions"
    REPORTS = "reports"
    UPWARD_MOBILITY_REPORTS = "upward_mobility_reports"
    DUAL_WRITE_LOGS = "dual_write_logs"


class SessionStatus(str, Enum):
    """Estado con el que se crea una sesion resuelta desde un reporte."""
    COMPLETED = "completed"


class ReportStatus(str, Enum):
    SUBMITTED = "submitted"


class OperationType(str, Enum):
    """Valores de dual_write_logs.operation_type escritos por este pipeline."""
    SYNC = "sync"
    SYNC_OVERWRITE = "sync_overwrite"
    VALIDATE = "validate"
    BACKFILL = "backfill"


class MiaStatus(str, Enum):
    """
    Estado MIA derivado del texto libre del formulario.

    UNKNOWN se usa para texto no reconocido, asi el drift de captura
    queda visible en vez de asumirse "no MIA".
    """
    MIA = "mia"
    NOT_MIA = "not_mia"
    UNKNOWN = "unknown"


class YesNo(str, Enum):
    """Respuesta Ya/Tidak (Yes/No) de texto libre."""
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


# Origen marcado en reports.source para filas escritas por el batch
SHEETS_SYNC_SOURCE = "sheets_sync"
