"""
Configuracion de logging y manejadores de eventos de la API de monitoreo.

Los jobs de sync (scripts/) y la API comparten `configure_logging` para que
ambos escriban el mismo formato en consola y en el archivo rotado.
"""
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from mentor_sync.core.config import settings

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[job]} | {message}"

_configured = False


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configura los sinks de loguru (consola + archivo rotado).

    Idempotente: llamadas repetidas no duplican sinks.

    Args:
        level: Nivel minimo; por defecto settings.LOG_LEVEL
        log_file: Ruta del archivo; por defecto settings.LOG_FILE. "" desactiva el archivo.
    """
    global _configured
    if _configured:
        return

    level = level or settings.LOG_LEVEL
    log_file = settings.LOG_FILE if log_file is None else log_file

    logger.remove()
    logger.configure(extra={"job": "-"})
    logger.add(sys.stderr, format=_LOG_FORMAT, level=level)

    if log_file:
        logger.add(
            log_file,
            format=_LOG_FORMAT,
            rotation="50 MB",
            retention="30 days",
            level=level,
        )

    _configured = True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Ciclo de vida de la API: inicializa logging y valida la configuracion
    critica al arrancar; registra el cierre al terminar.

    Args:
        app: Instancia de FastAPI
    """
    configure_logging()
    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT}")
    _validate_config()
    logger.success("API de monitoreo iniciada correctamente")

    yield

    logger.info("Cerrando API de monitoreo")


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.GOOGLE_CREDENTIALS_BASE64:
        warnings.append("GOOGLE_CREDENTIALS_BASE64 no configurada - /validate no funcionara")
    if not settings.GOOGLE_SHEETS_REPORT_ID:
        warnings.append("GOOGLE_SHEETS_REPORT_ID no configurada")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")
