"""
Punto de entrada para levantar la API de monitoreo con uvicorn.

Uso:
    python main.py
"""
from mentor_sync.main import app


if __name__ == "__main__":
    import uvicorn
    from loguru import logger

    from mentor_sync.core.config import settings

    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.info("=" * 70)
    logger.info("URLS DISPONIBLES:")
    logger.info("=" * 70)
    logger.info(f"  Swagger UI:  {base_url}/docs")
    logger.info(f"  Health:      {base_url}/api/v1/monitoring/health")
    logger.info(f"  Validacion:  {base_url}/api/v1/monitoring/validate")
    logger.info("=" * 70)

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
