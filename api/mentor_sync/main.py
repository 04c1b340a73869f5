"""
Punto de entrada de la API de monitoreo (FastAPI).
Configura la aplicacion, middlewares, rutas y eventos.
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from mentor_sync.core.config import settings
from mentor_sync.core.events import lifespan
from mentor_sync.api.v1.router import api_router
from mentor_sync.api.middlewares.error_handler import ErrorHandlerMiddleware
from mentor_sync.shared.exceptions.base import AppException


def create_application() -> FastAPI:
    """
    Factory para crear y configurar la aplicacion FastAPI.

    Returns:
        FastAPI: Instancia configurada de la aplicacion
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Monitoreo de la sincronizacion Google Sheets -> PostgreSQL",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    application.add_middleware(ErrorHandlerMiddleware)

    application.include_router(api_router, prefix="/api")

    # Manejador global de excepciones personalizadas
    @application.exception_handler(AppException)
    async def app_exception_handler(request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    return application


app = create_application()
