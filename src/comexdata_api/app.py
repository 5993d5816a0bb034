"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from comexdata_api import __version__
from comexdata_api.errors import ComexDataError
from comexdata_api.middleware.logging import LoggingMiddleware
from comexdata_api.responses import error_response
from comexdata_api.routers.comexstat import router as comexstat_router
from comexdata_api.routers.health import router as health_router
from comexdata_api.services.comexstat_service import ComexStatService
from comexdata_api.sources.comexstat import ComexStatSource
from comexdata_api.utils.cache import TTLCache
from comexdata_api.utils.logging import configure_logging
from comexdata_shared.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Wire a pooled ComexStat client and in-memory cache unless one was injected."""
    if getattr(app.state, "comexstat_service", None) is not None:
        yield
        return

    source = ComexStatSource()
    async with source.build_client() as client:
        app.state.comexstat_service = ComexStatService(
            ComexStatSource(client), TTLCache()
        )
        logger.info("comexstat_service_ready", base_url=settings.comexstat_base_url)
        yield
    app.state.comexstat_service = None


async def _handle_engine_error(request: Request, exc: ComexDataError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


def create_app(service: ComexStatService | None = None) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="comexdata API",
        description="Regional foreign-trade indicators aggregated from ComexStat",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )
    app.state.comexstat_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(ComexDataError, _handle_engine_error)

    app.include_router(health_router)
    app.include_router(comexstat_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()
