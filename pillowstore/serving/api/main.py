"""
FastAPI Application Factory

Creates the API application on top of a StoreContext and maps the
persistence error taxonomy onto HTTP responses.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from pillowstore.config import Settings, get_settings
from pillowstore.config.logging import configure_logging
from pillowstore.context import StoreContext
from pillowstore.exceptions import (
    LocalCacheError,
    RemoteUnavailable,
    SchemaMissing,
    ValidationError,
)
from pillowstore.serving.api.middleware import RequestLoggingMiddleware
from pillowstore.serving.api.routes import (
    admin_router,
    brands_router,
    chat_history_router,
    health_router,
    measurements_router,
    products_router,
    profiles_router,
)

logger = structlog.get_logger(__name__)


def _error_body(exc, **extra) -> dict:
    body = {"detail": exc.message, "error": type(exc).__name__}
    if exc.collection:
        body["collection"] = exc.collection
    if exc.key:
        body["key"] = exc.key
    body.update(extra)
    return jsonable_encoder(body)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=_error_body(exc, errors=exc.errors))


async def local_cache_error_handler(request: Request, exc: LocalCacheError) -> JSONResponse:
    logger.error("Local cache failure", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=507, content=_error_body(exc))


async def remote_error_handler(request: Request, exc: RemoteUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content=_error_body(exc))


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[StoreContext] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to build the store context from (cached settings when omitted)
        context: Pre-built store context; the app does not close it on shutdown

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings=settings)
        logger.info("Starting Pillow Store API", environment=settings.app_env)

        owned = context is None
        app.state.context = context if context is not None else await StoreContext.create(settings)

        yield

        logger.info("Shutting down...")
        if owned:
            await app.state.context.close()

    app = FastAPI(
        title=settings.app_name,
        description="Offline-tolerant data API for the pillow store front end",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Sync-Outcome", "X-Connectivity"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(LocalCacheError, local_cache_error_handler)
    app.add_exception_handler(RemoteUnavailable, remote_error_handler)
    app.add_exception_handler(SchemaMissing, remote_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(products_router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(brands_router, prefix="/api/v1/brands", tags=["Brands"])
    app.include_router(measurements_router, prefix="/api/v1/measurements", tags=["Measurements"])
    app.include_router(profiles_router, prefix="/api/v1/profiles", tags=["Profiles"])
    app.include_router(chat_history_router, prefix="/api/v1/chat-history", tags=["Chat"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs" if settings.is_development else None,
        }

    return app
