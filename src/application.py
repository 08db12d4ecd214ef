"""FastAPI application factory and bootstrap helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import include_api_routes
from src.config import settings
from src.errors import ServiceError
from src.services.storage.mongo import get_database
from src.services.storage.product_repository import ProductRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events."""
    if not settings.is_production:
        logger.info("Skipping product index creation in development mode")
    else:
        try:
            await ProductRepository(get_database()).ensure_indexes()
        except ServiceError:
            logger.exception("Failed ensuring product indexes on startup")

    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Storefront API",
        description="Product catalog, ratings, stock and checkout payments",
        version="1.0.0",
        lifespan=lifespan,
    )

    _configure_cors(app)
    _register_error_handlers(app)
    include_api_routes(app)

    return app


def _configure_cors(app: FastAPI) -> None:
    """Allow broad access in non-production environments."""

    if settings.is_production:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _register_error_handlers(app: FastAPI) -> None:
    """Render domain errors as ``{"success": false, "message": ...}``."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed: %s",
                exc.message,
                extra={"path": request.url.path, "error_type": type(exc).__name__},
            )
        else:
            logger.info(
                "Request rejected: %s",
                exc.message,
                extra={"path": request.url.path, "error_type": type(exc).__name__},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )
