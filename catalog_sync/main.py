"""Catalog sync API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from catalog_sync.api.catalogs import router as catalogs_router
from catalog_sync.api.feeds import router as feeds_router
from catalog_sync.api.health import router as health_router
from catalog_sync.api.imports import router as imports_router
from catalog_sync.api.maintenance import router as maintenance_router
from catalog_sync.api.middleware import setup_middleware
from catalog_sync.api.selections import router as selections_router
from catalog_sync.domain.exceptions import (
    CatalogNotFoundError,
    ClientNotFoundError,
    DomainError,
    ImportRejectedError,
    InvalidStateTransitionError,
    ProductNotFoundError,
    StorageError,
)
from catalog_sync.infrastructure.config import settings
from catalog_sync.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    configure_logging()
    logger.info(
        "Starting catalog sync API",
        version=settings.api_version,
        debug=settings.debug,
    )

    yield

    logger.info("Shutting down catalog sync API")


app = FastAPI(
    title="Catalog Sync API",
    description="Catalog product-set synchronization and mapping-table consistency",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(catalogs_router)
app.include_router(feeds_router)
app.include_router(selections_router)
app.include_router(imports_router)
app.include_router(maintenance_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: object = None,
) -> JSONResponse:
    """Build an error response in the standard format."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details if details is not None else [],
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        return error_response(
            request,
            exc.status_code,
            detail.get("error_code", "ERROR"),
            detail.get("message", str(detail)),
            detail.get("details", []),
        )
    return error_response(request, exc.status_code, "ERROR", str(detail))


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to HTTP responses."""
    if isinstance(exc, CatalogNotFoundError):
        return error_response(request, 404, "CATALOG_NOT_FOUND", exc.message, exc.details)

    if isinstance(exc, ProductNotFoundError):
        return error_response(request, 404, "PRODUCT_NOT_FOUND", exc.message, exc.details)

    if isinstance(exc, ClientNotFoundError):
        return error_response(request, 404, "CLIENT_NOT_FOUND", exc.message, exc.details)

    if isinstance(exc, ImportRejectedError):
        return error_response(request, 422, "IMPORT_REJECTED", exc.message, exc.details)

    if isinstance(exc, InvalidStateTransitionError):
        return error_response(request, 409, "INVALID_STATE_TRANSITION", exc.message, exc.details)

    if isinstance(exc, StorageError):
        logger.error("Storage failure", path=request.url.path, error=exc.message)
        return error_response(request, 503, "STORAGE_ERROR", "Storage is unavailable")

    logger.error("Domain error", path=request.url.path, error=exc.message)
    return error_response(request, 500, "INTERNAL_ERROR", "An internal error occurred")
