"""Health check endpoints.

- GET /health - liveness, never touches the database
- GET /ready - readiness, runs a query through a request session
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from catalog_sync.api.dependencies import SessionDep
from catalog_sync.infrastructure.config import settings
from catalog_sync.infrastructure.database import check_database

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="catalog-sync",
        version=settings.api_version,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable"}},
)
async def readiness_check(
    request: Request, session: SessionDep
) -> ReadinessResponse | JSONResponse:
    """Check that the database accepts queries.

    Returns:
        Readiness status, or a 503 error body when the database is down.
    """
    if not await check_database(session):
        return JSONResponse(
            status_code=503,
            content={
                "error_code": "NOT_READY",
                "message": "Database is unavailable",
                "details": {"database": "unavailable"},
                "request_id": getattr(request.state, "request_id", None),
            },
        )
    return ReadinessResponse(status="ready", database="ok")
