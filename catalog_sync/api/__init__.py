"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from catalog_sync.api.catalogs import router as catalogs_router
from catalog_sync.api.feeds import router as feeds_router
from catalog_sync.api.health import router as health_router
from catalog_sync.api.imports import router as imports_router
from catalog_sync.api.maintenance import router as maintenance_router
from catalog_sync.api.selections import router as selections_router

__all__ = [
    "catalogs_router",
    "feeds_router",
    "health_router",
    "imports_router",
    "maintenance_router",
    "selections_router",
]
