"""Request-scoped dependencies.

Builds repositories and services per request from the database
session, so no component looks up shared state at call time.
"""

from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.application.feed_reconciler import FeedReconciler
from catalog_sync.application.import_service import CatalogImportService
from catalog_sync.application.selection_service import CatalogSelectionService
from catalog_sync.application.sync_orchestrator import CatalogSyncOrchestrator
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository, ClientRepository, ProductRepository
from catalog_sync.infrastructure.database import get_session
from catalog_sync.infrastructure.state_store import DatabaseStateStore

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_catalog_repository(session: SessionDep) -> CatalogRepository:
    """Get catalog repository."""
    return CatalogRepository(session)


def get_catalog_product_repository(session: SessionDep) -> CatalogProductRepository:
    """Get catalog product set repository."""
    return CatalogProductRepository(session)


def get_product_repository(session: SessionDep) -> ProductRepository:
    """Get product repository."""
    return ProductRepository(session)


def get_client_repository(session: SessionDep) -> ClientRepository:
    """Get client repository."""
    return ClientRepository(session)


def get_feed_reconciler(session: SessionDep) -> FeedReconciler:
    """Get feed reconciler backed by the database state store."""
    return FeedReconciler(
        catalogs=CatalogRepository(session),
        products=ProductRepository(session),
        catalog_products=CatalogProductRepository(session),
        state=DatabaseStateStore(session),
    )


def get_sync_orchestrator(session: SessionDep) -> CatalogSyncOrchestrator:
    """Get catalog sync orchestrator."""
    return CatalogSyncOrchestrator(
        session=session,
        catalogs=CatalogRepository(session),
        catalog_products=CatalogProductRepository(session),
    )


def get_selection_service(
    owner_id: int,
    session: SessionDep,
    owner_name: Annotated[
        str | None, Query(description="Display name used to title a new catalog")
    ] = None,
) -> CatalogSelectionService:
    """Get the selection service of the user in the path."""
    return CatalogSelectionService(
        owner_id=owner_id,
        catalogs=CatalogRepository(session),
        clients=ClientRepository(session),
        catalog_products=CatalogProductRepository(session),
        owner_name=owner_name,
    )


def get_import_service(session: SessionDep) -> CatalogImportService:
    """Get commercial import service."""
    return CatalogImportService(
        catalogs=CatalogRepository(session),
        products=ProductRepository(session),
        catalog_products=CatalogProductRepository(session),
    )
