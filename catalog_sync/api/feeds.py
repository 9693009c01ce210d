"""Feed import lifecycle endpoints.

Hooks called by the host import runner:
- POST /feeds/{feed_key}/start - reset pending updates
- POST /feeds/{feed_key}/rows - record one imported product
- POST /feeds/{feed_key}/finish - apply pending updates
- PUT /feeds/{feed_key}/catalog - remember the feed's fallback catalog
- POST /feeds/{feed_key}/products/{product_id}/presave - tag a product before save
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from catalog_sync.api.catalogs import CatalogsDep, load_catalog
from catalog_sync.api.dependencies import (
    get_client_repository,
    get_feed_reconciler,
    get_product_repository,
)
from catalog_sync.api.schemas import (
    ErrorResponse,
    FeedCatalogRequest,
    FeedCatalogResponse,
    FeedFinishRequest,
    FeedFinishResponse,
    FeedRowRequest,
    FeedRowResponse,
    FeedStartResponse,
    ProductPresaveRequest,
    ProductPresaveResponse,
)
from catalog_sync.application.feed_reconciler import FeedReconciler, ImportedRow
from catalog_sync.catalog.models import Catalog
from catalog_sync.catalog.repository import CatalogRepository, ClientRepository, ProductRepository
from catalog_sync.domain.exceptions import ClientNotFoundError, ProductNotFoundError

logger = structlog.get_logger()

router = APIRouter(prefix="/feeds", tags=["Feeds"])

ReconcilerDep = Annotated[FeedReconciler, Depends(get_feed_reconciler)]
ClientsDep = Annotated[ClientRepository, Depends(get_client_repository)]
ProductsDep = Annotated[ProductRepository, Depends(get_product_repository)]


async def resolve_row_catalog(
    feed_key: str,
    request: FeedRowRequest,
    catalogs: CatalogRepository,
    clients: ClientRepository,
    reconciler: FeedReconciler,
) -> Catalog | None:
    """Get the catalog a row targets.

    An explicit catalog ID must exist. A client ID resolves to the
    client's custom catalog or the catalog remembered for the feed.

    Raises:
        CatalogNotFoundError: If the explicit catalog does not exist.
        ClientNotFoundError: If the client does not exist.
    """
    if request.catalog_id is not None:
        return await load_catalog(catalogs, request.catalog_id)

    client = await clients.get_by_id(request.client_id)
    if client is None:
        raise ClientNotFoundError(request.client_id)
    return await reconciler.resolve_feed_catalog(feed_key, client)


@router.post(
    "/{feed_key}/start",
    response_model=FeedStartResponse,
    status_code=status.HTTP_200_OK,
    summary="Start feed import",
)
async def start_import(feed_key: str, reconciler: ReconcilerDep) -> FeedStartResponse:
    """Clear any pending updates of a feed before it imports."""
    session = await reconciler.on_import_start(feed_key)
    return FeedStartResponse(feed_key=feed_key, status=session.status.value)


@router.post(
    "/{feed_key}/rows",
    response_model=FeedRowResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Record imported row",
)
async def record_row(
    feed_key: str,
    request: FeedRowRequest,
    catalogs: CatalogsDep,
    clients: ClientsDep,
    reconciler: ReconcilerDep,
) -> FeedRowResponse:
    """Record a product imported for a catalog.

    Rows whose client has no catalog are not recorded.

    Args:
        feed_key: Stable key of the import run.
        request: Imported row.
        catalogs: Catalog repository.
        clients: Client repository.
        reconciler: Feed reconciler.

    Returns:
        Whether the product was recorded.
    """
    catalog = await resolve_row_catalog(feed_key, request, catalogs, clients, reconciler)
    if catalog is None:
        logger.warning(
            "No catalog for feed client, skipping row",
            feed_key=feed_key,
            client_id=request.client_id,
            product_id=request.product_id,
        )
        return FeedRowResponse(feed_key=feed_key, recorded=False)

    catalog_id = catalog.id
    recorded = await reconciler.on_row_processed(
        feed_key,
        catalog,
        ImportedRow(
            product_id=request.product_id,
            sku=request.sku,
            client_ids=request.client_ids,
        ),
    )
    return FeedRowResponse(feed_key=feed_key, catalog_id=catalog_id, recorded=recorded)


@router.post(
    "/{feed_key}/finish",
    response_model=FeedFinishResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Finish feed import",
)
async def finish_import(
    feed_key: str,
    reconciler: ReconcilerDep,
    request: FeedFinishRequest | None = None,
) -> FeedFinishResponse:
    """Apply the pending updates of a feed to its catalogs.

    Args:
        feed_key: Stable key of the import run.
        reconciler: Feed reconciler.
        request: Feed-level values.

    Returns:
        Summary of applied updates.
    """
    request = request or FeedFinishRequest()
    summary = await reconciler.on_import_finish(
        feed_key,
        feed_client_id=request.client_id,
        feed_client_owner_id=request.client_owner_id,
        feed_client_type_id=request.client_type_id,
        feed_cover=request.cover,
    )
    return FeedFinishResponse(
        feed_key=summary.feed_key,
        catalogs_processed=summary.catalogs_processed,
        catalogs_saved=summary.catalogs_saved,
        catalogs_failed=summary.catalogs_failed,
        products_added=summary.products_added,
    )


@router.put(
    "/{feed_key}/catalog",
    response_model=FeedCatalogResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Remember feed catalog",
)
async def remember_catalog(
    feed_key: str,
    request: FeedCatalogRequest,
    catalogs: CatalogsDep,
    reconciler: ReconcilerDep,
) -> FeedCatalogResponse:
    """Set the catalog used when the feed's client has no custom catalog."""
    catalog = await load_catalog(catalogs, request.catalog_id)
    await reconciler.remember_feed_catalog(feed_key, catalog.id)
    return FeedCatalogResponse(feed_key=feed_key, catalog_id=catalog.id)


@router.post(
    "/{feed_key}/products/{product_id}/presave",
    response_model=ProductPresaveResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Tag product before save",
)
async def presave_product(
    feed_key: str,
    product_id: int,
    request: ProductPresaveRequest,
    products: ProductsDep,
    reconciler: ReconcilerDep,
) -> ProductPresaveResponse:
    """Add the feed's client type to a product the feed is saving.

    Args:
        feed_key: Stable key of the import run.
        product_id: Product about to be saved.
        request: Feed values.
        products: Product repository.
        reconciler: Feed reconciler.

    Returns:
        Client types of the product.
    """
    product = await products.get_by_id(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)

    tagged = reconciler.on_product_presave(product, request.client_type_id)
    if tagged:
        logger.info(
            "Feed tagged product",
            feed_key=feed_key,
            product_id=product_id,
            client_type_id=request.client_type_id,
        )
    return ProductPresaveResponse(
        product_id=product_id,
        client_type_ids=list(product.client_type_ids or []),
        tagged=tagged,
    )
