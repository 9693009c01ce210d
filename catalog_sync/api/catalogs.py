"""Catalog product set endpoints.

Provides endpoints for reading and replacing a catalog's product set:
- GET /catalogs/{id}/products - product set and loaded products
- PUT /catalogs/{id}/products - replace the product set
- GET /catalogs/{id}/mapping - mapping table rows
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from catalog_sync.api.dependencies import (
    get_catalog_product_repository,
    get_catalog_repository,
)
from catalog_sync.api.schemas import (
    CatalogMappingResponse,
    CatalogProductsResponse,
    CatalogProductsUpdateRequest,
    ErrorResponse,
    MappingRowSchema,
    ProductSchema,
)
from catalog_sync.catalog.models import Catalog, Product
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository
from catalog_sync.domain.exceptions import CatalogNotFoundError

router = APIRouter(prefix="/catalogs", tags=["Catalogs"])

CatalogsDep = Annotated[CatalogRepository, Depends(get_catalog_repository)]
CatalogProductsDep = Annotated[CatalogProductRepository, Depends(get_catalog_product_repository)]


# ============================================================================
# Helpers
# ============================================================================


async def load_catalog(catalogs: CatalogRepository, catalog_id: int) -> Catalog:
    """Load a catalog or raise CatalogNotFoundError."""
    catalog = await catalogs.get_by_id(catalog_id)
    if catalog is None:
        raise CatalogNotFoundError(catalog_id)
    return catalog


def product_to_schema(product: Product) -> ProductSchema:
    """Convert Product to ProductSchema."""
    return ProductSchema(id=product.id, sku=product.sku, title=product.title)


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/{catalog_id}/products",
    response_model=CatalogProductsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get catalog products",
)
async def get_catalog_products(
    catalog_id: int,
    catalogs: CatalogsDep,
    catalog_products: CatalogProductsDep,
    ids: Annotated[list[int] | None, Query(description="Restrict to these product IDs")] = None,
) -> CatalogProductsResponse:
    """Get the product set of a catalog.

    Args:
        catalog_id: Catalog ID.
        catalogs: Catalog repository.
        catalog_products: Catalog product set repository.
        ids: Optional subset of product IDs to load.

    Returns:
        Product IDs and loaded products in catalog order.
    """
    catalog = await load_catalog(catalogs, catalog_id)

    if ids:
        products = await catalog_products.load_products_subset(catalog, ids)
    else:
        products = await catalog_products.load_products(catalog)

    return CatalogProductsResponse(
        catalog_id=catalog_id,
        product_ids=catalog_products.get_product_ids(catalog),
        products=[product_to_schema(product) for product in products.values()],
    )


@router.put(
    "/{catalog_id}/products",
    response_model=CatalogProductsResponse,
    status_code=status.HTTP_200_OK,
    responses={404: {"model": ErrorResponse}},
    summary="Replace catalog products",
)
async def replace_catalog_products(
    catalog_id: int,
    request: CatalogProductsUpdateRequest,
    catalogs: CatalogsDep,
    catalog_products: CatalogProductsDep,
) -> CatalogProductsResponse:
    """Replace the product set of a catalog.

    Duplicates and non-positive IDs are dropped; order is kept.

    Args:
        catalog_id: Catalog ID.
        request: New product set.
        catalogs: Catalog repository.
        catalog_products: Catalog product set repository.

    Returns:
        Stored product set.
    """
    catalog = await load_catalog(catalogs, catalog_id)
    stored = await catalog_products.set_product_ids(catalog, request.product_ids)
    await catalogs.save(catalog)

    return CatalogProductsResponse(catalog_id=catalog_id, product_ids=stored)


@router.get(
    "/{catalog_id}/mapping",
    response_model=CatalogMappingResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get catalog mapping rows",
)
async def get_catalog_mapping(
    catalog_id: int,
    catalogs: CatalogsDep,
    catalog_products: CatalogProductsDep,
) -> CatalogMappingResponse:
    """Get the mapping table rows of a catalog.

    Args:
        catalog_id: Catalog ID.
        catalogs: Catalog repository.
        catalog_products: Catalog product set repository.

    Returns:
        Rows ordered by weight.
    """
    await load_catalog(catalogs, catalog_id)
    rows = await catalog_products.get_mapping_rows(catalog_id)

    return CatalogMappingResponse(
        catalog_id=catalog_id,
        rows=[MappingRowSchema(product_id=row.product_id, weight=row.weight) for row in rows],
    )
