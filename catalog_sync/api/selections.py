"""Catalog selection endpoints.

Lets a user build a custom catalog by hand:
- GET /selections/{owner_id} - selected products
- POST /selections/{owner_id}/products - add a product
- DELETE /selections/{owner_id}/products/{product_id} - remove a product
- DELETE /selections/{owner_id} - clear the selection
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from catalog_sync.api.catalogs import product_to_schema
from catalog_sync.api.dependencies import get_product_repository, get_selection_service
from catalog_sync.api.schemas import (
    ErrorResponse,
    SelectionAddRequest,
    SelectionAddResponse,
    SelectionResponse,
)
from catalog_sync.application.selection_service import CatalogSelectionService
from catalog_sync.catalog.repository import ProductRepository
from catalog_sync.domain.exceptions import ProductNotFoundError

router = APIRouter(prefix="/selections", tags=["Selections"])

SelectionDep = Annotated[CatalogSelectionService, Depends(get_selection_service)]


async def selection_response(owner_id: int, service: CatalogSelectionService) -> SelectionResponse:
    """Build the listing of a selection."""
    products = await service.load_products()
    return SelectionResponse(
        owner_id=owner_id,
        product_ids=await service.get_items(),
        products=[product_to_schema(product) for product in products.values()],
    )


@router.get("/{owner_id}", response_model=SelectionResponse, summary="Get selection")
async def get_selection(owner_id: int, service: SelectionDep) -> SelectionResponse:
    """Get the products a user selected, by ascending ID."""
    return await selection_response(owner_id, service)


@router.post(
    "/{owner_id}/products",
    response_model=SelectionAddResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Add product to selection",
)
async def add_to_selection(
    owner_id: int,
    request: SelectionAddRequest,
    service: SelectionDep,
    products: Annotated[ProductRepository, Depends(get_product_repository)],
) -> SelectionAddResponse:
    """Add a product to a user's selection.

    The user's custom catalog is created on the first add.

    Args:
        owner_id: User ID.
        request: Product to add.
        service: Selection service of the user.
        products: Product repository.

    Returns:
        Whether the product was added and the selected IDs.
    """
    product = await products.get_by_id(request.product_id)
    if product is None:
        raise ProductNotFoundError(request.product_id)

    added = await service.add_product(product)
    return SelectionAddResponse(
        owner_id=owner_id,
        product_id=request.product_id,
        added=added,
        product_ids=await service.get_items(),
    )


@router.delete(
    "/{owner_id}/products/{product_id}",
    response_model=SelectionResponse,
    summary="Remove product from selection",
)
async def remove_from_selection(
    owner_id: int,
    product_id: int,
    service: SelectionDep,
) -> SelectionResponse:
    """Remove a product; unknown products and missing selections are ignored."""
    await service.remove_product(product_id)
    return await selection_response(owner_id, service)


@router.delete("/{owner_id}", response_model=SelectionResponse, summary="Clear selection")
async def clear_selection(owner_id: int, service: SelectionDep) -> SelectionResponse:
    """Remove every product from a user's selection."""
    await service.clear()
    return await selection_response(owner_id, service)
