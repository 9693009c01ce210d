"""Commercial import endpoints.

- POST /imports/commercial - replace client catalogs from pre-parsed CSV rows
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from catalog_sync.api.dependencies import get_client_repository, get_import_service
from catalog_sync.api.schemas import (
    CommercialImportRequest,
    CommercialImportResponse,
    ErrorResponse,
)
from catalog_sync.application.import_service import CatalogImportService
from catalog_sync.catalog.repository import ClientRepository
from catalog_sync.domain.exceptions import ClientNotFoundError, ImportRejectedError

router = APIRouter(prefix="/imports", tags=["Imports"])


@router.post(
    "/commercial",
    response_model=CommercialImportResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Run commercial import",
)
async def run_commercial_import(
    request: CommercialImportRequest,
    service: Annotated[CatalogImportService, Depends(get_import_service)],
    clients: Annotated[ClientRepository, Depends(get_client_repository)],
) -> CommercialImportResponse:
    """Replace the catalogs of one client or of every client of a type.

    Importing by client type also forces that type on every catalog.

    Args:
        request: CSV rows and the clients to update.
        service: Commercial import service.
        clients: Client repository.

    Returns:
        Per-client summary and the references that matched no product.
    """
    if request.client_id is not None:
        client = await clients.get_by_id(request.client_id)
        if client is None:
            raise ClientNotFoundError(request.client_id)
        targets = [client]
        forced_type_id = None
    else:
        targets = await clients.find_by_type(request.client_type_id)
        if not targets:
            raise ImportRejectedError(
                f"No client has the client type {request.client_type_id}",
                details={"client_type_id": request.client_type_id},
            )
        forced_type_id = request.client_type_id

    result = await service.import_rows(request.rows, targets, forced_type_id)
    return CommercialImportResponse(
        processed=result.summary.processed,
        updated=result.summary.updated,
        created=result.summary.created,
        errors=result.summary.errors,
        missing_skus=result.missing_skus,
    )
