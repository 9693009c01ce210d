"""Maintenance endpoints.

Exposes catalog synchronization steps to a resumable task runner:
- POST /maintenance/catalog-sync/{task} - run one page of a task
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from catalog_sync.api.dependencies import get_sync_orchestrator
from catalog_sync.api.schemas import SyncCursorSchema, SyncStepRequest, SyncStepResponse
from catalog_sync.application.sync_orchestrator import CatalogSyncOrchestrator, SyncTask

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.post(
    "/catalog-sync/{task}",
    response_model=SyncStepResponse,
    summary="Run catalog sync step",
)
async def run_sync_step(
    task: SyncTask,
    orchestrator: Annotated[CatalogSyncOrchestrator, Depends(get_sync_orchestrator)],
    request: SyncStepRequest | None = None,
) -> SyncStepResponse:
    """Run one page of a synchronization task.

    Pass the returned cursor to the next call until finished is true.

    Args:
        task: Task to run.
        orchestrator: Catalog sync orchestrator.
        request: Cursor from the previous step.

    Returns:
        Updated cursor and progress.
    """
    cursor = request.cursor.to_cursor() if request and request.cursor else None
    next_cursor, fraction = await orchestrator.step(task, cursor)

    return SyncStepResponse(
        task=task.value,
        cursor=SyncCursorSchema(**next_cursor.to_dict()),
        progress=fraction,
        finished=next_cursor.finished,
    )
