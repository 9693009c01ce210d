"""Application layer module.

Contains application services (use cases) that orchestrate
catalog storage, imports and batch synchronization.
"""

from catalog_sync.application.feed_reconciler import (
    FeedReconciler,
    FinishSummary,
    ImportedRow,
    ImportSession,
)
from catalog_sync.application.import_service import (
    CatalogImportService,
    SynchronizeSummary,
    normalize_sku_rows,
)
from catalog_sync.application.selection_service import CatalogSelectionService
from catalog_sync.application.sync_orchestrator import (
    CatalogSyncOrchestrator,
    SyncCursor,
    SyncSummary,
    SyncTask,
)

__all__ = [
    "CatalogImportService",
    "CatalogSelectionService",
    "CatalogSyncOrchestrator",
    "FeedReconciler",
    "FinishSummary",
    "ImportedRow",
    "ImportSession",
    "SyncCursor",
    "SyncSummary",
    "SyncTask",
    "SynchronizeSummary",
    "normalize_sku_rows",
]
