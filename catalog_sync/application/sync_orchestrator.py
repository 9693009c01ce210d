"""Catalog synchronization batch tasks.

Re-derives catalog product data in resumable pages:
- migrate-legacy: merge legacy product references into the canonical field
- rebuild-mapping: rebuild the mapping table rows from the canonical field

Each step processes one page of catalogs and returns the cursor to pass
to the next step together with the completed fraction.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.catalog.codec import normalize_product_ids
from catalog_sync.catalog.models import Catalog, CatalogProduct
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository
from catalog_sync.domain.exceptions import PersistenceError
from catalog_sync.infrastructure.config import settings

logger = structlog.get_logger()


class SyncTask(str, Enum):
    """Available synchronization tasks."""

    MIGRATE_LEGACY = "migrate-legacy"
    REBUILD_MAPPING = "rebuild-mapping"


@dataclass
class SyncCursor:
    """Progress of a synchronization run, carried between steps.

    Attributes:
        remaining_ids: Catalog IDs not processed yet.
        total: Number of catalogs in the run.
        progress: Number of catalogs processed so far.
        updated: Catalogs whose data changed.
        failed: Catalogs that could not be written.
    """

    remaining_ids: list[int] = field(default_factory=list)
    total: int = 0
    progress: int = 0
    updated: int = 0
    failed: int = 0

    @property
    def finished(self) -> bool:
        """Check if every catalog was visited."""
        return not self.remaining_ids

    @property
    def fraction(self) -> float:
        """Get the completed fraction, 1.0 only once finished."""
        if self.finished or self.total <= 0:
            return 1.0
        return min(self.progress / self.total, 1.0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the task runner."""
        return {
            "remaining_ids": list(self.remaining_ids),
            "total": self.total,
            "progress": self.progress,
            "updated": self.updated,
            "failed": self.failed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncCursor":
        """Restore a cursor stored by the task runner."""
        return cls(
            remaining_ids=[int(catalog_id) for catalog_id in data.get("remaining_ids", [])],
            total=int(data.get("total", 0)),
            progress=int(data.get("progress", 0)),
            updated=int(data.get("updated", 0)),
            failed=int(data.get("failed", 0)),
        )


@dataclass
class SyncSummary:
    """Result of a complete synchronization run."""

    task: SyncTask
    total: int
    updated: int
    failed: int
    steps: int


class CatalogSyncOrchestrator:
    """Runs catalog synchronization tasks page by page.

    Example usage:
        orchestrator = CatalogSyncOrchestrator(session, catalogs, catalog_products)
        cursor, fraction = await orchestrator.rebuild_mapping_step(None)
        while fraction < 1.0:
            cursor, fraction = await orchestrator.rebuild_mapping_step(cursor)
    """

    def __init__(
        self,
        session: AsyncSession,
        catalogs: CatalogRepository,
        catalog_products: CatalogProductRepository,
        batch_size: int | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            session: Async SQLAlchemy session.
            catalogs: Catalog repository.
            catalog_products: Catalog product set repository.
            batch_size: Catalogs per step.
        """
        self.session = session
        self.catalogs = catalogs
        self.catalog_products = catalog_products
        self.batch_size = batch_size or settings.sync_batch_size

    async def step(
        self,
        task: SyncTask,
        cursor: SyncCursor | None,
    ) -> tuple[SyncCursor, float]:
        """Run one page of a task.

        Args:
            task: Task to run.
            cursor: Cursor returned by the previous step, None to start.

        Returns:
            Updated cursor and completed fraction.
        """
        if task is SyncTask.MIGRATE_LEGACY:
            return await self.migrate_legacy_step(cursor)
        return await self.rebuild_mapping_step(cursor)

    async def migrate_legacy_step(self, cursor: SyncCursor | None) -> tuple[SyncCursor, float]:
        """Merge legacy product references into the canonical field.

        Existing IDs keep their order; legacy IDs not yet present are
        appended.
        """
        return await self._run_page(cursor, self._migrate_catalog)

    async def rebuild_mapping_step(self, cursor: SyncCursor | None) -> tuple[SyncCursor, float]:
        """Rebuild mapping rows from each catalog's canonical field."""
        return await self._run_page(cursor, self._rebuild_catalog)

    async def run(self, task: SyncTask) -> SyncSummary:
        """Run a task to completion.

        Args:
            task: Task to run.

        Returns:
            Totals of the run.
        """
        if task is SyncTask.REBUILD_MAPPING:
            await self.ensure_mapping_table()

        cursor, fraction = await self.step(task, None)
        steps = 1
        while fraction < 1.0:
            cursor, fraction = await self.step(task, cursor)
            steps += 1

        logger.info(
            "Catalog sync finished",
            task=task.value,
            total=cursor.total,
            updated=cursor.updated,
            failed=cursor.failed,
            steps=steps,
        )
        return SyncSummary(
            task=task,
            total=cursor.total,
            updated=cursor.updated,
            failed=cursor.failed,
            steps=steps,
        )

    async def ensure_mapping_table(self) -> bool:
        """Create the mapping table if it is missing.

        Returns:
            True if the table was created.
        """
        if await self.catalog_products.mapping_table_exists():
            return False

        connection = await self.session.connection()
        await connection.run_sync(
            lambda sync_connection: CatalogProduct.__table__.create(sync_connection, checkfirst=True)
        )
        logger.info("Created catalog/product mapping table")
        return True

    async def _start(self) -> SyncCursor:
        catalog_ids = await self.catalogs.list_ids()
        return SyncCursor(remaining_ids=catalog_ids, total=len(catalog_ids))

    async def _run_page(
        self,
        cursor: SyncCursor | None,
        process: Callable[[Catalog], Awaitable[bool | None]],
    ) -> tuple[SyncCursor, float]:
        if cursor is None:
            cursor = await self._start()
            if cursor.finished:
                logger.info("No catalogs found for sync")
                return cursor, 1.0

        batch = cursor.remaining_ids[: self.batch_size]
        next_cursor = SyncCursor(
            remaining_ids=cursor.remaining_ids[self.batch_size :],
            total=cursor.total,
            progress=cursor.progress,
            updated=cursor.updated,
            failed=cursor.failed,
        )

        for catalog_id in batch:
            catalog = await self.catalogs.get_by_id(catalog_id)
            if catalog is None:
                continue

            result = await process(catalog)
            if result is True:
                next_cursor.updated += 1
            elif result is None:
                next_cursor.failed += 1

        next_cursor.progress += len(batch)
        logger.debug(
            "Catalog sync page done",
            progress=next_cursor.progress,
            total=next_cursor.total,
        )
        return next_cursor, next_cursor.fraction

    async def _migrate_catalog(self, catalog: Catalog) -> bool | None:
        """Returns True if updated, False if unchanged, None on failure."""
        existing_ids = self.catalog_products.get_product_ids(catalog)
        legacy_ids = normalize_product_ids(catalog.legacy_product_ids or [])
        final_ids = normalize_product_ids(existing_ids + legacy_ids)

        if self.catalog_products.codec.encode(final_ids) == (catalog.product_data or ""):
            return False

        catalog_id = catalog.id
        try:
            async with self.catalogs.savepoint():
                await self.catalog_products.set_product_ids(catalog, final_ids)
                await self.catalogs.save(catalog)
        except PersistenceError as exc:
            logger.error(
                "Failed to migrate catalog",
                catalog_id=catalog_id,
                error=exc.message,
            )
            return None
        return True

    async def _rebuild_catalog(self, catalog: Catalog) -> bool | None:
        product_ids = self.catalog_products.get_product_ids(catalog)
        if await self.catalog_products.sync_mapping_table(catalog, product_ids):
            return True
        return None
