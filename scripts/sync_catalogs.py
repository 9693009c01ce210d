#!/usr/bin/env python3
"""Catalog synchronization script.

Runs a catalog sync task to completion, page by page, committing
after every page so an interrupted run keeps its progress.

Usage:
    python scripts/sync_catalogs.py --task rebuild-mapping
    python scripts/sync_catalogs.py --task migrate-legacy --batch-size 50
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog_sync.application.sync_orchestrator import (
    CatalogSyncOrchestrator,
    SyncCursor,
    SyncTask,
)
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository
from catalog_sync.infrastructure.database import async_session_factory
from catalog_sync.infrastructure.logging import configure_logging


async def run_step(
    task: SyncTask,
    cursor: SyncCursor | None,
    batch_size: int | None,
) -> tuple[SyncCursor, float]:
    """Run one page of a task in its own transaction.

    Args:
        task: Task to run.
        cursor: Cursor from the previous page.
        batch_size: Catalogs per page.

    Returns:
        Updated cursor and completed fraction.
    """
    async with async_session_factory() as session:
        orchestrator = CatalogSyncOrchestrator(
            session=session,
            catalogs=CatalogRepository(session),
            catalog_products=CatalogProductRepository(session),
            batch_size=batch_size,
        )
        if cursor is None and task is SyncTask.REBUILD_MAPPING:
            await orchestrator.ensure_mapping_table()

        result = await orchestrator.step(task, cursor)
        await session.commit()
        return result


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Synchronize catalog product data",
    )
    parser.add_argument(
        "--task",
        choices=[task.value for task in SyncTask],
        default=SyncTask.REBUILD_MAPPING.value,
        help="Task to run (default: rebuild-mapping)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Catalogs per page (default: SYNC_BATCH_SIZE setting)",
    )

    args = parser.parse_args()
    configure_logging()
    task = SyncTask(args.task)

    print("=" * 60)
    print("Catalog Sync")
    print("=" * 60)
    print(f"Task: {task.value}")
    print()

    cursor, fraction = await run_step(task, None, args.batch_size)
    print(f"  {cursor.progress}/{cursor.total} catalogs ({fraction:.0%})")
    while fraction < 1.0:
        cursor, fraction = await run_step(task, cursor, args.batch_size)
        print(f"  {cursor.progress}/{cursor.total} catalogs ({fraction:.0%})")

    print()
    print(f"  ✓ Updated: {cursor.updated}")
    print(f"  ✗ Failed: {cursor.failed}")
    print("=" * 60)
    print("Sync complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
