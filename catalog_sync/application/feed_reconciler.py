"""Feed import reconciliation.

Merges the products of a CSV feed import into the target catalogs:
- Collects imported product IDs per catalog, row by row
- Skips rows whose SKU is already in the catalog or seen earlier in the run
- Checkpoints pending updates after every row to survive restarts
- Applies product, client and cover updates once the import finishes

The host import runner guarantees at most one active run per feed key;
accumulator updates are read-modify-write without locking.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from catalog_sync.catalog.codec import coerce_product_id, normalize_product_ids
from catalog_sync.catalog.models import Catalog, Client, Product
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository, ProductRepository
from catalog_sync.domain.exceptions import PersistenceError
from catalog_sync.domain.state_machines import ImportSessionStatus, validate_import_transition
from catalog_sync.infrastructure.config import settings
from catalog_sync.infrastructure.state_store import StateStore

logger = structlog.get_logger()


# ============================================================================
# Session Data
# ============================================================================


@dataclass
class ImportedRow:
    """Product imported from one feed row.

    Attributes:
        product_id: ID of the imported product.
        sku: SKU read from the row.
        client_ids: Users attached to the imported product.
    """

    product_id: int
    sku: str | None = None
    client_ids: list[int] = field(default_factory=list)

    @property
    def normalized_sku(self) -> str:
        """Get the trimmed SKU, or an empty string."""
        return (self.sku or "").strip()


@dataclass
class CatalogUpdate:
    """Pending changes for one catalog during an import run."""

    product_ids: list[int] = field(default_factory=list)
    client_ids: list[int] = field(default_factory=list)
    existing_skus: set[str] = field(default_factory=set)
    existing_skus_loaded: bool = False

    def add_product(self, product_id: int) -> None:
        """Record an imported product."""
        if product_id not in self.product_ids:
            self.product_ids.append(product_id)

    def add_clients(self, client_ids: list[int]) -> None:
        """Record users attached to an imported product."""
        for client_id in normalize_product_ids(client_ids):
            if client_id not in self.client_ids:
                self.client_ids.append(client_id)

    def to_state(self) -> dict[str, Any]:
        """Serialize for the state store."""
        return {
            "product_ids": list(self.product_ids),
            "client_ids": list(self.client_ids),
            "existing_skus": sorted(self.existing_skus),
            "existing_skus_loaded": self.existing_skus_loaded,
        }

    @classmethod
    def from_state(cls, data: Any) -> "CatalogUpdate | None":
        """Restore from a stored checkpoint entry.

        Returns:
            Restored update, or None if the entry is unusable.
        """
        if not isinstance(data, dict):
            return None

        skus = data.get("existing_skus") or []
        if isinstance(skus, dict):
            skus = list(skus)
        if not isinstance(skus, list):
            skus = []

        return cls(
            product_ids=normalize_product_ids(_as_list(data.get("product_ids"))),
            client_ids=normalize_product_ids(_as_list(data.get("client_ids"))),
            existing_skus={str(sku).strip() for sku in skus if str(sku).strip()},
            existing_skus_loaded=bool(data.get("existing_skus_loaded", False)),
        )


@dataclass
class ImportSession:
    """Accumulated catalog updates of one feed import run."""

    feed_key: str
    status: ImportSessionStatus = ImportSessionStatus.IDLE
    updates: dict[int, CatalogUpdate] = field(default_factory=dict)

    def transition_to(self, target: ImportSessionStatus) -> None:
        """Move the session to a new lifecycle state.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed.
        """
        validate_import_transition(self.feed_key, self.status, target)
        self.status = target

    def update_for(self, catalog_id: int) -> CatalogUpdate:
        """Get the pending update of a catalog, creating it on first touch."""
        if catalog_id not in self.updates:
            self.updates[catalog_id] = CatalogUpdate()
        return self.updates[catalog_id]

    def to_state(self) -> dict[str, Any]:
        """Serialize for the state store, keyed by catalog ID."""
        return {str(catalog_id): update.to_state() for catalog_id, update in self.updates.items()}

    @classmethod
    def from_state(cls, feed_key: str, data: Any) -> "ImportSession":
        """Restore a session from its checkpoint.

        Values of an unexpected type yield an empty session.
        """
        session = cls(feed_key=feed_key)
        if not isinstance(data, dict):
            if data is not None:
                logger.warning(
                    "Discarding malformed import checkpoint",
                    feed_key=feed_key,
                    value_type=type(data).__name__,
                )
            return session

        for raw_catalog_id, raw_update in data.items():
            catalog_id = coerce_product_id(raw_catalog_id)
            update = CatalogUpdate.from_state(raw_update)
            if catalog_id is not None and update is not None:
                session.updates[catalog_id] = update
        return session


@dataclass
class FinishSummary:
    """Result of applying an import session."""

    feed_key: str
    catalogs_processed: int = 0
    catalogs_saved: int = 0
    catalogs_failed: int = 0
    products_added: int = 0


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return value
    return []


# ============================================================================
# Reconciler
# ============================================================================


class FeedReconciler:
    """Applies feed imports to catalogs.

    Hooks are called by the host import runner in order:
    on_import_start, on_row_processed for every imported row, then
    on_import_finish. Each hook may run in a different request; the
    checkpoint in the state store carries the session between them.

    Example usage:
        reconciler = FeedReconciler(catalogs, products, catalog_products, state)
        await reconciler.on_import_start(feed_key)
        await reconciler.on_row_processed(feed_key, catalog, ImportedRow(30, "SKU-30"))
        await reconciler.on_import_finish(feed_key, feed_client_id=client.id)
    """

    def __init__(
        self,
        catalogs: CatalogRepository,
        products: ProductRepository,
        catalog_products: CatalogProductRepository,
        state: StateStore,
        pending_updates_prefix: str | None = None,
        catalog_for_feed_prefix: str | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            catalogs: Catalog repository.
            products: Product repository used to resolve SKUs.
            catalog_products: Catalog product set repository.
            state: Durable state store for checkpoints.
            pending_updates_prefix: State key prefix for checkpoints.
            catalog_for_feed_prefix: State key prefix for feed catalogs.
        """
        self.catalogs = catalogs
        self.products = products
        self.catalog_products = catalog_products
        self.state = state
        self.pending_updates_prefix = (
            pending_updates_prefix or settings.pending_updates_state_prefix
        )
        self.catalog_for_feed_prefix = (
            catalog_for_feed_prefix or settings.catalog_for_feed_state_prefix
        )
        self._sessions: dict[str, ImportSession] = {}

    # ------------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------------

    async def on_import_start(self, feed_key: str) -> ImportSession:
        """Reset pending updates before an import starts.

        Args:
            feed_key: Stable key of the import run.

        Returns:
            The fresh session.
        """
        previous = self._sessions.pop(feed_key, None)
        await self.state.delete(self.checkpoint_key(feed_key))

        session = ImportSession(feed_key=feed_key)
        if previous is not None:
            session.status = previous.status
        session.transition_to(ImportSessionStatus.INITIALIZED)
        self._sessions[feed_key] = session

        logger.info("Feed import started", feed_key=feed_key)
        return session

    async def on_row_processed(
        self,
        feed_key: str,
        catalog: Catalog,
        row: ImportedRow,
    ) -> bool:
        """Collect an imported product for a catalog.

        Args:
            feed_key: Stable key of the import run.
            catalog: Target catalog.
            row: Imported product.

        Returns:
            True if the product was recorded, False for duplicates.
        """
        session = await self._load_session(feed_key)
        session.transition_to(ImportSessionStatus.ACCUMULATING)

        product_id = coerce_product_id(row.product_id)
        if product_id is None or catalog.id is None:
            logger.warning(
                "Skipping unusable import row",
                feed_key=feed_key,
                catalog_id=catalog.id,
                product_id=row.product_id,
            )
            await self._checkpoint(session)
            return False

        update = session.update_for(int(catalog.id))
        if not update.existing_skus_loaded:
            existing_ids = self.catalog_products.get_product_ids(catalog)
            skus = await self.products.get_skus(existing_ids)
            update.existing_skus.update(skus.values())
            update.existing_skus_loaded = True

        sku = row.normalized_sku
        if sku and sku in update.existing_skus:
            logger.debug(
                "SKU already in catalog, skipping",
                feed_key=feed_key,
                catalog_id=catalog.id,
                sku=sku,
            )
            await self._checkpoint(session)
            return False

        if sku:
            update.existing_skus.add(sku)
        update.add_product(product_id)
        update.add_clients(row.client_ids)

        await self._checkpoint(session)
        return True

    async def on_import_finish(
        self,
        feed_key: str,
        feed_client_id: int | None = None,
        feed_client_owner_id: int | None = None,
        feed_client_type_id: int | None = None,
        feed_cover: list[dict[str, Any]] | None = None,
    ) -> FinishSummary:
        """Apply pending updates to every touched catalog.

        Args:
            feed_key: Stable key of the import run.
            feed_client_id: Client the feed imports for.
            feed_client_owner_id: Owner user of that client.
            feed_client_type_id: Client type of the feed.
            feed_cover: Cover image values of the feed.

        Returns:
            Summary of applied updates.
        """
        session = await self._load_session(feed_key)
        # a failed finish reloads from the checkpoint on retry
        self._sessions.pop(feed_key, None)
        session.transition_to(ImportSessionStatus.FINALIZING)
        summary = FinishSummary(feed_key=feed_key)

        for catalog_id, update in session.updates.items():
            catalog = await self.catalogs.get_by_id(catalog_id)
            if catalog is None:
                logger.warning(
                    "Catalog vanished before import finished",
                    feed_key=feed_key,
                    catalog_id=catalog_id,
                )
                continue

            summary.catalogs_processed += 1
            label = catalog.label()
            try:
                async with self.catalogs.savepoint():
                    needs_save, added = await self._apply_update(
                        catalog,
                        update,
                        feed_client_id=feed_client_id,
                        feed_client_owner_id=feed_client_owner_id,
                        feed_client_type_id=feed_client_type_id,
                        feed_cover=feed_cover,
                    )
                    if needs_save:
                        await self.catalogs.save(catalog)
            except PersistenceError as exc:
                summary.catalogs_failed += 1
                logger.error(
                    "Failed to update catalog for feed",
                    feed_key=feed_key,
                    catalog=label,
                    catalog_id=catalog_id,
                    error=exc.message,
                )
                continue

            summary.products_added += added
            if needs_save:
                summary.catalogs_saved += 1

        await self.state.delete(self.checkpoint_key(feed_key))
        session.transition_to(ImportSessionStatus.IDLE)

        logger.info(
            "Feed import finished",
            feed_key=feed_key,
            catalogs_processed=summary.catalogs_processed,
            catalogs_saved=summary.catalogs_saved,
            catalogs_failed=summary.catalogs_failed,
            products_added=summary.products_added,
        )
        return summary

    def on_product_presave(self, product: Product, feed_client_type_id: int | None) -> bool:
        """Tag an imported product with the client type of its feed.

        Called for every entity the feed is about to save. Only products
        are tagged; the type is added at most once.

        Args:
            product: Entity about to be saved.
            feed_client_type_id: Client type of the feed.

        Returns:
            True if the type was added.
        """
        if product.bundle != self.catalog_products.product_bundle:
            return False

        type_id = coerce_product_id(feed_client_type_id)
        if type_id is None:
            logger.warning("Feed has no client type", product_id=product.id)
            return False

        current = normalize_product_ids(product.client_type_ids or [])
        if type_id in current:
            return False

        # reassign so the JSON column is flagged dirty
        product.client_type_ids = [*current, type_id]
        logger.debug("Added client type to product", product_id=product.id, client_type_id=type_id)
        return True

    # ------------------------------------------------------------------------
    # Feed catalog resolution
    # ------------------------------------------------------------------------

    async def resolve_feed_catalog(self, feed_key: str, client: Client) -> Catalog | None:
        """Find the catalog a client feed imports into.

        Uses the client's custom catalog, falling back to the catalog
        remembered for the feed.

        Args:
            feed_key: Stable key of the import run.
            client: Client the feed imports for.

        Returns:
            Target catalog, or None.
        """
        catalog = await self.catalogs.find_client_catalog(client.id)
        if catalog is not None:
            return catalog

        stored = await self.state.get(self.catalog_for_feed_key(feed_key))
        catalog_id = coerce_product_id(stored)
        if catalog_id is None:
            return None
        return await self.catalogs.get_by_id(catalog_id)

    async def remember_feed_catalog(self, feed_key: str, catalog_id: int) -> None:
        """Remember the catalog a feed imports into."""
        await self.state.set(self.catalog_for_feed_key(feed_key), int(catalog_id))

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def checkpoint_key(self, feed_key: str) -> str:
        """Get the state key of a feed's pending updates."""
        return f"{self.pending_updates_prefix}{feed_key}"

    def catalog_for_feed_key(self, feed_key: str) -> str:
        """Get the state key of a feed's remembered catalog."""
        return f"{self.catalog_for_feed_prefix}{feed_key}"

    async def _load_session(self, feed_key: str) -> ImportSession:
        session = self._sessions.get(feed_key)
        if session is None:
            stored = await self.state.get(self.checkpoint_key(feed_key), {})
            session = ImportSession.from_state(feed_key, stored)
            self._sessions[feed_key] = session
        return session

    async def _checkpoint(self, session: ImportSession) -> None:
        key = self.checkpoint_key(session.feed_key)
        if not session.updates:
            await self.state.delete(key)
            return
        await self.state.set(key, session.to_state())

    async def _apply_update(
        self,
        catalog: Catalog,
        update: CatalogUpdate,
        feed_client_id: int | None,
        feed_client_owner_id: int | None,
        feed_client_type_id: int | None,
        feed_cover: list[dict[str, Any]] | None,
    ) -> tuple[bool, int]:
        """Apply one catalog's pending update in memory.

        Returns:
            Whether the catalog changed, and the number of products added.
        """
        needs_save = False
        added = 0

        if update.product_ids:
            existing_ids = self.catalog_products.get_product_ids(catalog)
            merged = set(existing_ids)
            for product_id in update.product_ids:
                if product_id not in merged:
                    merged.add(product_id)
                    added += 1

            if added:
                await self.catalog_products.set_product_ids(catalog, sorted(merged))
                needs_save = True
                logger.debug(
                    "Catalog receives imported products",
                    catalog=catalog.label(),
                    count=len(update.product_ids),
                    total=len(merged),
                )

        if feed_client_id and catalog.client_id != feed_client_id:
            catalog.client_id = feed_client_id
            needs_save = True

        if feed_client_type_id and catalog.client_type_id != feed_client_type_id:
            catalog.client_type_id = feed_client_type_id
            needs_save = True

        if feed_cover and catalog.cover != feed_cover:
            catalog.cover = [dict(item) for item in feed_cover]
            needs_save = True

        current_clients = sorted(set(normalize_product_ids(catalog.client_ids or [])))
        final_clients = set(current_clients)
        if feed_client_owner_id and feed_client_owner_id > 0:
            final_clients.add(feed_client_owner_id)
        final_clients.update(update.client_ids)
        if sorted(final_clients) != current_clients:
            catalog.client_ids = sorted(final_clients)
            needs_save = True

        return needs_save, added
