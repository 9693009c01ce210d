"""Catalog selection service.

Manages the custom catalog a user builds by hand while browsing:
adding, removing and clearing products. Every change goes through
CatalogProductRepository so the mapping table stays in sync.
"""

import structlog

from catalog_sync.catalog.models import Catalog, Product
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository, ClientRepository
from catalog_sync.domain.exceptions import PersistenceError

logger = structlog.get_logger()


class CatalogSelectionService:
    """Service for a user's catalog selection.

    Save failures are logged and the selection change is lost; they
    never propagate to the caller.

    Example usage:
        service = CatalogSelectionService(user_id, catalogs, clients, catalog_products)
        await service.add_product(product)
        ids = await service.get_items()
    """

    def __init__(
        self,
        owner_id: int,
        catalogs: CatalogRepository,
        clients: ClientRepository,
        catalog_products: CatalogProductRepository,
        owner_name: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            owner_id: User whose selection is managed.
            catalogs: Catalog repository.
            clients: Client repository.
            catalog_products: Catalog product set repository.
            owner_name: Display name used to title a new catalog.
        """
        self.owner_id = owner_id
        self.owner_name = owner_name
        self.catalogs = catalogs
        self.clients = clients
        self.catalog_products = catalog_products
        self._catalog: Catalog | None = None
        self._catalog_loaded = False

    async def get_items(self) -> list[int]:
        """Get the selected product IDs.

        Returns:
            Product IDs in ascending order.
        """
        catalog = await self._load_catalog()
        if catalog is None:
            return []
        return sorted(set(self.catalog_products.get_product_ids(catalog)))

    async def get_item_count(self) -> int:
        """Get the number of selected products."""
        return len(await self.get_items())

    async def add_product(self, product: Product) -> bool:
        """Add a product to the selection, creating the catalog if needed.

        Args:
            product: Product to add.

        Returns:
            True if the product was newly added.
        """
        if product.bundle != self.catalog_products.product_bundle:
            logger.warning(
                "Attempt to add non-product entity to catalog",
                product_id=product.id,
                bundle=product.bundle,
            )
            return False

        catalog = await self._load_catalog(create_if_missing=True)
        if catalog is None:
            logger.error("Unable to create or load catalog", owner_id=self.owner_id)
            return False

        existing = self.catalog_products.get_product_ids(catalog)
        if product.id in existing:
            return False

        return await self._store(
            catalog,
            [*existing, product.id],
            "Added product to custom catalog",
            product_id=product.id,
        )

    async def remove_product(self, product_id: int) -> None:
        """Remove a product from the selection.

        Args:
            product_id: Product ID to remove.
        """
        catalog = await self._load_catalog()
        if catalog is None:
            return

        ids = self.catalog_products.get_product_ids(catalog)
        filtered = [existing_id for existing_id in ids if existing_id != product_id]
        if filtered != ids:
            await self._store(
                catalog, filtered, "Removed product from custom catalog", product_id=product_id
            )

    async def clear(self) -> None:
        """Remove every product from the selection."""
        catalog = await self._load_catalog()
        if catalog is None:
            return

        await self._store(catalog, [], "Cleared custom catalog")

    async def load_products(self) -> dict[int, Product]:
        """Load the selected products.

        Returns:
            Products keyed by ID, in ascending ID order.
        """
        catalog = await self._load_catalog()
        if catalog is None:
            return {}
        loaded = await self.catalog_products.load_products(catalog)
        return {product_id: loaded[product_id] for product_id in sorted(loaded)}

    async def _load_catalog(self, create_if_missing: bool = False) -> Catalog | None:
        if not self._catalog_loaded:
            self._catalog_loaded = True
            self._catalog = await self.catalogs.find_owner_catalog(self.owner_id)

        if self._catalog is None and create_if_missing:
            self._catalog = await self._create_catalog()
        return self._catalog

    async def _create_catalog(self) -> Catalog | None:
        client = await self.clients.find_by_user(self.owner_id)
        catalog = Catalog(
            title=f"Custom catalog of {self.owner_name or self.owner_id}",
            owner_id=self.owner_id,
            is_custom=True,
            is_published=True,
            product_data="",
            client_ids=[self.owner_id],
        )
        if client is not None:
            catalog.client_id = client.id
            catalog.client_type_id = client.client_type_id

        try:
            async with self.catalogs.savepoint():
                await self.catalogs.save(catalog)
        except PersistenceError as exc:
            logger.error(
                "Failed to create custom catalog",
                owner_id=self.owner_id,
                error=exc.message,
            )
            return None
        return catalog

    async def _store(
        self,
        catalog: Catalog,
        product_ids: list[int],
        message: str,
        **context: object,
    ) -> bool:
        """Write the product set and save the catalog in one SAVEPOINT.

        Returns:
            True if the catalog was saved.
        """
        catalog_id = catalog.id
        try:
            async with self.catalogs.savepoint():
                await self.catalog_products.set_product_ids(catalog, product_ids)
                await self.catalogs.save(catalog)
        except PersistenceError as exc:
            logger.error(
                "Failed to save catalog",
                catalog_id=catalog_id,
                error=exc.message,
            )
            # the rolled-back catalog is expired; reload on next access
            self._catalog = None
            self._catalog_loaded = False
            return False

        logger.debug(message, catalog_id=catalog_id, **context)
        return True
