"""Catalog product set storage.

The canonical product set of a catalog lives in ``Catalog.product_data``.
The ``catalog_products`` table mirrors it row by row so listings and
exports can join and sort on it. This repository is the only code that
reads or writes either of them.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog
from sqlalchemy import and_, delete, inspect, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.catalog.codec import ProductSetCodec, normalize_product_ids
from catalog_sync.catalog.models import Catalog, CatalogProduct, Product
from catalog_sync.domain.exceptions import PersistenceError, StorageError
from catalog_sync.infrastructure.config import settings

logger = structlog.get_logger()


class CatalogProductRepository:
    """Read/write access to catalog product sets.

    Writes flush the canonical field and rebuild the mapping rows; the
    caller saves the catalog. Mapping table updates are best effort:
    failures are logged, never raised.

    Concurrent writers to the same catalog are not serialized; the
    last write wins.

    Example usage:
        async with async_session_factory() as session:
            products = CatalogProductRepository(session)
            catalogs = CatalogRepository(session)
            async with catalogs.savepoint():
                await products.set_product_ids(catalog, [3, 1, 2])
                await catalogs.save(catalog)
    """

    def __init__(
        self,
        session: AsyncSession,
        codec: ProductSetCodec | None = None,
        product_bundle: str | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            session: Async SQLAlchemy session.
            codec: Product set codec.
            product_bundle: Entity type accepted as a product.
        """
        self.session = session
        self.codec = codec or ProductSetCodec()
        self.product_bundle = product_bundle or settings.product_bundle

    def get_product_ids(self, catalog: Catalog) -> list[int]:
        """Get the product IDs stored on a catalog.

        Args:
            catalog: Catalog entity.

        Returns:
            Product IDs in stored order.
        """
        return self.codec.decode(getattr(catalog, "product_data", None))

    async def set_product_ids(self, catalog: Catalog, product_ids: Iterable[Any]) -> list[int]:
        """Replace the product set of a catalog.

        The canonical field is flushed before the mapping rows are
        rebuilt, so a catalog that cannot be written never leaves
        mapping rows behind. Call inside CatalogRepository.savepoint().

        Args:
            catalog: Catalog entity.
            product_ids: Product IDs in display order.

        Returns:
            Normalized product IDs that were stored.

        Raises:
            PersistenceError: If the canonical field cannot be written.
        """
        normalized = normalize_product_ids(product_ids)
        catalog.product_data = self.codec.encode(normalized)

        catalog_id = catalog.id
        if catalog_id is not None:
            try:
                await self.session.flush()
            except SQLAlchemyError as exc:
                raise PersistenceError("Catalog", catalog_id, str(exc)) from exc

        await self.sync_mapping_table(catalog, normalized)
        return normalized

    async def load_products(self, catalog: Catalog) -> dict[int, Product]:
        """Load the products of a catalog.

        Args:
            catalog: Catalog entity.

        Returns:
            Products keyed by ID, in catalog order.

        Raises:
            StorageError: If the products cannot be loaded.
        """
        return await self._load_ordered(self.get_product_ids(catalog))

    async def load_products_subset(
        self,
        catalog: Catalog,
        product_ids: Iterable[Any],
    ) -> dict[int, Product]:
        """Load some of a catalog's products in catalog order.

        When the mapping table has rows for the requested IDs, only those
        rows are returned, ordered by weight. Otherwise the requested
        order is kept.

        Args:
            catalog: Catalog entity.
            product_ids: Product IDs to load.

        Returns:
            Products keyed by ID.

        Raises:
            StorageError: If the mapping table or products cannot be read.
        """
        requested = normalize_product_ids(product_ids)
        if not requested:
            return {}

        ordered_ids = requested
        if catalog.id is not None:
            try:
                if await self.mapping_table_exists():
                    result = await self.session.execute(
                        select(CatalogProduct.product_id)
                        .where(
                            and_(
                                CatalogProduct.catalog_id == catalog.id,
                                CatalogProduct.product_id.in_(requested),
                            )
                        )
                        .order_by(CatalogProduct.weight)
                    )
                    mapped = [int(product_id) for product_id in result.scalars().all()]
                    if mapped:
                        ordered_ids = mapped
            except SQLAlchemyError as exc:
                raise StorageError("load catalog product order", str(exc)) from exc

        return await self._load_ordered(ordered_ids)

    async def get_mapping_rows(self, catalog_id: int) -> Sequence[CatalogProduct]:
        """Get the mapping rows of a catalog ordered by weight.

        Args:
            catalog_id: Catalog ID.

        Returns:
            Mapping rows; empty when the table does not exist.
        """
        try:
            if not await self.mapping_table_exists():
                return []
            result = await self.session.execute(
                select(CatalogProduct)
                .where(CatalogProduct.catalog_id == catalog_id)
                .order_by(CatalogProduct.weight)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            raise StorageError("load catalog mapping", str(exc)) from exc
        return result.scalars().all()

    async def sync_mapping_table(self, catalog: Catalog, product_ids: Iterable[Any]) -> bool:
        """Rebuild the mapping rows of a catalog.

        All rows of the catalog are deleted and reinserted inside one
        SAVEPOINT, so readers see either the old or the new rows. On
        failure the old rows stay in place.

        Args:
            catalog: Catalog entity.
            product_ids: Product IDs in display order.

        Returns:
            True if the rows were rebuilt.
        """
        if catalog.id is None:
            logger.debug("Skipping mapping sync for unsaved catalog")
            return False

        catalog_id = int(catalog.id)
        rows = [
            {"catalog_id": catalog_id, "product_id": product_id, "weight": weight}
            for weight, product_id in enumerate(normalize_product_ids(product_ids))
        ]

        try:
            if not await self.mapping_table_exists():
                return False

            async with self.session.begin_nested():
                await self.session.execute(
                    delete(CatalogProduct).where(CatalogProduct.catalog_id == catalog_id)
                )
                if rows:
                    await self.session.execute(insert(CatalogProduct), rows)
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to persist catalog/product mapping",
                catalog_id=catalog_id,
                error=str(exc),
            )
            return False

        return True

    async def mapping_table_exists(self) -> bool:
        """Check whether the mapping table is provisioned.

        Returns:
            True if the table exists.
        """
        connection = await self.session.connection()
        return await connection.run_sync(
            lambda sync_connection: inspect(sync_connection).has_table(
                CatalogProduct.__tablename__
            )
        )

    async def _load_ordered(self, product_ids: list[int]) -> dict[int, Product]:
        """Bulk-load products keeping the given order.

        Args:
            product_ids: Product IDs.

        Returns:
            Products of the configured bundle keyed by ID.
        """
        if not product_ids:
            return {}

        try:
            result = await self.session.execute(
                select(Product).where(Product.id.in_(product_ids))
            )
        except SQLAlchemyError as exc:
            raise StorageError("load catalog products", str(exc)) from exc

        loaded = {product.id: product for product in result.scalars().all()}
        products: dict[int, Product] = {}
        for product_id in product_ids:
            product = loaded.get(product_id)
            if product is not None and product.bundle == self.product_bundle:
                products[product_id] = product
        return products
