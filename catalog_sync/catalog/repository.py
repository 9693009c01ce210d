"""Entity repositories for database operations.

Provides load/save helpers for catalogs, products and clients. Product
sets are never read or written here; use CatalogProductRepository.
"""

from collections.abc import Iterable, Sequence

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from catalog_sync.catalog.models import Catalog, Client, Product
from catalog_sync.domain.exceptions import PersistenceError, StorageError

logger = structlog.get_logger()


class CatalogRepository:
    """Repository for Catalog database operations.

    Example usage:
        async with async_session_factory() as session:
            repo = CatalogRepository(session)
            catalog = await repo.get_by_id(42)
            catalog.title = "Spring selection"
            await repo.save(catalog)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, catalog_id: int) -> Catalog | None:
        """Get catalog by ID.

        Args:
            catalog_id: Catalog ID.

        Returns:
            Catalog if found, None otherwise.

        Raises:
            StorageError: If the query fails.
        """
        try:
            return await self.session.get(Catalog, catalog_id)
        except SQLAlchemyError as exc:
            raise StorageError("load catalog", str(exc)) from exc

    async def list_ids(self) -> list[int]:
        """List every catalog ID in ascending order.

        Returns:
            Catalog IDs.

        Raises:
            StorageError: If the query fails.
        """
        try:
            result = await self.session.execute(select(Catalog.id).order_by(Catalog.id))
        except SQLAlchemyError as exc:
            raise StorageError("list catalogs", str(exc)) from exc
        return [int(catalog_id) for catalog_id in result.scalars().all()]

    async def count(self) -> int:
        """Count catalogs.

        Returns:
            Number of catalogs.
        """
        try:
            result = await self.session.execute(select(func.count(Catalog.id)))
        except SQLAlchemyError as exc:
            raise StorageError("count catalogs", str(exc)) from exc
        return result.scalar_one()

    async def find_client_catalog(self, client_id: int) -> Catalog | None:
        """Find the published custom catalog of a client.

        Args:
            client_id: Client ID.

        Returns:
            First matching catalog, or None.
        """
        query = (
            select(Catalog)
            .where(
                and_(
                    Catalog.client_id == client_id,
                    Catalog.is_custom.is_(True),
                    Catalog.is_published.is_(True),
                )
            )
            .order_by(Catalog.id)
            .limit(1)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            raise StorageError("find client catalog", str(exc)) from exc
        return result.scalar_one_or_none()

    async def find_owner_catalog(self, owner_id: int) -> Catalog | None:
        """Find the catalog owned by a user, preferring custom ones.

        Args:
            owner_id: User ID.

        Returns:
            Custom catalog if any, else the first owned catalog, else None.
        """
        try:
            result = await self.session.execute(
                select(Catalog).where(Catalog.owner_id == owner_id).order_by(Catalog.id)
            )
        except SQLAlchemyError as exc:
            raise StorageError("find owner catalog", str(exc)) from exc

        catalogs = result.scalars().all()
        for catalog in catalogs:
            if catalog.is_custom:
                return catalog
        return catalogs[0] if catalogs else None

    def savepoint(self) -> AsyncSessionTransaction:
        """Open a SAVEPOINT scoping the changes of one catalog.

        Every change to a catalog (product set, mapping rows, fields and
        the save itself) must run inside it. A failing flush then rolls
        back that catalog only and the session stays usable for the next
        one. Objects changed inside a rolled-back savepoint are expired.

        Example usage:
            try:
                async with catalogs.savepoint():
                    await catalog_products.set_product_ids(catalog, ids)
                    await catalogs.save(catalog)
            except PersistenceError:
                ...

        Returns:
            Nested transaction to use as an async context manager.
        """
        return self.session.begin_nested()

    async def save(self, catalog: Catalog) -> Catalog:
        """Save a catalog.

        Run inside savepoint() when other entities are processed in the
        same session.

        Args:
            catalog: Catalog to save.

        Returns:
            Saved catalog.

        Raises:
            PersistenceError: If the catalog cannot be written.
        """
        # a failed flush expires the catalog
        catalog_id = catalog.id
        try:
            self.session.add(catalog)
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("Catalog", catalog_id, str(exc)) from exc
        return catalog


class ProductRepository:
    """Repository for Product database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, product_id: int) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            Product if found, None otherwise.
        """
        try:
            return await self.session.get(Product, product_id)
        except SQLAlchemyError as exc:
            raise StorageError("load product", str(exc)) from exc

    async def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Bulk-load products.

        Args:
            product_ids: Product IDs.

        Returns:
            Loaded products keyed by ID; missing IDs are absent.

        Raises:
            StorageError: If the query fails.
        """
        ids = list(product_ids)
        if not ids:
            return {}

        try:
            result = await self.session.execute(select(Product).where(Product.id.in_(ids)))
        except SQLAlchemyError as exc:
            raise StorageError("load products", str(exc)) from exc
        return {product.id: product for product in result.scalars().all()}

    async def get_skus(self, product_ids: Iterable[int]) -> dict[int, str]:
        """Resolve product IDs to their trimmed SKUs.

        Unresolved products and blank SKUs are skipped.

        Args:
            product_ids: Product IDs.

        Returns:
            Map of product ID to SKU.
        """
        loaded = await self.get_many(product_ids)
        skus: dict[int, str] = {}
        for product_id, product in loaded.items():
            sku = (product.sku or "").strip()
            if sku:
                skus[product_id] = sku
        return skus

    async def find_by_skus(self, skus: Sequence[str], bundle: str) -> Sequence[Product]:
        """Find products of a bundle by SKU.

        Args:
            skus: SKU values to match.
            bundle: Entity type to restrict to.

        Returns:
            Matching products.
        """
        if not skus:
            return []

        query = select(Product).where(
            and_(
                Product.bundle == bundle,
                func.upper(func.trim(Product.sku)).in_(list(skus)),
            )
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as exc:
            raise StorageError("find products by sku", str(exc)) from exc
        return result.scalars().all()


class ClientRepository:
    """Repository for Client database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, client_id: int) -> Client | None:
        """Get client by ID.

        Args:
            client_id: Client ID.

        Returns:
            Client if found, None otherwise.
        """
        try:
            return await self.session.get(Client, client_id)
        except SQLAlchemyError as exc:
            raise StorageError("load client", str(exc)) from exc

    async def find_by_user(self, user_id: int) -> Client | None:
        """Find the client linked to a user.

        Args:
            user_id: User ID.

        Returns:
            First matching client, or None.
        """
        try:
            result = await self.session.execute(
                select(Client).where(Client.user_id == user_id).order_by(Client.id).limit(1)
            )
        except SQLAlchemyError as exc:
            raise StorageError("find client by user", str(exc)) from exc
        return result.scalar_one_or_none()

    async def find_by_type(self, client_type_id: int) -> list[Client]:
        """Find the clients of a client type, ordered by ID."""
        try:
            result = await self.session.execute(
                select(Client).where(Client.client_type_id == client_type_id).order_by(Client.id)
            )
        except SQLAlchemyError as exc:
            raise StorageError("find clients by type", str(exc)) from exc
        return list(result.scalars().all())

    async def get_many(self, client_ids: Iterable[int]) -> list[Client]:
        """Bulk-load clients in the given order.

        Args:
            client_ids: Client IDs.

        Returns:
            Clients found, in input order.
        """
        ids = list(client_ids)
        if not ids:
            return []

        try:
            result = await self.session.execute(select(Client).where(Client.id.in_(ids)))
        except SQLAlchemyError as exc:
            raise StorageError("load clients", str(exc)) from exc
        loaded = {client.id: client for client in result.scalars().all()}
        return [loaded[client_id] for client_id in ids if client_id in loaded]
