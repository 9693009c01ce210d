"""Commercial catalog import service.

Applies a list of product references to one or many client catalogs:
- Reads SKUs from pre-parsed CSV rows
- Maps SKUs to product IDs
- Ensures each client has a custom catalog
- Replaces catalog contents with the imported products
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from catalog_sync.catalog.codec import normalize_product_ids
from catalog_sync.catalog.models import Catalog, Client
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository, ProductRepository
from catalog_sync.domain.exceptions import DomainError, ImportRejectedError, PersistenceError

logger = structlog.get_logger()

# Header names accepted for the product reference column, in priority order
SKU_COLUMNS = ("REFERENCE", "SKU")

# Unknown references listed in log events and rejection details
MISSING_SKUS_SHOWN = 10


@dataclass
class SynchronizeSummary:
    """Result of synchronizing several clients."""

    processed: int = 0
    updated: int = 0
    created: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ImportResult:
    """Result of a commercial import."""

    summary: SynchronizeSummary
    missing_skus: list[str] = field(default_factory=list)


def normalize_sku_rows(rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Extract unique SKUs from parsed CSV rows.

    Rows carry header-normalized (upper-cased) keys. The first non-blank
    value among SKU_COLUMNS is used.

    Args:
        rows: Parsed CSV rows.

    Returns:
        Upper-cased SKUs in first-seen order.
    """
    skus: dict[str, None] = {}
    for row in rows:
        for column in SKU_COLUMNS:
            value = str(row.get(column) or "").strip().upper()
            if value:
                skus.setdefault(value, None)
                break
    return list(skus)


class CatalogImportService:
    """Service for commercial bulk imports.

    Example usage:
        service = CatalogImportService(catalogs, products, catalog_products)
        sku_map = await service.map_skus_to_product_ids(normalize_sku_rows(rows))
        summary = await service.synchronize_clients(clients, list(sku_map.values()))
    """

    def __init__(
        self,
        catalogs: CatalogRepository,
        products: ProductRepository,
        catalog_products: CatalogProductRepository,
    ) -> None:
        """Initialize service.

        Args:
            catalogs: Catalog repository.
            products: Product repository.
            catalog_products: Catalog product set repository.
        """
        self.catalogs = catalogs
        self.products = products
        self.catalog_products = catalog_products

    async def map_skus_to_product_ids(self, skus: Sequence[str]) -> dict[str, int]:
        """Map SKUs to product IDs.

        Args:
            skus: SKU values.

        Returns:
            Map of upper-cased SKU to product ID; unknown SKUs are absent.
        """
        wanted = [sku.strip().upper() for sku in skus if sku and sku.strip()]
        if not wanted:
            return {}

        products = await self.products.find_by_skus(wanted, self.catalog_products.product_bundle)
        sku_map: dict[str, int] = {}
        for product in products:
            sku = (product.sku or "").strip().upper()
            if sku:
                sku_map[sku] = product.id
        return sku_map

    async def ensure_catalog_for_client(
        self,
        client: Client,
        forced_type_id: int | None = None,
    ) -> tuple[Catalog | None, bool]:
        """Get the custom catalog of a client, creating it if missing.

        Args:
            client: Client entity.
            forced_type_id: Client type to apply to the catalog.

        Returns:
            The catalog (None if it could not be created) and whether it
            was created.
        """
        catalog = await self.catalogs.find_client_catalog(client.id)
        if catalog is not None:
            if forced_type_id:
                catalog.client_type_id = forced_type_id
            return catalog, False

        owner_id = client.owner_id or client.user_id
        catalog = Catalog(
            title=f"Custom catalog of {client.title}",
            owner_id=owner_id,
            is_custom=True,
            is_published=True,
            product_data="",
            client_id=client.id,
            client_type_id=forced_type_id or client.client_type_id,
            client_ids=[owner_id] if owner_id else [],
        )

        try:
            async with self.catalogs.savepoint():
                await self.catalogs.save(catalog)
        except PersistenceError as exc:
            logger.error(
                "Failed to create custom catalog for client",
                client=client.title,
                client_id=client.id,
                error=exc.message,
            )
            return None, False

        logger.info("Created custom catalog", client_id=client.id, catalog_id=catalog.id)
        return catalog, True

    async def synchronize_catalog(self, catalog: Catalog, product_ids: Iterable[Any]) -> None:
        """Replace a catalog's products and save it.

        Call inside CatalogRepository.savepoint() when other catalogs
        share the session.

        Args:
            catalog: Catalog entity.
            product_ids: Product IDs to store.

        Raises:
            PersistenceError: If the catalog cannot be saved.
        """
        label = catalog.label()
        catalog_id = catalog.id
        normalized = normalize_product_ids(product_ids)

        try:
            await self.catalog_products.set_product_ids(catalog, normalized)
            await self.catalogs.save(catalog)
        except PersistenceError as exc:
            logger.error(
                "Failed to save catalog",
                catalog=label,
                catalog_id=catalog_id,
                error=exc.message,
            )
            raise

    async def synchronize_clients(
        self,
        clients: Iterable[Client],
        product_ids: Iterable[Any],
        forced_type_id: int | None = None,
    ) -> SynchronizeSummary:
        """Replace the catalog contents of several clients.

        Each client runs in its own SAVEPOINT. Failures are collected
        per client; the other clients are still processed.

        Args:
            clients: Clients to update.
            product_ids: Product IDs to store.
            forced_type_id: Client type to apply to every catalog.

        Returns:
            Summary statistics.
        """
        summary = SynchronizeSummary()
        normalized = normalize_product_ids(product_ids)

        for client in clients:
            summary.processed += 1
            title = client.title
            client_id = client.id
            try:
                async with self.catalogs.savepoint():
                    catalog, created = await self.ensure_catalog_for_client(
                        client, forced_type_id
                    )
                    if catalog is None:
                        summary.errors.append(
                            f"Unable to create or load the catalog of {title!r}."
                        )
                        continue

                    await self.synchronize_catalog(catalog, normalized)
            except DomainError as exc:
                logger.error(
                    "Catalog update failed for client",
                    client=title,
                    client_id=client_id,
                    error=exc.message,
                )
                summary.errors.append(f"Catalog update for {title!r} failed.")
                continue

            if created:
                summary.created += 1
            else:
                summary.updated += 1

        logger.info(
            "Synchronized client catalogs",
            processed=summary.processed,
            updated=summary.updated,
            created=summary.created,
            errors=len(summary.errors),
        )
        return summary

    async def import_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        clients: Iterable[Client],
        forced_type_id: int | None = None,
    ) -> ImportResult:
        """Replace client catalogs with the products referenced by CSV rows.

        Args:
            rows: Parsed CSV rows with upper-cased header keys.
            clients: Clients whose catalogs are replaced.
            forced_type_id: Client type to apply to every catalog.

        Returns:
            Synchronization summary and the SKUs that matched no product.

        Raises:
            ImportRejectedError: If no row holds a SKU or no SKU matches.
        """
        skus = normalize_sku_rows(rows)
        if not skus:
            raise ImportRejectedError("No valid product reference found in the rows")

        sku_map = await self.map_skus_to_product_ids(skus)
        if not sku_map:
            raise ImportRejectedError(
                "No product matches the imported references",
                details={"unknown_skus": skus[:MISSING_SKUS_SHOWN]},
            )

        missing = [sku for sku in skus if sku not in sku_map]
        if missing:
            logger.warning(
                "Ignoring unknown product references",
                count=len(missing),
                skus=missing[:MISSING_SKUS_SHOWN],
            )

        summary = await self.synchronize_clients(
            clients,
            [sku_map[sku] for sku in skus if sku in sku_map],
            forced_type_id,
        )
        return ImportResult(summary=summary, missing_skus=missing)
