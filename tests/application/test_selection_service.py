"""Tests for the catalog selection service."""

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.application.selection_service import CatalogSelectionService
from catalog_sync.catalog.models import Catalog
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import CatalogRepository, ClientRepository

OWNER_ID = 42


@pytest.fixture
def service(session: AsyncSession) -> CatalogSelectionService:
    """Create selection service for one user."""
    return CatalogSelectionService(
        owner_id=OWNER_ID,
        catalogs=CatalogRepository(session),
        clients=ClientRepository(session),
        catalog_products=CatalogProductRepository(session),
        owner_name="jdoe",
    )


class TestAddProduct:
    """Tests for adding products."""

    @pytest.mark.asyncio
    async def test_creates_catalog_on_first_add(
        self, service: CatalogSelectionService, session: AsyncSession, make_product, make_client
    ) -> None:
        """The first add creates a custom catalog linked to the user's client."""
        client = await make_client(title="Acme", user_id=OWNER_ID, client_type_id=3)
        product = await make_product(sku="A")

        assert await service.add_product(product) is True

        catalog = await CatalogRepository(session).find_owner_catalog(OWNER_ID)
        assert catalog.is_custom
        assert catalog.title == "Custom catalog of jdoe"
        assert catalog.client_id == client.id
        assert catalog.client_type_id == 3
        assert catalog.client_ids == [OWNER_ID]
        assert await service.get_items() == [product.id]

    @pytest.mark.asyncio
    async def test_duplicate_add_is_ignored(
        self, service: CatalogSelectionService, make_product
    ) -> None:
        """Adding a selected product again changes nothing."""
        product = await make_product(sku="A")
        await service.add_product(product)

        assert await service.add_product(product) is False
        assert await service.get_item_count() == 1

    @pytest.mark.asyncio
    async def test_non_product_entity_is_rejected(
        self, service: CatalogSelectionService, session: AsyncSession, make_product
    ) -> None:
        """Entities of another bundle are refused without creating a catalog."""
        page = await make_product(bundle="page")

        assert await service.add_product(page) is False
        assert await session.scalar(select(func.count(Catalog.id))) == 0

    @pytest.mark.asyncio
    async def test_uses_existing_custom_catalog(
        self, service: CatalogSelectionService, make_product, make_catalog
    ) -> None:
        """An existing custom catalog of the user is extended."""
        await make_catalog(owner_id=OWNER_ID, is_custom=False, product_data="[1]")
        custom = await make_catalog(owner_id=OWNER_ID, is_custom=True, product_data="[7]")
        product = await make_product(sku="B")

        await service.add_product(product)

        assert CatalogProductRepository(service.catalogs.session).get_product_ids(custom) == [
            7,
            product.id,
        ]

    @pytest.mark.asyncio
    async def test_creation_failure_returns_false(
        self, service: CatalogSelectionService, session: AsyncSession, make_product
    ) -> None:
        """A catalog the database refuses to create rejects the add."""
        product = await make_product(sku="A")
        await session.execute(
            text(
                "CREATE TRIGGER reject_catalog_insert BEFORE INSERT ON catalogs "
                "BEGIN SELECT RAISE(ABORT, 'catalogs are read-only'); END"
            )
        )

        assert await service.add_product(product) is False
        assert await session.scalar(select(func.count(Catalog.id))) == 0

    @pytest.mark.asyncio
    async def test_save_failure_keeps_previous_selection(
        self,
        service: CatalogSelectionService,
        session: AsyncSession,
        make_product,
        make_catalog,
        reject_catalog_updates,
    ) -> None:
        """A refused update returns False and the stored selection is unchanged."""
        product = await make_product(sku="A")
        catalog = await make_catalog(owner_id=OWNER_ID, is_custom=True, product_data="[7]")
        catalog_id = catalog.id
        await reject_catalog_updates(catalog_id)

        assert await service.add_product(product) is False
        assert await service.get_items() == [7]
        assert await CatalogProductRepository(session).get_mapping_rows(catalog_id) == []


class TestRemoveAndClear:
    """Tests for removing products."""

    @pytest.mark.asyncio
    async def test_remove_product(
        self, service: CatalogSelectionService, make_catalog
    ) -> None:
        """Removing keeps the other products."""
        await make_catalog(owner_id=OWNER_ID, is_custom=True, product_data="[5,3,9]")

        await service.remove_product(3)

        assert await service.get_items() == [5, 9]

    @pytest.mark.asyncio
    async def test_remove_without_catalog_is_noop(
        self, service: CatalogSelectionService, session: AsyncSession
    ) -> None:
        """Removing from a missing selection does not create a catalog."""
        await service.remove_product(3)

        assert await session.scalar(select(func.count(Catalog.id))) == 0

    @pytest.mark.asyncio
    async def test_clear(
        self, service: CatalogSelectionService, session: AsyncSession, make_catalog
    ) -> None:
        """Clearing empties the canonical field and the mapping rows."""
        catalog = await make_catalog(owner_id=OWNER_ID, is_custom=True, product_data="[5,3]")

        await service.clear()

        assert catalog.product_data == ""
        assert await service.get_item_count() == 0
        assert await CatalogProductRepository(session).get_mapping_rows(catalog.id) == []


class TestLoadProducts:
    """Tests for loading selected products."""

    @pytest.mark.asyncio
    async def test_loads_in_ascending_id_order(
        self, service: CatalogSelectionService, make_product, make_catalog
    ) -> None:
        """Selected products are returned by ascending ID."""
        first = await make_product(sku="A")
        second = await make_product(sku="B")
        await make_catalog(
            owner_id=OWNER_ID,
            is_custom=True,
            product_data=f"[{second.id},{first.id}]",
        )

        products = await service.load_products()

        assert list(products) == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_no_catalog_loads_nothing(self, service: CatalogSelectionService) -> None:
        """Users without a selection get no products."""
        assert await service.load_products() == {}
        assert await service.get_items() == []
