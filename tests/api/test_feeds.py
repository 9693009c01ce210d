"""Tests for feed import lifecycle endpoints."""

import pytest
from httpx import AsyncClient

FEED_KEY = "feed-42"


class TestFeedLifecycle:
    """Tests for a full import run over HTTP."""

    @pytest.mark.asyncio
    async def test_start_rows_finish(
        self, api_client: AsyncClient, make_catalog, make_product
    ) -> None:
        """Imported products are merged and duplicates skipped."""
        await make_product(product_id=10, sku="SKU-10")
        await make_product(product_id=20, sku="SKU-20")
        catalog = await make_catalog(product_data="[10,20]")

        start = await api_client.post(f"/feeds/{FEED_KEY}/start")
        assert start.status_code == 200
        assert start.json()["status"] == "initialized"

        new_row = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"catalog_id": catalog.id, "product_id": 30, "sku": "SKU-30"},
        )
        duplicate = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"catalog_id": catalog.id, "product_id": 31, "sku": "SKU-20"},
        )
        assert new_row.json()["recorded"] is True
        assert duplicate.json()["recorded"] is False

        finish = await api_client.post(
            f"/feeds/{FEED_KEY}/finish",
            json={"client_id": 7, "client_owner_id": 3},
        )

        assert finish.status_code == 200
        assert finish.json() == {
            "feed_key": FEED_KEY,
            "catalogs_processed": 1,
            "catalogs_saved": 1,
            "catalogs_failed": 0,
            "products_added": 1,
        }
        products = await api_client.get(f"/catalogs/{catalog.id}/products")
        assert products.json()["product_ids"] == [10, 20, 30]
        assert catalog.client_id == 7
        assert catalog.client_ids == [3]

    @pytest.mark.asyncio
    async def test_finish_without_body(self, api_client: AsyncClient) -> None:
        """Finishing an empty run reports nothing processed."""
        response = await api_client.post(f"/feeds/{FEED_KEY}/finish")

        assert response.status_code == 200
        assert response.json()["catalogs_processed"] == 0

    @pytest.mark.asyncio
    async def test_row_for_unknown_catalog(self, api_client: AsyncClient) -> None:
        """Rows for unknown catalogs return 404."""
        response = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"catalog_id": 999, "product_id": 30},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "CATALOG_NOT_FOUND"


class TestFeedCatalogByClient:
    """Tests for rows addressed by client instead of catalog."""

    @pytest.mark.asyncio
    async def test_row_targets_client_custom_catalog(
        self, api_client: AsyncClient, make_client, make_catalog
    ) -> None:
        """A client ID resolves to the client's custom catalog."""
        client = await make_client(title="Acme")
        catalog = await make_catalog(client_id=client.id, is_custom=True, is_published=True)

        response = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"client_id": client.id, "product_id": 30, "sku": "SKU-30"},
        )

        assert response.status_code == 200
        assert response.json() == {"feed_key": FEED_KEY, "catalog_id": catalog.id, "recorded": True}

    @pytest.mark.asyncio
    async def test_row_uses_remembered_catalog(
        self, api_client: AsyncClient, make_client, make_catalog
    ) -> None:
        """Clients without a catalog fall back to the one set for the feed."""
        client = await make_client(title="Acme")
        shared = await make_catalog(title="Shared")

        remembered = await api_client.put(
            f"/feeds/{FEED_KEY}/catalog", json={"catalog_id": shared.id}
        )
        response = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"client_id": client.id, "product_id": 30},
        )

        assert remembered.json() == {"feed_key": FEED_KEY, "catalog_id": shared.id}
        assert response.json()["catalog_id"] == shared.id
        assert response.json()["recorded"] is True

    @pytest.mark.asyncio
    async def test_row_without_resolvable_catalog(
        self, api_client: AsyncClient, make_client
    ) -> None:
        """Rows for a client without any catalog are not recorded."""
        client = await make_client(title="Acme")

        response = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"client_id": client.id, "product_id": 30},
        )

        assert response.status_code == 200
        assert response.json() == {"feed_key": FEED_KEY, "catalog_id": None, "recorded": False}

    @pytest.mark.asyncio
    async def test_row_for_unknown_client(self, api_client: AsyncClient) -> None:
        """Unknown clients return 404."""
        response = await api_client.post(
            f"/feeds/{FEED_KEY}/rows",
            json={"client_id": 999, "product_id": 30},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "CLIENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_row_requires_a_target(self, api_client: AsyncClient) -> None:
        """Rows naming neither a catalog nor a client are invalid."""
        response = await api_client.post(f"/feeds/{FEED_KEY}/rows", json={"product_id": 30})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_remember_unknown_catalog(self, api_client: AsyncClient) -> None:
        """Only existing catalogs can be remembered."""
        response = await api_client.put(f"/feeds/{FEED_KEY}/catalog", json={"catalog_id": 999})

        assert response.status_code == 404


class TestProductPresave:
    """Tests for tagging products before the feed saves them."""

    @pytest.mark.asyncio
    async def test_tags_product_once(self, api_client: AsyncClient, make_product) -> None:
        """The feed client type is added on the first save only."""
        product = await make_product(sku="SKU-1")
        url = f"/feeds/{FEED_KEY}/products/{product.id}/presave"

        first = await api_client.post(url, json={"client_type_id": 4})
        second = await api_client.post(url, json={"client_type_id": 4})

        assert first.json() == {"product_id": product.id, "client_type_ids": [4], "tagged": True}
        assert second.json()["tagged"] is False
        assert second.json()["client_type_ids"] == [4]

    @pytest.mark.asyncio
    async def test_feed_without_type(self, api_client: AsyncClient, make_product) -> None:
        """Feeds without a client type change nothing."""
        product = await make_product(sku="SKU-1")

        response = await api_client.post(
            f"/feeds/{FEED_KEY}/products/{product.id}/presave", json={}
        )

        assert response.status_code == 200
        assert response.json()["tagged"] is False
        assert response.json()["client_type_ids"] == []

    @pytest.mark.asyncio
    async def test_unknown_product(self, api_client: AsyncClient) -> None:
        """Unknown products return 404."""
        response = await api_client.post(
            f"/feeds/{FEED_KEY}/products/999/presave", json={"client_type_id": 4}
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"
