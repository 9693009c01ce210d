"""Tests for catalog product set endpoints."""

import pytest
from httpx import AsyncClient

from catalog_sync.catalog.repository import CatalogRepository
from catalog_sync.domain.exceptions import StorageError


class TestGetCatalogProducts:
    """Tests for GET /catalogs/{id}/products."""

    @pytest.mark.asyncio
    async def test_returns_products_in_catalog_order(
        self, api_client: AsyncClient, make_catalog, make_product
    ) -> None:
        """Products are listed in stored order; missing ones are dropped."""
        first = await make_product(sku="A", title="Alpha")
        second = await make_product(sku="B", title="Beta")
        catalog = await make_catalog(product_data=f"[{second.id},404,{first.id}]")

        response = await api_client.get(f"/catalogs/{catalog.id}/products")

        assert response.status_code == 200
        data = response.json()
        assert data["product_ids"] == [second.id, 404, first.id]
        assert [product["sku"] for product in data["products"]] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_subset_query(
        self, api_client: AsyncClient, make_catalog, make_product
    ) -> None:
        """The ids query restricts loaded products."""
        products = [await make_product(sku=f"S{index}") for index in range(3)]
        catalog = await make_catalog()
        ids = [product.id for product in products]
        await api_client.put(f"/catalogs/{catalog.id}/products", json={"product_ids": ids})

        response = await api_client.get(
            f"/catalogs/{catalog.id}/products", params={"ids": [ids[2], ids[0]]}
        )

        assert [product["id"] for product in response.json()["products"]] == [ids[0], ids[2]]

    @pytest.mark.asyncio
    async def test_unknown_catalog(self, api_client: AsyncClient) -> None:
        """Unknown catalogs return 404."""
        response = await api_client.get("/catalogs/999/products")

        assert response.status_code == 404
        assert response.json()["error_code"] == "CATALOG_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_storage_failure(
        self, api_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Datastore failures return 503."""

        async def failing_get_by_id(self, catalog_id):
            raise StorageError("load catalog", "connection refused")

        monkeypatch.setattr(CatalogRepository, "get_by_id", failing_get_by_id)

        response = await api_client.get("/catalogs/1/products")

        assert response.status_code == 503
        assert response.json()["error_code"] == "STORAGE_ERROR"


class TestReplaceCatalogProducts:
    """Tests for PUT /catalogs/{id}/products."""

    @pytest.mark.asyncio
    async def test_replaces_and_syncs_mapping(
        self, api_client: AsyncClient, make_catalog
    ) -> None:
        """The stored set is normalized and mirrored in the mapping table."""
        catalog = await make_catalog(product_data="[1,2]")

        response = await api_client.put(
            f"/catalogs/{catalog.id}/products", json={"product_ids": [3, 1, 2, 1, 0]}
        )

        assert response.status_code == 200
        assert response.json()["product_ids"] == [3, 1, 2]

        mapping = await api_client.get(f"/catalogs/{catalog.id}/mapping")
        assert mapping.json()["rows"] == [
            {"product_id": 3, "weight": 0},
            {"product_id": 1, "weight": 1},
            {"product_id": 2, "weight": 2},
        ]

    @pytest.mark.asyncio
    async def test_invalid_body(self, api_client: AsyncClient, make_catalog) -> None:
        """Non-integer IDs are rejected by validation."""
        catalog = await make_catalog()

        response = await api_client.put(
            f"/catalogs/{catalog.id}/products", json={"product_ids": ["abc"]}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_catalog(self, api_client: AsyncClient) -> None:
        """Unknown catalogs return 404."""
        response = await api_client.put("/catalogs/999/products", json={"product_ids": [1]})

        assert response.status_code == 404


class TestGetCatalogMapping:
    """Tests for GET /catalogs/{id}/mapping."""

    @pytest.mark.asyncio
    async def test_empty_mapping(self, api_client: AsyncClient, make_catalog) -> None:
        """Catalogs never written have no rows."""
        catalog = await make_catalog(product_data="[1]")

        response = await api_client.get(f"/catalogs/{catalog.id}/mapping")

        assert response.status_code == 200
        assert response.json() == {"catalog_id": catalog.id, "rows": []}
