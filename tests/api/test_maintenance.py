"""Tests for maintenance endpoints."""

import pytest
from httpx import AsyncClient


class TestCatalogSyncStep:
    """Tests for POST /maintenance/catalog-sync/{task}."""

    @pytest.mark.asyncio
    async def test_steps_until_finished(self, api_client: AsyncClient, make_catalog) -> None:
        """The returned cursor drives the next step until finished."""
        for index in range(30):
            await make_catalog(title=f"Catalog {index}", product_data="[1]", legacy_product_ids=[2])

        first = await api_client.post("/maintenance/catalog-sync/migrate-legacy")
        data = first.json()
        assert first.status_code == 200
        assert data["finished"] is False
        assert data["progress"] == pytest.approx(25 / 30)

        second = await api_client.post(
            "/maintenance/catalog-sync/migrate-legacy", json={"cursor": data["cursor"]}
        )
        data = second.json()
        assert data["finished"] is True
        assert data["progress"] == 1.0
        assert data["cursor"]["updated"] == 30

    @pytest.mark.asyncio
    async def test_no_catalogs(self, api_client: AsyncClient) -> None:
        """An empty database finishes on the first step."""
        response = await api_client.post("/maintenance/catalog-sync/rebuild-mapping")

        assert response.status_code == 200
        assert response.json()["finished"] is True
        assert response.json()["progress"] == 1.0

    @pytest.mark.asyncio
    async def test_unknown_task(self, api_client: AsyncClient) -> None:
        """Unknown tasks are rejected."""
        response = await api_client.post("/maintenance/catalog-sync/reindex")

        assert response.status_code == 422
