"""Tests for durable state stores."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.infrastructure.state_store import DatabaseStateStore, InMemoryStateStore


class TestInMemoryStateStore:
    """Tests for InMemoryStateStore."""

    @pytest.mark.asyncio
    async def test_get_default_when_missing(self) -> None:
        """Missing keys return the default."""
        store = InMemoryStateStore()
        assert await store.get("missing") is None
        assert await store.get("missing", {}) == {}

    @pytest.mark.asyncio
    async def test_values_are_copied(self) -> None:
        """Mutating a stored or returned value does not change the store."""
        store = InMemoryStateStore()
        value = {"ids": [1, 2]}
        await store.set("key", value)
        value["ids"].append(3)

        loaded = await store.get("key")
        loaded["ids"].append(4)

        assert await store.get("key") == {"ids": [1, 2]}

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        """Deleted keys disappear; deleting twice is safe."""
        store = InMemoryStateStore()
        await store.set("key", 1)
        await store.delete("key")
        await store.delete("key")
        assert store.keys() == []


class TestDatabaseStateStore:
    """Tests for DatabaseStateStore."""

    @pytest.mark.asyncio
    async def test_set_get_overwrite(self, session: AsyncSession) -> None:
        """Values round-trip and a second set overwrites the first."""
        store = DatabaseStateStore(session)
        await store.set("feed", {"1": {"product_ids": [1]}})
        await store.set("feed", {"2": {"product_ids": [2]}})

        assert await store.get("feed") == {"2": {"product_ids": [2]}}

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, session: AsyncSession) -> None:
        """Deleting an unknown key does nothing."""
        store = DatabaseStateStore(session)
        await store.delete("unknown")
        assert await store.get("unknown", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_delete_removes_value(self, session: AsyncSession) -> None:
        """Deleted keys return the default."""
        store = DatabaseStateStore(session)
        await store.set("feed", [1])
        await store.delete("feed")
        assert await store.get("feed") is None
