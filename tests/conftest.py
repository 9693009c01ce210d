"""Shared fixtures for database-backed tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog_sync.catalog.models import Catalog, CatalogProduct, Client, Product
from catalog_sync.infrastructure.database import Base
from catalog_sync.infrastructure.models import StateEntry  # noqa: F401


def build_engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with working SAVEPOINTs."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so nested transactions work
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create engine with every table provisioned."""
    engine = build_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def engine_without_mapping() -> AsyncGenerator[AsyncEngine, None]:
    """Create engine whose mapping table is not provisioned."""
    engine = build_engine()
    tables = [
        table
        for table in Base.metadata.sorted_tables
        if table.name != CatalogProduct.__tablename__
    ]
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def make_product(session: AsyncSession) -> Callable[..., Awaitable[Product]]:
    """Factory creating persisted products."""

    async def _make(
        sku: str | None = None,
        bundle: str = "product",
        title: str = "",
        product_id: int | None = None,
    ) -> Product:
        product = Product(
            id=product_id,
            sku=sku,
            bundle=bundle,
            title=title or f"Product {sku or product_id}",
            client_ids=[],
            client_type_ids=[],
        )
        session.add(product)
        await session.flush()
        return product

    return _make


@pytest.fixture
def make_catalog(session: AsyncSession) -> Callable[..., Awaitable[Catalog]]:
    """Factory creating persisted catalogs."""

    async def _make(**fields: Any) -> Catalog:
        fields.setdefault("title", "Catalog")
        fields.setdefault("product_data", "")
        fields.setdefault("client_ids", [])
        catalog = Catalog(**fields)
        session.add(catalog)
        await session.flush()
        return catalog

    return _make


@pytest.fixture
def make_client(session: AsyncSession) -> Callable[..., Awaitable[Client]]:
    """Factory creating persisted clients."""

    async def _make(**fields: Any) -> Client:
        fields.setdefault("title", "Client")
        client = Client(**fields)
        session.add(client)
        await session.flush()
        return client

    return _make


@pytest.fixture
def reject_catalog_updates(session: AsyncSession) -> Callable[[int], Awaitable[None]]:
    """Factory installing a trigger that makes the database refuse updates of one catalog."""

    async def _install(catalog_id: int) -> None:
        await session.execute(
            text(
                "CREATE TRIGGER reject_catalog_update BEFORE UPDATE ON catalogs "
                f"WHEN OLD.id = {int(catalog_id)} "
                "BEGIN SELECT RAISE(ABORT, 'catalog is locked'); END"
            )
        )

    return _install
