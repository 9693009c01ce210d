"""Shared fixtures for API tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.infrastructure.database import get_session
from catalog_sync.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for endpoints that do not touch the database."""
    return TestClient(app)


@pytest_asyncio.fixture
async def api_client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create async client whose requests share the test session."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
