"""Test configuration for Beautify Web API tests."""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from beautify_web.main import app
from beautify_web.dependencies import get_db


@pytest_asyncio.fixture
async def client(test_db, supervisor, gateway, processor):
    """Create test client with mocked dependencies."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    # ASGITransport does not run the lifespan, so wire app state by hand
    app.state.supervisor = supervisor
    app.state.gateway = gateway
    app.state.processor = processor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
