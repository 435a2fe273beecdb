"""Tests for health check endpoints."""

from collections.abc import AsyncGenerator

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient

from dexcatalog.api.dependencies import get_catalog_view
from dexcatalog.main import app
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.catalog_view import CatalogView

BASE_URL = "https://pokeapi.co/api/v2"


@pytest.fixture
def view(catalog_client: CatalogClient) -> CatalogView:
    return CatalogView(catalog_client, page_size=3)


@pytest.fixture
async def client(view: CatalogView) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async test client with an unmounted catalog view."""
    app.dependency_overrides[get_catalog_view] = lambda: view

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe returns healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    async def test_health_no_catalog_check(self, client: AsyncClient) -> None:
        """Health endpoint does not include catalog status."""
        response = await client.get("/health")

        data = response.json()
        assert data.get("catalog") is None


class TestReadyEndpoint:
    @respx.mock
    async def test_ready_when_mounted(
        self, client: AsyncClient, view: CatalogView, list_payload
    ) -> None:
        """Readiness probe returns ready once the view is mounted."""
        respx.get(f"{BASE_URL}/pokemon?offset=0&limit=3").mock(
            return_value=httpx.Response(200, json=list_payload([(1, "bulbasaur")]))
        )
        await view.mount()

        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["catalog"] == "ready"

    async def test_not_ready_before_mount(self, client: AsyncClient) -> None:
        """Readiness probe returns 503 while no view is mounted."""
        response = await client.get("/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not ready"
        assert data["catalog"] == "unmounted"

    async def test_not_ready_after_teardown(self, client: AsyncClient, view: CatalogView) -> None:
        await view.teardown()

        response = await client.get("/ready")

        assert response.status_code == 503
