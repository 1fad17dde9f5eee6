"""Regression tests for RequestBodyLimitMiddleware."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from polyscope.api.app import create_app
from polyscope.api.deps import init_coordinator, reset_coordinator
from polyscope.service.coordinator import ValidationCoordinator
from polyscope.settings import Settings
from tests.conftest import WORKSPACE_URI


@pytest.fixture
def app():
    application = create_app(settings=Settings())
    init_coordinator(ValidationCoordinator(debounce_seconds=0))
    yield application
    reset_coordinator()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestInvalidContentLength:
    """Non-integer Content-Length must not cause a 500."""

    async def test_non_integer_content_length(self, client: AsyncClient) -> None:
        response = await client.post(
            "/health",
            content=b"small body",
            headers={"content-length": "not-a-number"},
        )
        assert response.status_code != 500


class TestOversizedDocument:
    async def test_declared_length_over_limit(self, client: AsyncClient) -> None:
        text = "# padding\n" * 600_000
        response = await client.post("/documents", json={"uri": WORKSPACE_URI, "text": text})
        assert response.status_code == 413
        assert "too large" in response.json()["detail"]

    async def test_chunked_body_over_limit(self, client: AsyncClient) -> None:
        oversized = b"x" * (5 * 1024 * 1024 + 1)
        response = await client.post(
            "/documents",
            content=oversized,
            headers={"transfer-encoding": "chunked"},
        )
        assert response.status_code == 413

    async def test_small_document_accepted(self, client: AsyncClient) -> None:
        response = await client.post(
            "/documents", json={"uri": WORKSPACE_URI, "text": "name: ws\n"}
        )
        assert response.status_code == 201
