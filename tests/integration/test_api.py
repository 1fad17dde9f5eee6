"""Integration tests for the FastAPI REST API."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from polyscope.api.app import create_app
from polyscope.api.deps import init_coordinator, reset_coordinator
from polyscope.service.coordinator import ValidationCoordinator
from polyscope.settings import Settings
from tests.conftest import SAMPLE_WORKSPACE, WORKSPACE_URI, WORKSPACE_WITH_ACTIONS


@pytest.fixture
def app():
    settings = Settings(validation_debounce_seconds=0)
    app = create_app(settings=settings)
    # Manually init the coordinator (ASGITransport doesn't trigger lifespan)
    init_coordinator(ValidationCoordinator(debounce_seconds=settings.validation_debounce_seconds))
    yield app
    reset_coordinator()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _open(client: AsyncClient, text: str = SAMPLE_WORKSPACE) -> dict:
    response = await client.post("/documents", json={"uri": WORKSPACE_URI, "text": text})
    assert response.status_code == 201
    return response.json()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "version" in data
        assert "x-request-duration-ms" in response.headers


# ---------------------------------------------------------------------------
# Document lifecycle
# ---------------------------------------------------------------------------


class TestDocumentLifecycle:
    async def test_open(self, client: AsyncClient) -> None:
        data = await _open(client)
        assert data["uri"] == WORKSPACE_URI
        assert data["revision"] >= 1
        assert data["kind"] == "workspace"

    async def test_change_increments_revision(self, client: AsyncClient) -> None:
        opened = await _open(client)
        response = await client.put(
            "/documents", json={"uri": WORKSPACE_URI, "text": "name: ws\n"}
        )
        assert response.status_code == 200
        assert response.json()["revision"] > opened["revision"]

    async def test_change_unknown_404(self, client: AsyncClient) -> None:
        response = await client.put("/documents", json={"uri": WORKSPACE_URI, "text": ""})
        assert response.status_code == 404

    async def test_close(self, client: AsyncClient) -> None:
        await _open(client)
        response = await client.delete("/documents", params={"uri": WORKSPACE_URI})
        assert response.status_code == 204
        response = await client.get("/documents/diagnostics", params={"uri": WORKSPACE_URI})
        assert response.status_code == 404

    async def test_close_unknown_404(self, client: AsyncClient) -> None:
        response = await client.delete("/documents", params={"uri": WORKSPACE_URI})
        assert response.status_code == 404

    async def test_open_missing_text_422(self, client: AsyncClient) -> None:
        response = await client.post("/documents", json={"uri": WORKSPACE_URI})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    async def test_validate(self, client: AsyncClient) -> None:
        opened = await _open(client)
        response = await client.post("/documents/validate", json={"uri": WORKSPACE_URI})
        assert response.status_code == 200
        data = response.json()
        assert data["revision"] == opened["revision"]
        assert data["error_count"] == 0
        assert data["warning_count"] == 1
        diagnostic = data["diagnostics"][0]
        assert diagnostic["code"] == "UNPINNED_VERSION"
        assert diagnostic["severity"] == "warning"
        assert diagnostic["source"] == "polycrate"
        assert diagnostic["range"]["start"] == {"line": 7, "character": 4}

    async def test_fallback_error(self, client: AsyncClient) -> None:
        await _open(client, "organization: acme\n")
        response = await client.post("/documents/validate", json={"uri": WORKSPACE_URI})
        data = response.json()
        assert data["error_count"] == 1
        assert data["diagnostics"][0]["message"] == "Missing required field: name"

    async def test_get_diagnostics_after_validate(self, client: AsyncClient) -> None:
        await _open(client)
        await client.post("/documents/validate", json={"uri": WORKSPACE_URI})
        response = await client.get("/documents/diagnostics", params={"uri": WORKSPACE_URI})
        assert response.status_code == 200
        assert response.json()["warning_count"] == 1

    async def test_validate_unknown_404(self, client: AsyncClient) -> None:
        response = await client.post("/documents/validate", json={"uri": WORKSPACE_URI})
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Context queries
# ---------------------------------------------------------------------------


class TestContextQueries:
    async def test_context(self, client: AsyncClient) -> None:
        await _open(client, WORKSPACE_WITH_ACTIONS)
        response = await client.post(
            "/documents/context",
            json={"uri": WORKSPACE_URI, "position": {"line": 11, "character": 12}},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["entity_identity"] == "alpha.install"
        assert data["entity_kind"] == "action"
        assert data["section_path"] == ["blocks", "actions", "script"]
        assert data["is_inside_entity_body"] is True

    async def test_suggestions(self, client: AsyncClient) -> None:
        await _open(client, WORKSPACE_WITH_ACTIONS)
        response = await client.post(
            "/documents/suggestions",
            json={"uri": WORKSPACE_URI, "position": {"line": 10, "character": 8}},
        )
        assert response.status_code == 200
        items = response.json()["suggestions"]
        labels = [item["label"] for item in items]
        assert "script" in labels
        assert "playbook" in labels
        script = next(item for item in items if item["label"] == "script")
        assert script["insert_text"] == "script: "

    async def test_context_unknown_404(self, client: AsyncClient) -> None:
        response = await client.post(
            "/documents/context",
            json={"uri": WORKSPACE_URI, "position": {"line": 0, "character": 0}},
        )
        assert response.status_code == 404
