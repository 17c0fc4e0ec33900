"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from agentic_knowledge.config import UnknownDocsetError
from agentic_knowledge.errors import FilesystemSafetyError
from agentic_knowledge.models import DocsetMetadata, SourceMetadata
from agentic_knowledge.service import create_app
from agentic_knowledge.sync import (
    DocsetOutcome,
    DocsetStatus,
    OutcomeStatus,
    SourceOutcome,
    SourceStatus,
)


class _StubSynchronizer:
    def __init__(self) -> None:
        self.refresh_calls: list[tuple[str, bool]] = []

    def status(self) -> list[DocsetStatus]:
        metadata = DocsetMetadata("react", "React", "2024-01-01T00:00:00Z", 2, 1)
        source = SourceMetadata(
            source_url="https://github.com/facebook/react.git",
            source_type="git_repo",
            downloaded_at="2024-01-01T00:00:00Z",
            files_count=2,
            files=["README.md", "docs/a.md"],
            docset_id="react",
        )
        return [
            DocsetStatus("react", "React", Path("/k/docsets/react"), True, metadata, [source]),
            DocsetStatus("vue", "Vue", Path("/k/docsets/vue"), False),
        ]

    def refresh_docset(self, docset_id: str, *, force: bool = False) -> DocsetOutcome:
        self.refresh_calls.append((docset_id, force))
        if docset_id == "missing":
            raise UnknownDocsetError("Docset 'missing' not found", {"docset_id": docset_id})
        if docset_id == "broken":
            raise FilesystemSafetyError("Source path does not exist", {"source": "./docs"})
        return DocsetOutcome(
            docset_id,
            OutcomeStatus.REFRESHED,
            Path("/k/docsets") / docset_id,
            [SourceOutcome(0, "git_repo", "https://github.com/x/y.git", SourceStatus.LOADED, 3)],
            total_files=3,
        )


@pytest.fixture
def stub() -> _StubSynchronizer:
    return _StubSynchronizer()


@pytest.fixture
def client(stub: _StubSynchronizer) -> TestClient:
    return TestClient(create_app(lambda: stub))  # type: ignore[arg-type, return-value]


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_docsets_endpoint_reports_status(client: TestClient) -> None:
    response = client.get("/docsets")

    assert response.status_code == 200
    react, vue = response.json()
    assert react["initialized"] is True
    assert react["total_files"] == 2
    assert react["last_activity"] == "2024-01-01T00:00:00Z"
    assert react["sources"][0]["files_count"] == 2
    assert vue["initialized"] is False
    assert vue["last_activity"] is None


def test_refresh_endpoint_passes_force_flag(client: TestClient, stub: _StubSynchronizer) -> None:
    response = client.post("/docsets/react/refresh", json={"force": True})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "refreshed"
    assert data["total_files"] == 3
    assert data["sources"][0]["status"] == "loaded"
    assert stub.refresh_calls == [("react", True)]


def test_refresh_without_body_defaults_to_unforced(client: TestClient, stub: _StubSynchronizer) -> None:
    response = client.post("/docsets/react/refresh")

    assert response.status_code == 200
    assert stub.refresh_calls == [("react", False)]


def test_unknown_docset_maps_to_404(client: TestClient) -> None:
    response = client.post("/docsets/missing/refresh", json={})

    assert response.status_code == 404
    assert response.json()["detail"]["type"] == "CONFIG_INVALID"


def test_knowledge_errors_map_to_400(client: TestClient) -> None:
    response = client.post("/docsets/broken/refresh", json={"force": False})

    assert response.status_code == 400
    assert response.json()["detail"]["type"] == "FILESYSTEM_SAFETY_ERROR"
