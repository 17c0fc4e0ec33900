"""Tests for loader dispatch and the unimplemented source kinds."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentic_knowledge.content import (
    ApiDocumentationLoader,
    ArchiveLoader,
    DocumentationSiteLoader,
    GitRepoLoader,
    default_loaders,
    loader_for,
)
from agentic_knowledge.errors import ConfigurationError, NotImplementedSourceError
from agentic_knowledge.models import SourceDescriptor, SourceKind


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (SourceKind.GIT_REPO, GitRepoLoader),
        (SourceKind.ARCHIVE, ArchiveLoader),
        (SourceKind.DOCUMENTATION_SITE, DocumentationSiteLoader),
        (SourceKind.API_DOCUMENTATION, ApiDocumentationLoader),
    ],
)
def test_loader_for_dispatches_on_kind(kind: SourceKind, expected: type) -> None:
    source = SourceDescriptor(kind=kind, locator="https://example.com/x.git")
    assert isinstance(loader_for(source), expected)


def test_local_folder_has_no_loader() -> None:
    source = SourceDescriptor(kind=SourceKind.LOCAL_FOLDER, locator="./docs", paths=("./docs",))

    with pytest.raises(ConfigurationError):
        loader_for(source)


def test_missing_registry_entry_is_rejected() -> None:
    registry = default_loaders()
    del registry[SourceKind.ARCHIVE]

    with pytest.raises(ConfigurationError):
        loader_for(SourceDescriptor(kind=SourceKind.ARCHIVE, locator="a.zip"), registry)


def test_registry_entry_of_wrong_kind_is_rejected() -> None:
    registry = {SourceKind.GIT_REPO: ArchiveLoader()}

    with pytest.raises(ConfigurationError):
        loader_for(SourceDescriptor(kind=SourceKind.GIT_REPO, locator="x"), registry)


@pytest.mark.parametrize("loader_cls", [DocumentationSiteLoader, ApiDocumentationLoader])
def test_stub_loaders_fail_without_raising(loader_cls: type, tmp_path: Path) -> None:
    loader = loader_cls()
    source = SourceDescriptor(kind=loader.kind, locator="https://docs.example.com")

    assert loader.can_handle(source) is True
    assert loader.validate_config(source) is True
    assert isinstance(loader.validate_config(SourceDescriptor(kind=loader.kind, locator="")), str)

    result = loader.load(source, tmp_path)
    assert result.success is False
    assert "not yet implemented" in (result.error or "")

    with pytest.raises(NotImplementedSourceError):
        loader.get_content_id(source)
