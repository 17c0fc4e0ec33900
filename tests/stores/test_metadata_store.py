"""Tests for the docset sidecar metadata store."""

from __future__ import annotations

import json
import os
from pathlib import Path

from agentic_knowledge.models import DocsetMetadata, SourceMetadata
from agentic_knowledge.stores import MetadataStore
from tests._fixtures.tree_builder import write_tree


def _source_metadata(files: list[str]) -> SourceMetadata:
    return SourceMetadata(
        source_url="https://github.com/example/project.git",
        source_type="git_repo",
        downloaded_at="2024-01-01T00:00:00Z",
        files_count=len(files),
        files=files,
        docset_id="project",
        content_hash="abc",
        content_id="rev",
    )


def test_source_metadata_round_trip(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    metadata = _source_metadata(["README.md"])

    store.write_source(0, metadata)

    assert (tmp_path / ".agentic-source-0.json").exists()
    assert store.read_source(0) == metadata
    assert store.read_source(1) is None


def test_sidecar_writes_leave_no_temp_files(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    store.write_source(0, _source_metadata(["a.md"]))
    store.write_source(0, _source_metadata(["b.md"]))

    assert sorted(os.listdir(tmp_path)) == [".agentic-source-0.json"]


def test_touch_source_only_changes_timestamp(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    store.write_source(0, _source_metadata(["README.md"]))
    before = json.loads(store.source_path(0).read_text(encoding="utf-8"))

    assert store.touch_source(0, "2024-02-02T00:00:00Z") is True

    after = json.loads(store.source_path(0).read_text(encoding="utf-8"))
    assert after.pop("downloaded_at") == "2024-02-02T00:00:00Z"
    before.pop("downloaded_at")
    assert after == before
    assert store.touch_source(5, "x") is False


def test_corrupt_sidecar_reads_as_missing(tmp_path: Path) -> None:
    (tmp_path / ".agentic-metadata.json").write_text("{not json", encoding="utf-8")

    assert MetadataStore(tmp_path).read_docset() is None


def test_backup_and_restore_docset_metadata(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    original = DocsetMetadata("docs", "Docs", "2024-01-01T00:00:00Z", total_files=3, sources_count=1)
    store.write_docset(original)

    assert store.backup() is True
    store.write_docset(DocsetMetadata("docs", "Docs", "2024-01-01T00:00:00Z", 0, 1, "later"))
    assert store.restore() is True

    assert store.read_docset() == original
    assert not store.backup_path.exists()


def test_discard_backup_tolerates_missing_file(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    assert store.backup() is False
    store.discard_backup()
    assert store.restore() is False


def test_remove_listed_files_prunes_empty_directories(tmp_path: Path) -> None:
    docset = write_tree(
        tmp_path / "docset",
        {"docs/guide/a.md": "a", "docs/guide/b.md": "b", "docs/keep.md": "keep", "README.md": "r"},
    )
    store = MetadataStore(docset)

    removed = store.remove_listed_files(["docs/guide/a.md", "docs/guide/b.md", "already-gone.md"])

    assert removed == 2
    assert not (docset / "docs" / "guide").exists()
    assert (docset / "docs" / "keep.md").exists()
    assert (docset / "README.md").exists()


def test_remove_listed_files_never_follows_symlinks(tmp_path: Path) -> None:
    external = write_tree(tmp_path / "external", {"a.md": "precious"})
    docset = tmp_path / "docset"
    docset.mkdir()
    os.symlink(external, docset / "linked", target_is_directory=True)
    store = MetadataStore(docset)

    store.remove_listed_files(["linked/a.md", "../external/a.md"])

    assert (external / "a.md").read_text(encoding="utf-8") == "precious"
