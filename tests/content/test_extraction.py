"""Tests for the shared scan, copy and hashing helpers."""

from __future__ import annotations

import os
from pathlib import Path

from agentic_knowledge.content import compute_content_hash, extract_content, scan_files
from agentic_knowledge.paths import safely_clear_directory
from tests._fixtures.tree_builder import TreeBuilder, write_tree


def test_scan_skips_git_metadata_and_symlinks(tree_builder: TreeBuilder, tmp_path: Path) -> None:
    tree_builder.write({"README.md": "hi", ".git/config": "x", "docs/a.md": "a"})
    outside = write_tree(tmp_path / "outside", {"secret.md": "secret"})
    os.symlink(outside, tree_builder.path() / "linked", target_is_directory=True)

    assert scan_files(tree_builder.path()) == ["README.md", "docs/a.md"]


def test_extract_without_selector_applies_classifier(tree_builder: TreeBuilder, tmp_path: Path) -> None:
    tree_builder.write(
        {
            "README.md": "# Project",
            "docs/guide.md": "guide",
            "src/main.py": "print()",
            "LICENSE": "MIT",
        }
    )
    target = tmp_path / "target"

    files, warnings = extract_content(tree_builder.path(), target)

    assert files == ["README.md", "docs/guide.md"]
    assert warnings == []
    assert (target / "docs" / "guide.md").read_text(encoding="utf-8") == "guide"
    assert not (target / "src").exists()


def test_explicit_selector_bypasses_classifier(tree_builder: TreeBuilder, tmp_path: Path) -> None:
    tree_builder.write({"src/main.py": "print()", "src/util/io.py": "pass", "CHANGELOG.md": "log"})
    target = tmp_path / "target"

    files, warnings = extract_content(tree_builder.path(), target, ["src/", "CHANGELOG.md"])

    assert files == ["src/main.py", "src/util/io.py", "CHANGELOG.md"]
    assert warnings == []
    assert (target / "src" / "util" / "io.py").exists()


def test_selector_skips_missing_and_escaping_paths(tree_builder: TreeBuilder, tmp_path: Path) -> None:
    tree_builder.write({"docs/a.md": "a"})
    target = tmp_path / "target"

    files, warnings = extract_content(tree_builder.path(), target, ["docs", "missing.md", "../etc"])

    assert files == ["docs/a.md"]
    assert len(warnings) == 2
    assert any("missing.md" in warning for warning in warnings)
    assert any("../etc" in warning for warning in warnings)


def test_extract_never_writes_through_linked_directories(
    tree_builder: TreeBuilder, tmp_path: Path
) -> None:
    tree_builder.write({"README.md": "# Project", "docs/guide.md": "upstream", "docs/new.md": "n"})
    user_docs = write_tree(tmp_path / "user-docs", {"guide.md": "mine"})
    target = tmp_path / "target"
    target.mkdir()
    os.symlink(user_docs, target / "docs", target_is_directory=True)

    files, warnings = extract_content(tree_builder.path(), target)
    selected, selected_warnings = extract_content(tree_builder.path(), target, ["docs"])

    assert files == ["README.md"]
    assert len(warnings) == 2
    assert selected == []
    assert len(selected_warnings) == 2
    assert (user_docs / "guide.md").read_text(encoding="utf-8") == "mine"
    assert sorted(os.listdir(user_docs)) == ["guide.md"]


def test_content_hash_is_independent_of_file_order(tree_builder: TreeBuilder) -> None:
    tree_builder.write({"a.md": "alpha", "b/c.md": "gamma"})
    root = tree_builder.path()

    forward, _ = compute_content_hash(root, ["a.md", "b/c.md"])
    backward, _ = compute_content_hash(root, ["b/c.md", "a.md"])

    assert forward == backward
    assert len(forward) == 64


def test_content_hash_covers_paths_and_bytes(tree_builder: TreeBuilder) -> None:
    tree_builder.write({"a.md": "alpha"})
    root = tree_builder.path()
    original, _ = compute_content_hash(root, ["a.md"])

    (root / "a.md").write_text("changed", encoding="utf-8")
    changed, _ = compute_content_hash(root, ["a.md"])

    assert changed != original


def test_unreadable_files_become_hash_warnings(tree_builder: TreeBuilder) -> None:
    tree_builder.write({"a.md": "alpha"})

    digest, warnings = compute_content_hash(tree_builder.path(), ["a.md", "gone.md"])

    assert digest == compute_content_hash(tree_builder.path(), ["a.md"])[0]
    assert len(warnings) == 1
    assert "gone.md" in warnings[0]


def test_repeated_extraction_into_cleared_target_is_idempotent(
    tree_builder: TreeBuilder, tmp_path: Path
) -> None:
    tree_builder.write({"README.md": "hi", "docs/a.md": "a", "docs/b.rst": "b"})
    target = tmp_path / "target"

    first_files, _ = extract_content(tree_builder.path(), target)
    first_hash, _ = compute_content_hash(target, first_files)
    safely_clear_directory(target)
    second_files, _ = extract_content(tree_builder.path(), target)
    second_hash, _ = compute_content_hash(target, second_files)

    assert first_files == second_files
    assert first_hash == second_hash
