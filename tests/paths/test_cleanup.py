"""Tests for symlink-safe directory cleanup."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from agentic_knowledge.errors import FilesystemSafetyError
from agentic_knowledge.models import DirectoryInfo
from agentic_knowledge.paths import contains_symlinks, get_directory_info, safely_clear_directory
from tests._fixtures.tree_builder import write_tree


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_clear_directory_leaves_external_symlink_targets_untouched(tmp_path: Path) -> None:
    external = write_tree(
        tmp_path / "user-docs",
        {f"chapter-{index}/page.md": f"page {index}" for index in range(5)},
    )
    before = _snapshot(external)
    assert len(before) == 5

    target = write_tree(tmp_path / "docsets" / "local", {"nested/copied.md": "copy"})
    os.symlink(external, target / "user-docs", target_is_directory=True)
    os.symlink(external / "chapter-0" / "page.md", target / "nested" / "page-link.md")

    safely_clear_directory(target)

    assert not os.path.lexists(target)
    assert _snapshot(external) == before



def test_clear_directory_removes_tree_through_rmtree(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    external = write_tree(tmp_path / "user-docs", {"guide.md": "keep"})
    target = write_tree(tmp_path / "docsets" / "local", {"a/b/c/copied.md": "copy"})
    os.symlink(external, target / "a" / "b" / "c" / "linked", target_is_directory=True)
    removed: list[str] = []
    real_rmtree = shutil.rmtree

    def recording_rmtree(path: str) -> None:
        removed.append(path)
        real_rmtree(path)

    recording_rmtree.avoids_symlink_attacks = real_rmtree.avoids_symlink_attacks  # type: ignore[attr-defined]
    monkeypatch.setattr(shutil, "rmtree", recording_rmtree)

    safely_clear_directory(target)

    assert removed == [os.fspath(target)]
    assert not os.path.lexists(target)
    assert (external / "guide.md").read_text(encoding="utf-8") == "keep"

def test_clear_directory_unlinks_symlinked_target_without_following(tmp_path: Path) -> None:
    real = write_tree(tmp_path / "real", {"keep.md": "keep"})
    link = tmp_path / "link"
    os.symlink(real, link, target_is_directory=True)

    safely_clear_directory(link)

    assert not os.path.lexists(link)
    assert (real / "keep.md").read_text(encoding="utf-8") == "keep"


def test_clear_directory_handles_broken_symlinks(tmp_path: Path) -> None:
    target = tmp_path / "target"
    target.mkdir()
    os.symlink(tmp_path / "missing", target / "dangling")

    safely_clear_directory(target)

    assert not os.path.lexists(target)


def test_clear_missing_directory_is_noop(tmp_path: Path) -> None:
    safely_clear_directory(tmp_path / "absent")


def test_clear_regular_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "file.txt"
    path.write_text("data", encoding="utf-8")

    with pytest.raises(FilesystemSafetyError):
        safely_clear_directory(path)
    assert path.exists()


def test_directory_info_counts_direct_entries(tmp_path: Path) -> None:
    target = write_tree(tmp_path / "target", {"a.md": "a", "sub/b.md": "b"})
    os.symlink(tmp_path, target / "link", target_is_directory=True)

    info = get_directory_info(target)

    assert info == DirectoryInfo(files=1, directories=1, symlinks=1, total=3)
    assert contains_symlinks(target) is True


def test_directory_info_for_missing_directory_is_zero(tmp_path: Path) -> None:
    assert get_directory_info(tmp_path / "absent") == DirectoryInfo()
    assert contains_symlinks(tmp_path / "absent") is False
