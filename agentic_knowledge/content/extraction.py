"""Shared scan, copy and hashing helpers for content loaders."""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Sequence, Tuple

from ..errors import HashingError, PartialFileError
from ..logging import get_logger
from .filters import filter_documentation_files

_SKIPPED_DIRS = {".git"}

_logger = get_logger("content.extraction")


def scan_files(root: Path) -> List[str]:
    """Return relative posix paths of regular files under ``root``, sorted.

    ``.git`` is always skipped. Symlinks are never followed or copied so an
    archive or repository cannot smuggle in files from outside its tree.
    """
    return sorted(_iter_files(root, root))


def _iter_files(root: Path, current: Path) -> Iterator[str]:
    with os.scandir(current) as entries:
        children = sorted(entries, key=lambda entry: entry.name)
    for entry in children:
        if entry.is_symlink():
            _logger.debug("Skipping symlink %s", entry.path)
            continue
        if entry.is_dir(follow_symlinks=False):
            if entry.name in _SKIPPED_DIRS:
                continue
            yield from _iter_files(root, Path(entry.path))
        elif entry.is_file(follow_symlinks=False):
            yield Path(entry.path).relative_to(root).as_posix()


def extract_content(
    source_dir: Path,
    target_dir: Path,
    paths: Sequence[str] | None = None,
) -> Tuple[List[str], List[str]]:
    """Copy selected content from ``source_dir`` into ``target_dir``.

    With an explicit ``paths`` selector the named files and directories are
    copied verbatim; entries that are missing or unreadable are skipped with a
    warning. Without a selector every file is passed through the documentation
    classifier. Returns ``(files, warnings)`` with files in copy order.
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    files: List[str] = []
    warnings: List[str] = []

    if paths:
        for rel_path in paths:
            try:
                files.extend(_copy_selected(source_dir, target_dir, rel_path, warnings))
            except (OSError, PartialFileError) as exc:
                message = f"Could not extract {rel_path}: {exc}"
                _logger.warning(message)
                warnings.append(message)
        return files, warnings

    for rel_path in filter_documentation_files(scan_files(source_dir)):
        try:
            _copy_file(source_dir / rel_path, target_dir, rel_path)
        except (OSError, PartialFileError) as exc:
            message = f"Could not copy {rel_path}: {exc}"
            _logger.warning(message)
            warnings.append(message)
            continue
        files.append(rel_path)
    return files, warnings


def _copy_selected(
    source_dir: Path, target_dir: Path, rel_path: str, warnings: List[str]
) -> List[str]:
    cleaned = rel_path.replace("\\", "/").strip().strip("/")
    source = (source_dir / cleaned).resolve()
    root = source_dir.resolve()
    if not cleaned or (source != root and root not in source.parents):
        raise PartialFileError(
            "path escapes the source tree", {"path": rel_path}
        )

    candidate = source_dir / cleaned
    if candidate.is_symlink():
        raise PartialFileError("path is a symlink", {"path": rel_path})
    if candidate.is_dir():
        copied: List[str] = []
        for inner in scan_files(candidate):
            relative = f"{cleaned}/{inner}"
            try:
                _copy_file(candidate / inner, target_dir, relative)
            except PartialFileError as exc:
                message = f"Could not extract {relative}: {exc}"
                _logger.warning(message)
                warnings.append(message)
                continue
            copied.append(relative)
        return copied
    if candidate.is_file():
        _copy_file(candidate, target_dir, cleaned)
        return [cleaned]
    raise PartialFileError("no such file or directory", {"path": rel_path})


def _copy_file(source: Path, target_dir: Path, rel_path: str) -> None:
    """Copy into ``target_dir/rel_path`` unless a link sits on the way there."""
    current = target_dir
    for part in PurePosixPath(rel_path).parts:
        current = current / part
        if current.is_symlink():
            raise PartialFileError(
                "target is reached through a symlink",
                {"path": rel_path, "link": str(current)},
            )
    current.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, current)


def compute_content_hash(target_dir: Path, files: Sequence[str]) -> Tuple[str, List[str]]:
    """Hash copied files in sorted path order: path bytes then content bytes.

    The digest does not depend on filesystem enumeration order. Unreadable
    files are skipped with a warning.
    """
    digest = hashlib.sha256()
    warnings: List[str] = []
    for rel_path in sorted(files):
        try:
            content = _read_for_hash(target_dir / rel_path, rel_path)
        except HashingError as exc:
            message = f"Could not hash {rel_path}: {exc}"
            _logger.warning(message)
            warnings.append(message)
            continue
        digest.update(rel_path.encode("utf-8"))
        digest.update(content)
    return digest.hexdigest(), warnings


def _read_for_hash(path: Path, rel_path: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise HashingError(str(exc), {"path": rel_path}) from exc


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


__all__ = ["compute_content_hash", "extract_content", "scan_files", "sha256_text"]
