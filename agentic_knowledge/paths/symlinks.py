"""Symlink management for local_folder sources."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Sequence

from ..errors import FilesystemSafetyError
from ..logging import get_logger
from .cleanup import safely_clear_directory

_logger = get_logger("paths.symlinks")


def create_symlinks(
    source_paths: Sequence[str],
    target_dir: Path | str,
    project_root: Path | str,
) -> List[Path]:
    """Link each source path into ``target_dir`` under its basename.

    Relative sources resolve against ``project_root``. Every source is checked
    before anything is touched, so a missing source leaves ``target_dir`` as it
    was. Re-running replaces links of the same name.
    """
    root = Path(project_root).expanduser().resolve()
    target = Path(target_dir)

    resolved: List[tuple[str, Path]] = []
    for source in source_paths:
        candidate = Path(source).expanduser()
        absolute = candidate if candidate.is_absolute() else root / candidate
        absolute = absolute.resolve()
        if not absolute.exists():
            raise FilesystemSafetyError(
                f"Source path does not exist: {absolute}",
                {"source": source, "target_dir": str(target), "project_root": str(root)},
            )
        name = candidate.name or absolute.name or "unknown"
        resolved.append((name, absolute))

    target.mkdir(parents=True, exist_ok=True)

    created: List[Path] = []
    for name, absolute in resolved:
        link_path = target / name
        _remove_existing_entry(link_path)
        os.symlink(absolute, link_path, target_is_directory=absolute.is_dir())
        _logger.debug("Linked %s -> %s", link_path, absolute)
        created.append(link_path)
    return created


def validate_symlinks(target_dir: Path | str) -> bool:
    """Return True when every direct symlink in ``target_dir`` resolves."""
    try:
        with os.scandir(target_dir) as entries:
            links = [entry.path for entry in entries if entry.is_symlink()]
    except OSError:
        return False
    return all(os.path.exists(link) for link in links)


def remove_symlinks(target_dir: Path | str) -> int:
    """Unlink direct symlink entries of ``target_dir``; other entries are left alone."""
    try:
        with os.scandir(target_dir) as entries:
            links = [entry.path for entry in entries if entry.is_symlink()]
    except FileNotFoundError:
        return 0
    for link in links:
        os.unlink(link)
        _logger.debug("Removed symlink %s", link)
    return len(links)


def _remove_existing_entry(path: Path) -> None:
    try:
        is_real_dir = path.is_dir() and not path.is_symlink()
    except OSError:
        is_real_dir = False
    if is_real_dir:
        safely_clear_directory(path)
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


__all__ = ["create_symlinks", "remove_symlinks", "validate_symlinks"]
