"""Safe directory cleanup for docset folders that may contain symlinks.

Local-folder sources are exposed as symlinks inside the managed docset
directory. Wiping that directory must remove the links themselves and never
the user-owned content they point at. The top-level path is classified with
``os.lstat`` and the tree below it is removed with ``shutil.rmtree``, which
works on open directory descriptors where the platform supports it and unlinks
nested links without following them.
"""

from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path

from ..errors import FilesystemSafetyError
from ..logging import get_logger
from ..models import DirectoryInfo

_logger = get_logger("paths.cleanup")


def safely_clear_directory(target_dir: Path | str) -> None:
    """Remove ``target_dir`` and everything under it without following symlinks.

    A missing directory is a no-op. If ``target_dir`` itself is a symlink only
    the link is removed.
    """
    path = os.fspath(target_dir)
    try:
        mode = os.lstat(path).st_mode
    except FileNotFoundError:
        return

    if _is_link_mode(mode):
        os.unlink(path)
        _logger.debug("Unlinked symlinked docset directory %s", path)
        return
    if not _is_dir_mode(mode):
        raise FilesystemSafetyError(
            f"Path is not a directory: {path}", {"path": path}
        )

    _remove_tree(path)
    _logger.debug("Cleared directory %s", path)


def _remove_tree(path: str) -> None:
    if not shutil.rmtree.avoids_symlink_attacks:
        _logger.warning("Platform rmtree is not symlink-race safe; clearing %s anyway", path)
    shutil.rmtree(path)


def contains_symlinks(dir_path: Path | str) -> bool:
    """Return True if ``dir_path`` has at least one direct symlink entry."""
    try:
        with os.scandir(dir_path) as entries:
            return any(entry.is_symlink() for entry in entries)
    except FileNotFoundError:
        return False


def get_directory_info(dir_path: Path | str) -> DirectoryInfo:
    """Count direct entries by type; all zero for a missing directory."""
    try:
        with os.scandir(dir_path) as entries:
            children = list(entries)
    except FileNotFoundError:
        return DirectoryInfo()

    files = directories = symlinks = 0
    for entry in children:
        if entry.is_symlink():
            symlinks += 1
        elif entry.is_dir(follow_symlinks=False):
            directories += 1
        elif entry.is_file(follow_symlinks=False):
            files += 1
    return DirectoryInfo(
        files=files, directories=directories, symlinks=symlinks, total=len(children)
    )


def _is_link_mode(mode: int) -> bool:
    return stat.S_ISLNK(mode)


def _is_dir_mode(mode: int) -> bool:
    return stat.S_ISDIR(mode)


__all__ = ["contains_symlinks", "get_directory_info", "safely_clear_directory"]
