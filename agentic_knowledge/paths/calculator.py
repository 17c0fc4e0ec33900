"""Docset target-path calculation and .knowledge/.gitignore upkeep."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from ..config import DocsetConfig

DOCSETS_DIR = "docsets"
_GITIGNORE_BLOCK = "# Agentic Knowledge - Downloaded docsets\ndocsets/\n"
_DOCSET_ID = re.compile(r"[A-Za-z0-9._-]+")

_logger = get_logger("paths.calculator")


def is_safe_docset_id(docset_id: str) -> bool:
    """Return True when ``docset_id`` is a single path segment usable as a directory name."""
    return bool(_DOCSET_ID.fullmatch(docset_id)) and docset_id not in (".", "..")


def calculate_local_path(docset: "DocsetConfig", config_path: Path | str) -> Path:
    """Return ``<configDir>/docsets/<id>`` for a docset.

    Local-folder docsets are populated with symlinks at the same location, so
    every docset kind shares one layout.
    """
    if not docset.sources:
        raise ConfigurationError(
            f"Docset '{docset.id}' must have sources configured", {"docset_id": docset.id}
        )
    if not is_safe_docset_id(docset.id):
        raise ConfigurationError(
            f"Docset id '{docset.id}' is not a valid directory name",
            {"docset_id": docset.id},
        )
    docsets_dir = Path(config_path).expanduser().resolve().parent / DOCSETS_DIR
    local_path = docsets_dir / docset.id
    if local_path.parent != docsets_dir:
        raise ConfigurationError(
            f"Docset '{docset.id}' resolves outside {docsets_dir}",
            {"docset_id": docset.id, "docsets_dir": str(docsets_dir)},
        )
    return local_path


def ensure_knowledge_gitignore(config_path: Path | str) -> bool:
    """Make sure ``<configDir>/.gitignore`` ignores downloaded docsets.

    Returns True when the file was created or changed. Failures are logged and
    never abort the caller.
    """
    gitignore = Path(config_path).expanduser().resolve().parent / ".gitignore"
    try:
        try:
            content = gitignore.read_text(encoding="utf-8")
        except FileNotFoundError:
            gitignore.write_text(_GITIGNORE_BLOCK, encoding="utf-8")
            return True
        if "docsets/" in content:
            return False
        separator = "" if content.endswith("\n") or not content else "\n"
        gitignore.write_text(f"{content}{separator}\n{_GITIGNORE_BLOCK}", encoding="utf-8")
        return True
    except OSError as exc:
        _logger.warning("Could not update %s: %s", gitignore, exc)
        return False


__all__ = [
    "DOCSETS_DIR",
    "calculate_local_path",
    "ensure_knowledge_gitignore",
    "is_safe_docset_id",
]
