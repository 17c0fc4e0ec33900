"""Compress discovered file lists into directory patterns for configuration."""

from __future__ import annotations

from collections import defaultdict
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Sequence, Tuple


def _group_by_top_level(files: Iterable[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    root_files: List[str] = []
    groups: Dict[str, List[str]] = defaultdict(list)
    for raw in files:
        normalised = raw.replace("\\", "/").strip("/")
        if not normalised:
            continue
        parts = PurePosixPath(normalised).parts
        if len(parts) == 1:
            root_files.append(normalised)
        else:
            groups[parts[0]].append(normalised)
    return root_files, groups


def discover_directory_patterns(files: Sequence[str]) -> List[str]:
    """Collapse files sharing a top-level directory into ``"<dir>/"`` patterns.

    Examples:
        ["docs/guide/intro.md", "docs/guide/advanced.md"] -> ["docs/"]
        ["README.md", "LICENSE"] -> ["LICENSE", "README.md"]
        ["examples/basic.js"] -> ["examples/basic.js"]
    """
    root_files, groups = _group_by_top_level(files)
    patterns = set(root_files)
    for top_level, group in groups.items():
        if len(set(group)) >= 2:
            patterns.add(f"{top_level}/")
        else:
            patterns.update(group)
    return sorted(patterns)


def discover_minimal_patterns(files: Sequence[str]) -> List[str]:
    """Same grouping as :func:`discover_directory_patterns`, one pattern per group."""
    root_files, groups = _group_by_top_level(files)
    patterns: List[str] = sorted(set(root_files))
    for top_level in sorted(groups):
        group = sorted(set(groups[top_level]))
        patterns.append(group[0] if len(group) == 1 else f"{top_level}/")
    return sorted(patterns)


__all__ = ["discover_directory_patterns", "discover_minimal_patterns"]
