"""Smart filtering: decide which repository files count as documentation."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, List

_METADATA_FILES = re.compile(r"^(CHANGELOG|LICENSE|CONTRIBUTING|AUTHORS|CODE_OF_CONDUCT)", re.I)

_README = re.compile(r"^README", re.I)

_EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        "vendor",
        ".git",
        "build",
        "dist",
        "target",
        ".cache",
        "__tests__",
        "test",
        "tests",
        ".github",
        ".vscode",
        ".idea",
    }
)

_DOC_EXTENSIONS = frozenset({".md", ".mdx", ".rst", ".txt", ".adoc", ".asciidoc"})

_EXAMPLE_SEGMENT = re.compile(r"^(examples?|samples?)$", re.I)

_BINARY_EXTENSIONS = frozenset({".exe", ".bin", ".so", ".dll", ".dylib", ".a", ".o", ".obj"})


def is_documentation_file(file_path: str) -> bool:
    """Return True if ``file_path`` (relative) should be kept as documentation."""
    normalised = file_path.replace("\\", "/")
    path = PurePosixPath(normalised)
    filename = path.name
    extension = path.suffix.lower()
    directories = path.parts[:-1]

    if _METADATA_FILES.match(filename):
        return False

    if any(segment in _EXCLUDED_DIRS for segment in directories):
        return False

    if _README.match(filename):
        return True

    if extension in _DOC_EXTENSIONS:
        return True

    if any(_EXAMPLE_SEGMENT.match(segment) for segment in directories):
        return extension not in _BINARY_EXTENSIONS

    return False


def filter_documentation_files(files: Iterable[str]) -> List[str]:
    """Keep documentation files, preserving input order."""
    return [file for file in files if is_documentation_file(file)]


__all__ = ["filter_documentation_files", "is_documentation_file"]
