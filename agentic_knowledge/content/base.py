"""Base class for content loaders."""

from __future__ import annotations

import shutil
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Literal, Union

from ..logging import get_logger
from ..models import LoadResult, SourceDescriptor, SourceKind

ValidationResult = Union[Literal[True], str]


class ContentLoader(ABC):
    """Contract for loaders that materialise one source kind into a docset directory."""

    kind: SourceKind

    def can_handle(self, source: SourceDescriptor) -> bool:
        """Return True when ``source`` is of this loader's kind."""
        return source.kind is self.kind

    @abstractmethod
    def validate_config(self, source: SourceDescriptor) -> ValidationResult:
        """Return True for a usable descriptor, or a reason string."""

    @abstractmethod
    def load(self, source: SourceDescriptor, target_dir: Path) -> LoadResult:
        """Fetch, filter and copy the source into ``target_dir``. Never raises."""

    @abstractmethod
    def get_content_id(self, source: SourceDescriptor) -> str:
        """Return an opaque identifier that changes when upstream content changes."""


@contextmanager
def ephemeral_directory(prefix: str) -> Iterator[Path]:
    """Yield a per-operation temp directory that is removed on every exit path."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():  # pragma: no cover - depends on platform permissions
            get_logger("content").warning("Could not clean up temp directory %s", path)


__all__ = ["ContentLoader", "ValidationResult", "ephemeral_directory"]
