"""Content loaders and the registry that dispatches sources to them."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from ..errors import ConfigurationError
from ..models import SourceDescriptor, SourceKind
from .archive import ArchiveLoader
from .base import ContentLoader, ValidationResult
from .extraction import compute_content_hash, extract_content, scan_files
from .filters import filter_documentation_files, is_documentation_file
from .git_repo import GitRepoLoader
from .stubs import ApiDocumentationLoader, DocumentationSiteLoader

LoaderRegistry = Mapping[SourceKind, ContentLoader]


def default_loaders() -> Dict[SourceKind, ContentLoader]:
    """Return a fresh registry covering every kind that is fetched by a loader."""
    return {
        SourceKind.GIT_REPO: GitRepoLoader(),
        SourceKind.ARCHIVE: ArchiveLoader(),
        SourceKind.DOCUMENTATION_SITE: DocumentationSiteLoader(),
        SourceKind.API_DOCUMENTATION: ApiDocumentationLoader(),
    }


def loader_for(
    source: SourceDescriptor, loaders: Optional[LoaderRegistry] = None
) -> ContentLoader:
    """Return the loader for ``source``; unknown or unfetchable kinds are rejected."""
    registry = loaders if loaders is not None else default_loaders()
    match source.kind:
        case (
            SourceKind.GIT_REPO
            | SourceKind.ARCHIVE
            | SourceKind.DOCUMENTATION_SITE
            | SourceKind.API_DOCUMENTATION
        ):
            loader = registry.get(source.kind)
            if loader is None or not loader.can_handle(source):
                raise ConfigurationError(
                    f"No loader registered for source type {source.kind.value}",
                    {"type": source.kind.value},
                )
            return loader
        case SourceKind.LOCAL_FOLDER:
            raise ConfigurationError(
                "local_folder sources are linked, not loaded",
                {"type": source.kind.value},
            )
        case _:
            raise ConfigurationError(
                f"Unsupported source type: {source.kind!r}",
                {"type": str(source.kind)},
            )


__all__ = [
    "ApiDocumentationLoader",
    "ArchiveLoader",
    "ContentLoader",
    "DocumentationSiteLoader",
    "GitRepoLoader",
    "LoaderRegistry",
    "ValidationResult",
    "compute_content_hash",
    "default_loaders",
    "extract_content",
    "filter_documentation_files",
    "is_documentation_file",
    "loader_for",
    "scan_files",
]
