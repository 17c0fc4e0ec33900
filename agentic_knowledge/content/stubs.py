"""Placeholder loaders for source kinds that are recognised but not crawled."""

from __future__ import annotations

from pathlib import Path

from ..errors import NotImplementedSourceError
from ..models import LoadResult, SourceDescriptor, SourceKind
from .base import ContentLoader, ValidationResult


class _UnimplementedLoader(ContentLoader):
    label = "source"

    def validate_config(self, source: SourceDescriptor) -> ValidationResult:
        if not source.locator:
            return f"{self.label} URL is required"
        return True

    def load(self, source: SourceDescriptor, target_dir: Path) -> LoadResult:
        return LoadResult.failed(f"{self.label} loading not yet implemented")

    def get_content_id(self, source: SourceDescriptor) -> str:
        raise NotImplementedSourceError(
            f"{self.label} content ids not yet implemented",
            {"kind": self.kind.value, "url": source.locator},
        )


class DocumentationSiteLoader(_UnimplementedLoader):
    kind = SourceKind.DOCUMENTATION_SITE
    label = "Documentation site"


class ApiDocumentationLoader(_UnimplementedLoader):
    kind = SourceKind.API_DOCUMENTATION
    label = "API documentation"


__all__ = ["ApiDocumentationLoader", "DocumentationSiteLoader"]
