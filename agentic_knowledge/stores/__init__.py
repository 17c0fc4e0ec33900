"""Persistence helpers for docset sidecar metadata."""

from .metadata import (
    BACKUP_FILENAME,
    METADATA_FILENAME,
    SOURCE_METADATA_TEMPLATE,
    MetadataStore,
)

__all__ = [
    "BACKUP_FILENAME",
    "METADATA_FILENAME",
    "MetadataStore",
    "SOURCE_METADATA_TEMPLATE",
]
