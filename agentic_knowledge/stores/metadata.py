"""Sidecar metadata persisted next to each docset's materialised content."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from ..logging import get_logger
from ..models import DocsetMetadata, SourceMetadata

METADATA_FILENAME = ".agentic-metadata.json"
BACKUP_FILENAME = ".agentic-metadata.backup.json"
SOURCE_METADATA_TEMPLATE = ".agentic-source-{index}.json"

_logger = get_logger("stores.metadata")


class MetadataStore:
    """Reads and writes the JSON sidecars of one docset directory.

    Every write goes through a temp file and ``os.replace`` so readers never
    observe a partially written sidecar.
    """

    def __init__(self, docset_dir: Path) -> None:
        self.docset_dir = Path(docset_dir)

    @property
    def metadata_path(self) -> Path:
        return self.docset_dir / METADATA_FILENAME

    @property
    def backup_path(self) -> Path:
        return self.docset_dir / BACKUP_FILENAME

    def source_path(self, index: int) -> Path:
        return self.docset_dir / SOURCE_METADATA_TEMPLATE.format(index=index)

    # ------------------------------------------------------------------
    # Overall docset metadata

    def read_docset(self) -> Optional[DocsetMetadata]:
        return DocsetMetadata.from_dict(self._read_json(self.metadata_path))

    def write_docset(self, metadata: DocsetMetadata) -> None:
        self._write_json(self.metadata_path, metadata.to_dict())

    def backup(self) -> bool:
        """Copy the overall metadata aside; returns False if there is none."""
        if not self.metadata_path.is_file():
            return False
        shutil.copyfile(self.metadata_path, self.backup_path)
        return True

    def restore(self) -> bool:
        """Put the backup back in place and remove it."""
        if not self.backup_path.is_file():
            return False
        os.replace(self.backup_path, self.metadata_path)
        _logger.info("Restored docset metadata from backup in %s", self.docset_dir)
        return True

    def discard_backup(self) -> None:
        try:
            self.backup_path.unlink()
        except FileNotFoundError:
            pass

    # ------------------------------------------------------------------
    # Per-source metadata

    def read_source(self, index: int) -> Optional[SourceMetadata]:
        return SourceMetadata.from_dict(self._read_json(self.source_path(index)))

    def write_source(self, index: int, metadata: SourceMetadata) -> None:
        self._write_json(self.source_path(index), metadata.to_dict())

    def touch_source(self, index: int, timestamp: str) -> bool:
        """Rewrite only ``downloaded_at`` of an existing source sidecar."""
        metadata = self.read_source(index)
        if metadata is None:
            return False
        metadata.downloaded_at = timestamp
        self.write_source(index, metadata)
        return True

    def read_sources(self, count: int) -> List[Optional[SourceMetadata]]:
        return [self.read_source(index) for index in range(count)]

    # ------------------------------------------------------------------
    # Content removal

    def remove_listed_files(self, files: Iterable[str]) -> int:
        """Delete previously copied files and prune directories left empty.

        Missing files are tolerated. Paths outside the docset directory are
        ignored and symlinks are unlinked, never followed.
        """
        root = self.docset_dir.resolve()
        removed = 0
        parents = set()
        for rel_path in files:
            candidate = self.docset_dir / rel_path
            if not _inside(root, candidate):
                _logger.warning("Ignoring listed file outside docset: %s", rel_path)
                continue
            try:
                os.unlink(candidate)
                removed += 1
            except FileNotFoundError:
                pass
            except IsADirectoryError:
                _logger.warning("Listed file is a directory, leaving it: %s", rel_path)
                continue
            parents.add(candidate.parent)

        for parent in sorted(parents, key=lambda path: len(path.parts), reverse=True):
            self._prune_empty(parent)
        return removed

    def _prune_empty(self, directory: Path) -> None:
        current = directory
        while current != self.docset_dir and self.docset_dir in current.parents:
            if current.is_symlink() or not current.is_dir():
                return
            try:
                current.rmdir()
            except OSError:
                return
            current = current.parent

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _read_json(path: Path) -> object:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            _logger.warning("Could not read %s: %s", path, exc)
            return None

    @staticmethod
    def _write_json(path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.write("\n")
            os.replace(temp_name, path)
        except BaseException:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise


def _inside(root: Path, candidate: Path) -> bool:
    parent = candidate.parent.resolve()
    return parent == root or root in parent.parents


__all__ = [
    "BACKUP_FILENAME",
    "METADATA_FILENAME",
    "MetadataStore",
    "SOURCE_METADATA_TEMPLATE",
]
