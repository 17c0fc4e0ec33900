"""Core data models shared across agentic-knowledge components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class SourceKind(str, Enum):
    """Closed set of source kinds a docset may be built from."""

    GIT_REPO = "git_repo"
    ARCHIVE = "archive"
    LOCAL_FOLDER = "local_folder"
    DOCUMENTATION_SITE = "documentation_site"
    API_DOCUMENTATION = "api_documentation"


def utc_timestamp(moment: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with a trailing ``Z``."""
    value = moment or datetime.now(UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SourceDescriptor:
    """Validated, read-only description of one configured source."""

    kind: SourceKind
    locator: str
    paths: Tuple[str, ...] = ()
    branch: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def from_config(cls, source: Any) -> "SourceDescriptor":
        """Build a descriptor from a ``config.SourceConfig`` entry."""
        kind = SourceKind(source.type)
        if kind is SourceKind.LOCAL_FOLDER:
            locator = source.paths[0] if source.paths else ""
        else:
            locator = source.url or source.path or ""
        return cls(
            kind=kind,
            locator=locator,
            paths=tuple(source.paths or ()),
            branch=source.branch,
            token=source.token,
        )

    def sorted_paths_key(self) -> str:
        return ",".join(sorted(self.paths)) if self.paths else "all"


@dataclass
class LoadResult:
    """Outcome of a single ``ContentLoader.load`` call."""

    success: bool
    files: List[str] = field(default_factory=list)
    content_hash: str = ""
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(
        cls, files: Sequence[str], content_hash: str, warnings: Sequence[str] = ()
    ) -> "LoadResult":
        return cls(
            success=True,
            files=list(files),
            content_hash=content_hash,
            warnings=list(warnings),
        )

    @classmethod
    def failed(cls, error: str, warnings: Sequence[str] = ()) -> "LoadResult":
        return cls(
            success=False,
            files=[],
            content_hash="",
            error=error or "Unknown error",
            warnings=list(warnings),
        )


@dataclass
class SourceMetadata:
    """Per-source sidecar persisted as ``.agentic-source-<index>.json``."""

    source_url: str
    source_type: str
    downloaded_at: str
    files_count: int
    files: List[str]
    docset_id: str
    content_hash: Optional[str] = None
    content_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, payload: object) -> Optional["SourceMetadata"]:
        if not isinstance(payload, dict):
            return None
        files = payload.get("files")
        if not isinstance(files, list):
            return None
        source_url = payload.get("source_url")
        source_type = payload.get("source_type")
        if not isinstance(source_url, str) or not isinstance(source_type, str):
            return None
        files_count = payload.get("files_count")
        return cls(
            source_url=source_url,
            source_type=source_type,
            downloaded_at=str(payload.get("downloaded_at") or ""),
            files_count=files_count if isinstance(files_count, int) else len(files),
            files=[str(item) for item in files],
            docset_id=str(payload.get("docset_id") or ""),
            content_hash=_optional_str(payload.get("content_hash")),
            content_id=_optional_str(payload.get("content_id")),
        )


@dataclass
class DocsetMetadata:
    """Overall docset sidecar persisted as ``.agentic-metadata.json``."""

    docset_id: str
    docset_name: str
    initialized_at: str
    total_files: int
    sources_count: int
    last_refreshed: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, payload: object) -> Optional["DocsetMetadata"]:
        if not isinstance(payload, dict):
            return None
        docset_id = payload.get("docset_id")
        initialized_at = payload.get("initialized_at")
        if not isinstance(docset_id, str) or not isinstance(initialized_at, str):
            return None
        total_files = payload.get("total_files")
        sources_count = payload.get("sources_count")
        return cls(
            docset_id=docset_id,
            docset_name=str(payload.get("docset_name") or docset_id),
            initialized_at=initialized_at,
            total_files=total_files if isinstance(total_files, int) else 0,
            sources_count=sources_count if isinstance(sources_count, int) else 0,
            last_refreshed=_optional_str(payload.get("last_refreshed")),
        )

    @property
    def last_activity(self) -> str:
        return self.last_refreshed or self.initialized_at


@dataclass(frozen=True)
class DirectoryInfo:
    """One-level census of a directory, used before destructive operations."""

    files: int = 0
    directories: int = 0
    symlinks: int = 0
    total: int = 0


def _optional_str(value: object) -> Optional[str]:
    return value if isinstance(value, str) and value else None


__all__ = [
    "DirectoryInfo",
    "DocsetMetadata",
    "LoadResult",
    "SourceDescriptor",
    "SourceKind",
    "SourceMetadata",
    "utc_timestamp",
]
