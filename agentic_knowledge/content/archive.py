"""Content loader for zip and tar.gz archives, remote or local."""

from __future__ import annotations

import hashlib
import shutil
import tarfile
import time
import uuid
import zipfile
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import unquote, urlparse
from urllib.request import Request, urlopen

from ..errors import ExtractionError, KnowledgeError, RemoteFetchError
from ..logging import get_logger
from ..models import LoadResult, SourceDescriptor, SourceKind
from .base import ContentLoader, ValidationResult, ephemeral_directory
from .extraction import compute_content_hash, extract_content, sha256_text

Opener = Callable[..., Any]

DOWNLOAD_FALLBACK_NAME = "download.archive"
DOWNLOAD_TIMEOUT_SECONDS = 120.0
HEAD_TIMEOUT_SECONDS = 30.0
EXTRACT_TIMEOUT_SECONDS = 300.0
_CHUNK_SIZE = 1024 * 64
_USER_AGENT = "agentic-knowledge"


class ArchiveLoader(ContentLoader):
    """Downloads or opens an archive, unpacks it and copies documentation files."""

    kind = SourceKind.ARCHIVE

    def __init__(
        self,
        opener: Opener | None = None,
        *,
        download_timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        extract_timeout: float = EXTRACT_TIMEOUT_SECONDS,
    ) -> None:
        self._opener = opener or urlopen
        self.download_timeout = download_timeout
        self.extract_timeout = extract_timeout
        self.logger = get_logger("content.archive")

    def validate_config(self, source: SourceDescriptor) -> ValidationResult:
        if not source.locator:
            return "Archive URL or path is required"
        return True

    def get_content_id(self, source: SourceDescriptor) -> str:
        locator = source.locator
        try:
            if is_remote(locator):
                request = Request(
                    locator, method="HEAD", headers={"User-Agent": _USER_AGENT}
                )
                with self._opener(request, timeout=HEAD_TIMEOUT_SECONDS) as response:
                    headers = response.headers
                    marker = headers.get("ETag") or headers.get("Last-Modified") or locator
                return sha256_text(f"{locator}:{marker}")
            return _sha256_file(Path(locator))
        except (OSError, ValueError) as exc:
            self.logger.debug("Could not compute content id for %s: %s", locator, exc)
            return sha256_text(locator)

    def load(self, source: SourceDescriptor, target_dir: Path) -> LoadResult:
        target = Path(target_dir)
        try:
            with ephemeral_directory("archive-") as temp_dir:
                archive_path = self._materialise(source.locator, temp_dir)
                extract_dir = temp_dir / "extracted"
                extract_dir.mkdir()
                self.extract(archive_path, extract_dir)
                flatten_single_root(extract_dir)
                files, warnings = extract_content(extract_dir, target, source.paths)
                content_hash, hash_warnings = compute_content_hash(target, files)
        except (KnowledgeError, OSError) as exc:
            self.logger.error("Archive loading failed for %s: %s", source.locator, exc)
            return LoadResult.failed(f"Archive loading failed: {exc}")

        self.logger.info("Copied %d file(s) from %s", len(files), source.locator)
        return LoadResult.ok(files, content_hash, [*warnings, *hash_warnings])

    def extract(self, archive_path: Path, destination: Path) -> None:
        """Unpack ``archive_path`` into ``destination`` based on its suffix."""
        name = archive_path.name.lower()
        deadline = time.monotonic() + self.extract_timeout
        try:
            if name.endswith(".zip"):
                self._extract_zip(archive_path, destination, deadline)
            elif name.endswith(".tar.gz") or name.endswith(".tgz"):
                self._extract_tar(archive_path, destination, deadline)
            else:
                raise ExtractionError(
                    "Unsupported archive format. Supported formats: .zip, .tar.gz",
                    {"archive": archive_path.name},
                )
        except (zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
            raise ExtractionError(
                f"Corrupt archive: {exc}", {"archive": archive_path.name}
            ) from exc

    # ------------------------------------------------------------------
    # Fetching

    def _materialise(self, locator: str, temp_dir: Path) -> Path:
        if is_remote(locator):
            return self._download(locator, temp_dir)
        path = Path(locator)
        if not path.is_file():
            raise RemoteFetchError("Local archive file not found", url=locator)
        return path

    def _download(self, url: str, temp_dir: Path) -> Path:
        destination = temp_dir / download_filename(url)
        request = Request(url, headers={"User-Agent": _USER_AGENT})
        self.logger.info("Downloading %s", url)
        try:
            with self._opener(request, timeout=self.download_timeout) as response:
                status = _status_of(response)
                if status is not None and status >= 400:
                    raise RemoteFetchError(
                        f"Download failed with HTTP status {status}", url=url
                    )
                with destination.open("wb") as handle:
                    shutil.copyfileobj(response, handle, _CHUNK_SIZE)
        except HTTPError as exc:
            raise RemoteFetchError(
                f"Download failed with HTTP status {exc.code}", url=url
            ) from exc
        except URLError as exc:
            raise RemoteFetchError(f"Download failed: {exc.reason}", url=url) from exc
        self.logger.debug("Downloaded %s to %s", url, destination.name)
        return destination

    # ------------------------------------------------------------------
    # Unpacking

    def _extract_zip(self, archive_path: Path, destination: Path, deadline: float) -> None:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                _check_deadline(deadline, archive_path)
                target = _member_target(destination, member.filename)
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as source, target.open("wb") as handle:
                    shutil.copyfileobj(source, handle, _CHUNK_SIZE)

    def _extract_tar(self, archive_path: Path, destination: Path, deadline: float) -> None:
        with tarfile.open(archive_path, "r:gz") as archive:
            for member in archive:
                _check_deadline(deadline, archive_path)
                target = _member_target(destination, member.name)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if not member.isfile():
                    self.logger.debug("Skipping non-regular archive member %s", member.name)
                    continue
                source = archive.extractfile(member)
                if source is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with source, target.open("wb") as handle:
                    shutil.copyfileobj(source, handle, _CHUNK_SIZE)


def is_remote(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


def download_filename(url: str) -> str:
    """Derive the local filename for a download from the URL path."""
    name = PurePosixPath(unquote(urlparse(url).path)).name
    return name or DOWNLOAD_FALLBACK_NAME


def flatten_single_root(directory: Path) -> bool:
    """Collapse a lone wrapper directory into ``directory``.

    Applies only when the top level holds exactly one directory and no files.
    Returns True when the tree was flattened.
    """
    entries = list(directory.iterdir())
    if len(entries) != 1:
        return False
    wrapper = entries[0]
    if wrapper.is_symlink() or not wrapper.is_dir():
        return False

    # Rename first so a child sharing the wrapper's name cannot collide.
    staging = directory / f".flatten-{uuid.uuid4().hex}"
    wrapper.rename(staging)
    for child in staging.iterdir():
        child.rename(directory / child.name)
    staging.rmdir()
    return True


def _member_target(destination: Path, member_name: str) -> Path:
    root = destination.resolve()
    target = (destination / member_name).resolve()
    if target != root and root not in target.parents:
        raise ExtractionError(
            "Archive member escapes the extraction directory",
            {"member": member_name},
        )
    return target


def _check_deadline(deadline: float, archive_path: Path) -> None:
    if time.monotonic() > deadline:
        raise ExtractionError(
            "Archive extraction timed out", {"archive": archive_path.name}
        )


def _status_of(response: Any) -> Optional[int]:
    status = getattr(response, "status", None)
    if status is None and hasattr(response, "getcode"):
        status = response.getcode()
    return status if isinstance(status, int) else None


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


__all__ = ["ArchiveLoader", "download_filename", "flatten_single_root", "is_remote"]
