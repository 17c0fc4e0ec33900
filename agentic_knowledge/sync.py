"""Docset initialisation, change detection and refresh coordination."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from .config import ConfigManager, DocsetConfig, KnowledgeConfig, SourceConfig
from .content import ContentLoader, default_loaders, loader_for
from .errors import ConfigurationError, KnowledgeError, NotImplementedSourceError
from .logging import get_logger
from .models import (
    DocsetMetadata,
    SourceDescriptor,
    SourceKind,
    SourceMetadata,
    utc_timestamp,
)
from .paths import (
    calculate_local_path,
    contains_symlinks,
    create_symlinks,
    ensure_knowledge_gitignore,
    get_directory_info,
    safely_clear_directory,
)
from .stores import MetadataStore
from .templates import build_context, effective_template, render_instructions

Clock = Callable[[], datetime]


class OutcomeStatus(str, Enum):
    INITIALIZED = "initialized"
    REFRESHED = "refreshed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    NOT_INITIALIZED = "not_initialized"
    FAILED = "failed"


class SourceStatus(str, Enum):
    LOADED = "loaded"
    LINKED = "linked"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class SourceOutcome:
    """What happened to one configured source during init or refresh."""

    index: int
    kind: str
    locator: str
    status: SourceStatus
    files_count: int = 0
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status is SourceStatus.FAILED


@dataclass
class DocsetOutcome:
    """Result of initialising or refreshing one docset."""

    docset_id: str
    status: OutcomeStatus
    local_path: Path
    sources: List[SourceOutcome] = field(default_factory=list)
    total_files: int = 0
    message: Optional[str] = None

    @property
    def failures(self) -> List[SourceOutcome]:
        return [source for source in self.sources if source.failed]

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED and not self.failures


@dataclass
class DocsetStatus:
    """Snapshot of a docset's on-disk state for status reporting."""

    docset_id: str
    docset_name: str
    local_path: Optional[Path]
    initialized: bool
    metadata: Optional[DocsetMetadata] = None
    sources: List[Optional[SourceMetadata]] = field(default_factory=list)
    missing_sources: int = 0
    error: Optional[str] = None


class DocsetSynchronizer:
    """Materialises docsets on disk and keeps them in sync with their sources.

    Operations run strictly sequentially; concurrent invocations against the same
    docset directory are not coordinated.
    """

    def __init__(
        self,
        config: ConfigManager | Path | str | None = None,
        *,
        loaders: Optional[Mapping[SourceKind, ContentLoader]] = None,
        clock: Clock | None = None,
    ) -> None:
        self.config_manager = config if isinstance(config, ConfigManager) else ConfigManager(config)
        self.loaders = dict(loaders) if loaders is not None else default_loaders()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("sync")

    # ------------------------------------------------------------------
    # Public API

    def init_docset(self, docset_id: str, *, force: bool = False) -> DocsetOutcome:
        """Populate ``<configDir>/docsets/<id>`` from every configured source."""
        config = self.config_manager.load()
        docset = config.get_docset(docset_id)
        local_path = calculate_local_path(docset, config.path)

        if os.path.lexists(local_path):
            if not force:
                self.logger.info("Docset %s already initialized at %s", docset_id, local_path)
                return DocsetOutcome(
                    docset_id,
                    OutcomeStatus.SKIPPED,
                    local_path,
                    message="Docset already initialized; use --force to reinitialize",
                )
            self._clear_for_reinit(local_path)

        local_path.mkdir(parents=True, exist_ok=True)
        store = MetadataStore(local_path)
        timestamp = self._timestamp()
        self.logger.info("Initializing docset %s (%d source(s))", docset_id, len(docset.sources))

        outcomes = [
            self._guarded(
                self._load_source, index, source, docset, local_path, store, timestamp, config
            )
            for index, source in enumerate(docset.sources)
        ]
        total_files = sum(outcome.files_count for outcome in outcomes if not outcome.failed)
        store.write_docset(
            DocsetMetadata(
                docset_id=docset.id,
                docset_name=docset.name,
                initialized_at=timestamp,
                total_files=total_files,
                sources_count=len(docset.sources),
            )
        )
        ensure_knowledge_gitignore(config.path)

        outcome = DocsetOutcome(
            docset_id, OutcomeStatus.INITIALIZED, local_path, outcomes, total_files
        )
        self._log_outcome(outcome)
        return outcome

    def refresh_docset(self, docset_id: str, *, force: bool = False) -> DocsetOutcome:
        """Re-fetch changed sources of an initialized docset."""
        config = self.config_manager.load()
        docset = config.get_docset(docset_id)
        local_path = calculate_local_path(docset, config.path)
        store = MetadataStore(local_path)

        previous = store.read_docset()
        if previous is None:
            self.logger.info("Docset %s is not initialized", docset_id)
            return DocsetOutcome(
                docset_id,
                OutcomeStatus.NOT_INITIALIZED,
                local_path,
                message=f"Docset not initialized; run init {docset_id} first",
            )

        store.backup()
        timestamp = self._timestamp()
        try:
            outcomes = [
                self._guarded(
                    self._refresh_source,
                    index,
                    source,
                    docset,
                    local_path,
                    store,
                    timestamp,
                    config,
                    force=force,
                )
                for index, source in enumerate(docset.sources)
            ]
            total_files = sum(outcome.files_count for outcome in outcomes if not outcome.failed)
            if any(outcome.failed for outcome in outcomes):
                store.restore()
                outcome = DocsetOutcome(
                    docset_id,
                    OutcomeStatus.FAILED,
                    local_path,
                    outcomes,
                    total_files,
                    message="One or more sources failed to refresh",
                )
                self._log_outcome(outcome)
                return outcome

            store.write_docset(
                replace(
                    previous,
                    docset_name=docset.name,
                    last_refreshed=timestamp,
                    total_files=total_files,
                    sources_count=len(docset.sources),
                )
            )
            store.discard_backup()
        except (KnowledgeError, OSError) as exc:
            message = exc.message if isinstance(exc, KnowledgeError) else str(exc)
            self.logger.error("Refresh of %s failed: %s", docset_id, message)
            store.restore()
            return DocsetOutcome(docset_id, OutcomeStatus.FAILED, local_path, message=message)
        except Exception:
            store.restore()
            raise

        unchanged = all(outcome.status is SourceStatus.UNCHANGED for outcome in outcomes)
        status = OutcomeStatus.UNCHANGED if unchanged else OutcomeStatus.REFRESHED
        outcome = DocsetOutcome(docset_id, status, local_path, outcomes, total_files)
        self._log_outcome(outcome)
        return outcome

    def refresh_all(self, *, force: bool = False) -> List[DocsetOutcome]:
        """Refresh every docset with sources; a failing docset does not stop the rest."""
        config = self.config_manager.load()
        results: List[DocsetOutcome] = []
        for docset in config.docsets:
            if not docset.sources:
                continue
            try:
                results.append(self.refresh_docset(docset.id, force=force))
            except KnowledgeError as exc:
                self.logger.error("Refresh of %s failed: %s", docset.id, exc)
                results.append(
                    DocsetOutcome(
                        docset.id,
                        OutcomeStatus.FAILED,
                        config.config_dir,
                        message=exc.message,
                    )
                )
        return results

    def status(self) -> List[DocsetStatus]:
        """Report initialization state and sidecar metadata for every docset."""
        config = self.config_manager.load()
        return [self._docset_status(docset, config) for docset in config.docsets]

    def docset_status(self, docset_id: str) -> DocsetStatus:
        config = self.config_manager.load()
        return self._docset_status(config.get_docset(docset_id), config)

    def discover_paths(self, docset_id: str) -> List[str]:
        """Write compressed path patterns of the docset's current files back to config."""
        config = self.config_manager.load()
        docset = config.get_docset(docset_id)
        store = MetadataStore(calculate_local_path(docset, config.path))
        files: List[str] = []
        for metadata in store.read_sources(len(docset.sources)):
            if metadata is not None:
                files.extend(metadata.files)
        if not files:
            raise ConfigurationError(
                f"Docset '{docset_id}' has no loaded files to derive paths from",
                {"docset_id": docset_id},
            )
        updated = self.config_manager.update_docset_paths(docset_id, files)
        patterns: List[str] = []
        for source in updated.get_docset(docset_id).sources:
            if source.kind in (SourceKind.GIT_REPO, SourceKind.ARCHIVE):
                patterns = list(source.paths)
                break
        return patterns

    def search_instructions(
        self, docset_id: str, keywords: str, *, generalized_keywords: str = ""
    ) -> str:
        """Render the search instructions for a docset's local snapshot."""
        config = self.config_manager.load()
        docset = config.get_docset(docset_id)
        local_path = calculate_local_path(docset, config.path)
        template = effective_template(docset, config.template)
        context = build_context(
            docset,
            local_path=str(local_path),
            keywords=keywords,
            generalized_keywords=generalized_keywords,
        )
        return render_instructions(template, context)

    # ------------------------------------------------------------------
    # Per-source work

    def _load_source(
        self,
        index: int,
        descriptor: SourceDescriptor,
        docset: DocsetConfig,
        local_path: Path,
        store: MetadataStore,
        timestamp: str,
        config: KnowledgeConfig,
        *,
        content_id: Optional[str] = None,
    ) -> SourceOutcome:
        if descriptor.kind is SourceKind.LOCAL_FOLDER:
            return self._link_source(index, descriptor, local_path, config)

        loader = self._validated_loader(descriptor)
        if content_id is None:
            content_id = self._content_id(loader, descriptor)
        result = loader.load(descriptor, local_path)
        if not result.success:
            return SourceOutcome(
                index,
                descriptor.kind.value,
                descriptor.locator,
                SourceStatus.FAILED,
                error=result.error,
                warnings=list(result.warnings),
            )

        store.write_source(
            index,
            SourceMetadata(
                source_url=descriptor.locator,
                source_type=descriptor.kind.value,
                downloaded_at=timestamp,
                files_count=len(result.files),
                files=list(result.files),
                docset_id=docset.id,
                content_hash=result.content_hash,
                content_id=content_id,
            ),
        )
        return SourceOutcome(
            index,
            descriptor.kind.value,
            descriptor.locator,
            SourceStatus.LOADED,
            files_count=len(result.files),
            warnings=list(result.warnings),
        )

    def _refresh_source(
        self,
        index: int,
        descriptor: SourceDescriptor,
        docset: DocsetConfig,
        local_path: Path,
        store: MetadataStore,
        timestamp: str,
        config: KnowledgeConfig,
        *,
        force: bool,
    ) -> SourceOutcome:
        if descriptor.kind is SourceKind.LOCAL_FOLDER:
            return self._link_source(index, descriptor, local_path, config)

        loader = self._validated_loader(descriptor)
        prior = store.read_source(index)
        current: Optional[str] = None
        if prior is not None and not force and prior.content_id:
            current = loader.get_content_id(descriptor)
            if current == prior.content_id:
                store.touch_source(index, timestamp)
                self.logger.info("Source %d of %s is unchanged", index, docset.id)
                return SourceOutcome(
                    index,
                    descriptor.kind.value,
                    descriptor.locator,
                    SourceStatus.UNCHANGED,
                    files_count=prior.files_count,
                )

        if prior is not None:
            removed = store.remove_listed_files(prior.files)
            self.logger.debug("Removed %d previously loaded file(s) of source %d", removed, index)

        outcome = self._load_source(
            index, descriptor, docset, local_path, store, timestamp, config, content_id=current
        )
        if outcome.failed and prior is not None:
            # A failed reload must not leave a sidecar describing deleted files.
            store.source_path(index).unlink(missing_ok=True)
        return outcome

    def _link_source(
        self,
        index: int,
        descriptor: SourceDescriptor,
        local_path: Path,
        config: KnowledgeConfig,
    ) -> SourceOutcome:
        links = create_symlinks(descriptor.paths, local_path, config.project_root)
        return SourceOutcome(
            index,
            descriptor.kind.value,
            descriptor.locator,
            SourceStatus.LINKED,
            files_count=len(links),
        )

    def _guarded(
        self,
        handler: Callable[..., SourceOutcome],
        index: int,
        source: SourceConfig,
        docset: DocsetConfig,
        local_path: Path,
        store: MetadataStore,
        timestamp: str,
        config: KnowledgeConfig,
        **options: bool,
    ) -> SourceOutcome:
        """Run ``handler`` for one source, turning its errors into a failed outcome."""
        descriptor = self._descriptor(source, config)
        try:
            return handler(index, descriptor, docset, local_path, store, timestamp, config, **options)
        except (KnowledgeError, OSError) as exc:
            message = exc.message if isinstance(exc, KnowledgeError) else str(exc)
            self.logger.error("Source %d (%s) failed: %s", index, descriptor.locator, message)
            return SourceOutcome(
                index, descriptor.kind.value, descriptor.locator, SourceStatus.FAILED, error=message
            )

    # ------------------------------------------------------------------
    # Helpers

    def _validated_loader(self, descriptor: SourceDescriptor) -> ContentLoader:
        loader = loader_for(descriptor, self.loaders)
        verdict = loader.validate_config(descriptor)
        if verdict is not True:
            raise ConfigurationError(
                f"Invalid {descriptor.kind.value} source: {verdict}",
                {"locator": descriptor.locator},
            )
        return loader

    def _content_id(self, loader: ContentLoader, descriptor: SourceDescriptor) -> Optional[str]:
        try:
            return loader.get_content_id(descriptor)
        except NotImplementedSourceError:
            return None

    @staticmethod
    def _descriptor(source: SourceConfig, config: KnowledgeConfig) -> SourceDescriptor:
        descriptor = SourceDescriptor.from_config(source)
        if descriptor.kind is SourceKind.ARCHIVE and source.path:
            archive = Path(source.path).expanduser()
            if not archive.is_absolute():
                descriptor = replace(descriptor, locator=str(config.project_root / archive))
        return descriptor

    def _clear_for_reinit(self, local_path: Path) -> None:
        info = get_directory_info(local_path)
        self.logger.info(
            "Clearing %s before reinitialization: %d file(s), %d dir(s), %d symlink(s)",
            local_path,
            info.files,
            info.directories,
            info.symlinks,
        )
        if contains_symlinks(local_path):
            self.logger.warning(
                "%s contains symlinks; only the links are removed, their targets are kept",
                local_path,
            )
        safely_clear_directory(local_path)

    def _docset_status(self, docset: DocsetConfig, config: KnowledgeConfig) -> DocsetStatus:
        try:
            local_path = calculate_local_path(docset, config.path)
        except ConfigurationError as exc:
            return DocsetStatus(docset.id, docset.name, None, False, error=exc.message)

        store = MetadataStore(local_path)
        metadata = store.read_docset()
        if metadata is None:
            return DocsetStatus(docset.id, docset.name, local_path, False)

        sources = store.read_sources(len(docset.sources))
        missing = sum(
            1
            for source, sidecar in zip(docset.sources, sources)
            if sidecar is None and source.kind is not SourceKind.LOCAL_FOLDER
        )
        return DocsetStatus(
            docset.id,
            docset.name,
            local_path,
            True,
            metadata=metadata,
            sources=sources,
            missing_sources=missing,
        )

    def _timestamp(self) -> str:
        return utc_timestamp(self._clock())

    def _log_outcome(self, outcome: DocsetOutcome) -> None:
        for source in outcome.sources:
            for warning in source.warnings:
                self.logger.warning("%s source %d: %s", outcome.docset_id, source.index, warning)
        self.logger.info(
            "Docset %s %s: %d file(s), %d failed source(s)",
            outcome.docset_id,
            outcome.status.value,
            outcome.total_files,
            len(outcome.failures),
        )


__all__ = [
    "DocsetOutcome",
    "DocsetStatus",
    "DocsetSynchronizer",
    "OutcomeStatus",
    "SourceOutcome",
    "SourceStatus",
]
