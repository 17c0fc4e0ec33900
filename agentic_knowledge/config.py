"""Configuration loading for agentic-knowledge (.knowledge/config.yaml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigurationError
from .logging import get_logger
from .content.git_repo import is_valid_git_url
from .models import SourceKind
from .paths.calculator import is_safe_docset_id
from .paths.discovery import discover_directory_patterns
from .templates import validate_template

CONFIG_DIR = ".knowledge"
CONFIG_FILENAME = "config.yaml"
ENV_CONFIG_PATH = "AGENTIC_KNOWLEDGE_CONFIG"
PRESETS = ("git-repo", "local-folder")

_logger = get_logger("config")


class ConfigError(ConfigurationError):
    """Raised when the configuration file cannot be found, parsed or validated."""


class UnknownDocsetError(ConfigError):
    """Raised when a docset id is not present in the configuration."""


@dataclass
class SourceConfig:
    """One entry of a docset's ``sources`` list."""

    type: str
    url: Optional[str] = None
    path: Optional[str] = None
    branch: Optional[str] = None
    token: Optional[str] = None
    paths: List[str] = field(default_factory=list)

    @property
    def kind(self) -> SourceKind:
        return SourceKind(self.type)

    @property
    def locator(self) -> str:
        if self.type == SourceKind.LOCAL_FOLDER.value:
            return ", ".join(self.paths)
        return self.url or self.path or ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        for key in ("url", "path", "branch", "token"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.paths:
            data["paths"] = list(self.paths)
        return data


@dataclass
class DocsetConfig:
    """A named collection of documentation sources searchable as a unit."""

    id: str
    name: str
    sources: List[SourceConfig]
    description: Optional[str] = None
    template: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description:
            data["description"] = self.description
        if self.template:
            data["template"] = self.template
        data["sources"] = [source.to_dict() for source in self.sources]
        return data


@dataclass
class KnowledgeConfig:
    """Represents the settings defined in .knowledge/config.yaml."""

    path: Path
    version: str
    docsets: List[DocsetConfig] = field(default_factory=list)
    template: Optional[str] = None

    @property
    def config_dir(self) -> Path:
        return self.path.parent

    @property
    def project_root(self) -> Path:
        return self.path.parent.parent

    def get_docset(self, docset_id: str) -> DocsetConfig:
        for docset in self.docsets:
            if docset.id == docset_id:
                return docset
        available = ", ".join(docset.id for docset in self.docsets) or "none"
        raise UnknownDocsetError(
            f"Docset '{docset_id}' not found in configuration. Available: {available}",
            {"docset_id": docset_id, "config_path": str(self.path)},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        if self.template:
            data["template"] = self.template
        data["docsets"] = [docset.to_dict() for docset in self.docsets]
        return data


def find_config_path(start: Path | str | None = None) -> Optional[Path]:
    """Walk up from ``start`` looking for ``.knowledge/config.yaml``."""
    override = os.environ.get(ENV_CONFIG_PATH)
    if override and start is None:
        candidate = Path(override).expanduser()
        return candidate.resolve() if candidate.is_file() else None

    current = Path(start or Path.cwd()).expanduser().resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_DIR / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path | str) -> KnowledgeConfig:
    """Load and validate configuration from disk."""
    path = Path(config_path).expanduser().resolve()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(
            f"Configuration file not found: {path}", {"config_path": str(path)}
        ) from exc

    try:
        data = yaml.safe_load(text) if text.strip() else None
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Failed to parse YAML configuration: {exc}", {"config_path": str(path)}
        ) from exc

    config = parse_config(data, path)
    _validate_templates(config)
    return config


def parse_config(data: Any, path: Path) -> KnowledgeConfig:
    """Validate a parsed YAML mapping and convert it to typed config objects."""
    if not isinstance(data, dict):
        raise ConfigError(
            "Configuration file must contain a mapping at the root",
            {"config_path": str(path)},
        )

    version = _as_str(data.get("version"))
    if version is None:
        raise ConfigError("Configuration is missing a 'version' string", {"config_path": str(path)})

    raw_docsets = data.get("docsets")
    if not isinstance(raw_docsets, list):
        raise ConfigError("Configuration 'docsets' must be a list", {"config_path": str(path)})

    template = data.get("template")
    if template is not None and not isinstance(template, str):
        raise ConfigError("Global 'template' must be a string", {"config_path": str(path)})

    docsets: List[DocsetConfig] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_docsets):
        docset = _parse_docset(raw, index, path)
        if docset.id in seen:
            raise ConfigError(
                f"Duplicate docset id '{docset.id}'",
                {"config_path": str(path), "docset_id": docset.id},
            )
        seen.add(docset.id)
        docsets.append(docset)

    return KnowledgeConfig(path=path, version=version, docsets=docsets, template=template)


def save_config(config: KnowledgeConfig, config_path: Path | None = None) -> Path:
    """Write configuration back to disk as YAML."""
    target = Path(config_path) if config_path is not None else config.path
    # Round-trip through the validator so an invalid config is never written.
    parse_config(config.to_dict(), target)
    content = yaml.safe_dump(
        config.to_dict(), sort_keys=False, default_flow_style=False, width=120
    )
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


class ConfigManager:
    """Loads, caches and saves configuration.

    The cache lives on the instance and is invalidated explicitly with
    ``clear_cache`` or implicitly on ``save``; nothing is cached at module level.
    """

    def __init__(
        self, config_path: Path | str | None = None, *, start_dir: Path | str | None = None
    ) -> None:
        self._config_path = Path(config_path).expanduser().resolve() if config_path else None
        self._start_dir = start_dir
        self._cached: Optional[KnowledgeConfig] = None

    @property
    def config_path(self) -> Path:
        if self._config_path is None:
            found = find_config_path(self._start_dir)
            if found is None:
                raise ConfigError(
                    "No configuration file found. Run this command from a directory "
                    f"with {CONFIG_DIR}/{CONFIG_FILENAME}",
                    {"search_path": str(self._start_dir or Path.cwd())},
                )
            self._config_path = found
        return self._config_path

    def load(self) -> KnowledgeConfig:
        if self._cached is None:
            self._cached = load_config(self.config_path)
        return self._cached

    def save(self, config: KnowledgeConfig) -> Path:
        target = save_config(config, self.config_path)
        self.clear_cache()
        return target

    def clear_cache(self) -> None:
        self._cached = None

    def exists(self) -> bool:
        try:
            return self.config_path.is_file()
        except ConfigError:
            return False

    def update_docset_paths(self, docset_id: str, files: Sequence[str]) -> KnowledgeConfig:
        """Replace the path selector of a docset's remote sources with compressed patterns."""
        config = self.load()
        docset = config.get_docset(docset_id)
        patterns = discover_directory_patterns(files)
        updated = 0
        for source in docset.sources:
            if source.type in (SourceKind.GIT_REPO.value, SourceKind.ARCHIVE.value):
                source.paths = list(patterns)
                updated += 1
        _logger.info(
            "Updated %d source(s) of %s with %d path pattern(s)", updated, docset_id, len(patterns)
        )
        self.save(config)
        return self.load()

    def add_docset(self, docset: DocsetConfig) -> KnowledgeConfig:
        """Append a new docset and save; ids must be unique."""
        config = self.load()
        if any(existing.id == docset.id for existing in config.docsets):
            raise ConfigError(
                f"Docset with ID '{docset.id}' already exists",
                {"docset_id": docset.id, "config_path": str(config.path)},
            )
        config.docsets.append(docset)
        try:
            self.save(config)
        except ConfigError:
            self.clear_cache()
            raise
        _logger.info("Added docset %s to %s", docset.id, config.path)
        return self.load()


def preset_docset(
    preset: str,
    *,
    docset_id: str,
    name: str,
    project_root: Path,
    description: Optional[str] = None,
    url: Optional[str] = None,
    path: Optional[str] = None,
    branch: str = "main",
) -> DocsetConfig:
    """Build a single-source docset from the ``git-repo`` or ``local-folder`` preset."""
    context = {"preset": preset, "docset_id": docset_id}
    if preset == "git-repo":
        if not url:
            raise ConfigError("--url is required for the git-repo preset", context)
        if not is_valid_git_url(url):
            raise ConfigError(f"Invalid git URL: {url}", {**context, "url": url})
        return DocsetConfig(
            id=docset_id,
            name=name,
            description=description or f"Git repository: {url}",
            sources=[SourceConfig(type=SourceKind.GIT_REPO.value, url=url, branch=branch)],
        )
    if preset == "local-folder":
        if not path:
            raise ConfigError("--path is required for the local-folder preset", context)
        folder = Path(path).expanduser()
        if not folder.is_absolute():
            folder = project_root / folder
        if not folder.is_dir():
            raise ConfigError(f"Path is not a directory: {path}", {**context, "path": path})
        return DocsetConfig(
            id=docset_id,
            name=name,
            description=description or f"Local documentation: {path}",
            sources=[SourceConfig(type=SourceKind.LOCAL_FOLDER.value, paths=[path])],
        )
    raise ConfigError(
        f"Unknown preset: {preset}. Use one of: {', '.join(PRESETS)}", context
    )


# ------------------------------------------------------------------
# Validation helpers


def _parse_docset(raw: Any, index: int, path: Path) -> DocsetConfig:
    context = {"config_path": str(path), "docset_index": index}
    if not isinstance(raw, dict):
        raise ConfigError(f"Docset #{index + 1} must be a mapping", context)

    docset_id = _as_non_empty_str(raw.get("id"))
    name = _as_non_empty_str(raw.get("name"))
    if docset_id is None:
        raise ConfigError(f"Docset #{index + 1} is missing a non-empty 'id'", context)
    if not is_safe_docset_id(docset_id):
        raise ConfigError(
            f"Docset id '{docset_id}' must be a single path segment of letters, digits, '.', '_' or '-'",
            {**context, "docset_id": docset_id},
        )
    if name is None:
        raise ConfigError(f"Docset '{docset_id}' is missing a non-empty 'name'", context)
    context["docset_id"] = docset_id

    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        raise ConfigError(f"Docset '{docset_id}' has a non-string 'description'", context)
    template = raw.get("template")
    if template is not None and not isinstance(template, str):
        raise ConfigError(f"Docset '{docset_id}' has a non-string 'template'", context)

    raw_sources = raw.get("sources")
    if not isinstance(raw_sources, list) or not raw_sources:
        raise ConfigError(f"Docset '{docset_id}' must have at least one source", context)

    sources = [_parse_source(item, docset_id, context) for item in raw_sources]
    return DocsetConfig(
        id=docset_id,
        name=name,
        sources=sources,
        description=description,
        template=template,
    )


def _parse_source(raw: Any, docset_id: str, context: Dict[str, Any]) -> SourceConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Docset '{docset_id}' has a source that is not a mapping", context)

    source_type = _as_non_empty_str(raw.get("type"))
    try:
        kind = SourceKind(source_type)
    except ValueError as exc:
        raise ConfigError(
            f"Docset '{docset_id}' has an unsupported source type: {source_type!r}",
            {**context, "source_type": source_type},
        ) from exc

    paths = raw.get("paths")
    if paths is not None and not _is_str_list(paths):
        raise ConfigError(
            f"Docset '{docset_id}': 'paths' must be a list of non-empty strings", context
        )
    for key in ("branch", "token", "url", "path"):
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"Docset '{docset_id}': '{key}' must be a string", context)

    source = SourceConfig(
        type=kind.value,
        url=_as_non_empty_str(raw.get("url")),
        path=_as_non_empty_str(raw.get("path")),
        branch=_as_non_empty_str(raw.get("branch")),
        token=_as_non_empty_str(raw.get("token")),
        paths=list(paths or []),
    )

    if kind is SourceKind.LOCAL_FOLDER:
        if not source.paths:
            raise ConfigError(
                f"Docset '{docset_id}': local_folder sources need at least one path", context
            )
    elif kind is SourceKind.ARCHIVE:
        if bool(source.url) == bool(source.path):
            raise ConfigError(
                f"Docset '{docset_id}': archive sources need exactly one of 'url' or 'path'",
                context,
            )
    elif not source.url:
        raise ConfigError(f"Docset '{docset_id}': {kind.value} sources need a 'url'", context)

    return source


def _validate_templates(config: KnowledgeConfig) -> None:
    if config.template:
        validate_template(config.template)
    for docset in config.docsets:
        if docset.template:
            validate_template(docset.template, docset_id=docset.id)


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, str) and item.strip() for item in value
    )


__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILENAME",
    "ConfigError",
    "ConfigManager",
    "DocsetConfig",
    "KnowledgeConfig",
    "PRESETS",
    "SourceConfig",
    "UnknownDocsetError",
    "find_config_path",
    "load_config",
    "parse_config",
    "preset_docset",
    "save_config",
]
