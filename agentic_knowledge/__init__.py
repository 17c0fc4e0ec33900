"""Documentation content acquisition and sync engine."""

from .config import ConfigManager, KnowledgeConfig, load_config
from .content import ContentLoader, is_documentation_file, loader_for
from .errors import KnowledgeError
from .models import LoadResult, SourceDescriptor, SourceKind
from .paths import discover_directory_patterns, safely_clear_directory
from .sync import DocsetOutcome, DocsetStatus, DocsetSynchronizer

__version__ = "0.1.0"

__all__ = [
    "ConfigManager",
    "ContentLoader",
    "DocsetOutcome",
    "DocsetStatus",
    "DocsetSynchronizer",
    "KnowledgeConfig",
    "KnowledgeError",
    "LoadResult",
    "SourceDescriptor",
    "SourceKind",
    "discover_directory_patterns",
    "is_documentation_file",
    "load_config",
    "loader_for",
    "safely_clear_directory",
]
