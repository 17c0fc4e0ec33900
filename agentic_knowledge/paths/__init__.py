"""Path utilities: pattern discovery, symlinks, safe cleanup and docset locations."""

from .calculator import (
    DOCSETS_DIR,
    calculate_local_path,
    ensure_knowledge_gitignore,
    is_safe_docset_id,
)
from .cleanup import contains_symlinks, get_directory_info, safely_clear_directory
from .discovery import discover_directory_patterns, discover_minimal_patterns
from .symlinks import create_symlinks, remove_symlinks, validate_symlinks

__all__ = [
    "DOCSETS_DIR",
    "calculate_local_path",
    "contains_symlinks",
    "create_symlinks",
    "discover_directory_patterns",
    "discover_minimal_patterns",
    "ensure_knowledge_gitignore",
    "get_directory_info",
    "is_safe_docset_id",
    "remove_symlinks",
    "safely_clear_directory",
    "validate_symlinks",
]
