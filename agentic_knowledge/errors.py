"""Error taxonomy shared by loaders, path utilities and the sync coordinator."""

from __future__ import annotations

from typing import Any, Dict, Optional


class KnowledgeError(RuntimeError):
    """Base error carrying structured context for callers and status reports."""

    kind = "KNOWLEDGE_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "message": self.message, "context": dict(self.context)}


class ConfigurationError(KnowledgeError):
    """Raised for a bad source descriptor or configuration file. Never retried."""

    kind = "CONFIG_INVALID"


class RemoteFetchError(KnowledgeError):
    """Clone or download failure after the single branch fallback."""

    kind = "REMOTE_FETCH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        url: str,
        branch: str | None = None,
        command: str | None = None,
    ) -> None:
        context: Dict[str, Any] = {"url": url}
        if branch is not None:
            context["branch"] = branch
        if command is not None:
            context["command"] = command
        super().__init__(message, context)
        self.url = url
        self.branch = branch
        self.command = command


class ExtractionError(KnowledgeError):
    """Unsupported or corrupt archive."""

    kind = "EXTRACTION_ERROR"


class PartialFileError(KnowledgeError):
    """One entry of an explicit path selector could not be copied."""

    kind = "PARTIAL_FILE_ERROR"


class HashingError(KnowledgeError):
    """One copied file could not be read while computing the content hash."""

    kind = "HASHING_ERROR"


class FilesystemSafetyError(KnowledgeError):
    """A filesystem precondition failed before any mutation took place."""

    kind = "FILESYSTEM_SAFETY_ERROR"


class NotImplementedSourceError(KnowledgeError):
    """The source kind is recognised but has no working loader yet."""

    kind = "NOT_IMPLEMENTED"


class TemplateError(KnowledgeError):
    """Invalid search-instruction template."""

    kind = "TEMPLATE_ERROR"


__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "FilesystemSafetyError",
    "HashingError",
    "KnowledgeError",
    "NotImplementedSourceError",
    "PartialFileError",
    "RemoteFetchError",
    "TemplateError",
]
