"""Content loader for git repositories (GitHub, GitLab or any git remote)."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..errors import KnowledgeError, RemoteFetchError
from ..logging import get_logger
from ..models import LoadResult, SourceDescriptor, SourceKind
from .base import ContentLoader, ValidationResult, ephemeral_directory
from .extraction import compute_content_hash, extract_content, sha256_text

GitRunner = Callable[..., str]

DEFAULT_BRANCH = "main"
FALLBACK_BRANCH = "master"
CLONE_TIMEOUT_SECONDS = 120.0
LS_REMOTE_TIMEOUT_SECONDS = 30.0
ENV_CLONE_TIMEOUT = "AGENTIC_KNOWLEDGE_GIT_TIMEOUT"

_GIT_URL_PATTERNS = (
    re.compile(r"^https://github\.com/[\w\-.]+/[\w\-.]+(?:\.git)?$"),
    re.compile(r"^https://gitlab\.com/[\w\-./]+(?:\.git)?$"),
    re.compile(r"^https://[\w\-.]+/[\w\-./]+\.git$"),
    re.compile(r"^git@[\w\-.]+:[\w\-./]+\.git$"),
)


class GitRepoLoader(ContentLoader):
    """Shallow-clones a repository and copies its documentation files."""

    kind = SourceKind.GIT_REPO

    def __init__(
        self,
        runner: GitRunner | None = None,
        *,
        clone_timeout: float | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self.clone_timeout = clone_timeout or _timeout_from_env()
        self.logger = get_logger("content.git")

    def validate_config(self, source: SourceDescriptor) -> ValidationResult:
        if not source.locator:
            return "Git repository URL is required"
        if not is_valid_git_url(source.locator):
            return "Invalid Git repository URL"
        return True

    def get_content_id(self, source: SourceDescriptor) -> str:
        paths_key = source.sorted_paths_key()
        revision = self.remote_revision(source)
        if revision is None:
            return sha256_text(f"{source.locator}:{paths_key}")
        return sha256_text(f"{source.locator}:{revision}:{paths_key}")

    def remote_revision(self, source: SourceDescriptor) -> Optional[str]:
        """Return the remote revision of the configured ref, or None if unreachable."""
        ref = source.branch or "HEAD"
        url = _authenticated_url(source.locator, source.token)
        try:
            output = self._runner(
                ["git", "ls-remote", url, ref],
                cwd=None,
                timeout=LS_REMOTE_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            self.logger.debug("ls-remote failed for %s: %s", source.locator, _redact(str(exc), source.token))
            return None
        first_line = output.strip().splitlines()[0] if output.strip() else ""
        revision = first_line.split("\t")[0].strip()
        return revision or None

    def load(self, source: SourceDescriptor, target_dir: Path) -> LoadResult:
        target = Path(target_dir)
        try:
            with ephemeral_directory("git-clone-") as temp_dir:
                clone_dir = temp_dir / "repo"
                self.clone(source, clone_dir)
                files, warnings = extract_content(clone_dir, target, source.paths)
                content_hash, hash_warnings = compute_content_hash(target, files)
        except (KnowledgeError, OSError) as exc:
            self.logger.error("Git repository loading failed for %s: %s", source.locator, exc)
            return LoadResult.failed(f"Git repository loading failed: {exc}")

        self.logger.info("Copied %d file(s) from %s", len(files), source.locator)
        return LoadResult.ok(files, content_hash, [*warnings, *hash_warnings])

    def clone(self, source: SourceDescriptor, clone_dir: Path) -> str:
        """Shallow-clone ``source`` into ``clone_dir``; returns the branch that worked.

        A failing ``main`` is retried once as ``master``. If both fail the
        original failure is raised.
        """
        branch = source.branch or DEFAULT_BRANCH
        args = self._clone_args(source, branch, clone_dir)
        try:
            self._run_clone(args)
            return branch
        except (OSError, subprocess.SubprocessError) as exc:
            original = exc

        if branch == DEFAULT_BRANCH:
            self.logger.info("Branch %s not cloneable, retrying with %s", branch, FALLBACK_BRANCH)
            shutil.rmtree(clone_dir, ignore_errors=True)
            try:
                self._run_clone(self._clone_args(source, FALLBACK_BRANCH, clone_dir))
                return FALLBACK_BRANCH
            except (OSError, subprocess.SubprocessError):
                pass

        command = _redact(" ".join(args), source.token)
        raise RemoteFetchError(
            f"Failed to clone repository: {_describe(original, source.token)}",
            url=source.locator,
            branch=branch,
            command=command,
        ) from original

    # ------------------------------------------------------------------
    # Helpers

    def _clone_args(self, source: SourceDescriptor, branch: str, clone_dir: Path) -> List[str]:
        url = _authenticated_url(source.locator, source.token)
        return ["git", "clone", "--depth", "1", "--branch", branch, url, str(clone_dir)]

    def _run_clone(self, args: List[str]) -> None:
        self.logger.debug("Running git clone --branch %s", args[5])
        self._runner(args, cwd=None, timeout=self.clone_timeout)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> str:
        env = os.environ.copy()
        env.setdefault("GIT_TERMINAL_PROMPT", "0")
        completed = subprocess.run(
            list(args),
            cwd=str(cwd) if cwd else None,
            env=env,
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
        return completed.stdout


def is_valid_git_url(url: str) -> bool:
    return any(pattern.match(url) for pattern in _GIT_URL_PATTERNS)


def _authenticated_url(url: str, token: str | None) -> str:
    if token and url.startswith("https://"):
        return url.replace("https://", f"https://{token}@", 1)
    return url


def _redact(text: str, token: str | None) -> str:
    return text.replace(token, "***") if token else text


def _describe(exc: BaseException, token: str | None) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        detail = (exc.stderr or exc.stdout or "").strip() or f"exit code {exc.returncode}"
    elif isinstance(exc, subprocess.TimeoutExpired):
        detail = f"timed out after {exc.timeout:g}s"
    else:
        detail = str(exc)
    return _redact(detail, token)


def _timeout_from_env() -> float:
    raw = os.environ.get(ENV_CLONE_TIMEOUT)
    if raw:
        try:
            value = float(raw)
        except ValueError:
            return CLONE_TIMEOUT_SECONDS
        if value > 0:
            return value
    return CLONE_TIMEOUT_SECONDS


__all__ = ["GitRepoLoader", "is_valid_git_url"]
