from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest
import yaml

from tests._fixtures.tree_builder import TreeBuilder


@pytest.fixture
def tree_builder(tmp_path: Path) -> TreeBuilder:
    """Provide a reusable tree builder rooted at the pytest tmp_path."""
    return TreeBuilder(tmp_path / "tree")


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """Return a writer for ``<project>/.knowledge/config.yaml``."""
    project = tmp_path / "project"

    def _write(data: Dict[str, Any]) -> Path:
        config_path = project / ".knowledge" / "config.yaml"
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return config_path

    return _write


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Drop handlers installed by CLI runs so they never outlive captured streams."""
    yield
    logger = logging.getLogger("agentic_knowledge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
