"""Tests for search-instruction templates."""

from __future__ import annotations

import pytest

from agentic_knowledge.config import DocsetConfig, SourceConfig
from agentic_knowledge.errors import TemplateError
from agentic_knowledge.templates import (
    DEFAULT_TEMPLATE,
    build_context,
    effective_template,
    extract_variables,
    render_instructions,
    validate_template,
)


def _docset(template: str | None = None) -> DocsetConfig:
    return DocsetConfig(
        id="react",
        name="React",
        description="UI library",
        template=template,
        sources=[SourceConfig(type="git_repo", url="https://github.com/facebook/react.git")],
    )


def test_default_template_is_valid() -> None:
    assert validate_template(DEFAULT_TEMPLATE) is True
    assert extract_variables(DEFAULT_TEMPLATE) == {"keywords", "local_path"}


def test_unknown_variables_are_rejected() -> None:
    with pytest.raises(TemplateError) as excinfo:
        validate_template("{{keywords}} {{local_path}} {{secret}}", docset_id="react")
    assert excinfo.value.context["invalid_variables"] == ["secret"]
    assert excinfo.value.context["docset_id"] == "react"


def test_missing_required_variables_are_rejected() -> None:
    with pytest.raises(TemplateError) as excinfo:
        validate_template("Look in {{local_path}}")
    assert excinfo.value.context["missing_variables"] == ["keywords"]


def test_syntax_errors_are_reported() -> None:
    with pytest.raises(TemplateError):
        validate_template("{{keywords} in {{local_path}}")


def test_effective_template_precedence() -> None:
    assert effective_template(_docset("docset {{keywords}} {{local_path}}"), "global") == (
        "docset {{keywords}} {{local_path}}"
    )
    assert effective_template(_docset(), "global {{keywords}} {{local_path}}") == (
        "global {{keywords}} {{local_path}}"
    )
    assert effective_template(_docset()) == DEFAULT_TEMPLATE


def test_render_substitutes_all_variables() -> None:
    context = build_context(
        _docset(), local_path=".knowledge/docsets/react", keywords="hooks", generalized_keywords="state"
    )
    template = "{{docset_name}} ({{docset_description}}): {{keywords}}/{{generalized_keywords}} in {{local_path}}"

    assert render_instructions(template, context) == (
        "React (UI library): hooks/state in .knowledge/docsets/react"
    )


def test_default_template_renders_path_and_keywords() -> None:
    context = build_context(_docset(), local_path="/tmp/react", keywords="useEffect")

    rendered = render_instructions(DEFAULT_TEMPLATE, context)

    assert "useEffect" in rendered
    assert "/tmp/react" in rendered
    assert rendered.startswith("Use text search tools")
