"""Search-instruction templates rendered for the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Set

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, meta
from jinja2.exceptions import UndefinedError

from .errors import TemplateError

if TYPE_CHECKING:  # pragma: no cover
    from .config import DocsetConfig

DEFAULT_TEMPLATE = (
    "Use text search tools (grep, rg, ripgrep) to search for {{keywords}} in "
    "{{local_path}}. Try broader terms if needed. Skip: node_modules/, .git/, build/, dist/."
)

ALLOWED_TEMPLATE_VARIABLES = (
    "local_path",
    "keywords",
    "generalized_keywords",
    "docset_id",
    "docset_name",
    "docset_description",
)

REQUIRED_TEMPLATE_VARIABLES = ("local_path", "keywords")

_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


@dataclass(frozen=True)
class TemplateContext:
    """Values substituted into an instruction template."""

    local_path: str
    keywords: str
    generalized_keywords: str
    docset_id: str
    docset_name: str
    docset_description: str = ""

    def as_variables(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in ALLOWED_TEMPLATE_VARIABLES}


def extract_variables(template: str) -> Set[str]:
    """Return the variable names referenced by ``template``."""
    try:
        parsed = _env.parse(template)
    except TemplateSyntaxError as exc:
        raise TemplateError(
            f"Template syntax error: {exc.message}", {"template": template, "line": exc.lineno}
        ) from exc
    return set(meta.find_undeclared_variables(parsed))


def validate_template(template: str, *, docset_id: str | None = None) -> bool:
    """Ensure only allowed variables are used and all required ones are present."""
    variables = extract_variables(template)
    context = {"template": template}
    if docset_id:
        context["docset_id"] = docset_id
    label = f"docset '{docset_id}'" if docset_id else "global template"

    invalid = sorted(variables - set(ALLOWED_TEMPLATE_VARIABLES))
    if invalid:
        raise TemplateError(
            f"Invalid template for {label}: unknown variables {', '.join(invalid)}. "
            f"Allowed variables: {', '.join(ALLOWED_TEMPLATE_VARIABLES)}",
            {**context, "invalid_variables": invalid},
        )

    missing = [name for name in REQUIRED_TEMPLATE_VARIABLES if name not in variables]
    if missing:
        raise TemplateError(
            f"Invalid template for {label}: missing required variables {', '.join(missing)}",
            {**context, "missing_variables": missing},
        )
    return True


def effective_template(docset: "DocsetConfig", global_template: Optional[str] = None) -> str:
    """Docset template wins over the global template, which wins over the default."""
    return docset.template or global_template or DEFAULT_TEMPLATE


def render_instructions(template: str, context: TemplateContext) -> str:
    try:
        rendered = _env.from_string(template).render(**context.as_variables())
    except (TemplateSyntaxError, UndefinedError) as exc:
        raise TemplateError(f"Failed to render template: {exc}", {"template": template}) from exc
    return rendered.strip()


def build_context(
    docset: "DocsetConfig",
    *,
    local_path: str,
    keywords: str,
    generalized_keywords: str = "",
) -> TemplateContext:
    return TemplateContext(
        local_path=local_path,
        keywords=keywords,
        generalized_keywords=generalized_keywords,
        docset_id=docset.id,
        docset_name=docset.name,
        docset_description=docset.description or "",
    )


__all__ = [
    "ALLOWED_TEMPLATE_VARIABLES",
    "DEFAULT_TEMPLATE",
    "REQUIRED_TEMPLATE_VARIABLES",
    "TemplateContext",
    "build_context",
    "effective_template",
    "extract_variables",
    "render_instructions",
    "validate_template",
]
