"""Expression environment: Jinja2 rendering for contents, names and conditions.

File contents, file names, hook command tokens and hook ``if`` conditions
all go through the same engine and the same context, so a template that
works in one place works in all of them.

The engine is a pluggable capability: anything implementing
``TemplateEngine.render`` can replace ``JinjaEngine``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Protocol

from jinja2 import Environment, StrictUndefined, TemplateError

from spackle.errors import RenderError

PROJECT_NAME_VAR = "_project_name"
OUTPUT_NAME_VAR = "_output_name"
HOOK_RAN_PREFIX = "hook_ran_"


# ---------------------------------------------------------------------------
# Engine protocol
# ---------------------------------------------------------------------------


class TemplateEngine(Protocol):
    """Renders a template string against a context.

    Implementations must raise ``RenderError`` (tagged with *source*) for
    syntax errors and references to unknown variables.
    """

    def render(self, template: str, context: Mapping[str, Any], source: str) -> str: ...


# ---------------------------------------------------------------------------
# JinjaEngine
# ---------------------------------------------------------------------------


class JinjaEngine:
    """Jinja2-backed ``TemplateEngine``.

    Unknown variables are errors (``StrictUndefined``) rather than silently
    rendering as empty strings, and output is never HTML-escaped since the
    templates are arbitrary project files.
    """

    def __init__(self, *, trim_blocks: bool = False, lstrip_blocks: bool = False) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self.env.filters["kebab_case"] = _kebab_case_filter

    def render(self, template: str, context: Mapping[str, Any], source: str) -> str:
        try:
            return self.env.from_string(template).render(**context)
        except TemplateError as exc:
            raise RenderError(source, exc.message or str(exc)) from exc
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise RenderError(source, str(exc)) from exc


# ---------------------------------------------------------------------------
# Context construction
# ---------------------------------------------------------------------------


def build_context(
    values: Mapping[str, Any],
    *,
    project_name: str,
    output_name: str,
    hook_state: Mapping[str, bool] | None = None,
) -> dict[str, Any]:
    """Merge typed slot values with the universal slots.

    Args:
        values: Bound slot values keyed by slot key.
        project_name: Value of ``_project_name``.
        output_name: Value of ``_output_name`` (the output directory name).
        hook_state: ``{hook_key: ran}`` exposed as ``hook_ran_<key>``.
    """
    context: dict[str, Any] = dict(values)
    context[PROJECT_NAME_VAR] = project_name
    context[OUTPUT_NAME_VAR] = output_name
    for key, ran in (hook_state or {}).items():
        context[f"{HOOK_RAN_PREFIX}{key}"] = ran
    return context


def evaluate_condition(
    engine: TemplateEngine,
    expression: str,
    context: Mapping[str, Any],
    source: str,
) -> bool:
    """Render a hook ``if`` expression and interpret it as a boolean.

    Both ``{{ flag }}`` (renders ``True``) and plain ``true``/``false`` are
    accepted; comparison is case-insensitive and ignores surrounding
    whitespace.

    Raises:
        RenderError: If rendering fails or the result is not a boolean.
    """
    rendered = engine.render(expression, context, source).strip().lower()
    if rendered == "true":
        return True
    if rendered == "false":
        return False
    raise RenderError(source, f"condition did not render to a boolean (got {rendered!r})")


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", str(value))
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def _kebab_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some_thing`` to ``some-thing``."""
    return _snake_case_filter(value).replace("_", "-")
