"""Spackle engine: expressions, dependency resolution, rendering and hooks.

The pieces are independent and composed by ``spackle.project``:

* ``expressions`` -- the Jinja2 environment and context construction;
* ``resolver`` -- slot enablement and static hook selection;
* ``render`` -- mirroring the project tree into the output directory;
* ``hooks`` -- running selected hooks in dependency order.
"""

from spackle.engine.expressions import JinjaEngine, TemplateEngine, build_context, evaluate_condition
from spackle.engine.hooks import (
    CommandOutcome,
    CommandRunner,
    HookDone,
    HookError,
    HookErrorKind,
    HookExecutor,
    HookResult,
    HookStarted,
    HookStatus,
    SkipReason,
    SubprocessRunner,
)
from spackle.engine.render import (
    TEMPLATE_EXT,
    RenderedFile,
    RenderResult,
    check_output_path,
    render_tree,
    validate_templates,
    walk,
)
from spackle.engine.resolver import (
    Resolution,
    available_slots,
    bind_hook_toggles,
    bind_values,
    enabled_slots,
    execution_order,
    resolve,
)

__all__ = [
    "TEMPLATE_EXT",
    "CommandOutcome",
    "CommandRunner",
    "HookDone",
    "HookError",
    "HookErrorKind",
    "HookExecutor",
    "HookResult",
    "HookStarted",
    "HookStatus",
    "JinjaEngine",
    "RenderResult",
    "RenderedFile",
    "Resolution",
    "SkipReason",
    "SubprocessRunner",
    "TemplateEngine",
    "available_slots",
    "bind_hook_toggles",
    "bind_values",
    "build_context",
    "check_output_path",
    "enabled_slots",
    "evaluate_condition",
    "execution_order",
    "render_tree",
    "resolve",
    "validate_templates",
    "walk",
]
