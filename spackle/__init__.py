"""spackle -- a project-scaffolding engine.

Turns a template directory (or a single template file) plus a
``spackle.toml`` manifest of slots and hooks into a concrete project, then
runs the project's hooks inside it.

Quick usage::

    from spackle import check, fill, info

    details = info("templates/service")
    report = check("templates/service", values={"name": "billing"})
    result = fill(
        "templates/service",
        values={"name": "billing"},
        hook_selections={},
        output_dir="/tmp/billing",
    )
"""

from spackle.config import Settings
from spackle.errors import (
    HookExecutionError,
    HookToggleError,
    ManifestError,
    PathError,
    RenderError,
    SlotValueError,
    SpackleError,
)
from spackle.project import (
    FillResult,
    HookDescriptor,
    Project,
    ProjectInfo,
    SlotDescriptor,
    ValidationResult,
    check,
    fill,
    fill_async,
    info,
)

__version__ = "0.1.0"

__all__ = [
    "FillResult",
    "HookDescriptor",
    "HookExecutionError",
    "HookToggleError",
    "ManifestError",
    "PathError",
    "Project",
    "ProjectInfo",
    "RenderError",
    "Settings",
    "SlotDescriptor",
    "SlotValueError",
    "SpackleError",
    "ValidationResult",
    "check",
    "fill",
    "fill_async",
    "info",
]
