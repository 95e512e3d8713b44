"""Project facade: ``info``, ``check`` and ``fill``.

This is the only module that knows about every component.  CLIs and
embedding UIs should call these functions (or the ``Project`` class)
rather than the engine modules directly.

Quick usage::

    from spackle import fill

    result = fill(
        "templates/service",
        values={"name": "billing", "port": "8080"},
        hook_selections={"git_init": True},
        output_dir="/tmp/billing",
    )
    print(result.written_paths, [h.status for h in result.hook_outcomes])
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, computed_field

from spackle.config import Settings
from spackle.engine.expressions import (
    OUTPUT_NAME_VAR,
    PROJECT_NAME_VAR,
    JinjaEngine,
    TemplateEngine,
    build_context,
)
from spackle.engine.hooks import (
    CommandRunner,
    HookDone,
    HookEvent,
    HookExecutor,
    HookResult,
    HookStatus,
    SubprocessRunner,
)
from spackle.engine.render import (
    RenderedFile,
    check_output_path,
    render_single_file,
    render_tree,
    validate_templates,
)
from spackle.engine.resolver import (
    available_slots,
    bind_hook_toggles,
    bind_values,
    resolve,
)
from spackle.errors import HookToggleError, ManifestError, PathError, RenderError, SlotValueError
from spackle.manifest import loader
from spackle.manifest.models import Manifest, SlotType, SlotValue

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public result models
# ---------------------------------------------------------------------------


class SlotDescriptor(BaseModel):
    """What a UI needs to render a form field for a slot."""

    key: str
    type: SlotType
    name: str | None = None
    description: str | None = None
    default: SlotValue | None = None
    needs: list[str] = Field(default_factory=list)


class HookDescriptor(BaseModel):
    """What a UI needs to render a toggle (or a read-only row) for a hook."""

    key: str
    command: list[str]
    name: str | None = None
    description: str | None = None
    optional: bool = False
    default_enabled: bool = True
    needs: list[str] = Field(default_factory=list)
    condition: str | None = None


class ProjectInfo(BaseModel):
    """Result of ``info``."""

    path: Path
    name: str | None = None
    single_file: bool = False
    slots: list[SlotDescriptor] = Field(default_factory=list)
    hooks: list[HookDescriptor] = Field(default_factory=list)


class TemplateProblem(BaseModel):
    """A template that failed to render during ``check``."""

    source: str
    message: str


class ValidationResult(BaseModel):
    """Result of ``check``."""

    manifest_errors: list[str] = Field(default_factory=list)
    template_errors: list[TemplateProblem] = Field(default_factory=list)
    value_errors: dict[str, str] = Field(default_factory=dict)
    hook_toggle_errors: dict[str, str] = Field(default_factory=dict)

    @computed_field  # type: ignore[misc]
    @property
    def valid(self) -> bool:
        """True when no problem of any kind was found."""
        return not (
            self.manifest_errors
            or self.template_errors
            or self.value_errors
            or self.hook_toggle_errors
        )


class FillResult(BaseModel):
    """Result of ``fill``: what was written and how every hook fared."""

    output_dir: Path
    project_name: str
    written_paths: list[str] = Field(default_factory=list)
    files: list[RenderedFile] = Field(default_factory=list)
    ignored: list[str] = Field(default_factory=list)
    hook_outcomes: list[HookResult] = Field(default_factory=list)
    render_seconds: float = 0.0

    @computed_field  # type: ignore[misc]
    @property
    def failed_hooks(self) -> list[str]:
        """Keys of hooks that failed to launch, render or exit cleanly."""
        return [h.key for h in self.hook_outcomes if h.status is HookStatus.FAILED]

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return not self.failed_hooks


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


class Project:
    """A spackle project on disk: a directory with ``spackle.toml`` or a single file.

    The manifest is loaded lazily on first use and cached; create a new
    ``Project`` to pick up edits to the manifest.
    """

    def __init__(
        self,
        path: str | Path,
        settings: Settings | None = None,
        engine: TemplateEngine | None = None,
    ) -> None:
        self.path = Path(path)
        self.settings = settings or Settings()
        self.engine: TemplateEngine = engine or JinjaEngine()
        self._manifest: Manifest | None = None

    # -- Manifest ----------------------------------------------------------

    @property
    def is_single_file(self) -> bool:
        return self.path.is_file()

    @property
    def manifest(self) -> Manifest:
        """The validated manifest.

        Raises:
            ManifestError: If the project cannot be loaded.
        """
        if self._manifest is None:
            if not self.path.exists():
                raise ManifestError("project path does not exist", source=self.path)
            self._manifest = loader.load(self.path, config_file=self.settings.config_file)
        return self._manifest

    def name_for(self, output_dir: str | Path) -> str:
        """The declared project name, else inferred from the output location."""
        if self.manifest.name:
            return self.manifest.name
        output = Path(output_dir)
        return output.stem if self.is_single_file else output.resolve().name

    # -- info --------------------------------------------------------------

    def info(self) -> ProjectInfo:
        """Describe slots and hooks without needing any user input."""
        manifest = self.manifest
        return ProjectInfo(
            path=self.path,
            name=manifest.name,
            single_file=self.is_single_file,
            slots=[
                SlotDescriptor(
                    key=slot.key,
                    type=slot.type,
                    name=slot.name,
                    description=slot.description,
                    default=slot.default,
                    needs=list(slot.needs),
                )
                for slot in manifest.slots
            ],
            hooks=[
                HookDescriptor(
                    key=hook.key,
                    command=list(hook.command),
                    name=hook.name,
                    description=hook.description,
                    optional=hook.is_optional,
                    default_enabled=hook.optional.default if hook.optional else True,
                    needs=list(hook.needs),
                    condition=hook.condition,
                )
                for hook in manifest.hooks
            ],
        )

    # -- check -------------------------------------------------------------

    def check(
        self,
        values: Mapping[str, Any] | None = None,
        hook_selections: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """Validate the manifest, the templates and (optionally) user input.

        Never raises for problems in the project itself; everything found
        is reported on the returned ``ValidationResult``.
        """
        result = ValidationResult()
        try:
            manifest = self.manifest
        except ManifestError as exc:
            result.manifest_errors.append(str(exc))
            return result

        for error in self._validate_templates(manifest):
            result.template_errors.append(TemplateProblem(source=error.source, message=error.detail))

        if values is not None:
            try:
                bind_values(manifest.slots, values)
            except SlotValueError as exc:
                result.value_errors.update(exc.problems)

        if hook_selections is not None:
            try:
                bind_hook_toggles(manifest.hooks, hook_selections)
            except HookToggleError as exc:
                result.hook_toggle_errors.update(exc.problems)

        logger.info("Checked %s: %s", self.path, "valid" if result.valid else "invalid")
        return result

    def _validate_templates(self, manifest: Manifest) -> list[RenderError]:
        if not self.is_single_file:
            return validate_templates(
                self.path,
                manifest.slots,
                self.engine,
                ignore=manifest.ignore,
                config_file=self.settings.config_file,
                template_ext=self.settings.template_ext,
            )

        context: dict[str, Any] = {slot.key: slot.type.zero_value for slot in manifest.slots}
        context[PROJECT_NAME_VAR] = ""
        context[OUTPUT_NAME_VAR] = ""
        try:
            self.engine.render(loader.read_single_file_body(self.path), context, self.path.name)
        except RenderError as exc:
            return [exc]
        return []

    # -- fill --------------------------------------------------------------

    async def fill_async(
        self,
        values: Mapping[str, Any] | None,
        hook_selections: Mapping[str, Any] | None,
        output_dir: str | Path,
        *,
        run_hooks: bool = True,
        runner: CommandRunner | None = None,
        on_hook_event: Callable[[HookEvent], None] | None = None,
    ) -> FillResult:
        """Resolve, render, then run hooks.

        Hooks run in the output directory.  For a single-file project that
        is the directory containing the output file, so hook commands see
        any neighbouring files already there.

        Raises:
            PathError: If the output location overlaps the project.
            ManifestError: If the manifest is invalid.
            SlotValueError: If *values* do not fit the declared slots.
            HookToggleError: If *hook_selections* are invalid.
            RenderError: If any template or name fails to render.

        Hook failures never raise; they are reported on the result.
        """
        output = self._check_output(output_dir)
        manifest = self.manifest
        bound = bind_values(manifest.slots, values)
        toggles = bind_hook_toggles(manifest.hooks, hook_selections)

        resolution = resolve(manifest.slots, manifest.hooks, bound, toggles)
        available = available_slots(manifest.slots, bound)
        unavailable = [slot.key for slot in manifest.slots if slot.key not in available]
        if unavailable:
            logger.debug("Slots with unmet needs: %s", ", ".join(unavailable))

        project_name = self.name_for(output)
        context = build_context(bound, project_name=project_name, output_name=output.name)

        start = time.monotonic()
        if self.is_single_file:
            body = await asyncio.to_thread(loader.read_single_file_body, self.path)
            rendered = await asyncio.to_thread(
                render_single_file, body, output, context, self.engine, source=self.path.name
            )
            files, ignored, hook_cwd = [rendered], [], output.parent
        else:
            render = await render_tree(
                self.path,
                output,
                context,
                self.engine,
                ignore=manifest.ignore,
                config_file=self.settings.config_file,
                template_ext=self.settings.template_ext,
            )
            files, ignored, hook_cwd = render.files, render.ignored, render.output_dir
        render_seconds = time.monotonic() - start

        outcomes: list[HookResult] = []
        if run_hooks and manifest.hooks:
            executor = HookExecutor(
                self.engine, runner or SubprocessRunner(timeout=self.settings.hook_timeout)
            )
            async for event in executor.stream(manifest.hooks, resolution, context, hook_cwd):
                if on_hook_event is not None:
                    on_hook_event(event)
                if isinstance(event, HookDone):
                    outcomes.append(event.result)

        result = FillResult(
            output_dir=output,
            project_name=project_name,
            written_paths=sorted(f.path for f in files),
            files=files,
            ignored=ignored,
            hook_outcomes=outcomes,
            render_seconds=render_seconds,
        )
        logger.info(
            "Filled %s into %s: %d files, %d hooks (%d failed)",
            self.path,
            output,
            len(result.written_paths),
            len(outcomes),
            len(result.failed_hooks),
        )
        return result

    def fill(
        self,
        values: Mapping[str, Any] | None,
        hook_selections: Mapping[str, Any] | None,
        output_dir: str | Path,
        *,
        run_hooks: bool = True,
        runner: CommandRunner | None = None,
        on_hook_event: Callable[[HookEvent], None] | None = None,
    ) -> FillResult:
        """Synchronous wrapper around ``fill_async``.

        Single-file hooks run in the output file's parent directory; pass
        ``run_hooks=False`` to skip them.  Must not be called from inside a running event loop; use
        ``fill_async`` there instead.
        """
        return asyncio.run(
            self.fill_async(
                values,
                hook_selections,
                output_dir,
                run_hooks=run_hooks,
                runner=runner,
                on_hook_event=on_hook_event,
            )
        )

    def _check_output(self, output_dir: str | Path) -> Path:
        if not self.is_single_file:
            return check_output_path(self.path, output_dir)

        output = Path(output_dir).resolve()
        if output == self.path.resolve():
            raise PathError("Output file cannot be the project file itself", path=output)
        if output.is_dir():
            raise PathError("Output path for a single-file project must be a file", path=output)
        return output


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


def info(project_dir: str | Path, settings: Settings | None = None) -> ProjectInfo:
    """Describe a project's slots and hooks."""
    return Project(project_dir, settings).info()


def check(
    project_dir: str | Path,
    values: Mapping[str, Any] | None = None,
    hook_selections: Mapping[str, Any] | None = None,
    settings: Settings | None = None,
) -> ValidationResult:
    """Validate a project and, optionally, user input for it."""
    return Project(project_dir, settings).check(values, hook_selections)


def fill(
    project_dir: str | Path,
    values: Mapping[str, Any] | None,
    hook_selections: Mapping[str, Any] | None,
    output_dir: str | Path,
    *,
    settings: Settings | None = None,
    run_hooks: bool = True,
    runner: CommandRunner | None = None,
    on_hook_event: Callable[[HookEvent], None] | None = None,
) -> FillResult:
    """Render a project into *output_dir* and run its hooks."""
    return Project(project_dir, settings).fill(
        values,
        hook_selections,
        output_dir,
        run_hooks=run_hooks,
        runner=runner,
        on_hook_event=on_hook_event,
    )


async def fill_async(
    project_dir: str | Path,
    values: Mapping[str, Any] | None,
    hook_selections: Mapping[str, Any] | None,
    output_dir: str | Path,
    *,
    settings: Settings | None = None,
    run_hooks: bool = True,
    runner: CommandRunner | None = None,
    on_hook_event: Callable[[HookEvent], None] | None = None,
) -> FillResult:
    """Async variant of ``fill`` for callers already inside an event loop."""
    return await Project(project_dir, settings).fill_async(
        values,
        hook_selections,
        output_dir,
        run_hooks=run_hooks,
        runner=runner,
        on_hook_event=on_hook_event,
    )
