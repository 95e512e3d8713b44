"""Hook executor: run post-render commands in dependency order.

Selection (which hooks may run) comes from ``spackle.engine.resolver``.
For each hook, in topological order, the executor:

1. evaluates its ``if`` against the current context, which includes
   ``hook_ran_<key>`` for every hook (``false`` until that hook succeeds);
2. renders every command token;
3. runs the command in the output directory and waits for it;
4. records ``hook_ran_<key> = true`` only when the command exits with 0.

A failing hook never stops the sequence.  Hooks that need it were selected
statically and still run; only an ``if`` on ``hook_ran_<key>`` can react to
the failure at run time.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, computed_field

from spackle.engine.expressions import HOOK_RAN_PREFIX, TemplateEngine, evaluate_condition
from spackle.engine.resolver import Resolution
from spackle.errors import HookExecutionError, RenderError
from spackle.manifest.models import Hook

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Process boundary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and captured output of one child process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    """Runs an argv in a working directory.

    Implementations raise ``OSError`` when the process cannot be spawned.
    """

    async def run(self, argv: Sequence[str], cwd: Path) -> CommandOutcome: ...


class SubprocessRunner:
    """``CommandRunner`` backed by ``asyncio.create_subprocess_exec``.

    Args:
        timeout: Optional wall-clock limit in seconds.  ``None`` (the
            default) waits for the child however long it takes.
        env: Extra environment variables merged on top of ``os.environ``.
    """

    def __init__(self, timeout: float | None = None, env: Mapping[str, str] | None = None) -> None:
        self.timeout = timeout
        self.env = dict(env) if env else None

    async def run(self, argv: Sequence[str], cwd: Path) -> CommandOutcome:
        merged_env: dict[str, str] | None = None
        if self.env:
            merged_env = {**os.environ, **self.env}

        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=merged_env,
        )

        timed_out = False
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            timed_out = True
        finally:
            # Also reached on cancellation; the child must not outlive the call.
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if timed_out:
            return CommandOutcome(
                exit_code=-1,
                stderr=f"Command timed out after {self.timeout}s: {' '.join(argv)}",
            )

        return CommandOutcome(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
            stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class HookStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    USER_DISABLED = "user_disabled"
    UNSATISFIED = "unsatisfied"
    FALSE_CONDITIONAL = "false_conditional"


class HookErrorKind(str, Enum):
    CONDITIONAL_FAILED = "conditional_failed"
    RENDER_FAILED = "render_failed"
    LAUNCH_FAILED = "launch_failed"
    EXITED = "exited"


class HookError(BaseModel):
    """Why a hook failed."""

    kind: HookErrorKind
    message: str
    exit_code: int | None = None


class HookResult(BaseModel):
    """Outcome of one hook in a run."""

    key: str
    status: HookStatus
    command: list[str] = Field(default_factory=list, description="Rendered argv, when rendered")
    skip_reason: SkipReason | None = None
    error: HookError | None = None
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @computed_field  # type: ignore[misc]
    @property
    def ran(self) -> bool:
        """True when the command ran and exited successfully."""
        return self.status is HookStatus.COMPLETED

    def raise_for_status(self) -> None:
        """Raise ``HookExecutionError`` if this hook failed."""
        if self.status is HookStatus.FAILED and self.error is not None:
            raise HookExecutionError(self.key, self.error.message, self.error.exit_code)

    def describe(self) -> str:
        if self.status is HookStatus.SKIPPED and self.skip_reason is not None:
            return f"skipped: {self.skip_reason.value.replace('_', ' ')}"
        if self.status is HookStatus.FAILED and self.error is not None:
            return f"failed: {self.error.message}"
        return self.status.value


@dataclass(frozen=True)
class HookStarted:
    hook: Hook


@dataclass(frozen=True)
class HookDone:
    result: HookResult


HookEvent = HookStarted | HookDone


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class HookExecutor:
    """Runs resolved hooks one at a time, in dependency order."""

    def __init__(self, engine: TemplateEngine, runner: CommandRunner | None = None) -> None:
        self.engine = engine
        self.runner: CommandRunner = runner or SubprocessRunner()

    async def stream(
        self,
        hooks: Sequence[Hook],
        resolution: Resolution,
        context: Mapping[str, Any],
        cwd: str | Path,
    ) -> AsyncIterator[HookEvent]:
        """Yield ``HookStarted``/``HookDone`` for every hook, in execution order.

        Hooks that were not selected are reported as skipped without running.
        The ``hook_ran_*`` state is local to this call.
        """
        by_key = {hook.key: hook for hook in hooks}
        hook_state = {hook.key: False for hook in hooks}
        workdir = Path(cwd)

        for key in resolution.order:
            hook = by_key[key]
            yield HookStarted(hook)

            if not resolution.is_selected(key):
                reason = (
                    SkipReason.USER_DISABLED
                    if key in resolution.toggled_off
                    else SkipReason.UNSATISFIED
                )
                logger.info("Skipping hook %s (%s)", key, reason.value)
                yield HookDone(HookResult(key=key, status=HookStatus.SKIPPED, skip_reason=reason))
                continue

            result = await self._run_one(hook, _with_hook_state(context, hook_state), workdir)
            hook_state[key] = result.ran
            yield HookDone(result)

    async def run(
        self,
        hooks: Sequence[Hook],
        resolution: Resolution,
        context: Mapping[str, Any],
        cwd: str | Path,
    ) -> list[HookResult]:
        """Run every hook and return all results once the sequence completes."""
        results: list[HookResult] = []
        async for event in self.stream(hooks, resolution, context, cwd):
            if isinstance(event, HookDone):
                results.append(event.result)
        return results

    async def _run_one(self, hook: Hook, context: Mapping[str, Any], cwd: Path) -> HookResult:
        start = time.monotonic()

        if hook.condition is not None:
            try:
                should_run = evaluate_condition(
                    self.engine, hook.condition, context, f"{hook.key}.if"
                )
            except RenderError as exc:
                logger.warning("Hook %s has an invalid condition: %s", hook.key, exc)
                return _failed(hook.key, HookErrorKind.CONDITIONAL_FAILED, str(exc))
            if not should_run:
                logger.info("Skipping hook %s (condition is false)", hook.key)
                return HookResult(
                    key=hook.key,
                    status=HookStatus.SKIPPED,
                    skip_reason=SkipReason.FALSE_CONDITIONAL,
                )

        try:
            argv = [self.engine.render(token, context, hook.key) for token in hook.command]
        except RenderError as exc:
            logger.warning("Hook %s command failed to render: %s", hook.key, exc)
            return _failed(hook.key, HookErrorKind.RENDER_FAILED, str(exc))

        logger.info("Running hook %s: %s", hook.key, " ".join(argv))
        try:
            outcome = await self.runner.run(argv, cwd)
        except OSError as exc:
            logger.warning("Hook %s could not be launched: %s", hook.key, exc)
            return _failed(
                hook.key,
                HookErrorKind.LAUNCH_FAILED,
                f"command launch failed: {exc}",
                command=argv,
                duration=time.monotonic() - start,
            )

        duration = time.monotonic() - start
        if not outcome.success:
            logger.warning("Hook %s exited with code %d", hook.key, outcome.exit_code)
            return HookResult(
                key=hook.key,
                status=HookStatus.FAILED,
                command=argv,
                error=HookError(
                    kind=HookErrorKind.EXITED,
                    message=f"command exited with code {outcome.exit_code}",
                    exit_code=outcome.exit_code,
                ),
                stdout=outcome.stdout,
                stderr=outcome.stderr,
                duration_seconds=duration,
            )

        return HookResult(
            key=hook.key,
            status=HookStatus.COMPLETED,
            command=argv,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            duration_seconds=duration,
        )


def _with_hook_state(context: Mapping[str, Any], hook_state: Mapping[str, bool]) -> dict[str, Any]:
    merged = dict(context)
    for key, ran in hook_state.items():
        merged[f"{HOOK_RAN_PREFIX}{key}"] = ran
    return merged


def _failed(
    key: str,
    kind: HookErrorKind,
    message: str,
    *,
    command: list[str] | None = None,
    duration: float = 0.0,
) -> HookResult:
    return HookResult(
        key=key,
        status=HookStatus.FAILED,
        command=command or [],
        error=HookError(kind=kind, message=message),
        duration_seconds=duration,
    )
