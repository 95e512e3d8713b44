"""Exception hierarchy for spackle.

Every error raised by the engine derives from ``SpackleError`` so embedders
can catch the whole family at once.  Hook failures are deliberately *not*
exceptions: they are recorded on ``HookResult`` and returned to the caller
(see ``spackle.engine.hooks``).
"""

from __future__ import annotations

from pathlib import Path


class SpackleError(Exception):
    """Base class for all spackle errors."""


class ManifestError(SpackleError):
    """Raised when ``spackle.toml`` cannot be read, parsed or validated.

    Attributes:
        source: The manifest path (or ``"<string>"`` for inline text).
        cycle: Key sequence of the offending cycle, when the error is a
            needs-cycle.
    """

    def __init__(
        self,
        message: str,
        source: str | Path | None = None,
        cycle: list[str] | None = None,
    ) -> None:
        self.source = str(source) if source is not None else None
        self.cycle = cycle
        prefix = f"{self.source}: " if self.source else ""
        super().__init__(f"{prefix}{message}")


class SlotValueError(SpackleError, ValueError):
    """Raised when user-supplied slot values do not match the declared slots.

    ``problems`` maps each offending slot key to a description, so callers
    can report every bad value in one go.
    """

    def __init__(self, problems: dict[str, str]) -> None:
        self.problems = dict(problems)
        details = "; ".join(f"{key}: {msg}" for key, msg in self.problems.items())
        super().__init__(f"Invalid slot values ({details})")


class HookToggleError(SpackleError, ValueError):
    """Raised when hook toggles name unknown, non-optional or non-boolean hooks."""

    def __init__(self, problems: dict[str, str]) -> None:
        self.problems = dict(problems)
        details = "; ".join(f"{key}: {msg}" for key, msg in self.problems.items())
        super().__init__(f"Invalid hook toggles ({details})")


class RenderError(SpackleError):
    """Raised when a template fails to render.

    Attributes:
        source: What was being rendered: a file path, a hook key, or
            ``"<hook>.if"`` for a hook condition.
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.detail = message
        super().__init__(f"Error rendering {source}: {message}")


class PathError(SpackleError):
    """Raised when the output location is unusable (same as or nested in the project)."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class HookExecutionError(SpackleError):
    """A hook that failed to launch or exited unsuccessfully.

    Never raised by the executor itself; ``HookResult.raise_for_status``
    raises it for callers that want to treat a failure as fatal.
    """

    def __init__(self, key: str, message: str, exit_code: int | None = None) -> None:
        self.key = key
        self.exit_code = exit_code
        super().__init__(f"Hook {key} failed: {message}")
