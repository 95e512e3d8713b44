"""Command-line entry point for spackle.

Usage::

    spackle info -p ./template
    spackle check -p ./template
    spackle fill -p ./template -o ./out -s name=billing -s port=8080 -H git_init=false
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.table import Table

from spackle.config import Settings
from spackle.engine.hooks import HookDone, HookEvent, HookStarted, HookStatus
from spackle.errors import HookToggleError, ManifestError, PathError, RenderError, SlotValueError
from spackle.log import setup_logging
from spackle.project import FillResult, Project, ValidationResult
from spackle.utils import (
    console,
    format_duration,
    parse_assignments,
    pluralize,
    print_error,
    print_success,
    print_warning,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_OUTPUT = 2


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_info(project: Project) -> int:
    details = project.info()

    slots = Table(title="Slots", show_header=True, header_style="bold cyan")
    slots.add_column("Key", style="bold")
    slots.add_column("Type", style="dim")
    slots.add_column("Default")
    slots.add_column("Needs", style="dim")
    slots.add_column("Description")
    for slot in details.slots:
        slots.add_row(
            slot.key,
            slot.type.value.lower(),
            "" if slot.default is None else str(slot.default),
            ", ".join(slot.needs),
            slot.description or "",
        )
    console.print(slots)

    hooks = Table(title="Hooks", show_header=True, header_style="bold cyan")
    hooks.add_column("Key", style="bold")
    hooks.add_column("Command", style="dim")
    hooks.add_column("Optional")
    hooks.add_column("Needs", style="dim")
    hooks.add_column("If", style="dim")
    for hook in details.hooks:
        optional = ""
        if hook.optional:
            optional = "default [green]on[/green]" if hook.default_enabled else "default [red]off[/red]"
        hooks.add_row(
            hook.key,
            " ".join(hook.command),
            optional,
            ", ".join(hook.needs),
            hook.condition or "",
        )
    console.print(hooks)
    return EXIT_OK


def run_check(project: Project, values: dict[str, str] | None = None, hooks: dict[str, str] | None = None) -> int:
    console.print("Validating project configuration...\n")
    result = project.check(values, hooks)
    _print_validation(result)
    if not result.valid:
        return EXIT_ERROR
    print_success("  Template files are valid")
    return EXIT_OK


def run_fill(
    project: Project,
    out: Path,
    slot_entries: list[str],
    hook_entries: list[str],
    *,
    run_hooks: bool,
    verbose: bool,
) -> int:
    values, rejected = parse_assignments(slot_entries)
    for entry in rejected:
        print_error(f"Invalid slot argument {entry!r}, must be key=value. Skipping.")
    toggles, rejected = parse_assignments(hook_entries)
    for entry in rejected:
        print_error(f"Invalid hook argument {entry!r}, must be key=<true|false>. Skipping.")

    status = run_check(project, values, toggles)
    if status != EXIT_OK:
        return status
    console.print()

    if run_hooks and project.manifest.hooks:
        console.print("Running hooks after rendering...\n")

    try:
        result = project.fill(
            values,
            toggles,
            out,
            run_hooks=run_hooks,
            on_hook_event=_hook_printer(verbose),
        )
    except PathError as exc:
        print_error(str(exc))
        return EXIT_BAD_OUTPUT
    except (ManifestError, SlotValueError, HookToggleError, RenderError) as exc:
        print_error(f"Could not fill project\n{exc}")
        return EXIT_ERROR

    _print_fill_summary(result, verbose)
    if not result.success:
        print_error(f"{pluralize(len(result.failed_hooks), 'hook')} failed: {', '.join(result.failed_hooks)}")
        return EXIT_ERROR
    return EXIT_OK


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_validation(result: ValidationResult) -> None:
    for error in result.manifest_errors:
        print_error(f"  Error loading project config\n  {error}")
    for problem in result.template_errors:
        print_error(f"  Template {problem.source} has errors\n  {problem.message}")
    for key, message in result.value_errors.items():
        print_error(f"  Slot {key}: {message}")
    for key, message in result.hook_toggle_errors.items():
        print_error(f"  Hook {key}: {message}")


def _hook_printer(verbose: bool):
    def on_event(event: HookEvent) -> None:
        if isinstance(event, HookStarted):
            console.print(f"  [bold]{event.hook.label}[/bold] [dim]{' '.join(event.hook.command)}[/dim]")
            return
        if not isinstance(event, HookDone):
            return
        result = event.result
        if result.status is HookStatus.COMPLETED:
            console.print(f"    [green]done[/green] [dim]in {format_duration(result.duration_seconds)}[/dim]")
        elif result.status is HookStatus.SKIPPED:
            console.print(f"    [dim]{result.describe()}[/dim]")
        else:
            print_error(f"    Hook {result.key} {result.describe()}")
        if verbose and (result.stdout or result.stderr):
            for label, text in (("stdout", result.stdout), ("stderr", result.stderr)):
                console.print(f"    [dim]{label}[/dim]")
                console.print(text, markup=False, highlight=False)

    return on_event


def _print_fill_summary(result: FillResult, verbose: bool) -> None:
    copied = sum(1 for f in result.files if not f.templated)
    rendered = sum(1 for f in result.files if f.templated)
    console.print()
    console.print(
        f"Copied {pluralize(copied, 'file')}, rendered {pluralize(rendered, 'template')} "
        f"[dim]in {format_duration(result.render_seconds)}[/dim]"
    )
    if result.ignored:
        console.print(f"[dim]  Ignored {pluralize(len(result.ignored), 'entry', 'entries')}[/dim]")

    if verbose:
        for rendered_file in result.files:
            if rendered_file.templated:
                console.print(
                    f"  [bold]{rendered_file.path}[/bold] "
                    f"[dim]in {format_duration(rendered_file.elapsed)}[/dim]"
                )

    console.print(f"\nOutput written to [bold]{result.output_dir}[/bold]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-p",
        "--project",
        type=Path,
        default=Path("."),
        help="Project directory or single project file (default: current directory)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    parser = argparse.ArgumentParser(
        prog="spackle",
        description="spackle -- fill project templates and run their hooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  spackle info -p ./template\n"
            "  spackle fill -p ./template -o ./out -s name=demo\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("info", parents=[common], help="Show a project's slots and hooks")
    subparsers.add_parser("check", parents=[common], help="Validate a project")

    fill_parser = subparsers.add_parser("fill", parents=[common], help="Fill a project")
    fill_parser.add_argument("-o", "--out", type=Path, required=True, help="Output path")
    fill_parser.add_argument(
        "-s", "--slot", action="append", default=[], metavar="KEY=VALUE", help="Assign a slot a value"
    )
    fill_parser.add_argument(
        "-H", "--hook", action="append", default=[], metavar="KEY=BOOL", help="Toggle an optional hook"
    )
    fill_parser.add_argument("--no-hooks", action="store_true", help="Render only; do not run hooks")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``spackle`` / ``python -m spackle``."""
    args = build_parser().parse_args(argv)

    env_settings = Settings.from_env()
    settings = env_settings.model_copy(update={"verbose": args.verbose or env_settings.verbose})
    setup_logging(verbose=settings.verbose, log_file=settings.log_file)

    console.print("[bold bright_blue]spackle[/bold bright_blue]\n")

    project = Project(args.project, settings)
    try:
        manifest = project.manifest
    except ManifestError as exc:
        print_error(f"Error loading project config\n{exc}")
        return EXIT_ERROR

    if project.is_single_file:
        console.print(f"Using project file [bold]{args.project}[/bold]\n")
    else:
        console.print(
            f"Using project [bold]{args.project}[/bold] "
            f"[dim]({pluralize(len(manifest.slots), 'slot')}, {pluralize(len(manifest.hooks), 'hook')})[/dim]\n"
        )

    if args.command == "info":
        return run_info(project)
    if args.command == "check":
        return run_check(project)
    if not args.no_hooks and not manifest.hooks:
        print_warning("Project declares no hooks")
    return run_fill(
        project,
        args.out,
        args.slot,
        args.hook,
        run_hooks=not args.no_hooks,
        verbose=settings.verbose,
    )


if __name__ == "__main__":
    sys.exit(main())
