"""Render pipeline: mirror a project tree into the output directory.

Every path under the project root (minus ignored entries and the manifest
itself) is reproduced in the output directory:

* file and directory names are rendered through the template engine, so
  any path component may embed an expression;
* files ending in the template extension (``.j2``) have their contents
  rendered and the extension stripped;
* all other files are copied byte-for-byte.

Files are processed concurrently in worker threads and all of them finish
before ``render_tree`` returns, which is the barrier hooks rely on.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import shutil
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from spackle.engine.expressions import (
    OUTPUT_NAME_VAR,
    PROJECT_NAME_VAR,
    TemplateEngine,
)
from spackle.errors import PathError, RenderError
from spackle.manifest.loader import CONFIG_FILE
from spackle.manifest.models import Slot

logger = logging.getLogger(__name__)

TEMPLATE_EXT = ".j2"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class RenderedFile:
    """One file written to the output tree."""

    source: str
    path: str
    templated: bool
    elapsed: float = 0.0
    contents: str | None = None


@dataclass
class RenderResult:
    """Everything the render pass wrote, plus what it skipped."""

    output_dir: Path
    files: list[RenderedFile] = field(default_factory=list)
    directories: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def written_paths(self) -> list[str]:
        """Output-relative paths of every written file, sorted."""
        return sorted(f.path for f in self.files)

    @property
    def copied_count(self) -> int:
        return sum(1 for f in self.files if not f.templated)

    @property
    def rendered_count(self) -> int:
        return sum(1 for f in self.files if f.templated)


@dataclass(frozen=True)
class SourceEntry:
    """A path discovered under the project root."""

    relative: str
    is_dir: bool


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def check_output_path(project_dir: str | Path, output_dir: str | Path) -> Path:
    """Ensure *output_dir* neither equals nor nests with *project_dir*.

    Returns:
        The resolved output path.

    Raises:
        PathError: If the two locations overlap.
    """
    project = Path(project_dir).resolve()
    output = Path(output_dir).resolve()

    if output == project:
        raise PathError(
            "Output directory cannot be the same as the project directory", path=output
        )
    if output.is_relative_to(project):
        raise PathError("Output directory cannot be inside the project directory", path=output)
    if project.is_relative_to(output):
        raise PathError("Output directory cannot contain the project directory", path=output)
    if output.exists() and not output.is_dir():
        raise PathError("Output path exists and is not a directory", path=output)
    return output


# ---------------------------------------------------------------------------
# Walking
# ---------------------------------------------------------------------------


def is_ignored(relative: str, patterns: Sequence[str]) -> bool:
    """Match a project-relative POSIX path against ``ignore`` entries.

    An entry matches on the exact relative path, as a directory prefix, on
    the bare file name, or as a glob against either of those.
    """
    name = PurePosixPath(relative).name
    for raw in patterns:
        pattern = raw.strip().removeprefix("./").rstrip("/")
        if not pattern:
            continue
        if relative == pattern or relative.startswith(pattern + "/") or name == pattern:
            return True
        if fnmatch.fnmatchcase(relative, pattern) or fnmatch.fnmatchcase(name, pattern):
            return True
    return False


def walk(
    project_dir: str | Path,
    ignore: Sequence[str] = (),
    *,
    config_file: str = CONFIG_FILE,
) -> tuple[list[SourceEntry], list[str]]:
    """Enumerate the project tree.

    Returns:
        ``(entries, ignored)``: entries in sorted, parent-first order and
        the relative paths that were skipped by an ignore rule.  Ignored
        directories are pruned, so their contents appear in neither list.
        Symlinks and every manifest file, at any depth, are skipped.
    """
    root = Path(project_dir)
    entries: list[SourceEntry] = []
    ignored: list[str] = []

    for current, dirnames, filenames in os.walk(root):
        base = PurePosixPath(Path(current).relative_to(root).as_posix())

        kept_dirs = []
        for dirname in sorted(dirnames):
            relative = _join(base, dirname)
            if (Path(current) / dirname).is_symlink():
                logger.debug("Skipping symlink %s", relative)
                continue
            if is_ignored(relative, ignore):
                ignored.append(relative)
                continue
            kept_dirs.append(dirname)
            entries.append(SourceEntry(relative, is_dir=True))
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            relative = _join(base, filename)
            if filename == config_file:
                continue
            if (Path(current) / filename).is_symlink():
                logger.debug("Skipping symlink %s", relative)
                continue
            if is_ignored(relative, ignore):
                ignored.append(relative)
                continue
            entries.append(SourceEntry(relative, is_dir=False))

    return entries, ignored


def _join(base: PurePosixPath, name: str) -> str:
    return name if str(base) == "." else str(base / name)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


async def render_tree(
    project_dir: str | Path,
    output_dir: str | Path,
    context: Mapping[str, Any],
    engine: TemplateEngine,
    *,
    ignore: Sequence[str] = (),
    config_file: str = CONFIG_FILE,
    template_ext: str = TEMPLATE_EXT,
) -> RenderResult:
    """Render the whole project tree into *output_dir*.

    Raises:
        PathError: If the output location overlaps the project, a
            rendered name escapes the output directory, or two sources
            collide on one output path.
        RenderError: On the first template or name that fails to render.
    """
    start = time.monotonic()
    source_root = Path(project_dir).resolve()
    output_root = check_output_path(source_root, output_dir)

    entries, ignored = walk(source_root, ignore, config_file=config_file)
    result = RenderResult(output_dir=output_root, ignored=ignored)

    await asyncio.to_thread(output_root.mkdir, parents=True, exist_ok=True)

    directories: set[Path] = set()
    for entry in entries:
        if entry.is_dir:
            target = _render_target(entry, output_root, context, engine, template_ext)
            directories.add(target)
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
            result.directories.append(target.relative_to(output_root).as_posix())

    files = [entry for entry in entries if not entry.is_dir]
    planned = _plan_files(files, directories, output_root, context, engine, template_ext)
    result.files = list(
        await asyncio.gather(
            *(
                asyncio.to_thread(
                    _process_file, entry, target, source_root, output_root, context, engine, template_ext
                )
                for target, entry in planned.items()
            )
        )
    )
    result.elapsed = time.monotonic() - start

    logger.info(
        "Rendered %s: %d copied, %d templated, %d ignored",
        output_root,
        result.copied_count,
        result.rendered_count,
        len(result.ignored),
    )
    return result


def render_single_file(
    body: str,
    output_file: str | Path,
    context: Mapping[str, Any],
    engine: TemplateEngine,
    *,
    source: str,
) -> RenderedFile:
    """Render the body of a single-file project to *output_file*."""
    start = time.monotonic()
    contents = engine.render(body, context, source)
    target = Path(output_file)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(contents, encoding="utf-8")
    return RenderedFile(
        source=source,
        path=target.name,
        templated=True,
        elapsed=time.monotonic() - start,
        contents=contents,
    )


def _render_target(
    entry: SourceEntry,
    output_root: Path,
    context: Mapping[str, Any],
    engine: TemplateEngine,
    template_ext: str,
) -> Path:
    relative = engine.render(entry.relative, context, entry.relative)
    if _is_template(entry, template_ext):
        relative = relative.removesuffix(template_ext)

    target = (output_root / relative).resolve()
    if target == output_root or not target.is_relative_to(output_root):
        raise PathError(
            f"{entry.relative} renders to {relative!r}, outside the output directory",
            path=target,
        )
    return target


def _plan_files(
    files: Sequence[SourceEntry],
    directories: set[Path],
    output_root: Path,
    context: Mapping[str, Any],
    engine: TemplateEngine,
    template_ext: str,
) -> dict[Path, SourceEntry]:
    """Assign every output path exactly one source file.

    A template and a plain file that land on the same path resolve in
    favour of the template.  Any other collision is an error, raised
    before a single file is written.

    Raises:
        PathError: If two files of the same kind, or a file and a
            directory, render to the same path.
    """
    planned: dict[Path, SourceEntry] = {}
    for entry in files:
        target = _render_target(entry, output_root, context, engine, template_ext)
        shown = target.relative_to(output_root).as_posix()
        if target in directories:
            raise PathError(f"{entry.relative} renders to {shown!r}, which is a directory", path=target)

        other = planned.get(target)
        if other is not None:
            templated = _is_template(entry, template_ext)
            if templated == _is_template(other, template_ext):
                raise PathError(
                    f"{other.relative} and {entry.relative} both render to {shown!r}", path=target
                )
            if not templated:
                logger.debug("Template %s replaces %s", other.relative, entry.relative)
                continue
            logger.debug("Template %s replaces %s", entry.relative, other.relative)
        planned[target] = entry
    return planned


def _is_template(entry: SourceEntry, template_ext: str) -> bool:
    return not entry.is_dir and entry.relative.endswith(template_ext)


def _process_file(
    entry: SourceEntry,
    target: Path,
    source_root: Path,
    output_root: Path,
    context: Mapping[str, Any],
    engine: TemplateEngine,
    template_ext: str,
) -> RenderedFile:
    """Worker-thread body: render or copy one file."""
    start = time.monotonic()
    source = source_root / entry.relative
    target.parent.mkdir(parents=True, exist_ok=True)

    templated = _is_template(entry, template_ext)
    contents: str | None = None
    if templated:
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise RenderError(entry.relative, f"template is not valid UTF-8: {exc}") from exc
        contents = engine.render(text, context, entry.relative)
        target.write_text(contents, encoding="utf-8")
    else:
        shutil.copyfile(source, target)
    shutil.copymode(source, target)

    relative = target.relative_to(output_root).as_posix()
    logger.debug("%s %s -> %s", "Rendered" if templated else "Copied", entry.relative, relative)
    return RenderedFile(
        source=entry.relative,
        path=relative,
        templated=templated,
        elapsed=time.monotonic() - start,
        contents=contents,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_templates(
    project_dir: str | Path,
    slots: Sequence[Slot],
    engine: TemplateEngine,
    *,
    ignore: Sequence[str] = (),
    config_file: str = CONFIG_FILE,
    template_ext: str = TEMPLATE_EXT,
) -> list[RenderError]:
    """Render every template (contents and names) against zero-valued slots.

    Catches references to undeclared variables and syntax errors without
    writing anything.  Returns one ``RenderError`` per failing path.
    """
    context: dict[str, Any] = {slot.key: slot.type.zero_value for slot in slots}
    context[PROJECT_NAME_VAR] = ""
    context[OUTPUT_NAME_VAR] = ""

    errors: list[RenderError] = []
    entries, _ = walk(project_dir, ignore, config_file=config_file)
    for entry in entries:
        try:
            engine.render(entry.relative, context, entry.relative)
            if _is_template(entry, template_ext):
                text = (Path(project_dir) / entry.relative).read_text(encoding="utf-8")
                engine.render(text, context, entry.relative)
        except RenderError as exc:
            errors.append(exc)
        except UnicodeDecodeError as exc:
            errors.append(RenderError(entry.relative, f"template is not valid UTF-8: {exc}"))
    return errors
