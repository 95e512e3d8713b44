"""Reading ``spackle.toml`` (or a single-file project) into a ``Manifest``.

A project is either a directory containing ``spackle.toml`` or a single
template file whose TOML header sits between two ``---`` lines::

    ---
    [[slots]]
    key = "name"
    ---
    Hello {{ name }}
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from spackle.errors import ManifestError
from spackle.manifest.models import Manifest
from spackle.manifest.validator import validate_manifest

logger = logging.getLogger(__name__)

CONFIG_FILE = "spackle.toml"
FRONT_MATTER_DELIMITER = "---"


def load(path: str | Path, *, config_file: str = CONFIG_FILE, validate: bool = True) -> Manifest:
    """Load the manifest for a project directory or a single-file project."""
    target = Path(path)
    if target.is_dir():
        return load_dir(target, config_file=config_file, validate=validate)
    return load_file(target, validate=validate)


def load_dir(directory: str | Path, *, config_file: str = CONFIG_FILE, validate: bool = True) -> Manifest:
    """Load ``<directory>/spackle.toml``.

    Raises:
        ManifestError: If the file is missing, unreadable, malformed or
            fails structural validation.
    """
    config_path = Path(directory) / config_file
    if not config_path.is_file():
        raise ManifestError(
            "not a spackle project (no manifest file found)", source=config_path
        )
    text = _read(config_path)
    manifest = parse_manifest(text, source=config_path)
    if validate:
        validate_manifest(manifest, source=config_path)
    logger.debug(
        "Loaded %s: %d slots, %d hooks",
        config_path,
        len(manifest.slots),
        len(manifest.hooks),
    )
    return manifest


def load_file(file: str | Path, *, validate: bool = True) -> Manifest:
    """Load the front-matter manifest of a single-file project."""
    file_path = Path(file)
    header, _ = split_front_matter(_read(file_path), source=file_path)
    manifest = parse_manifest(header, source=file_path)
    if validate:
        validate_manifest(manifest, source=file_path)
    return manifest


def read_single_file_body(file: str | Path) -> str:
    """Return the template body that follows the front matter of *file*."""
    file_path = Path(file)
    _, body = split_front_matter(_read(file_path), source=file_path)
    return body


def split_front_matter(text: str, source: str | Path | None = None) -> tuple[str, str]:
    """Split ``---``-delimited TOML front matter from the body.

    Returns:
        A ``(header, body)`` tuple.

    Raises:
        ManifestError: If the text does not open with a front-matter block
            or the block is never closed.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        raise ManifestError("single-file project must start with a '---' header", source=source)

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == FRONT_MATTER_DELIMITER:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return header, body

    raise ManifestError("unterminated '---' header", source=source)


def parse_manifest(text: str, source: str | Path | None = None) -> Manifest:
    """Deserialize TOML *text* into a ``Manifest`` (no cross-entry checks)."""
    try:
        raw: dict[str, Any] = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"Error parsing contents: {exc}", source=source) from exc

    try:
        return Manifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestError(_describe_validation_error(exc), source=source) from exc


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Error reading file: {exc}", source=path) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into ``slots.0.type: message`` lines."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "Invalid manifest\n" + "\n".join(f"  {part}" for part in parts)
