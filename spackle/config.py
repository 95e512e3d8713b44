"""Spackle runtime settings.

Typed settings shared by the facade and the CLI.  They use a Pydantic v2
model so they are validated at construction time and can be built from
environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from spackle.engine.render import TEMPLATE_EXT
from spackle.manifest.loader import CONFIG_FILE

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Knobs that are not part of a project's manifest.

    Instances are typically created once by the CLI (or by an embedder) and
    passed to ``spackle.project.Project``.
    """

    config_file: str = Field(default=CONFIG_FILE, description="Manifest file name inside a project")
    template_ext: str = Field(default=TEMPLATE_EXT, description="Suffix marking template files")
    hook_timeout: float | None = Field(
        default=None, ge=1, description="Per-hook timeout in seconds; None waits indefinitely"
    )
    verbose: bool = Field(default=False)
    log_file: Path | None = Field(default=None, description="Optional file receiving debug logs")

    @field_validator("template_ext")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("template_ext must start with '.' and name an extension")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            SPACKLE_CONFIG_FILE, SPACKLE_TEMPLATE_EXT, SPACKLE_HOOK_TIMEOUT,
            SPACKLE_VERBOSE, SPACKLE_LOG_FILE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SPACKLE_CONFIG_FILE"):
            kwargs["config_file"] = os.environ["SPACKLE_CONFIG_FILE"]
        if os.environ.get("SPACKLE_TEMPLATE_EXT"):
            kwargs["template_ext"] = os.environ["SPACKLE_TEMPLATE_EXT"]
        if os.environ.get("SPACKLE_HOOK_TIMEOUT"):
            kwargs["hook_timeout"] = float(os.environ["SPACKLE_HOOK_TIMEOUT"])
        if os.environ.get("SPACKLE_VERBOSE"):
            kwargs["verbose"] = os.environ["SPACKLE_VERBOSE"].strip().lower() in _TRUTHY
        if os.environ.get("SPACKLE_LOG_FILE"):
            kwargs["log_file"] = Path(os.environ["SPACKLE_LOG_FILE"])
        return cls(**kwargs)
