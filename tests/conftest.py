"""Shared pytest fixtures for the spackle test suite.

Provides reusable fixtures for:
- Building throwaway spackle projects on disk
- A recording fake ``CommandRunner`` for hook tests
- Output directories outside the project tree
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from spackle.engine.expressions import JinjaEngine
from spackle.engine.hooks import CommandOutcome


# ---------------------------------------------------------------------------
# Projects on disk
# ---------------------------------------------------------------------------

SAMPLE_MANIFEST = textwrap.dedent(
    """\
    name = "sample"
    ignore = [".git", "build", "*.log"]

    [[slots]]
    key = "person_name"
    type = "String"
    name = "Person name"
    description = "Who the project greets"

    [[slots]]
    key = "person_age"
    type = "Number"
    default = 30

    [[slots]]
    key = "file_name"
    type = "String"
    default = "main"

    [[slots]]
    key = "with_docs"
    type = "Boolean"
    default = false

    [[hooks]]
    key = "greet"
    command = ["echo", "hello {{ person_name }}"]

    [[hooks]]
    key = "docs"
    command = ["echo", "docs"]
    needs = ["with_docs"]

    [[hooks]]
    key = "format"
    command = ["echo", "format"]
    optional = { default = false }
    """
)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a project directory from a manifest and a file map.

    Usage::

        project = make_project(manifest_text, {"a.txt.j2": "{{ x }}"})
    """
    counter = {"n": 0}

    def _make(manifest: str | None, files: dict[str, str | bytes] | None = None) -> Path:
        counter["n"] += 1
        root = tmp_path / f"project-{counter['n']}"
        root.mkdir()
        if manifest is not None:
            (root / "spackle.toml").write_text(textwrap.dedent(manifest), encoding="utf-8")
        for relative, content in (files or {}).items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def sample_project(make_project: Callable[..., Path]) -> Path:
    """A project exercising slots, templated names, ignores and hooks."""
    return make_project(
        SAMPLE_MANIFEST,
        {
            "README.md": "# {{ person_name }}\n",
            "{{ file_name }}.py.j2": "print('Hello {{ person_name }}, age {{ person_age }}')\n",
            "docs/{{ file_name }}.md.j2": "Docs for {{ _project_name }}\n",
            "static/logo.bin": b"\x89PNG\x00\x01{{ not_a_var }}",
            "build/artifact.txt": "should be ignored",
            "debug.log": "ignored too",
        },
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """An output location outside every project tree (not yet created)."""
    return tmp_path / "rendered" / "my-app"


@pytest.fixture
def engine() -> JinjaEngine:
    return JinjaEngine()


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


class FakeRunner:
    """Records every argv and answers with scripted exit codes.

    ``exit_codes`` maps the *last* argv token to an exit code, which keeps
    test manifests readable (``command = ["run", "build"]``).  ``launch_errors``
    lists tokens for which spawning raises ``FileNotFoundError``.
    """

    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        launch_errors: Sequence[str] = (),
    ) -> None:
        self.exit_codes = exit_codes or {}
        self.launch_errors = set(launch_errors)
        self.calls: list[tuple[list[str], Path]] = []

    async def run(self, argv: Sequence[str], cwd: Path) -> CommandOutcome:
        argv = list(argv)
        if argv[-1] in self.launch_errors:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        self.calls.append((argv, cwd))
        code = self.exit_codes.get(argv[-1], 0)
        return CommandOutcome(exit_code=code, stdout=f"ran {' '.join(argv)}", stderr="")

    @property
    def argvs(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner
