"""End-to-end fill tests with real hook processes.

These spawn ``sh``, ``true`` and ``false`` through ``SubprocessRunner`` and
drive the CLI the way a user would.
"""

from __future__ import annotations

import shutil
import textwrap
from pathlib import Path

import pytest

from spackle import fill
from spackle.cli import EXIT_ERROR, EXIT_OK, main
from spackle.engine.hooks import HookErrorKind, HookStatus, SkipReason

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell"),
]

MANIFEST = """\
name = "service"

[[slots]]
key = "service_name"

[[slots]]
key = "with_readme"
type = "Boolean"
default = true

[[hooks]]
key = "mark"
command = ["sh", "-c", "echo {{ service_name }} > marker.txt"]

[[hooks]]
key = "readme"
command = ["sh", "-c", "cat marker.txt >> README.md"]
needs = ["mark", "with_readme"]
if = "{{ hook_ran_mark }}"

[[hooks]]
key = "broken"
command = ["false"]
optional = { default = false }

[[hooks]]
key = "after_broken"
command = ["true"]
needs = ["broken"]
if = "{{ hook_ran_broken }}"

[[hooks]]
key = "missing_tool"
command = ["spackle-no-such-tool-{{ service_name }}"]
optional = { default = false }
"""


@pytest.fixture
def service_project(tmp_path: Path) -> Path:
    root = tmp_path / "service-template"
    (root / "src" / "{{ service_name }}").mkdir(parents=True)
    (root / "spackle.toml").write_text(MANIFEST)
    (root / "README.md.j2").write_text("# {{ service_name }}\n")
    (root / "src" / "{{ service_name }}" / "__init__.py.j2").write_text(
        textwrap.dedent(
            """\
            NAME = "{{ service_name }}"
            PROJECT = "{{ _project_name }}"
            """
        )
    )
    return root


class TestFillWithRealHooks:
    def test_hooks_run_in_output_dir(self, service_project: Path, tmp_path: Path):
        out = tmp_path / "billing"
        result = fill(service_project, {"service_name": "billing"}, {}, out)

        assert result.success
        assert (out / "marker.txt").read_text() == "billing\n"
        assert (out / "README.md").read_text() == "# billing\nbilling\n"
        assert (out / "src" / "billing" / "__init__.py").read_text() == (
            'NAME = "billing"\nPROJECT = "service"\n'
        )
        outcomes = {h.key: h for h in result.hook_outcomes}
        assert outcomes["broken"].skip_reason is SkipReason.USER_DISABLED
        assert outcomes["after_broken"].skip_reason is SkipReason.UNSATISFIED

    def test_failed_hook_does_not_stop_others(self, service_project: Path, tmp_path: Path):
        out = tmp_path / "billing"
        result = fill(
            service_project,
            {"service_name": "billing", "with_readme": False},
            {"broken": True, "missing_tool": True},
            out,
        )
        outcomes = {h.key: h for h in result.hook_outcomes}

        assert outcomes["mark"].status is HookStatus.COMPLETED
        assert outcomes["readme"].skip_reason is SkipReason.UNSATISFIED
        assert outcomes["broken"].error.kind is HookErrorKind.EXITED
        assert outcomes["broken"].error.exit_code == 1
        assert outcomes["after_broken"].skip_reason is SkipReason.FALSE_CONDITIONAL
        assert outcomes["missing_tool"].error.kind is HookErrorKind.LAUNCH_FAILED
        assert sorted(result.failed_hooks) == ["broken", "missing_tool"]
        assert (out / "README.md").read_text() == "# billing\n"


class TestCli:
    def test_fill_success(self, service_project: Path, tmp_path: Path):
        out = tmp_path / "orders"
        assert main(["fill", "-p", str(service_project), "-o", str(out), "-s", "service_name=orders"]) == EXIT_OK
        assert (out / "marker.txt").read_text() == "orders\n"

    def test_fill_reports_hook_failure(self, service_project: Path, tmp_path: Path, capsys):
        out = tmp_path / "orders"
        code = main(
            [
                "fill", "-p", str(service_project), "-o", str(out),
                "-s", "service_name=orders", "-H", "broken=true", "-v",
            ]
        )
        assert code == EXIT_ERROR
        assert "broken" in capsys.readouterr().err
