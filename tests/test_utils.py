"""Unit tests for console helpers and logging setup (spackle.utils, spackle.log).

Tests cover:
- parse_assignments
- pluralize
- format_duration
- Rich output helpers
- setup_logging handler management
"""

from __future__ import annotations

import logging
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console
from rich.logging import RichHandler

from spackle.log import setup_logging
from spackle.utils import (
    format_duration,
    parse_assignments,
    pluralize,
    print_error,
    print_success,
    print_warning,
)


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


class TestParseAssignments:
    @pytest.mark.unit
    def test_simple(self):
        assert parse_assignments(["a=1", "b=two"]) == ({"a": "1", "b": "two"}, [])

    @pytest.mark.unit
    def test_value_may_contain_equals(self):
        values, _ = parse_assignments(["url=http://x?a=b"])
        assert values == {"url": "http://x?a=b"}

    @pytest.mark.unit
    def test_empty_value_allowed(self):
        assert parse_assignments(["name="]) == ({"name": ""}, [])

    @pytest.mark.unit
    def test_rejected(self):
        values, rejected = parse_assignments(["novalue", "=x", "ok=1"])
        assert values == {"ok": "1"}
        assert rejected == ["novalue", "=x"]

    @pytest.mark.unit
    def test_last_assignment_wins(self):
        values, _ = parse_assignments(["a=1", "a=2"])
        assert values == {"a": "2"}


class TestPluralize:
    @pytest.mark.unit
    def test_forms(self):
        assert pluralize(1, "file") == "1 file"
        assert pluralize(0, "file") == "0 files"
        assert pluralize(3, "entry", "entries") == "3 entries"


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (-1, "0ms"),
            (0.0042, "4ms"),
            (3.7, "3.7s"),
            (65.2, "1m 5s"),
            (3725, "1h 2m 5s"),
        ],
    )
    def test_formats(self, seconds, expected):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestPrinters:
    @pytest.mark.unit
    def test_success_and_warning_to_stdout(self, capsys):
        print_success("all good")
        print_warning("careful")
        out = capsys.readouterr().out
        assert "all good" in out
        assert "careful" in out

    @pytest.mark.unit
    def test_error_to_stderr(self, capsys):
        print_error("broken")
        captured = capsys.readouterr()
        assert "broken" in captured.err
        assert "broken" not in captured.out


# ---------------------------------------------------------------------------
# setup_logging
# ---------------------------------------------------------------------------


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore_logger(self):
        logger = logging.getLogger("spackle")
        saved = list(logger.handlers), logger.level
        yield
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        for handler in saved[0]:
            logger.addHandler(handler)
        logger.setLevel(saved[1])

    @pytest.mark.unit
    def test_console_level_follows_verbose(self):
        quiet = setup_logging(verbose=False, console=Console(file=StringIO()))
        rich_handlers = [h for h in quiet.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert rich_handlers[0].level == logging.WARNING

        loud = setup_logging(verbose=True, console=Console(file=StringIO()))
        rich_handlers = [h for h in loud.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert rich_handlers[0].level == logging.DEBUG

    @pytest.mark.unit
    def test_debug_records_reach_log_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "spackle.log"
        setup_logging(log_file=log_file, console=Console(file=StringIO()))
        logging.getLogger("spackle.engine.render").debug("copied %s", "a.txt")
        for handler in logging.getLogger("spackle").handlers:
            handler.flush()
        text = log_file.read_text()
        assert "spackle.engine.render | DEBUG | copied a.txt" in text

    @pytest.mark.unit
    def test_warnings_reach_console(self):
        stream = StringIO()
        setup_logging(console=Console(file=stream, width=200))
        logging.getLogger("spackle.project").warning("watch out")
        logging.getLogger("spackle.project").info("not shown")
        assert "watch out" in stream.getvalue()
        assert "not shown" not in stream.getvalue()
