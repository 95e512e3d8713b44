"""Unit tests for runtime settings (spackle.config)."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from spackle.config import Settings

ENV_VARS = (
    "SPACKLE_CONFIG_FILE",
    "SPACKLE_TEMPLATE_EXT",
    "SPACKLE_HOOK_TIMEOUT",
    "SPACKLE_VERBOSE",
    "SPACKLE_LOG_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()
        assert settings.config_file == "spackle.toml"
        assert settings.template_ext == ".j2"
        assert settings.hook_timeout is None
        assert settings.verbose is False
        assert settings.log_file is None

    @pytest.mark.unit
    @pytest.mark.parametrize("ext", ["j2", ".", ""])
    def test_template_ext_must_be_dotted(self, ext):
        with pytest.raises(ValidationError):
            Settings(template_ext=ext)

    @pytest.mark.unit
    def test_timeout_lower_bound(self):
        with pytest.raises(ValidationError):
            Settings(hook_timeout=0)


class TestFromEnv:
    @pytest.mark.unit
    def test_empty_env_gives_defaults(self):
        assert Settings.from_env() == Settings()

    @pytest.mark.unit
    def test_reads_every_variable(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("SPACKLE_CONFIG_FILE", "template.toml")
        monkeypatch.setenv("SPACKLE_TEMPLATE_EXT", ".tmpl")
        monkeypatch.setenv("SPACKLE_HOOK_TIMEOUT", "90")
        monkeypatch.setenv("SPACKLE_VERBOSE", "yes")
        monkeypatch.setenv("SPACKLE_LOG_FILE", str(tmp_path / "spackle.log"))

        settings = Settings.from_env()
        assert settings.config_file == "template.toml"
        assert settings.template_ext == ".tmpl"
        assert settings.hook_timeout == 90.0
        assert settings.verbose is True
        assert settings.log_file == tmp_path / "spackle.log"

    @pytest.mark.unit
    @pytest.mark.parametrize("raw, expected", [("1", True), ("ON", True), ("0", False), ("nope", False)])
    def test_verbose_values(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SPACKLE_VERBOSE", raw)
        assert Settings.from_env().verbose is expected

    @pytest.mark.unit
    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("SPACKLE_HOOK_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            Settings.from_env()
