"""Unit tests for Settings (stackgen.config).

Tests cover:
- Defaults
- project_path
- save/load round trip
- from_env
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stackgen.config import Settings


class TestSettings:
    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()
        assert settings.output_dir == Path(".")
        assert settings.templates_dir is None
        assert settings.overwrite is False
        assert settings.verbose is False
        assert settings.config_file == "stackgen.json"

    @pytest.mark.unit
    def test_project_path(self, tmp_path: Path):
        settings = Settings(output_dir=tmp_path)
        assert settings.project_path("my-app") == (tmp_path / "my-app").resolve()

    @pytest.mark.unit
    def test_save_and_load(self, tmp_path: Path):
        settings = Settings(output_dir=tmp_path / "out", overwrite=True, templates_dir=tmp_path / "t")
        path = settings.save(tmp_path / "nested" / "settings.json")
        assert path.exists()
        assert Settings.load(path) == settings


class TestFromEnv:
    @pytest.mark.unit
    def test_empty_environment(self, monkeypatch):
        for key in (
            "STACKGEN_OUTPUT_DIR",
            "STACKGEN_TEMPLATES_DIR",
            "STACKGEN_OVERWRITE",
            "STACKGEN_VERBOSE",
        ):
            monkeypatch.delenv(key, raising=False)
        assert Settings.from_env() == Settings()

    @pytest.mark.unit
    def test_reads_variables(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("STACKGEN_OUTPUT_DIR", str(tmp_path))
        monkeypatch.setenv("STACKGEN_TEMPLATES_DIR", str(tmp_path / "templates"))
        monkeypatch.setenv("STACKGEN_OVERWRITE", "yes")
        monkeypatch.setenv("STACKGEN_VERBOSE", "1")

        settings = Settings.from_env()

        assert settings.output_dir == tmp_path
        assert settings.templates_dir == tmp_path / "templates"
        assert settings.overwrite is True
        assert settings.verbose is True

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["0", "false", "no", ""])
    def test_falsy_flags(self, monkeypatch, value):
        monkeypatch.setenv("STACKGEN_OVERWRITE", value)
        assert Settings.from_env().overwrite is False
