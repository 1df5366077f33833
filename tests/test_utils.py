"""Unit tests for utility functions (stackgen.utils).

Tests cover:
- save_json (use tmp_path)
- format_duration
- STAGE_NAMES / STAGE_COLORS constants
- verbose toggle and Rich output helpers
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackgen import utils
from stackgen.utils import (
    STAGE_COLORS,
    STAGE_NAMES,
    format_duration,
    is_verbose,
    print_error,
    print_info,
    print_stage_header,
    print_success,
    print_summary_table,
    print_verbose,
    print_warning,
    save_json,
    set_verbose,
)


# ---------------------------------------------------------------------------
# save_json
# ---------------------------------------------------------------------------


class TestSaveJson:
    @pytest.mark.unit
    async def test_creates_parents(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "data.json"
        await save_json({"name": "app", "features": ["docker"]}, path)
        assert json.loads(path.read_text()) == {"name": "app", "features": ["docker"]}

    @pytest.mark.unit
    async def test_trailing_newline_and_indent(self, tmp_path: Path):
        path = tmp_path / "data.json"
        await save_json({"a": 1}, path)
        assert path.read_text() == '{\n  "a": 1\n}\n'

    @pytest.mark.unit
    async def test_paths_serialised_as_strings(self, tmp_path: Path):
        path = tmp_path / "data.json"
        await save_json({"where": Path("/tmp/x")}, path)
        assert json.loads(path.read_text()) == {"where": "/tmp/x"}


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0.0, "0.0s"),
            (3.7, "3.7s"),
            (65.2, "1m 5s"),
            (3661.0, "1h 1m 1s"),
            (-1.0, "0.0s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Stage constants
# ---------------------------------------------------------------------------


class TestStageConstants:
    @pytest.mark.unit
    def test_five_stages(self):
        assert list(STAGE_NAMES) == [1, 2, 3, 4, 5]
        assert set(STAGE_COLORS) == set(STAGE_NAMES)

    @pytest.mark.unit
    def test_names(self):
        assert STAGE_NAMES[3] == "DATA LAYER"


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


class TestOutput:
    @pytest.mark.unit
    def test_verbose_toggle(self):
        assert not is_verbose()
        set_verbose(True)
        assert is_verbose()
        set_verbose(False)
        assert not is_verbose()

    @pytest.mark.unit
    def test_verbose_messages_hidden_by_default(self, monkeypatch):
        printed: list[str] = []
        monkeypatch.setattr(utils.console, "print", lambda *a, **k: printed.append(str(a[0]) if a else ""))
        print_verbose("hidden")
        assert printed == []
        set_verbose(True)
        print_verbose("shown")
        assert printed and "shown" in printed[0]

    @pytest.mark.unit
    def test_helpers_do_not_raise(self):
        print_stage_header(1, STAGE_NAMES[1])
        print_stage_header(9, "unknown")
        print_summary_table({"Project": "app", "Files": "3"}, title="Summary")
        print_success("ok")
        print_error("bad")
        print_warning("careful")
        print_info("note")
