"""Tests for the template engine.

Covers:
- Template root probing and the not-found error
- Namespace copies: rendering, raw copies, underscore-to-dot renames
- Conditional exclusion (TS/JS, styling, lint features, gitignore)
- Empty output, overwrite/skip behaviour and idempotence
- Binary files, render and write failures
- render_variant, copy_conditional, list_available and the slugify filter
- preserve_existing engines never replace files
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stackgen.scaffolder.templates import (
    ConditionalTemplate,
    FileStatus,
    TemplateEngine,
    TemplateNamespaceNotFound,
    TemplateNotFound,
    TemplateRenderFailed,
    TemplateRootNotFound,
    TemplateWriteFailed,
    candidate_roots,
    resolve_root,
)
from stackgen.stack.models import ProjectConfig

pytestmark = pytest.mark.unit


def _config(**overrides) -> ProjectConfig:
    return ProjectConfig(name="demo-app", **overrides)


def _statuses(manifest) -> dict[str, FileStatus]:
    return {
        entry.path.relative_to(manifest.destination).as_posix(): entry.status
        for entry in manifest.entries
    }


# ---------------------------------------------------------------------------
# Root discovery
# ---------------------------------------------------------------------------


class TestResolveRoot:
    def test_candidate_order(self, tmp_path: Path):
        install = tmp_path / "site" / "pkg" / "scaffolder"
        cwd = tmp_path / "work"
        candidates = candidate_roots(install_dir=install, cwd=cwd)
        assert candidates == [
            install / "templates",
            install.parent / "templates",
            install.parent.parent / "templates",
            install.parent.parent / "dist" / "templates",
            cwd / "dist" / "templates",
        ]

    def test_first_existing_candidate_wins(self, tmp_path: Path):
        install = tmp_path / "site" / "pkg" / "scaffolder"
        candidates = candidate_roots(install_dir=install, cwd=tmp_path / "work")
        candidates[2].mkdir(parents=True)
        candidates[4].mkdir(parents=True)
        assert resolve_root(candidates) == candidates[2]

    def test_files_are_not_roots(self, tmp_path: Path):
        candidates = candidate_roots(install_dir=tmp_path / "a" / "b", cwd=tmp_path)
        candidates[0].parent.mkdir(parents=True)
        candidates[0].write_text("not a directory")
        candidates[1].mkdir(parents=True)
        assert resolve_root(candidates) == candidates[1]

    def test_not_found_lists_every_candidate(self, tmp_path: Path):
        candidates = candidate_roots(install_dir=tmp_path / "x" / "y", cwd=tmp_path / "z")
        with pytest.raises(TemplateRootNotFound) as exc_info:
            resolve_root(candidates)
        assert exc_info.value.candidates == candidates
        for candidate in candidates:
            assert str(candidate) in str(exc_info.value)

    def test_bundled_templates_are_found(self):
        root = resolve_root()
        assert (root / "frameworks" / "react" / "base").is_dir()


# ---------------------------------------------------------------------------
# copy_directory
# ---------------------------------------------------------------------------


class TestCopyDirectory:
    async def test_renders_and_copies(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        manifest = await engine.copy_directory("basic", dest, _config())

        assert (dest / "README.md").read_text() == "# demo-app\n"
        assert (dest / "static.txt").read_text() == "copied as-is {{ name }}\n"
        assert (dest / ".gitignore").read_text() == "node_modules\n"
        assert (dest / "__init__.py").exists()
        assert (dest / "nested" / "deep.txt").read_text() == "nested\n"
        assert manifest.namespace == "basic"
        assert set(manifest.written) == {
            dest / "README.md",
            dest / "static.txt",
            dest / ".gitignore",
            dest / "__init__.py",
            dest / "nested" / "deep.txt",
        }

    async def test_entries_sorted_by_path(self, engine: TemplateEngine, tmp_path: Path):
        manifest = await engine.copy_directory("basic", tmp_path / "out", _config())
        paths = [entry.path.as_posix() for entry in manifest.entries]
        assert paths == sorted(paths)

    async def test_empty_render_is_not_written(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        manifest = await engine.copy_directory("basic", dest, _config())
        assert _statuses(manifest)["empty.txt"] == FileStatus.EMPTY
        assert not (dest / "empty.txt").exists()

    async def test_extra_context_reaches_templates(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        await engine.copy_directory(
            "basic", dest, _config(), extra_context={"has_database": True}
        )
        assert (dest / "empty.txt").read_text() == "db\n"

    async def test_gitignore_excluded_without_feature(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        manifest = await engine.copy_directory("basic", dest, _config(features=frozenset()))
        assert _statuses(manifest)[".gitignore"] == FileStatus.EXCLUDED
        assert not (dest / ".gitignore").exists()

    async def test_missing_namespace(self, engine: TemplateEngine, tmp_path: Path):
        with pytest.raises(TemplateNamespaceNotFound) as exc_info:
            await engine.copy_directory("nope", tmp_path / "out", _config())
        assert isinstance(exc_info.value, TemplateNotFound)
        assert exc_info.value.name == "nope"

    async def test_render_failure_names_the_source(self, engine: TemplateEngine, tmp_path: Path):
        with pytest.raises(TemplateRenderFailed) as exc_info:
            await engine.copy_directory("broken", tmp_path / "out", _config())
        assert exc_info.value.path.name == "bad.txt.j2"

    async def test_binary_files_copied_byte_for_byte(
        self, engine: TemplateEngine, template_root: Path, tmp_path: Path
    ):
        dest = tmp_path / "out"
        await engine.copy_directory("binary", dest, _config())
        assert (dest / "logo.png").read_bytes() == (template_root / "binary" / "logo.png").read_bytes()
        assert (dest / "blob.bin").read_bytes() == b"\xff\xfe\x00raw"

    async def test_write_failure_after_other_writes(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "nested").write_text("a file where a directory should be")

        with pytest.raises(TemplateWriteFailed) as exc_info:
            await engine.copy_directory("basic", dest, _config())

        assert exc_info.value.path == dest / "nested" / "deep.txt"
        assert isinstance(exc_info.value.cause, OSError)
        # No rollback: the files that could be written are there.
        assert (dest / "README.md").read_text() == "# demo-app\n"


class TestOverwrite:
    async def test_existing_files_skipped(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "README.md").write_text("mine\n")

        manifest = await engine.copy_directory("basic", dest, _config())

        assert (dest / "README.md").read_text() == "mine\n"
        assert manifest.skipped == [dest / "README.md"]
        assert manifest.status_of(dest / "README.md") == FileStatus.SKIPPED

    async def test_overwrite_replaces(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "README.md").write_text("mine\n")

        manifest = await engine.copy_directory("basic", dest, _config(), overwrite=True)

        assert (dest / "README.md").read_text() == "# demo-app\n"
        assert manifest.status_of(dest / "README.md") == FileStatus.OVERWRITTEN
        assert dest / "README.md" in manifest.written

    async def test_preserving_engine_ignores_overwrite(self, template_root: Path, tmp_path: Path):
        engine = TemplateEngine(template_root, preserve_existing=True)
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "README.md").write_text("mine\n")

        manifest = await engine.copy_directory("basic", dest, _config(), overwrite=True)
        entry = await engine.render_file(
            "basic/README.md.j2", dest / "README.md", _config(), overwrite=True
        )

        assert (dest / "README.md").read_text() == "mine\n"
        assert manifest.status_of(dest / "README.md") == FileStatus.SKIPPED
        assert entry.status == FileStatus.SKIPPED
        assert (dest / "static.txt").exists()

    async def test_repeated_copy_is_idempotent(self, engine: TemplateEngine, tmp_path: Path):
        dest = tmp_path / "out"
        await engine.copy_directory("basic", dest, _config(), overwrite=True)
        first = {p: p.read_bytes() for p in dest.rglob("*") if p.is_file()}
        await engine.copy_directory("basic", dest, _config(), overwrite=True)
        second = {p: p.read_bytes() for p in dest.rglob("*") if p.is_file()}
        assert first == second


# ---------------------------------------------------------------------------
# Conditional exclusion
# ---------------------------------------------------------------------------


class TestExclusion:
    async def test_typescript_selection(self, engine: TemplateEngine, tmp_path: Path):
        manifest = await engine.copy_directory("lang", tmp_path / "ts", _config(typescript=True))
        statuses = _statuses(manifest)
        assert statuses["index.ts"] == FileStatus.WRITTEN
        assert statuses["index.js"] == FileStatus.EXCLUDED
        assert statuses["vite.config.ts"] == FileStatus.WRITTEN
        assert statuses["vite.config.js"] == FileStatus.EXCLUDED
        assert statuses["astro.config.mjs"] == FileStatus.WRITTEN
        assert statuses["tsconfig.json"] == FileStatus.WRITTEN

    async def test_javascript_selection(self, engine: TemplateEngine, tmp_path: Path):
        manifest = await engine.copy_directory("lang", tmp_path / "js", _config(typescript=False))
        statuses = _statuses(manifest)
        assert statuses["index.ts"] == FileStatus.EXCLUDED
        assert statuses["index.js"] == FileStatus.WRITTEN
        assert statuses["vite.config.ts"] == FileStatus.EXCLUDED
        assert statuses["vite.config.js"] == FileStatus.WRITTEN
        assert statuses["astro.config.mjs"] == FileStatus.WRITTEN
        assert statuses["tsconfig.json"] == FileStatus.EXCLUDED

    @pytest.mark.parametrize(
        "styling, written",
        [
            ("css", {"main.css"}),
            ("scss", {"main.css", "main.scss"}),
            ("tailwind", {"main.css", "tailwind.config.js", "postcss.config.js"}),
        ],
    )
    async def test_styling(self, engine: TemplateEngine, tmp_path: Path, styling, written):
        dest = tmp_path / styling
        manifest = await engine.copy_directory("style", dest, _config(styling=styling))
        assert {p.name for p in manifest.written} == written

    async def test_lint_files_follow_features(self, engine: TemplateEngine, tmp_path: Path):
        off = await engine.copy_directory("lint", tmp_path / "off", _config())
        assert off.written == []
        assert len(off.excluded) == 2

        on = await engine.copy_directory(
            "lint",
            tmp_path / "on",
            _config(features=frozenset({"eslint", "prettier"})),
        )
        assert {p.name for p in on.written} == {"eslint.config.js", ".prettierrc"}


# ---------------------------------------------------------------------------
# Single files, variants and conditional copies
# ---------------------------------------------------------------------------


class TestRenderFile:
    async def test_render_file(self, engine: TemplateEngine, tmp_path: Path):
        out = tmp_path / "deep" / "README.md"
        entry = await engine.render_file("basic/README.md.j2", out, _config())
        assert entry.status == FileStatus.WRITTEN
        assert out.read_text() == "# demo-app\n"

    async def test_render_file_skips_existing(self, engine: TemplateEngine, tmp_path: Path):
        out = tmp_path / "README.md"
        out.write_text("keep\n")
        entry = await engine.render_file("basic/README.md.j2", out, _config())
        assert entry.status == FileStatus.SKIPPED
        assert out.read_text() == "keep\n"

    async def test_missing_template(self, engine: TemplateEngine, tmp_path: Path):
        with pytest.raises(TemplateNotFound):
            await engine.render_file("basic/missing.j2", tmp_path / "x", _config())

    async def test_variant_selected_by_context(self, engine: TemplateEngine, tmp_path: Path):
        out = tmp_path / "schema.txt"
        entry = await engine.render_variant(
            "variant/schema.j2",
            out,
            _config(),
            {"dialect": "mysql"},
            extra_context={"dialect": "mysql"},
        )
        assert entry.source.name == "schema-mysql.j2"
        assert out.read_text() == "mysql mysql\n"

    async def test_variant_falls_back_to_base(self, engine: TemplateEngine, tmp_path: Path):
        out = tmp_path / "schema.txt"
        entry = await engine.render_variant(
            "variant/schema.j2",
            out,
            _config(),
            {"dialect": "postgres"},
            extra_context={"dialect": "postgres"},
        )
        assert entry.source.name == "schema.j2"
        assert out.read_text() == "generic postgres\n"

    async def test_copy_conditional(self, engine: TemplateEngine, tmp_path: Path):
        manifests = await engine.copy_conditional(
            [
                ConditionalTemplate(lambda c: c.typescript, "lang", "code"),
                ConditionalTemplate(False, "style"),
                ConditionalTemplate(True, "lint"),
            ],
            tmp_path,
            _config(),
        )
        assert [m.namespace for m in manifests] == ["lang", "lint"]
        assert (tmp_path / "code" / "index.ts").exists()
        assert not (tmp_path / "main.css").exists()


class TestDiscoveryAndFilters:
    def test_list_available(self, engine: TemplateEngine):
        assert engine.list_available("pkg") == ["base", "src"]
        assert engine.list_available("only-base") == ["base"]
        assert engine.list_available("missing") == []

    def test_render_string(self, engine: TemplateEngine):
        assert engine.render_string("Hello {{ who }}", {"who": "there"}) == "Hello there"

    @pytest.mark.parametrize(
        "value, expected",
        [("My Cool App!", "my-cool-app"), ("my_app", "my-app"), ("--App--", "app")],
    )
    def test_slugify_filter(self, engine: TemplateEngine, value, expected):
        assert engine.render_string("{{ value | slugify }}", {"value": value}) == expected

    def test_undefined_variable_is_an_error(self, engine: TemplateEngine):
        with pytest.raises(TemplateRenderFailed):
            engine.render_template("broken/bad.txt.j2", {})
