"""Shared pytest fixtures for the stackgen test suite.

Provides reusable fixtures for:
- Temporary project and template directories
- A small hand-built template root for engine tests
- The bundled template root and a template engine over it
- Validated stack selections for common shapes (monorepo, single app, minimal)
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stackgen.scaffolder.templates import TemplateEngine, candidate_roots, resolve_root
from stackgen.stack.models import ProjectConfig, ValidatedConfig
from stackgen.stack.validator import validate
from stackgen.utils import set_verbose


# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_console():
    """Keep verbose output off between tests."""
    set_verbose(False)
    yield
    set_verbose(False)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Empty directory that does not exist yet, for generated projects."""
    return tmp_path / "out" / "test-project"


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A tiny template root with one namespace per engine feature under test."""
    root = tmp_path / "templates"

    files = {
        "basic/README.md.j2": "# {{ name }}\n",
        "basic/static.txt": "copied as-is {{ name }}\n",
        "basic/_gitignore": "node_modules\n",
        "basic/__init__.py": "",
        "basic/nested/deep.txt": "nested\n",
        "basic/empty.txt.j2": "{% if has_database %}db\n{% endif %}",
        "lang/index.ts.j2": "export {};\n",
        "lang/index.js.j2": "module.exports = {};\n",
        "lang/vite.config.ts.j2": "// ts config\n",
        "lang/vite.config.js.j2": "// js config\n",
        "lang/astro.config.mjs.j2": "// mjs config\n",
        "lang/tsconfig.json.j2": "{}\n",
        "style/main.scss.j2": "$c: red;\n",
        "style/main.css.j2": "body {}\n",
        "style/tailwind.config.js.j2": "module.exports = {};\n",
        "style/postcss.config.js.j2": "module.exports = {};\n",
        "lint/eslint.config.js.j2": "export default [];\n",
        "lint/_prettierrc": "{}\n",
        "variant/schema.j2": "generic {{ dialect }}\n",
        "variant/schema-mysql.j2": "mysql {{ dialect }}\n",
        "broken/bad.txt.j2": "{{ missing_variable }}\n",
        "pkg/base/package.json.j2": '{ "name": "{{ name }}" }\n',
        "only-base/base/README.md.j2": "# {{ name }}\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    (root / "pkg" / "src").mkdir(parents=True)
    (root / "pkg" / "src" / "index.ts.j2").write_text("export const name = '{{ name }}';\n")
    (root / "binary").mkdir()
    (root / "binary" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\xff\xfe")
    (root / "binary" / "blob.bin.j2").write_bytes(b"\xff\xfe\x00raw")
    return root


@pytest.fixture
def engine(template_root: Path) -> TemplateEngine:
    return TemplateEngine(template_root)


@pytest.fixture(scope="session")
def bundled_root() -> Path:
    """The template root shipped with the package."""
    return resolve_root(candidate_roots())


@pytest.fixture
def bundled_engine(bundled_root: Path) -> TemplateEngine:
    return TemplateEngine(bundled_root)


# ---------------------------------------------------------------------------
# Stack selections
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config():
    """Factory returning a validated config with the given overrides."""

    def factory(**overrides) -> ValidatedConfig:
        data = {"name": "test-project", **overrides}
        return validate(ProjectConfig(**data))

    return factory


@pytest.fixture
def monorepo_config(make_config) -> ValidatedConfig:
    """React + Express + Postgres + Drizzle with docker."""
    return make_config(
        framework="react",
        backend="express",
        database="postgres",
        orm="drizzle",
        features=frozenset({"gitignore", "docker"}),
    )


@pytest.fixture
def single_app_config(make_config) -> ValidatedConfig:
    """Next.js with its own API routes and Prisma on SQLite."""
    return make_config(
        framework="next",
        backend="next-api",
        database="sqlite",
        orm="prisma",
    )


@pytest.fixture
def minimal_config(make_config) -> ValidatedConfig:
    return make_config()
