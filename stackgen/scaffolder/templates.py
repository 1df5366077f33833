"""Jinja2 template engine for project scaffolding.

Provides :class:`TemplateEngine`, which copies template *namespaces*
(directories such as ``frameworks/react/base``) into a project directory,
rendering ``*.j2`` files with the stack configuration and copying everything
else byte-for-byte.  Every call returns a :class:`TemplateManifest` describing
what happened to each file so later steps can reason about it.

The template root is located once with :func:`resolve_root` and handed to the
engine explicitly; the engine itself holds no process-wide state.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError as JinjaTemplateError,
    select_autoescape,
)

from stackgen.stack.models import FeatureFlag, ProjectConfig
from stackgen.utils import print_verbose

TEMPLATE_SUFFIX = ".j2"

# Directory of this module; the probe list below is relative to it.
_INSTALL_DIR = Path(__file__).resolve().parent


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TemplateError(Exception):
    """Base class for template engine failures."""


class TemplateRootNotFound(TemplateError):
    """None of the candidate template roots exists."""

    def __init__(self, candidates: Sequence[Path]) -> None:
        self.candidates = list(candidates)
        tried = "\n".join(f"  - {c}" for c in self.candidates)
        super().__init__(f"Template root not found. Tried:\n{tried}")


class TemplateNotFound(TemplateError):
    """A template file or namespace does not exist under the root."""

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path
        super().__init__(f"Template not found: {name} (resolved: {path})")


class TemplateNamespaceNotFound(TemplateNotFound):
    """A template namespace directory does not exist under the root."""


class TemplateRenderFailed(TemplateError):
    """Jinja2 could not render a template file."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to render template {path}: {cause}")


class TemplateWriteFailed(TemplateError):
    """Writing a generated file to disk failed."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class FileStatus(str, Enum):
    """What happened to a single template file during a copy."""

    WRITTEN = "written"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"
    EMPTY = "empty"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class ManifestEntry:
    path: Path
    source: Path
    status: FileStatus


@dataclass
class TemplateManifest:
    """Files a single copy call wrote, skipped or excluded."""

    namespace: str
    destination: Path
    entries: list[ManifestEntry] = field(default_factory=list)

    @property
    def written(self) -> list[Path]:
        """Paths that now hold freshly generated content."""
        return [
            e.path
            for e in self.entries
            if e.status in (FileStatus.WRITTEN, FileStatus.OVERWRITTEN)
        ]

    @property
    def skipped(self) -> list[Path]:
        return [e.path for e in self.entries if e.status == FileStatus.SKIPPED]

    @property
    def excluded(self) -> list[Path]:
        return [e.path for e in self.entries if e.status == FileStatus.EXCLUDED]

    def status_of(self, path: Path) -> Optional[FileStatus]:
        for entry in self.entries:
            if entry.path == path:
                return entry.status
        return None


@dataclass(frozen=True)
class ConditionalTemplate:
    """A namespace copied only when *condition* holds for the config."""

    condition: Union[bool, Callable[[ProjectConfig], bool]]
    namespace: str
    dest: Optional[str] = None

    def applies(self, config: ProjectConfig) -> bool:
        if callable(self.condition):
            return bool(self.condition(config))
        return bool(self.condition)


# ---------------------------------------------------------------------------
# Template root discovery
# ---------------------------------------------------------------------------


def candidate_roots(
    install_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> list[Path]:
    """Return the ordered list of places a template root may live.

    Covers an installed package, a development checkout and a built
    ``dist`` tree.
    """
    base = Path(install_dir) if install_dir is not None else _INSTALL_DIR
    here = Path(cwd) if cwd is not None else Path.cwd()
    return [
        base / "templates",
        base.parent / "templates",
        base.parent.parent / "templates",
        base.parent.parent / "dist" / "templates",
        here / "dist" / "templates",
    ]


def resolve_root(candidates: Optional[Sequence[Path]] = None) -> Path:
    """Return the first existing template root.

    Candidates are probed in order with a read-only ``is_dir`` check and
    probing stops at the first hit.

    Raises:
        TemplateRootNotFound: listing every candidate when none exists.
    """
    probe = list(candidates) if candidates is not None else candidate_roots()
    for candidate in probe:
        if candidate.is_dir():
            return candidate
    raise TemplateRootNotFound(probe)


# ---------------------------------------------------------------------------
# Conditional file exclusion
# ---------------------------------------------------------------------------

_CONFIG_FILE_RE = re.compile(
    r"(\.(config|rc)\.(js|mjs|cjs|ts)\.j2$"
    r"|^(tailwind|postcss|vite|vitest|eslint|prettier)\.config\.(js|mjs|cjs|ts)\.j2$)"
)
_ESLINT_PREFIXES = ("_eslintrc", "_eslintignore", "eslint.config.")
_PRETTIER_PREFIXES = ("_prettierrc", "_prettierignore", "prettier.config.")
_TSCONFIG_NAMES = {
    "tsconfig.json.j2",
    "tsconfig.app.json.j2",
    "tsconfig.node.json.j2",
    "env.d.ts.j2",
}
_TAILWIND_PREFIXES = ("tailwind.config.", "postcss.config.")


def _exclusion_reason(name: str, siblings: set[str], config: ProjectConfig) -> Optional[str]:
    """Return why template file *name* should not be copied, or ``None``.

    *siblings* are the other file names in the same template directory; they
    decide between JS and TS flavours of the same config file.
    """
    if name in ("_gitignore", "_gitignore.j2") and not config.has_feature(FeatureFlag.GITIGNORE):
        return "gitignore disabled"
    if name.startswith(_ESLINT_PREFIXES) and not config.has_feature(FeatureFlag.ESLINT):
        return "eslint disabled"
    if name.startswith(_PRETTIER_PREFIXES) and not config.has_feature(FeatureFlag.PRETTIER):
        return "prettier disabled"

    is_config = bool(_CONFIG_FILE_RE.search(name))

    if not config.typescript:
        if name in _TSCONFIG_NAMES or name.endswith((".ts.j2", ".tsx.j2")):
            return "typescript disabled"
        # .mjs config only when there is no .js flavour
        if is_config and name.endswith(".mjs.j2"):
            if re.sub(r"\.mjs\.j2$", ".js.j2", name) in siblings:
                return "js config preferred"
    else:
        if is_config and name.endswith((".js.j2", ".mjs.j2")):
            if re.sub(r"\.m?js\.j2$", ".ts.j2", name) in siblings:
                return "ts config preferred"
        elif not is_config and name.endswith((".js.j2", ".jsx.j2")):
            return "typescript enabled"

    if name.endswith((".scss.j2", ".scss")) and config.styling != "scss":
        return "scss not selected"
    if name.startswith(_TAILWIND_PREFIXES) and config.styling != "tailwind":
        return "tailwind not selected"
    return None


def _destination_name(name: str) -> str:
    """Map a template file name to the generated file name.

    Drops the ``.j2`` suffix and turns a single leading underscore into a
    dot (``_gitignore`` -> ``.gitignore``); dunder names are left alone.
    """
    if name.endswith(TEMPLATE_SUFFIX):
        name = name[: -len(TEMPLATE_SUFFIX)]
    return re.sub(r"^_(?!_)", ".", name)


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """Renders and copies template namespaces into a project directory.

    Templates are Jinja2 files ending in ``.j2``.  They can ``{% include %}``
    shared fragments by path relative to the root (e.g. ``common/...``).
    """

    def __init__(self, root: str | Path, *, preserve_existing: bool = False) -> None:
        self.root = Path(root)
        # When set, existing files are kept even if a caller passes overwrite=True.
        self.preserve_existing = preserve_existing
        self.env = Environment(
            loader=FileSystemLoader(str(self.root)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter

    # -- Discovery ---------------------------------------------------------

    def namespace_path(self, namespace: str) -> Path:
        return self.root / namespace

    def has_template(self, template: str | Path) -> bool:
        return self._resolve(template).is_file()

    def list_available(self, namespace: str) -> list[str]:
        """Return the sorted names of the immediate subdirectories of *namespace*.

        A missing namespace yields an empty list, so callers can gate optional
        copies (``"src" in engine.list_available(...)``) without try/except.
        """
        path = self.namespace_path(namespace)
        if not path.is_dir():
            return []
        return sorted(entry.name for entry in path.iterdir() if entry.is_dir())

    # -- String rendering --------------------------------------------------

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with *context*."""
        return self.env.from_string(template_string).render(**context)

    def render_template(self, template: str | Path, context: dict[str, Any]) -> str:
        """Render a template file and return the result without writing it."""
        path = self._resolve(template)
        if not path.is_file():
            raise TemplateNotFound(str(template), path)
        return self._render_text(path.read_text(encoding="utf-8"), context, path)

    # -- File rendering (async) --------------------------------------------

    async def render_file(
        self,
        template: str | Path,
        output_path: str | Path,
        config: ProjectConfig,
        *,
        overwrite: bool = False,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> ManifestEntry:
        """Render one template to *output_path*, honouring *overwrite*."""
        source = self._resolve(template)
        if not source.is_file():
            raise TemplateNotFound(str(template), source)

        out = Path(output_path)
        overwrite = overwrite and not self.preserve_existing
        if out.exists() and not overwrite:
            print_verbose(f"Skipping existing file: {out}")
            return ManifestEntry(out, source, FileStatus.SKIPPED)

        status = FileStatus.OVERWRITTEN if out.exists() else FileStatus.WRITTEN
        content = self._render_text(
            source.read_text(encoding="utf-8"), self._context(config, extra_context), source
        )
        if not content.strip():
            return ManifestEntry(out, source, FileStatus.EMPTY)

        try:
            await asyncio.to_thread(_write_text, out, content)
        except OSError as exc:
            raise TemplateWriteFailed(out, exc) from exc
        print_verbose(f"Generated: {out}")
        return ManifestEntry(out, source, status)

    async def render_variant(
        self,
        template: str,
        output_path: str | Path,
        config: ProjectConfig,
        variants: dict[str, str],
        *,
        overwrite: bool = False,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> ManifestEntry:
        """Render the best matching variant of *template*.

        For each ``key: suffix`` pair in *variants*, when the context value of
        ``key`` equals ``suffix`` and ``<stem>-<suffix><ext>`` exists next to
        *template*, that file is used instead.  The first match wins.
        """
        context = self._context(config, extra_context)
        base = Path(template)
        name = base.name
        stem, _, ext = name.partition(".")
        selected: str | Path = template
        for key, suffix in variants.items():
            if context.get(key) == suffix:
                candidate = base.with_name(f"{stem}-{suffix}.{ext}")
                if self.has_template(candidate):
                    selected = candidate
                    break
        return await self.render_file(
            selected, output_path, config, overwrite=overwrite, extra_context=extra_context
        )

    async def copy_directory(
        self,
        namespace: str,
        destination: str | Path,
        config: ProjectConfig,
        *,
        overwrite: bool = False,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> TemplateManifest:
        """Copy every file under *namespace* into *destination*.

        Relative paths are preserved.  ``.j2`` files are rendered (suffix
        dropped), other files are copied byte-for-byte.  Existing files are
        left untouched and reported as skipped unless *overwrite* is set.

        All writes are issued concurrently and awaited together; if any of
        them fails the first failure is raised as :class:`TemplateWriteFailed`
        once the others have finished.  Files already written stay on disk.
        """
        source_dir = self.namespace_path(namespace)
        if not source_dir.is_dir():
            raise TemplateNamespaceNotFound(namespace, source_dir)

        dest_dir = Path(destination)
        overwrite = overwrite and not self.preserve_existing
        context = self._context(config, extra_context)
        manifest = TemplateManifest(namespace=namespace, destination=dest_dir)
        pending: list[tuple[ManifestEntry, Optional[str]]] = []

        for source in _iter_template_files(source_dir):
            rel = source.relative_to(source_dir)
            siblings = {p.name for p in source.parent.iterdir() if p.is_file()}
            target = dest_dir / rel.parent / _destination_name(source.name)

            reason = _exclusion_reason(source.name, siblings, config)
            if reason is not None:
                print_verbose(f"Excluded {namespace}/{rel.as_posix()} ({reason})")
                manifest.entries.append(ManifestEntry(target, source, FileStatus.EXCLUDED))
                continue

            if target.exists() and not overwrite:
                print_verbose(f"Skipping existing file: {target}")
                manifest.entries.append(ManifestEntry(target, source, FileStatus.SKIPPED))
                continue

            status = FileStatus.OVERWRITTEN if target.exists() else FileStatus.WRITTEN
            content: Optional[str] = None
            if source.name.endswith(TEMPLATE_SUFFIX):
                text = _read_text_or_none(source)
                if text is not None:
                    content = self._render_text(text, context, source)
                    if not content.strip():
                        manifest.entries.append(ManifestEntry(target, source, FileStatus.EMPTY))
                        continue
            pending.append((ManifestEntry(target, source, status), content))

        results = await asyncio.gather(
            *(asyncio.to_thread(_write_entry, entry, content) for entry, content in pending),
            return_exceptions=True,
        )
        for (entry, _), result in zip(pending, results):
            if isinstance(result, OSError):
                raise TemplateWriteFailed(entry.path, result) from result
            if isinstance(result, BaseException):
                raise result
            manifest.entries.append(entry)

        manifest.entries.sort(key=lambda e: e.path.as_posix())
        print_verbose(
            f"{namespace}: {len(manifest.written)} written, "
            f"{len(manifest.skipped)} skipped -> {dest_dir}"
        )
        return manifest

    async def copy_conditional(
        self,
        templates: Sequence[ConditionalTemplate],
        project_dir: str | Path,
        config: ProjectConfig,
        *,
        overwrite: bool = False,
    ) -> list[TemplateManifest]:
        """Copy each namespace in *templates* whose condition holds, in order."""
        manifests: list[TemplateManifest] = []
        for template in templates:
            if not template.applies(config):
                continue
            dest = Path(project_dir) / template.dest if template.dest else Path(project_dir)
            manifests.append(
                await self.copy_directory(template.namespace, dest, config, overwrite=overwrite)
            )
        return manifests

    # -- Internals ---------------------------------------------------------

    def _resolve(self, template: str | Path) -> Path:
        path = Path(template)
        return path if path.is_absolute() else self.root / path

    @staticmethod
    def _context(
        config: ProjectConfig, extra_context: Optional[dict[str, Any]]
    ) -> dict[str, Any]:
        context = config.template_context()
        if extra_context:
            context.update(extra_context)
        return context

    def _render_text(self, text: str, context: dict[str, Any], source: Path) -> str:
        try:
            return self.env.from_string(text).render(**context)
        except JinjaTemplateError as exc:
            raise TemplateRenderFailed(source, exc) from exc


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _iter_template_files(template_dir: Path) -> list[Path]:
    """All files under *template_dir* in relative-path order."""
    files = [p for p in template_dir.rglob("*") if p.is_file()]
    files.sort(key=lambda p: p.relative_to(template_dir).as_posix())
    return files


def _read_text_or_none(path: Path) -> Optional[str]:
    """Read *path* as UTF-8, or return ``None`` for binary content."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return None


def _write_text(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="\n")


def _write_entry(entry: ManifestEntry, content: Optional[str]) -> None:
    if content is None:
        entry.path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(entry.source, entry.path)
    else:
        _write_text(entry.path, content)
