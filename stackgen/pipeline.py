"""stackgen generation pipeline.

Runs a stack selection through five generation stages, in order:

Stage 1: BASE       -- workspace / minimal skeleton and the frontend framework.
Stage 2: BACKEND    -- the backend runtime.
Stage 3: DATA LAYER -- database, then ORM.
Stage 4: AUTH       -- auth provider.
Stage 5: FEATURES   -- add-ons (gitignore, eslint, prettier, docker) and
                       deployment config.

Each stage finishes all of its writes before the next one starts, because
later generators extend files written by earlier ones.  A failure stops the
run; files already written are left in place.

``stackgen add`` reads a generated project's ``stackgen.json`` back, merges in
a new auth provider or feature add-ons and runs only those generators, never
replacing a file that already exists.

Usage::

    stackgen my-app --framework react --backend express --database postgres --orm drizzle
    stackgen my-app --config stack.yaml --output ./projects
    stackgen add ./projects/my-app --auth clerk --feature docker
    stackgen --list
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn, Optional

import yaml
from rich.panel import Panel
from rich.table import Table

from stackgen.config import Settings
from stackgen.scaffolder.base import (
    Axis,
    DependencySet,
    Generator,
    HasNextSteps,
)
from stackgen.scaffolder.features import generate_deployment
from stackgen.scaffolder.frameworks import generate_base
from stackgen.scaffolder.registry import Registry, default_registry
from stackgen.scaffolder.templates import (
    TemplateEngine,
    TemplateManifest,
    TemplateRootNotFound,
    resolve_root,
)
from stackgen.stack.models import FeatureFlag, ProjectConfig, ValidatedConfig
from stackgen.stack.options import (
    DEPLOYMENT_OPTIONS,
    NONE,
    PACKAGE_MANAGERS,
    STYLING_OPTIONS,
    StackOption,
)
from stackgen.stack.validator import ConfigError, validate
from stackgen.utils import (
    STAGE_NAMES,
    console,
    format_duration,
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
# Stages and errors
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    """Progress of a single generation run."""

    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    BASE_GENERATED = "base_generated"
    BACKEND_GENERATED = "backend_generated"
    DATA_LAYER_GENERATED = "data_layer_generated"
    AUTH_GENERATED = "auth_generated"
    FEATURES_GENERATED = "features_generated"
    COMPLETE = "complete"
    FAILED = "failed"


class GenerationError(Exception):
    """Raised when a run fails.

    ``stage`` is the last stage the run reached before the failure; the
    original exception is kept as ``cause`` (and ``__cause__``).
    """

    def __init__(self, stage: Stage, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Generation failed after {stage.value}: {cause}")


_STAGE_AFTER: dict[int, Stage] = {
    1: Stage.BASE_GENERATED,
    2: Stage.BACKEND_GENERATED,
    3: Stage.DATA_LAYER_GENERATED,
    4: Stage.AUTH_GENERATED,
    5: Stage.FEATURES_GENERATED,
}


@dataclass
class GenerationResult:
    """Everything a finished run produced."""

    config: ValidatedConfig
    project_path: Path
    stage: Stage = Stage.COMPLETE
    manifests: list[TemplateManifest] = field(default_factory=list)
    dependencies: DependencySet = field(default_factory=DependencySet)
    env_files: list[Path] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def written(self) -> list[Path]:
        return [path for manifest in self.manifests for path in manifest.written]

    @property
    def skipped(self) -> list[Path]:
        return [path for manifest in self.manifests for path in manifest.skipped]

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.config.warnings


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Validates a stack selection and drives the generators in order.

    Attributes:
        settings: Tool settings (output directory, template root, overwrite).
        registry: Generator table used for validation and dispatch.
        stage: Where the current (or last) run got to.
    """

    def __init__(self, settings: Optional[Settings] = None, registry: Optional[Registry] = None) -> None:
        self.settings = settings or Settings()
        self.registry = registry or default_registry()
        self.stage = Stage.UNVALIDATED

    def select(self, config: ValidatedConfig) -> dict[int, list[Generator]]:
        """Generators per stage number, in the order they run."""
        registry = self.registry

        def pick(axis: Axis, value: str) -> list[Generator]:
            return [registry.lookup(axis, value)] if value != "none" else []

        features = [
            generator
            for feature_id, generator in registry.features.items()
            if config.has_feature(feature_id)
        ]
        return {
            1: pick(Axis.FRAMEWORK, config.framework),
            2: pick(Axis.BACKEND, config.backend),
            3: pick(Axis.DATABASE, config.database) + pick(Axis.ORM, config.orm),
            4: pick(Axis.AUTH, config.auth),
            5: features,
        }

    async def run(self, config: ProjectConfig) -> GenerationResult:
        """Generate the project described by *config*.

        Raises:
            GenerationError: wrapping the validation, filesystem or template
                failure that stopped the run.
        """
        start = time.monotonic()
        self.stage = Stage.UNVALIDATED

        try:
            validated = validate(config, self.registry)
        except ConfigError as exc:
            self._fail(exc)
        self.stage = Stage.VALIDATED
        for warning in validated.warnings:
            print_warning(f"Warning: {warning}")

        project_path = self.settings.project_path(validated.name)
        if project_path.exists() and not self.settings.overwrite:
            self._fail(
                FileExistsError(
                    f"{project_path} already exists (use --overwrite to generate into it)"
                )
            )

        engine = TemplateEngine(self._template_root())
        result = GenerationResult(config=validated, project_path=project_path)
        done = await self._generate(self.select(validated), validated, project_path, engine, result)
        await self._finish(result, done, start)
        print_success(f"Project {validated.name} created at {project_path}")
        return result

    async def add(
        self,
        project_path: Path,
        *,
        auth: Optional[str] = None,
        features: Sequence[str] = (),
    ) -> GenerationResult:
        """Add an auth provider or feature add-ons to an existing project.

        The project's stack is read back from its ``stackgen.json`` and merged
        with the new selection, and the result is validated again.  Only the
        generators for what was added run, and no existing file is replaced:
        edits made since the project was generated are kept.

        Raises:
            GenerationError: as for :meth:`run`; a project without a stack
                record, or one that already uses a different auth provider,
                fails before anything is written.
        """
        start = time.monotonic()
        self.stage = Stage.UNVALIDATED
        project_path = Path(project_path).resolve()

        try:
            existing = ProjectConfig.load(project_path / self.settings.config_file)
        except (OSError, ValueError) as exc:
            self._fail(exc)
        if auth and existing.auth not in (NONE, auth):
            self._fail(
                ValueError(f"{existing.name} already uses auth provider {existing.auth!r}")
            )

        merged = existing.model_copy(
            update={
                "auth": auth or existing.auth,
                "features": existing.features | frozenset(features),
            }
        )
        try:
            validated = validate(merged, self.registry)
        except ConfigError as exc:
            self._fail(exc)
        self.stage = Stage.VALIDATED
        for warning in validated.warnings:
            print_warning(f"Warning: {warning}")

        plan = self.select(validated)
        added = {
            4: [g for g in plan[4] if g.id != existing.auth],
            5: [g for g in plan[5] if g.id not in existing.features],
        }
        # Generators already in the project still inform the new ones.
        present = [
            generator
            for step in (1, 2, 3, 4)
            for generator in plan[step]
            if generator not in added.get(step, [])
        ]

        engine = TemplateEngine(self._template_root(), preserve_existing=True)
        result = GenerationResult(config=validated, project_path=project_path)
        if not any(added.values()):
            print_info(f"Nothing to add: {existing.name} already has this selection")
        done = await self._generate(
            added, validated, project_path, engine, result, peers=present, deployment=False
        )
        await self._finish(result, done, start)
        print_success(f"Updated {validated.name} at {project_path}")
        return result

    def _template_root(self) -> Path:
        try:
            root = self.settings.templates_dir or resolve_root()
        except TemplateRootNotFound as exc:
            self._fail(exc)
        print_verbose(f"Template root: {root}")
        return root

    async def _generate(
        self,
        plan: dict[int, list[Generator]],
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        result: GenerationResult,
        *,
        peers: Sequence[Generator] = (),
        deployment: bool = True,
    ) -> list[Generator]:
        """Run *plan* stage by stage; return the generators that ran."""
        done: list[Generator] = []
        for step, generators in plan.items():
            print_stage_header(step, STAGE_NAMES[step])
            try:
                if step == 1:
                    framework = self.registry.frameworks.get(config.framework)
                    result.manifests.extend(
                        await generate_base(config, project_path, engine, framework)
                    )
                    done.extend(generators)
                else:
                    for generator in generators:
                        print_info(generator.name)
                        result.manifests.extend(
                            await generator.setup(
                                config, project_path, engine, (*peers, *done)
                            )
                        )
                        done.append(generator)
                for generator in generators:
                    result.env_files.extend(
                        await generator.setup_environment(config, project_path)
                    )
                if step == 5 and deployment:
                    result.manifests.extend(
                        await generate_deployment(config, project_path, engine)
                    )
            except Exception as exc:
                self._fail(exc)
            self.stage = _STAGE_AFTER[step]
        return done

    async def _finish(
        self, result: GenerationResult, generators: list[Generator], start: float
    ) -> None:
        """Collect dependencies and next steps, then record the stack."""
        config = result.config
        for generator in generators:
            result.dependencies = result.dependencies | generator.install_dependencies(
                config, result.project_path
            )
            steps = generator.next_steps()
            if isinstance(steps, HasNextSteps):
                result.next_steps.extend(steps.steps(config))

        try:
            await save_json(config.to_record(), result.project_path / self.settings.config_file)
        except OSError as exc:
            self._fail(exc)

        self.stage = Stage.COMPLETE
        result.stage = self.stage
        result.duration = time.monotonic() - start
        self._print_summary(result)

    def _fail(self, exc: BaseException) -> NoReturn:
        reached = self.stage
        self.stage = Stage.FAILED
        raise GenerationError(reached, exc) from exc

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _print_summary(self, result: GenerationResult) -> None:
        config = result.config
        stack = ", ".join(
            f"{axis}={getattr(config, axis)}"
            for axis in ("framework", "backend", "database", "orm", "auth")
            if getattr(config, axis) != "none"
        )
        print_summary_table(
            {
                "Project": str(result.project_path),
                "Stack": stack or "minimal",
                "Language": "TypeScript" if config.typescript else "JavaScript",
                "Features": ", ".join(sorted(config.features)) or "none",
                "Files written": str(len(result.written)),
                "Files skipped": str(len(result.skipped)),
                "Duration": format_duration(result.duration),
            },
            title="Generation Summary",
        )

        lines = result.dependencies.install_commands(config.package_manager)
        lines.extend(result.next_steps)
        if lines:
            console.print(
                Panel(
                    "\n".join(f"  {line}" for line in lines),
                    title="[bold]Next steps[/bold]",
                    border_style="bright_cyan",
                )
            )


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------


def load_stack_file(path: Path) -> dict[str, Any]:
    """Read a YAML (or JSON) stack selection file."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def build_config(args: Any) -> ProjectConfig:
    """Merge a stack file (if any) with command-line overrides."""
    data: dict[str, Any] = load_stack_file(Path(args.config)) if args.config else {}
    if args.name:
        data["name"] = args.name
    for axis in ("framework", "backend", "database", "orm", "auth", "styling", "deployment"):
        value = getattr(args, axis)
        if value is not None:
            data[axis] = value
    if args.package_manager is not None:
        data["package_manager"] = args.package_manager
    if args.no_typescript:
        data["typescript"] = False

    requested = data.get("features", [FeatureFlag.GITIGNORE.value])
    if isinstance(requested, str):
        requested = [requested]
    features = set(requested or [])
    features.update(args.feature or [])
    if args.no_gitignore:
        features.discard(FeatureFlag.GITIGNORE.value)
    data["features"] = sorted(features)
    return ProjectConfig.from_mapping(data)


def print_options(registry: Registry) -> None:
    """Print every selectable value, one table per axis."""
    for axis in Axis:
        table = Table(title=axis.value.title(), show_header=True, header_style="bold cyan")
        table.add_column("Id", no_wrap=True)
        table.add_column("Name")
        for generator_id, generator in registry.for_axis(axis).items():
            table.add_row(generator_id, generator.name)
        console.print(table)

    option_tables: tuple[tuple[str, tuple[StackOption, ...]], ...] = (
        ("Styling", STYLING_OPTIONS),
        ("Deployment", DEPLOYMENT_OPTIONS),
        ("Package manager", PACKAGE_MANAGERS),
    )
    for title, options in option_tables:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Id", no_wrap=True)
        table.add_column("Name")
        table.add_column("Description", style="dim")
        for option in options:
            table.add_row(option.id, option.name, option.description)
        console.print(table)


def _settings_from_args(args: Any) -> Settings:
    settings = Settings.from_env()
    updates: dict[str, Any] = {}
    if getattr(args, "output", None):
        updates["output_dir"] = Path(args.output)
    if args.templates_dir:
        updates["templates_dir"] = Path(args.templates_dir)
    if getattr(args, "overwrite", False):
        updates["overwrite"] = True
    if args.verbose:
        updates["verbose"] = True
    settings = settings.model_copy(update=updates)
    set_verbose(settings.verbose)
    return settings


def add_main(argv: list[str]) -> None:
    """``stackgen add``: extend a project generated earlier."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="stackgen add",
        description="Add an auth provider or feature add-ons to an existing project. "
        "Files already in the project are never replaced.",
    )
    parser.add_argument("path", help="Project directory (contains stackgen.json)")
    parser.add_argument("--auth", help="Auth provider id")
    parser.add_argument(
        "--feature",
        action="append",
        choices=[flag.value for flag in FeatureFlag],
        help="Feature add-on to enable (repeatable)",
    )
    parser.add_argument("--templates-dir", default=None, help="Use this template root")
    parser.add_argument("--verbose", "-v", action="store_true", help="Per-file output")

    args = parser.parse_args(argv)
    if not args.auth and not args.feature:
        parser.error("nothing to add (use --auth and/or --feature)")

    pipeline = Pipeline(_settings_from_args(args))
    try:
        asyncio.run(pipeline.add(Path(args.path), auth=args.auth, features=args.feature or ()))
    except GenerationError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for the ``stackgen`` command."""
    import argparse

    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] == "add":
        add_main(argv[1:])
        return

    parser = argparse.ArgumentParser(
        prog="stackgen",
        description="stackgen -- validate a web stack and scaffold the project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackgen my-app --framework react --backend express\n"
            "  stackgen my-app --framework next --backend next-api --database postgres --orm prisma\n"
            "  stackgen my-app --config stack.yaml -o ./projects\n"
            "  stackgen add ./projects/my-app --auth better-auth --feature docker\n"
            "  stackgen --list\n"
        ),
    )

    parser.add_argument("name", nargs="?", help="Project name (also the directory name)")
    parser.add_argument("--framework", help="Frontend framework id")
    parser.add_argument("--backend", help="Backend id")
    parser.add_argument("--database", help="Database id")
    parser.add_argument("--orm", help="ORM id")
    parser.add_argument("--auth", help="Auth provider id")
    parser.add_argument("--styling", help="Styling id (default: css)")
    parser.add_argument("--deployment", help="Deployment target id")
    parser.add_argument("--package-manager", help="npm, pnpm, yarn or bun (default: npm)")
    parser.add_argument(
        "--feature",
        action="append",
        choices=[flag.value for flag in FeatureFlag],
        help="Enable a feature add-on (repeatable)",
    )
    parser.add_argument("--no-gitignore", action="store_true", help="Do not write .gitignore")
    parser.add_argument("--no-typescript", action="store_true", help="Generate JavaScript")
    parser.add_argument("--config", "-c", default=None, help="YAML or JSON stack file")
    parser.add_argument("--output", "-o", default=None, help="Parent directory for the project")
    parser.add_argument("--templates-dir", default=None, help="Use this template root")
    parser.add_argument(
        "--overwrite", action="store_true", help="Generate into an existing directory"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Per-file output")
    parser.add_argument("--list", action="store_true", help="List available options and exit")

    args = parser.parse_args(argv)
    settings = _settings_from_args(args)

    if args.list:
        print_options(default_registry())
        return

    if not args.name and not args.config:
        parser.error("a project name (or --config with a name) is required")

    try:
        config = build_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(2)

    pipeline = Pipeline(settings)
    try:
        asyncio.run(pipeline.run(config))
    except GenerationError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
