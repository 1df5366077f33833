"""Shared generator contract.

Every stack axis value (a framework, backend, database, ORM, auth provider or
feature add-on) is served by one :class:`Generator`.  The pipeline only talks
to generators through this interface:

* ``setup`` writes files through the template engine and returns manifests.
* ``install_dependencies`` returns the packages the generated code needs;
  installing them is left to the caller.
* ``setup_environment`` writes ``.env`` entries (no-op by default).
* ``docker`` and ``next_steps`` are optional capabilities expressed as small
  sum types, so callers must look at the variant before using them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Union

from stackgen.stack.models import ProjectLayout, ValidatedConfig

from .templates import TemplateEngine, TemplateManifest


class Axis(str, Enum):
    """Stack dimensions, in generation order."""

    FRAMEWORK = "framework"
    BACKEND = "backend"
    DATABASE = "database"
    ORM = "orm"
    AUTH = "auth"
    FEATURE = "feature"


# ---------------------------------------------------------------------------
# Dependency sets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencySet:
    """Packages a generator needs, split into runtime and dev dependencies."""

    packages: tuple[str, ...] = ()
    dev_packages: tuple[str, ...] = ()

    def __or__(self, other: "DependencySet") -> "DependencySet":
        return DependencySet(
            packages=_merge(self.packages, other.packages),
            dev_packages=_merge(self.dev_packages, other.dev_packages),
        )

    def __bool__(self) -> bool:
        return bool(self.packages or self.dev_packages)

    def install_commands(self, package_manager: str) -> list[str]:
        """Shell commands a user would run to install this set."""
        add = "install" if package_manager == "npm" else "add"
        dev_flag = "--save-dev" if package_manager == "npm" else "-D"
        commands: list[str] = []
        if self.packages:
            commands.append(f"{package_manager} {add} {' '.join(self.packages)}")
        if self.dev_packages:
            commands.append(f"{package_manager} {add} {dev_flag} {' '.join(self.dev_packages)}")
        return commands


def _merge(left: tuple[str, ...], right: tuple[str, ...]) -> tuple[str, ...]:
    seen = dict.fromkeys(left)
    seen.update(dict.fromkeys(right))
    return tuple(seen)


# ---------------------------------------------------------------------------
# Optional capabilities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DockerService:
    """One service block for ``docker-compose.yml``."""

    name: str
    image: str
    ports: tuple[str, ...] = ()
    environment: dict[str, str] = field(default_factory=dict)
    volumes: tuple[str, ...] = ()
    app_environment: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HasDocker:
    """The generator contributes services to the Docker setup."""

    services: Callable[[ValidatedConfig], list[DockerService]]


@dataclass(frozen=True)
class NoDocker:
    pass


@dataclass(frozen=True)
class HasNextSteps:
    """The generator has follow-up instructions for the user."""

    steps: Callable[[ValidatedConfig], list[str]]


@dataclass(frozen=True)
class NoNextSteps:
    pass


DockerSupport = Union[HasDocker, NoDocker]
NextStepsSupport = Union[HasNextSteps, NoNextSteps]


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class Generator(ABC):
    """Base class for every axis generator."""

    id: ClassVar[str]
    name: ClassVar[str]
    axis: ClassVar[Axis]

    @abstractmethod
    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        """Write this generator's files into *project_path*.

        *peers* are the generators selected for the same project, in
        generation order; most generators ignore them.
        """

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        return DependencySet()

    async def setup_environment(self, config: ValidatedConfig, project_path: Path) -> list[Path]:
        return []

    def docker(self) -> DockerSupport:
        return NoDocker()

    def next_steps(self) -> NextStepsSupport:
        return NoNextSteps()

    def layout(self, config: ValidatedConfig, project_path: Path) -> ProjectLayout:
        return ProjectLayout.for_config(config, project_path)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.axis.value}={self.id}>"


async def copy_base_and_src(
    engine: TemplateEngine,
    prefix: str,
    config: ValidatedConfig,
    target: Path,
    *,
    src_dest: str = "src",
    overwrite: bool = True,
    extra_context: dict[str, Any] | None = None,
) -> list[TemplateManifest]:
    """Copy ``<prefix>/base`` into *target*, then ``<prefix>/src`` if present.

    The ``src`` copy is gated on :meth:`TemplateEngine.list_available`, so a
    namespace that ships only ``base`` is not an error.
    """
    manifests = [
        await engine.copy_directory(
            f"{prefix}/base", target, config, overwrite=overwrite, extra_context=extra_context
        )
    ]
    if "src" in engine.list_available(prefix):
        manifests.append(
            await engine.copy_directory(
                f"{prefix}/src",
                target / src_dest,
                config,
                overwrite=overwrite,
                extra_context=extra_context,
            )
        )
    return manifests
