"""Feature add-on generators and deployment config.

Add-ons run after the main stack and never replace files the stack already
wrote (``overwrite=False``): a framework's own ``.gitignore`` or ESLint
config wins over the generic one.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, ClassVar

from stackgen.stack.models import ProjectLayout, ValidatedConfig
from stackgen.stack.options import NONE

from .base import (
    Axis,
    DependencySet,
    DockerService,
    Generator,
    HasDocker,
    HasNextSteps,
    NextStepsSupport,
)
from .templates import TemplateEngine, TemplateManifest


class FeatureGenerator(Generator):
    """Copies ``features/<id>`` into the project root."""

    axis: ClassVar[Axis] = Axis.FEATURE

    @property
    def template_prefix(self) -> str:
        return f"features/{self.id}"

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        return [
            await engine.copy_directory(
                self.template_prefix, project_path, config, overwrite=False
            )
        ]


class GitignoreFeature(FeatureGenerator):
    id = "gitignore"
    name = "Git ignore rules"


class EslintFeature(FeatureGenerator):
    id = "eslint"
    name = "ESLint"

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        deps = DependencySet(dev_packages=("eslint", "@eslint/js", "globals"))
        if config.typescript:
            deps = deps | DependencySet(dev_packages=("typescript-eslint",))
        return deps

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(lambda config: ["npx eslint ."])


class PrettierFeature(FeatureGenerator):
    id = "prettier"
    name = "Prettier"

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        deps = DependencySet(dev_packages=("prettier",))
        if config.has_feature("eslint"):
            deps = deps | DependencySet(dev_packages=("eslint-config-prettier",))
        return deps


def collect_services(config: ValidatedConfig, peers: Sequence[Generator]) -> list[DockerService]:
    """Compose services offered by the peers' docker capability, in peer order."""
    services: list[DockerService] = []
    for peer in peers:
        support = peer.docker()
        if isinstance(support, HasDocker):
            services.extend(support.services(config))
    return services


class DockerFeature(FeatureGenerator):
    """``docker-compose.yml`` at the root plus a Dockerfile per app."""

    id = "docker"
    name = "Docker"

    def compose_context(
        self, config: ValidatedConfig, project_path: Path, peers: Sequence[Generator]
    ) -> dict[str, Any]:
        layout = self.layout(config, project_path)
        services = collect_services(config, peers)
        app_environment: dict[str, str] = {}
        for service in services:
            app_environment.update(service.app_environment)

        apps: list[dict[str, Any]] = []
        for kind, directory, port in (("web", layout.web_dir, 3000), ("api", layout.api_dir, 4000)):
            if directory is None:
                continue
            apps.append(
                {
                    "name": kind,
                    "context": directory.relative_to(project_path).as_posix(),
                    "port": port,
                    "environment": app_environment if directory == layout.data_dir else {},
                    "depends_on": [s.name for s in services] if directory == layout.data_dir else [],
                }
            )
        return {
            "services": [
                {
                    "name": s.name,
                    "image": s.image,
                    "ports": list(s.ports),
                    "environment": s.environment,
                    "volumes": list(s.volumes),
                }
                for s in services
            ],
            "named_volumes": sorted(
                {v.split(":", 1)[0] for s in services for v in s.volumes if not v.startswith((".", "/"))}
            ),
            "apps": apps,
        }

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        context = self.compose_context(config, project_path, peers)
        manifests = [
            await engine.copy_directory(
                f"{self.template_prefix}/root",
                project_path,
                config,
                overwrite=False,
                extra_context=context,
            )
        ]
        for app in context["apps"]:
            manifests.append(
                await engine.copy_directory(
                    f"{self.template_prefix}/app",
                    project_path / app["context"],
                    config,
                    overwrite=False,
                    extra_context={**context, "app": app},
                )
            )
        return manifests

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(lambda config: ["docker compose up --build"])


FEATURE_GENERATORS: tuple[FeatureGenerator, ...] = (
    GitignoreFeature(),
    EslintFeature(),
    PrettierFeature(),
    DockerFeature(),
)


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


async def generate_deployment(
    config: ValidatedConfig,
    project_path: Path,
    engine: TemplateEngine,
) -> list[TemplateManifest]:
    """Copy ``deployment/<id>`` next to the deployed app, if such a namespace exists."""
    if config.deployment == NONE or config.deployment not in engine.list_available("deployment"):
        return []
    target = ProjectLayout.for_config(config, project_path).data_dir
    return [
        await engine.copy_directory(
            f"deployment/{config.deployment}", target, config, overwrite=False
        )
    ]
