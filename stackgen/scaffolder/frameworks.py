"""Frontend and full-stack framework generators.

Each framework copies ``frameworks/<id>/base`` into the web directory and,
when the namespace ships one, ``frameworks/<id>/src`` into ``<web>/src``.
:func:`generate_base` is the first pipeline stage: it lays down the monorepo
workspace (or the minimal project) and then runs the framework generator.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar, Optional

from stackgen.stack.models import ProjectLayout, ValidatedConfig

from .base import (
    Axis,
    DependencySet,
    Generator,
    HasNextSteps,
    NextStepsSupport,
    copy_base_and_src,
)
from .templates import TemplateEngine, TemplateManifest

# Extra packages pulled in by the styling choice.
STYLING_DEPENDENCIES: dict[str, DependencySet] = {
    "scss": DependencySet(dev_packages=("sass",)),
    "tailwind": DependencySet(dev_packages=("tailwindcss", "postcss", "autoprefixer")),
    "styled-components": DependencySet(packages=("styled-components",)),
}


class FrameworkGenerator(Generator):
    """Copies a framework namespace into the web app directory."""

    axis: ClassVar[Axis] = Axis.FRAMEWORK
    packages: ClassVar[tuple[str, ...]] = ()
    dev_packages: ClassVar[tuple[str, ...]] = ()
    ts_dev_packages: ClassVar[tuple[str, ...]] = ("typescript",)
    requires_typescript: ClassVar[bool] = False
    dev_command: ClassVar[str] = "dev"

    @property
    def template_prefix(self) -> str:
        return f"frameworks/{self.id}"

    def web_dir(self, config: ValidatedConfig, project_path: Path) -> Path:
        layout = self.layout(config, project_path)
        return layout.web_dir if layout.web_dir is not None else project_path

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        return await copy_base_and_src(
            engine, self.template_prefix, config, self.web_dir(config, project_path)
        )

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        deps = DependencySet(self.packages, self.dev_packages)
        if config.typescript:
            deps = deps | DependencySet(dev_packages=self.ts_dev_packages)
        return deps | STYLING_DEPENDENCIES.get(config.styling, DependencySet())

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(self._steps)

    def _steps(self, config: ValidatedConfig) -> list[str]:
        pm = config.package_manager
        run = "npm run" if pm == "npm" else pm
        return [f"cd {config.name}", f"{pm} install", f"{run} {self.dev_command}"]


class ReactGenerator(FrameworkGenerator):
    id = "react"
    name = "React"
    packages = ("react", "react-dom")
    dev_packages = ("vite", "@vitejs/plugin-react")
    ts_dev_packages = ("typescript", "@types/react", "@types/react-dom")


class VueGenerator(FrameworkGenerator):
    id = "vue"
    name = "Vue"
    packages = ("vue",)
    dev_packages = ("vite", "@vitejs/plugin-vue")
    ts_dev_packages = ("typescript", "vue-tsc")


class SvelteGenerator(FrameworkGenerator):
    id = "svelte"
    name = "Svelte"
    packages = ("svelte",)
    dev_packages = ("vite", "@sveltejs/vite-plugin-svelte")
    ts_dev_packages = ("typescript", "svelte-check")


class NextGenerator(FrameworkGenerator):
    id = "next"
    name = "Next.js"
    packages = ("next", "react", "react-dom")
    ts_dev_packages = ("typescript", "@types/node", "@types/react", "@types/react-dom")


class NuxtGenerator(FrameworkGenerator):
    id = "nuxt"
    name = "Nuxt"
    packages = ("nuxt", "vue")
    ts_dev_packages = ("typescript", "vue-tsc")


class ViteGenerator(FrameworkGenerator):
    id = "vite"
    name = "Vite (vanilla)"
    dev_packages = ("vite",)


class TanStackStartGenerator(FrameworkGenerator):
    id = "tanstack-start"
    name = "TanStack Start"
    packages = ("@tanstack/react-start", "@tanstack/react-router", "react", "react-dom")
    dev_packages = ("vite", "@vitejs/plugin-react")
    ts_dev_packages = ("typescript", "@types/react", "@types/react-dom")
    requires_typescript = True


class ReactNativeGenerator(FrameworkGenerator):
    id = "react-native"
    name = "React Native (Expo)"
    packages = ("expo", "react", "react-native")
    ts_dev_packages = ("typescript", "@types/react")
    dev_command = "start"


class AstroGenerator(FrameworkGenerator):
    id = "astro"
    name = "Astro"
    packages = ("astro",)
    ts_dev_packages = ("typescript", "@astrojs/check")


FRAMEWORK_GENERATORS: tuple[FrameworkGenerator, ...] = (
    ReactGenerator(),
    VueGenerator(),
    SvelteGenerator(),
    NextGenerator(),
    NuxtGenerator(),
    ViteGenerator(),
    TanStackStartGenerator(),
    ReactNativeGenerator(),
    AstroGenerator(),
)


# ---------------------------------------------------------------------------
# Base stage
# ---------------------------------------------------------------------------


async def generate_base(
    config: ValidatedConfig,
    project_path: Path,
    engine: TemplateEngine,
    framework: Optional[FrameworkGenerator],
) -> list[TemplateManifest]:
    """Lay down the project skeleton.

    * no framework and no backend: the ``minimal`` namespace.
    * monorepo: ``workspace`` at the root, the framework into ``apps/web``
      and ``shared/base`` (plus ``shared/src`` when present) into
      ``packages/shared``.
    * otherwise just the framework at the root, if there is one.
    """
    layout = ProjectLayout.for_config(config, project_path)
    manifests: list[TemplateManifest] = []

    if layout.is_minimal:
        manifests.append(
            await engine.copy_directory("minimal", project_path, config, overwrite=True)
        )
        return manifests

    if layout.is_monorepo:
        manifests.append(
            await engine.copy_directory("workspace", project_path, config, overwrite=True)
        )

    if framework is not None:
        manifests.extend(await framework.setup(config, project_path, engine))

    if layout.shared_dir is not None:
        manifests.extend(await copy_base_and_src(engine, "shared", config, layout.shared_dir))

    return manifests
