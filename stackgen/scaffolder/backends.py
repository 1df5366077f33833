"""Backend runtime generators.

Backends copy ``backends/<id>/base`` into the API directory and
``backends/<id>/src`` into ``<api>/src`` when present.  A backend lives in
``apps/api`` inside a monorepo, or at the project root when there is no
frontend.  ``next-api`` is served by the Next.js app itself and writes
nothing.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

from stackgen.stack.models import ValidatedConfig

from .base import (
    Axis,
    DependencySet,
    Generator,
    HasNextSteps,
    NextStepsSupport,
    copy_base_and_src,
)
from .templates import TemplateEngine, TemplateManifest

# Node hosts that run a long-lived server process.
SERVER_HOSTS: frozenset[str] = frozenset({"fly", "railway", "render"})


class BackendGenerator(Generator):
    """Copies a backend namespace into the API directory."""

    axis: ClassVar[Axis] = Axis.BACKEND
    packages: ClassVar[tuple[str, ...]] = ()
    dev_packages: ClassVar[tuple[str, ...]] = ()
    ts_dev_packages: ClassVar[tuple[str, ...]] = ("typescript", "tsx", "@types/node")
    supported_deployments: ClassVar[frozenset[str]] = SERVER_HOSTS
    requires_typescript: ClassVar[bool] = False
    supports_typescript: ClassVar[bool] = True
    allows_data_layer: ClassVar[bool] = True
    required_framework: ClassVar[str | None] = None
    src_dest: ClassVar[str] = "src"
    dev_command: ClassVar[str] = "npm run dev"

    @property
    def template_prefix(self) -> str:
        return f"backends/{self.id}"

    def api_dir(self, config: ValidatedConfig, project_path: Path) -> Path:
        layout = self.layout(config, project_path)
        return layout.api_dir if layout.api_dir is not None else project_path

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        return await copy_base_and_src(
            engine,
            self.template_prefix,
            config,
            self.api_dir(config, project_path),
            src_dest=self.src_dest,
        )

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        deps = DependencySet(self.packages, self.dev_packages)
        if config.typescript and self.supports_typescript:
            deps = deps | DependencySet(dev_packages=self.ts_dev_packages)
        return deps

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(self._steps)

    def _steps(self, config: ValidatedConfig) -> list[str]:
        where = "apps/api" if config.has_framework else "."
        return [f"Start the API from {where}: {self.dev_command}"]


class NodeGenerator(BackendGenerator):
    id = "node"
    name = "Node.js (http)"


class ExpressGenerator(BackendGenerator):
    id = "express"
    name = "Express"
    packages = ("express", "cors")
    ts_dev_packages = ("typescript", "tsx", "@types/node", "@types/express", "@types/cors")
    supported_deployments = SERVER_HOSTS | {"vercel"}


class FastifyGenerator(BackendGenerator):
    id = "fastify"
    name = "Fastify"
    packages = ("fastify", "@fastify/cors")


class HonoGenerator(BackendGenerator):
    id = "hono"
    name = "Hono"
    packages = ("hono", "@hono/node-server")
    supported_deployments = SERVER_HOSTS | {"vercel", "netlify", "cloudflare"}


class NestGenerator(BackendGenerator):
    id = "nestjs"
    name = "NestJS"
    packages = ("@nestjs/core", "@nestjs/common", "@nestjs/platform-express", "reflect-metadata", "rxjs")
    dev_packages = ("@nestjs/cli",)
    requires_typescript = True
    dev_command = "npm run start:dev"


class KoaGenerator(BackendGenerator):
    id = "koa"
    name = "Koa"
    packages = ("koa", "@koa/router", "@koa/cors")
    ts_dev_packages = ("typescript", "tsx", "@types/node", "@types/koa", "@types/koa__router")


class NextApiGenerator(BackendGenerator):
    """API routes inside the Next.js app; no files of its own."""

    id = "next-api"
    name = "Next.js API routes"
    supported_deployments = SERVER_HOSTS | {"vercel", "netlify"}
    required_framework = "next"

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        return []

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        return DependencySet()

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return ["API routes are served by the Next.js dev server"]


class CloudflareWorkersGenerator(BackendGenerator):
    id = "cloudflare-workers"
    name = "Cloudflare Workers"
    packages = ("hono",)
    dev_packages = ("wrangler",)
    ts_dev_packages = ("typescript", "@cloudflare/workers-types")
    supported_deployments = frozenset({"cloudflare"})
    dev_command = "npx wrangler dev"


class FastApiGenerator(BackendGenerator):
    """Python backend; dependencies are listed in its own requirements.txt."""

    id = "fastapi"
    name = "FastAPI"
    supports_typescript = False
    dev_command = "uvicorn app.main:app --reload"


class ConvexGenerator(BackendGenerator):
    """Hosted backend; functions live under ``convex/`` and it owns storage."""

    id = "convex"
    name = "Convex"
    packages = ("convex",)
    ts_dev_packages = ()
    supported_deployments = frozenset({"vercel", "netlify"})
    requires_typescript = True
    allows_data_layer = False
    src_dest = "convex"
    dev_command = "npx convex dev"


BACKEND_GENERATORS: tuple[BackendGenerator, ...] = (
    NodeGenerator(),
    ExpressGenerator(),
    FastifyGenerator(),
    HonoGenerator(),
    NestGenerator(),
    KoaGenerator(),
    NextApiGenerator(),
    CloudflareWorkersGenerator(),
    FastApiGenerator(),
    ConvexGenerator(),
)
