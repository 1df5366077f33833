"""Auth provider generators.

Auth files go to the API app when the provider supports the selected
backend, otherwise to the web app.  Secrets in ``.env`` are generated fresh
on every run with :func:`secrets.token_hex`; ``.env.example`` only gets the
keys.
"""

from __future__ import annotations

import secrets
from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

from stackgen.stack.models import INTEGRATED_BACKENDS, ValidatedConfig

from .base import (
    Axis,
    DependencySet,
    Generator,
    HasNextSteps,
    NextStepsSupport,
)
from .databases import DatabaseGenerator
from .env import EnvVar, update_env_files
from .templates import TemplateEngine, TemplateManifest

APP_URL = "http://localhost:3000"


def generate_secret() -> str:
    return secrets.token_hex(32)


class AuthGenerator(Generator):
    """Common behaviour for every auth provider."""

    axis: ClassVar[Axis] = Axis.AUTH
    supported_frameworks: ClassVar[frozenset[str]] = frozenset()
    supported_backends: ClassVar[frozenset[str]] = frozenset()
    requires_database: ClassVar[bool] = False
    # Packages keyed by the framework or backend id the auth code runs in.
    packages_by_target: ClassVar[dict[str, tuple[str, ...]]] = {}
    default_packages: ClassVar[tuple[str, ...]] = ()

    def supports(self, config: ValidatedConfig) -> bool:
        return (
            config.framework in self.supported_frameworks
            or config.backend in self.supported_backends
        )

    def on_server(self, config: ValidatedConfig) -> bool:
        """Whether auth lives in the standalone API app."""
        return (
            config.backend not in INTEGRATED_BACKENDS
            and config.backend in self.supported_backends
        )

    def target_dir(self, config: ValidatedConfig, project_path: Path) -> Path:
        layout = self.layout(config, project_path)
        if self.on_server(config):
            return layout.api_dir
        return layout.web_dir if layout.web_dir is not None else layout.root

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        return []

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        context = {"auth_side": "server" if self.on_server(config) else "client", "dialect": ""}
        for peer in peers:
            if isinstance(peer, DatabaseGenerator) and peer.id == config.database:
                context["dialect"] = peer.dialect
        return [
            await engine.copy_directory(
                f"auth/{self.id}",
                self.target_dir(config, project_path) / "src" / "auth",
                config,
                overwrite=True,
                extra_context=context,
            )
        ]

    async def setup_environment(self, config: ValidatedConfig, project_path: Path) -> list[Path]:
        return await update_env_files(
            self.target_dir(config, project_path),
            f"{self.name} Configuration",
            self.env_variables(config),
        )

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        target = config.backend if self.on_server(config) else config.framework
        return DependencySet(self.packages_by_target.get(target, self.default_packages))

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(self._steps)

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return [f"Fill in the {self.name} keys in .env"]


class BetterAuthGenerator(AuthGenerator):
    id = "better-auth"
    name = "Better Auth"
    supported_frameworks = frozenset(
        {"next", "react", "vue", "nuxt", "svelte", "astro", "tanstack-start"}
    )
    supported_backends = frozenset({"express", "fastify", "hono", "node", "next-api"})
    requires_database = True
    default_packages = ("better-auth",)

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        return [
            EnvVar("BETTER_AUTH_SECRET", generate_secret(), secret=True),
            EnvVar("BETTER_AUTH_URL", APP_URL),
        ]

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return ["npx @better-auth/cli migrate"]


class AuthJsGenerator(AuthGenerator):
    id = "auth.js"
    name = "Auth.js"
    supported_frameworks = frozenset({"next", "react", "svelte"})
    supported_backends = frozenset({"express", "next-api"})
    requires_database = True
    packages_by_target = {
        "next": ("next-auth@beta",),
        "svelte": ("@auth/sveltekit",),
        "express": ("@auth/express",),
    }
    default_packages = ("@auth/core",)

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        return [
            EnvVar("AUTH_SECRET", generate_secret(), secret=True),
            EnvVar("AUTH_URL", APP_URL),
            EnvVar("AUTH_GITHUB_ID", ""),
            EnvVar("AUTH_GITHUB_SECRET", "", secret=True),
        ]


class ClerkGenerator(AuthGenerator):
    id = "clerk"
    name = "Clerk"
    supported_frameworks = frozenset({"next", "react"})
    supported_backends = frozenset({"express", "fastify", "next-api"})
    packages_by_target = {
        "next": ("@clerk/nextjs",),
        "react": ("@clerk/clerk-react",),
        "express": ("@clerk/express",),
        "fastify": ("@clerk/fastify",),
    }

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        prefix = {"next": "NEXT_PUBLIC_", "react": "VITE_"}.get(config.framework, "")
        return [
            EnvVar(f"{prefix}CLERK_PUBLISHABLE_KEY", ""),
            EnvVar("CLERK_SECRET_KEY", "", secret=True),
        ]


class Auth0Generator(AuthGenerator):
    id = "auth0"
    name = "Auth0"
    supported_frameworks = frozenset({"react", "next", "vue"})
    supported_backends = frozenset({"express", "next-api"})
    packages_by_target = {
        "next": ("@auth0/nextjs-auth0",),
        "react": ("@auth0/auth0-react",),
        "vue": ("@auth0/auth0-vue",),
        "express": ("express-openid-connect",),
    }

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        return [
            EnvVar("AUTH0_SECRET", generate_secret(), secret=True),
            EnvVar("AUTH0_BASE_URL", APP_URL),
            EnvVar("AUTH0_ISSUER_BASE_URL", "https://your-tenant.auth0.com"),
            EnvVar("AUTH0_CLIENT_ID", ""),
            EnvVar("AUTH0_CLIENT_SECRET", "", secret=True),
        ]


class PassportGenerator(AuthGenerator):
    id = "passport"
    name = "Passport"
    supported_backends = frozenset({"express", "koa", "nestjs"})
    requires_database = True
    packages_by_target = {
        "koa": ("koa-passport", "passport-local", "koa-session"),
        "nestjs": ("@nestjs/passport", "passport", "passport-local"),
    }
    default_packages = ("passport", "passport-local", "express-session")

    def env_variables(self, config: ValidatedConfig) -> list[EnvVar]:
        return [EnvVar("SESSION_SECRET", generate_secret(), secret=True)]

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return ["Implement findUserByEmail() in src/auth against your user table"]


AUTH_GENERATORS: tuple[AuthGenerator, ...] = (
    BetterAuthGenerator(),
    AuthJsGenerator(),
    ClerkGenerator(),
    Auth0Generator(),
    PassportGenerator(),
)
