"""ORM generators.

An ORM copies ``orm/<id>/base`` (config files) into the data directory, then
renders a schema and a client module.  The schema template is chosen by
dialect: ``orm/<id>/schema-<dialect>.j2`` when it exists, otherwise
``orm/<id>/schema.j2``.  The dialect comes from the database generator that
ran earlier in the same project.
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
)
from .databases import DatabaseGenerator
from .templates import ManifestEntry, TemplateEngine, TemplateManifest

PRISMA_PROVIDERS: dict[str, str] = {
    "postgres": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
    "mongodb": "mongodb",
}


class OrmError(LookupError):
    """The ORM cannot find the database it is meant to describe."""


def find_database(config: ValidatedConfig, peers: Sequence[Generator]) -> DatabaseGenerator:
    """Return the database generator for *config* among *peers*."""
    for peer in peers:
        if isinstance(peer, DatabaseGenerator) and peer.id == config.database:
            return peer
    raise OrmError(f"No generator for database {config.database!r} among {list(peers)!r}")


class OrmGenerator(Generator):
    """Common behaviour for every ORM."""

    axis: ClassVar[Axis] = Axis.ORM
    supported_databases: ClassVar[frozenset[str]] = frozenset()
    requires_typescript: ClassVar[bool] = False
    packages: ClassVar[tuple[str, ...]] = ()
    dev_packages: ClassVar[tuple[str, ...]] = ()
    # Driver package per database id.
    drivers: ClassVar[dict[str, tuple[str, ...]]] = {}
    schema_file: ClassVar[str]
    client_file: ClassVar[str]

    @property
    def template_prefix(self) -> str:
        return f"orm/{self.id}"

    def template_context(self, config: ValidatedConfig, database: DatabaseGenerator) -> dict[str, str]:
        return {
            "dialect": database.dialect,
            "database_url": database.connection_url(config),
            "prisma_provider": PRISMA_PROVIDERS[database.dialect],
        }

    async def setup(
        self,
        config: ValidatedConfig,
        project_path: Path,
        engine: TemplateEngine,
        peers: Sequence[Generator] = (),
    ) -> list[TemplateManifest]:
        database = find_database(config, peers)
        data_dir = self.layout(config, project_path).data_dir
        context = self.template_context(config, database)

        manifests: list[TemplateManifest] = []
        if "base" in engine.list_available(self.template_prefix):
            manifests.append(
                await engine.copy_directory(
                    f"{self.template_prefix}/base",
                    data_dir,
                    config,
                    overwrite=True,
                    extra_context=context,
                )
            )

        generated = TemplateManifest(namespace=self.template_prefix, destination=data_dir)
        generated.entries.append(await self.generate_schema(config, data_dir, engine, context))
        generated.entries.append(await self.generate_client(config, data_dir, engine, context))
        manifests.append(generated)
        return manifests

    async def generate_schema(
        self,
        config: ValidatedConfig,
        data_dir: Path,
        engine: TemplateEngine,
        context: dict[str, str],
    ) -> ManifestEntry:
        return await engine.render_variant(
            f"{self.template_prefix}/schema.j2",
            data_dir / self.schema_file.format(ext=config.ext),
            config,
            {"dialect": context["dialect"]},
            overwrite=True,
            extra_context=context,
        )

    async def generate_client(
        self,
        config: ValidatedConfig,
        data_dir: Path,
        engine: TemplateEngine,
        context: dict[str, str],
    ) -> ManifestEntry:
        return await engine.render_file(
            f"{self.template_prefix}/client.j2",
            data_dir / self.client_file.format(ext=config.ext),
            config,
            overwrite=True,
            extra_context=context,
        )

    def install_dependencies(self, config: ValidatedConfig, project_path: Path) -> DependencySet:
        return DependencySet(
            self.packages + self.drivers.get(config.database, ()), self.dev_packages
        )

    def next_steps(self) -> NextStepsSupport:
        return HasNextSteps(self._steps)

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return []


class PrismaGenerator(OrmGenerator):
    id = "prisma"
    name = "Prisma"
    supported_databases = frozenset(
        {"postgres", "mysql", "sqlite", "mongodb", "neon", "planetscale", "turso"}
    )
    packages = ("@prisma/client",)
    dev_packages = ("prisma",)
    drivers = {"turso": ("@prisma/adapter-libsql", "@libsql/client")}
    schema_file = "prisma/schema.prisma"
    client_file = "src/db/client.{ext}"

    def _steps(self, config: ValidatedConfig) -> list[str]:
        if config.database in ("mongodb", "planetscale"):
            return ["npx prisma generate", "npx prisma db push"]
        return ["npx prisma generate", "npx prisma migrate dev --name init"]


class DrizzleGenerator(OrmGenerator):
    id = "drizzle"
    name = "Drizzle"
    supported_databases = frozenset(
        {"postgres", "mysql", "sqlite", "neon", "planetscale", "turso", "cloudflare-d1"}
    )
    packages = ("drizzle-orm",)
    dev_packages = ("drizzle-kit",)
    drivers = {
        "postgres": ("postgres",),
        "mysql": ("mysql2",),
        "sqlite": ("better-sqlite3",),
        "neon": ("@neondatabase/serverless",),
        "planetscale": ("@planetscale/database",),
        "turso": ("@libsql/client",),
    }
    schema_file = "src/db/schema.{ext}"
    client_file = "src/db/index.{ext}"

    def _steps(self, config: ValidatedConfig) -> list[str]:
        if config.database == "cloudflare-d1":
            return ["npx drizzle-kit generate", f"npx wrangler d1 migrations apply {config.db_name}"]
        return ["npx drizzle-kit generate", "npx drizzle-kit migrate"]


class TypeOrmGenerator(OrmGenerator):
    id = "typeorm"
    name = "TypeORM"
    supported_databases = frozenset({"postgres", "mysql", "sqlite"})
    requires_typescript = True
    packages = ("typeorm", "reflect-metadata")
    drivers = {"postgres": ("pg",), "mysql": ("mysql2",), "sqlite": ("better-sqlite3",)}
    schema_file = "src/entities/User.{ext}"
    client_file = "src/db/data-source.{ext}"

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return ["npx typeorm-ts-node-commonjs migration:run -d src/db/data-source.ts"]


class MongooseGenerator(OrmGenerator):
    id = "mongoose"
    name = "Mongoose"
    supported_databases = frozenset({"mongodb"})
    packages = ("mongoose",)
    schema_file = "src/models/User.{ext}"
    client_file = "src/db/connection.{ext}"

    def _steps(self, config: ValidatedConfig) -> list[str]:
        return ["Call connectDatabase() before handling requests"]


ORM_GENERATORS: tuple[OrmGenerator, ...] = (
    PrismaGenerator(),
    DrizzleGenerator(),
    TypeOrmGenerator(),
    MongooseGenerator(),
)
