"""Tests for the static generator registry."""

from __future__ import annotations

from types import MappingProxyType
from typing import ClassVar

import pytest

from stackgen.scaffolder.base import Axis
from stackgen.scaffolder.databases import DatabaseGenerator, PostgresGenerator
from stackgen.scaffolder.orms import DrizzleGenerator, OrmGenerator
from stackgen.scaffolder.registry import GENERATORS, Registry, RegistryError, default_registry

pytestmark = pytest.mark.unit


class TestDefaultRegistry:
    def test_every_axis_populated(self):
        registry = default_registry()
        assert registry.ids(Axis.FRAMEWORK) == (
            "react", "vue", "svelte", "next", "nuxt", "vite", "tanstack-start", "react-native", "astro",
        )
        assert registry.ids(Axis.BACKEND) == (
            "node", "express", "fastify", "hono", "nestjs", "koa", "next-api",
            "cloudflare-workers", "fastapi", "convex",
        )
        assert set(registry.ids(Axis.DATABASE)) == {
            "postgres", "mysql", "sqlite", "mongodb", "neon", "planetscale", "turso", "cloudflare-d1",
        }
        assert registry.ids(Axis.ORM) == ("prisma", "drizzle", "typeorm", "mongoose")
        assert registry.ids(Axis.AUTH) == ("better-auth", "auth.js", "clerk", "auth0", "passport")
        assert registry.ids(Axis.FEATURE) == ("gitignore", "eslint", "prettier", "docker")

    def test_built_once(self):
        assert default_registry() is default_registry()

    def test_tables_are_read_only(self):
        registry = default_registry()
        assert isinstance(registry.frameworks, MappingProxyType)
        with pytest.raises(TypeError):
            registry.frameworks["other"] = registry.frameworks["react"]  # type: ignore[index]

    def test_lookup(self):
        registry = default_registry()
        assert registry.lookup(Axis.ORM, "drizzle").name == "Drizzle"
        with pytest.raises(RegistryError, match="sequelize"):
            registry.lookup(Axis.ORM, "sequelize")

    def test_default_tables_consistent(self):
        Registry.build(GENERATORS).check_consistency()


class _OneSidedDatabase(DatabaseGenerator):
    id = "one-sided"
    name = "One sided"
    dialect = "postgres"
    supported_orms = frozenset({"drizzle"})

    def connection_url(self, config):
        return "postgres://"


class _LonelyDatabase(DatabaseGenerator):
    id = "lonely"
    name = "Lonely"
    dialect = "sqlite"

    def connection_url(self, config):
        return "file:./lonely.db"


class _GhostOrm(OrmGenerator):
    id = "ghost"
    name = "Ghost"
    supported_databases: ClassVar[frozenset[str]] = frozenset({"lonely"})
    schema_file = "schema.ts"
    client_file = "client.ts"


class TestConsistency:
    def test_database_lists_orm_that_does_not_list_it(self):
        registry = Registry.build([_OneSidedDatabase(), DrizzleGenerator()])
        with pytest.raises(RegistryError, match="one-sided"):
            registry.check_consistency()

    def test_orm_lists_database_that_does_not_list_it(self):
        registry = Registry.build([_LonelyDatabase(), _GhostOrm()])
        with pytest.raises(RegistryError, match="ghost"):
            registry.check_consistency()

    def test_duplicate_ids_rejected(self):
        with pytest.raises(RegistryError, match="Duplicate"):
            Registry.build([PostgresGenerator(), PostgresGenerator()])


class _UrlLessDatabase(DatabaseGenerator):
    id = "url-less"
    name = "URL-less"
    dialect = "sqlite"


class TestDatabaseContract:
    def test_connection_url_must_be_implemented(self):
        with pytest.raises(TypeError, match="connection_url"):
            _UrlLessDatabase()

    def test_lonely_database_instantiates(self):
        assert _LonelyDatabase().connection_url(None) == "file:./lonely.db"
