"""Stack compatibility validation.

:func:`validate` turns a :class:`ProjectConfig` into a
:class:`ValidatedConfig` or raises the first :class:`ConfigError` it finds.
Checks run in a fixed order and stop at the first violation:

0. project name
1. vocabulary, field by field
2. database / ORM
3. backend / database
4. backend / deployment
5. auth / backend
6. language (TypeScript)
7. styling
8. features

Validation is pure: no filesystem access and no output.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional

from .models import FeatureFlag, ProjectConfig, ValidatedConfig
from .options import (
    DEPLOYMENT_OPTIONS,
    FULLSTACK_FRAMEWORKS,
    NONE,
    PACKAGE_MANAGERS,
    REACT_FAMILY,
    STYLING_OPTIONS,
    option_ids,
)

if TYPE_CHECKING:
    from stackgen.scaffolder.registry import Registry

_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """A stack selection that cannot be generated."""

    def __init__(self, field: str, value: Any, constraint: str) -> None:
        self.field = field
        self.value = value
        self.constraint = constraint
        super().__init__(f"Invalid {field} {value!r}: {constraint}")


class UnknownOption(ConfigError):
    """A field value outside its vocabulary."""

    def __init__(self, field: str, value: Any, allowed: tuple[str, ...] = ()) -> None:
        self.allowed = allowed
        constraint = f"expected one of {', '.join(allowed)}" if allowed else "unknown option"
        super().__init__(field, value, constraint)


class UnsupportedCombination(ConfigError):
    """Two individually valid values that cannot be used together."""

    def __init__(
        self,
        field: str,
        value: Any,
        other_field: str,
        other_value: Any,
        reason: str = "",
    ) -> None:
        self.other_field = other_field
        self.other_value = other_value
        constraint = f"not supported with {other_field} {other_value!r}"
        if reason:
            constraint = f"{constraint} ({reason})"
        super().__init__(field, value, constraint)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate(config: ProjectConfig, registry: Optional[Registry] = None) -> ValidatedConfig:
    """Check *config* and return it as a :class:`ValidatedConfig`.

    Raises:
        ConfigError: the first violated constraint, in check order.
    """
    if registry is None:
        from stackgen.scaffolder.registry import default_registry

        registry = default_registry()

    _check_name(config)
    _check_vocabulary(config, registry)
    _check_database_orm(config, registry)
    _check_backend_database(config, registry)
    _check_backend_deployment(config, registry)
    _check_auth(config, registry)
    _check_language(config, registry)
    _check_styling(config)
    _check_features(config)

    data = config.model_dump()
    data["warnings"] = tuple(collect_warnings(config))
    return ValidatedConfig.model_validate(data)


def _check_name(config: ProjectConfig) -> None:
    if not _NAME_RE.match(config.name):
        raise ConfigError(
            "name",
            config.name,
            "must be lowercase letters, digits and '-', not starting with '-'",
        )


def _check_vocabulary(config: ProjectConfig, registry: Registry) -> None:
    from stackgen.scaffolder.base import Axis

    generator_fields = (
        ("framework", Axis.FRAMEWORK),
        ("backend", Axis.BACKEND),
        ("database", Axis.DATABASE),
        ("orm", Axis.ORM),
        ("auth", Axis.AUTH),
    )
    for field, axis in generator_fields:
        value = getattr(config, field)
        allowed = registry.ids(axis)
        if value != NONE and value not in allowed:
            raise UnknownOption(field, value, (NONE, *allowed))

    closed_fields = (
        ("styling", STYLING_OPTIONS),
        ("deployment", DEPLOYMENT_OPTIONS),
        ("package_manager", PACKAGE_MANAGERS),
    )
    for field, options in closed_fields:
        value = getattr(config, field)
        allowed = option_ids(options)
        if value not in allowed:
            raise UnknownOption(field, value, allowed)

    known_features = tuple(flag.value for flag in FeatureFlag)
    for feature in sorted(config.features):
        if feature not in known_features or feature not in registry.features:
            raise UnknownOption("features", feature, known_features)


def _check_database_orm(config: ProjectConfig, registry: Registry) -> None:
    if not config.has_orm:
        return
    if not config.has_database:
        raise UnsupportedCombination("orm", config.orm, "database", config.database)
    database = registry.databases[config.database]
    orm = registry.orms[config.orm]
    if orm.id not in database.supported_orms or database.id not in orm.supported_databases:
        raise UnsupportedCombination("orm", config.orm, "database", config.database)


def _check_backend_database(config: ProjectConfig, registry: Registry) -> None:
    if config.has_database:
        if not config.has_backend and config.framework not in FULLSTACK_FRAMEWORKS:
            raise UnsupportedCombination(
                "database",
                config.database,
                "backend",
                config.backend,
                "a database needs a backend or a full-stack framework",
            )
    if config.has_backend and not registry.backends[config.backend].allows_data_layer:
        if config.has_database:
            raise UnsupportedCombination(
                "database", config.database, "backend", config.backend, "backend provides storage"
            )
        if config.has_orm:
            raise UnsupportedCombination(
                "orm", config.orm, "backend", config.backend, "backend provides storage"
            )


def _check_backend_deployment(config: ProjectConfig, registry: Registry) -> None:
    if config.deployment == NONE or not config.has_backend:
        return
    backend = registry.backends[config.backend]
    if config.deployment not in backend.supported_deployments:
        raise UnsupportedCombination("deployment", config.deployment, "backend", config.backend)


def _check_auth(config: ProjectConfig, registry: Registry) -> None:
    if not config.has_auth:
        return
    provider = registry.auth[config.auth]
    if not provider.supports(config):
        other_field, other_value = (
            ("backend", config.backend) if config.has_backend else ("framework", config.framework)
        )
        raise UnsupportedCombination("auth", config.auth, other_field, other_value)
    if provider.requires_database and not config.has_database:
        raise UnsupportedCombination(
            "auth", config.auth, "database", config.database, "provider stores users"
        )


def _check_language(config: ProjectConfig, registry: Registry) -> None:
    if config.has_framework:
        framework = registry.frameworks[config.framework]
        if framework.requires_typescript and not config.typescript:
            raise UnsupportedCombination("framework", config.framework, "typescript", False)
    if config.has_backend:
        backend = registry.backends[config.backend]
        if backend.requires_typescript and not config.typescript:
            raise UnsupportedCombination("backend", config.backend, "typescript", False)
        if not backend.supports_typescript and config.typescript:
            raise UnsupportedCombination("backend", config.backend, "typescript", True)
        if backend.required_framework and config.framework != backend.required_framework:
            raise UnsupportedCombination("backend", config.backend, "framework", config.framework)
    if config.has_orm:
        orm = registry.orms[config.orm]
        if orm.requires_typescript and not config.typescript:
            raise UnsupportedCombination("orm", config.orm, "typescript", False)


def _check_styling(config: ProjectConfig) -> None:
    if config.styling == "styled-components" and config.framework not in REACT_FAMILY:
        raise UnsupportedCombination("styling", config.styling, "framework", config.framework)


def _check_features(config: ProjectConfig) -> None:
    if (
        config.has_feature(FeatureFlag.DOCKER)
        and not config.has_backend
        and not config.has_framework
    ):
        raise UnsupportedCombination(
            "features", FeatureFlag.DOCKER.value, "backend", config.backend, "nothing to containerize"
        )


# ---------------------------------------------------------------------------
# Warnings and recommendations
# ---------------------------------------------------------------------------


def collect_warnings(config: ProjectConfig) -> list[str]:
    """Non-fatal findings about an otherwise valid selection."""
    warnings: list[str] = []
    if config.orm == "prisma" and config.database == "sqlite":
        warnings.append("SQLite with Prisma is not recommended for production use")
    if config.has_feature(FeatureFlag.DOCKER) and not config.has_database:
        warnings.append("Docker setup is most useful when you have a database")
    if not config.typescript and config.framework in ("vue", "nuxt"):
        warnings.append("TypeScript is highly recommended for Vue and Nuxt projects")
    return warnings


_BACKEND_RECOMMENDATIONS: dict[str, list[str]] = {
    "next": ["next-api", NONE],
    "nuxt": [NONE],
    "astro": [NONE],
    "tanstack-start": [NONE],
    "react": ["express", "fastify", "hono", NONE],
    "vue": ["express", "fastify", "hono", NONE],
    "svelte": ["express", "fastify", NONE],
    "react-native": ["express", "convex", NONE],
}

_ORM_RECOMMENDATIONS: dict[str, list[str]] = {
    "postgres": ["prisma", "drizzle", NONE],
    "mysql": ["prisma", "drizzle", NONE],
    "mongodb": ["mongoose", "prisma", NONE],
    "sqlite": ["prisma", "drizzle", NONE],
    "neon": ["drizzle", "prisma", NONE],
    "planetscale": ["drizzle", "prisma", NONE],
    "turso": ["drizzle", NONE],
    "cloudflare-d1": ["drizzle", NONE],
}


def recommendations(partial: dict[str, Any]) -> dict[str, list[str]]:
    """Suggested values for the unset axes of a partial selection.

    Each axis is only suggested once the one before it is chosen
    (framework, then backend, then database, then orm).
    """
    result: dict[str, list[str]] = {}
    framework = partial.get("framework")
    backend = partial.get("backend")
    database = partial.get("database")

    if not framework:
        result["framework"] = ["react", "vue", "next"]
    if framework and not backend:
        result["backend"] = _BACKEND_RECOMMENDATIONS.get(
            framework, ["express", "fastify", "hono", NONE]
        )
    if backend and not database:
        if backend in (NONE, "convex"):
            result["database"] = [NONE]
        else:
            result["database"] = ["postgres", "mysql", "mongodb", "sqlite", NONE]
    if database and not partial.get("orm"):
        result["orm"] = _ORM_RECOMMENDATIONS.get(database, [NONE])
    return result
