"""Static generator registry.

Every generator the tool knows about is listed in :data:`GENERATORS`.  The
registry groups them by axis into read-only mappings; nothing registers
itself at import time and nothing can be added after construction.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType

from .auth import AUTH_GENERATORS, AuthGenerator
from .backends import BACKEND_GENERATORS, BackendGenerator
from .base import Axis, Generator
from .databases import DATABASE_GENERATORS, DatabaseGenerator
from .features import FEATURE_GENERATORS, FeatureGenerator
from .frameworks import FRAMEWORK_GENERATORS, FrameworkGenerator
from .orms import ORM_GENERATORS, OrmGenerator

GENERATORS: tuple[Generator, ...] = (
    *FRAMEWORK_GENERATORS,
    *BACKEND_GENERATORS,
    *DATABASE_GENERATORS,
    *ORM_GENERATORS,
    *AUTH_GENERATORS,
    *FEATURE_GENERATORS,
)


class RegistryError(Exception):
    """The generator table is inconsistent, or a lookup missed."""


@dataclass(frozen=True)
class Registry:
    """Read-only ``id -> generator`` mappings, one per axis."""

    frameworks: Mapping[str, FrameworkGenerator]
    backends: Mapping[str, BackendGenerator]
    databases: Mapping[str, DatabaseGenerator]
    orms: Mapping[str, OrmGenerator]
    auth: Mapping[str, AuthGenerator]
    features: Mapping[str, FeatureGenerator]

    @classmethod
    def build(cls, generators: Iterable[Generator]) -> "Registry":
        """Group *generators* by axis, rejecting duplicate ids."""
        tables: dict[Axis, dict[str, Generator]] = {axis: {} for axis in Axis}
        for generator in generators:
            table = tables[generator.axis]
            if generator.id in table:
                raise RegistryError(
                    f"Duplicate {generator.axis.value} generator id: {generator.id!r}"
                )
            table[generator.id] = generator
        return cls(
            frameworks=MappingProxyType(tables[Axis.FRAMEWORK]),
            backends=MappingProxyType(tables[Axis.BACKEND]),
            databases=MappingProxyType(tables[Axis.DATABASE]),
            orms=MappingProxyType(tables[Axis.ORM]),
            auth=MappingProxyType(tables[Axis.AUTH]),
            features=MappingProxyType(tables[Axis.FEATURE]),
        )

    def for_axis(self, axis: Axis) -> Mapping[str, Generator]:
        return {
            Axis.FRAMEWORK: self.frameworks,
            Axis.BACKEND: self.backends,
            Axis.DATABASE: self.databases,
            Axis.ORM: self.orms,
            Axis.AUTH: self.auth,
            Axis.FEATURE: self.features,
        }[axis]

    def ids(self, axis: Axis) -> tuple[str, ...]:
        """Registered ids for *axis*, in table order."""
        return tuple(self.for_axis(axis))

    def lookup(self, axis: Axis, value: str) -> Generator:
        try:
            return self.for_axis(axis)[value]
        except KeyError:
            raise RegistryError(f"No {axis.value} generator registered for {value!r}") from None

    def check_consistency(self) -> None:
        """Raise :class:`RegistryError` if database and ORM tables disagree.

        Every ORM a database lists must exist and list that database back,
        and vice versa.
        """
        for db in self.databases.values():
            for orm_id in sorted(db.supported_orms):
                orm = self.orms.get(orm_id)
                if orm is None:
                    raise RegistryError(f"Database {db.id!r} lists unknown ORM {orm_id!r}")
                if db.id not in orm.supported_databases:
                    raise RegistryError(
                        f"Database {db.id!r} supports ORM {orm_id!r}, "
                        f"but {orm_id!r} does not list {db.id!r}"
                    )
        for orm in self.orms.values():
            for db_id in sorted(orm.supported_databases):
                db = self.databases.get(db_id)
                if db is None:
                    raise RegistryError(f"ORM {orm.id!r} lists unknown database {db_id!r}")
                if orm.id not in db.supported_orms:
                    raise RegistryError(
                        f"ORM {orm.id!r} supports database {db_id!r}, "
                        f"but {db_id!r} does not list {orm.id!r}"
                    )


@lru_cache(maxsize=1)
def default_registry() -> Registry:
    """The registry of built-in generators, checked once per process."""
    registry = Registry.build(GENERATORS)
    registry.check_consistency()
    return registry
