"""stackgen scaffolder -- turns a validated stack into project files.

Quick usage::

    from stackgen.scaffolder import TemplateEngine, default_registry, resolve_root

    engine = TemplateEngine(resolve_root())
    registry = default_registry()
    react = registry.frameworks["react"]
    manifests = await react.setup(config, Path("/tmp/my-app"), engine)
"""

from stackgen.scaffolder.base import Axis, DependencySet, Generator
from stackgen.scaffolder.registry import Registry, RegistryError, default_registry
from stackgen.scaffolder.templates import (
    FileStatus,
    TemplateEngine,
    TemplateManifest,
    resolve_root,
)

__all__ = [
    "Axis",
    "DependencySet",
    "FileStatus",
    "Generator",
    "Registry",
    "RegistryError",
    "TemplateEngine",
    "TemplateManifest",
    "default_registry",
    "resolve_root",
]
