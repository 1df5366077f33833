"""Pydantic v2 models for a stack selection.

``ProjectConfig`` is the raw selection as supplied by the CLI or a stack file.
``ValidatedConfig`` is the same data after it has passed
:func:`stackgen.stack.validator.validate`; generators only accept the latter.
Both are frozen: once validated, a configuration is read-only for the rest of
the run and every derived decision (layout, file extensions, database name)
is computed from it on demand.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .options import NONE

# Backends that live inside the frontend framework rather than as their own app.
INTEGRATED_BACKENDS: frozenset[str] = frozenset({NONE, "next-api"})


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FeatureFlag(str, Enum):
    """Optional add-ons generated after the main stack."""

    DOCKER = "docker"
    ESLINT = "eslint"
    PRETTIER = "prettier"
    GITIGNORE = "gitignore"


# ---------------------------------------------------------------------------
# Stack selection
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """The user's stack selection, before validation.

    Axis fields are plain strings so that unknown values reach the validator
    and are reported as ``UnknownOption`` with the offending field.
    """

    name: str = Field(..., description="Project name; also the target directory name")
    framework: str = Field(default=NONE, description="Frontend or full-stack framework id")
    backend: str = Field(default=NONE, description="Backend runtime id")
    database: str = Field(default=NONE, description="Database id")
    orm: str = Field(default=NONE, description="ORM id")
    auth: str = Field(default=NONE, description="Auth provider id")
    styling: str = Field(default="css", description="Styling approach id")
    deployment: str = Field(default=NONE, description="Deployment target id")
    typescript: bool = Field(default=True, description="Generate TypeScript sources")
    features: frozenset[str] = Field(
        default_factory=lambda: frozenset({FeatureFlag.GITIGNORE.value}),
        description="Enabled feature add-ons (see FeatureFlag)",
    )
    package_manager: str = Field(default="npm", description="Package manager used in hints")

    model_config = {"frozen": True}

    # -- Convenience -------------------------------------------------------

    def has_feature(self, flag: FeatureFlag | str) -> bool:
        value = flag.value if isinstance(flag, FeatureFlag) else flag
        return value in self.features

    @property
    def has_backend(self) -> bool:
        return self.backend != NONE

    @property
    def has_framework(self) -> bool:
        return self.framework != NONE

    @property
    def has_database(self) -> bool:
        return self.database != NONE

    @property
    def has_orm(self) -> bool:
        return self.orm != NONE

    @property
    def has_auth(self) -> bool:
        return self.auth != NONE

    @property
    def db_name(self) -> str:
        """Database name derived from the project name (``my-app`` -> ``my_app``)."""
        return self.name.replace("-", "_")

    @property
    def ext(self) -> str:
        """Source file extension for the selected language."""
        return "ts" if self.typescript else "js"

    def template_context(self) -> dict[str, Any]:
        """Variables made available to every template."""
        context: dict[str, Any] = self.model_dump(exclude={"features"})
        context.update(
            features=sorted(self.features),
            ext=self.ext,
            jsx_ext="tsx" if self.typescript else "jsx",
            db_name=self.db_name,
            has_backend=self.has_backend,
            has_framework=self.has_framework,
            has_database=self.has_database,
            has_orm=self.has_orm,
            has_auth=self.has_auth,
            is_monorepo=self.has_framework and self.backend not in INTEGRATED_BACKENDS,
        )
        for flag in FeatureFlag:
            context[flag.value] = self.has_feature(flag)
        return context

    # -- Serialisation -----------------------------------------------------

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ProjectConfig":
        """Build a config from a loosely-keyed mapping (YAML/JSON stack file).

        Accepts ``project_name`` for ``name`` and ``auth_provider`` for
        ``auth``; unknown keys are ignored.
        """
        raw = dict(data)
        if "name" not in raw and "project_name" in raw:
            raw["name"] = raw.pop("project_name")
        if "auth" not in raw and "auth_provider" in raw:
            raw["auth"] = raw.pop("auth_provider")
        if isinstance(raw.get("features"), str):
            raw["features"] = [raw["features"]]
        if isinstance(raw.get("features"), (list, tuple, set)):
            raw["features"] = frozenset(str(f) for f in raw["features"])
        known = {key: value for key, value in raw.items() if key in cls.model_fields}
        return cls.model_validate(known)

    def to_record(self) -> dict[str, Any]:
        """JSON-friendly dict with features as a sorted list."""
        record = self.model_dump(exclude={"features"})
        record["features"] = sorted(self.features)
        return record

    def save(self, path: Path) -> Path:
        """Write the selection to *path* as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_record(), indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_mapping(data)


class ValidatedConfig(ProjectConfig):
    """A ``ProjectConfig`` that passed validation.

    Only :func:`stackgen.stack.validator.validate` creates these.  Non-fatal
    findings are attached as ``warnings``.
    """

    warnings: tuple[str, ...] = Field(default=(), description="Non-fatal validation findings")

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        record.pop("warnings", None)
        return record

    def template_context(self) -> dict[str, Any]:
        context = super().template_context()
        context.pop("warnings", None)
        return context


# ---------------------------------------------------------------------------
# Derived layout
# ---------------------------------------------------------------------------


class ProjectLayout(BaseModel):
    """Where each part of a generated project lives.

    Computed from a config and a project root; never stored on the config.
    """

    root: Path
    web_dir: Optional[Path] = None
    api_dir: Optional[Path] = None
    shared_dir: Optional[Path] = None
    is_monorepo: bool = False
    is_minimal: bool = False

    model_config = {"frozen": True}

    @property
    def data_dir(self) -> Path:
        """Directory that receives database, ORM and auth files."""
        if self.api_dir is not None:
            return self.api_dir
        if self.web_dir is not None:
            return self.web_dir
        return self.root

    @classmethod
    def for_config(cls, config: ProjectConfig, root: Path) -> "ProjectLayout":
        standalone_backend = config.backend not in INTEGRATED_BACKENDS

        if config.has_framework and standalone_backend:
            return cls(
                root=root,
                web_dir=root / "apps" / "web",
                api_dir=root / "apps" / "api",
                shared_dir=root / "packages" / "shared",
                is_monorepo=True,
            )
        if config.has_framework:
            return cls(root=root, web_dir=root)
        if config.has_backend:
            return cls(root=root, api_dir=root)
        return cls(root=root, is_minimal=True)
