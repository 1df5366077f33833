"""stackgen runtime settings.

Typed settings for a generation run. Uses Pydantic v2 models so values are
validated at construction time and can be serialised to/from JSON or read
from environment variables without boiler-plate.

These are *tool* settings (where to write, where templates live, whether to
overwrite). The user's stack selection lives in
:class:`stackgen.stack.models.ProjectConfig`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Settings for one generation run.

    Instances are typically created once by the CLI entry point and then
    passed to :class:`stackgen.pipeline.Pipeline`.
    """

    output_dir: Path = Field(default=Path("."), description="Parent directory for new projects")
    templates_dir: Optional[Path] = Field(
        default=None,
        description="Explicit template root; skips root probing when set",
    )
    overwrite: bool = Field(
        default=False,
        description="Allow generating into an existing directory, replacing files",
    )
    verbose: bool = Field(default=False, description="Print per-file diagnostics")
    config_file: str = Field(
        default="stackgen.json",
        description="Name of the stack record written into generated projects",
    )

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def project_path(self, name: str) -> Path:
        """Target directory for a project called *name*."""
        return (self.output_dir / name).resolve()

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load previously-saved settings from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            STACKGEN_OUTPUT_DIR, STACKGEN_TEMPLATES_DIR, STACKGEN_OVERWRITE,
            STACKGEN_VERBOSE.
        """
        templates_dir = os.environ.get("STACKGEN_TEMPLATES_DIR")
        return cls(
            output_dir=Path(os.environ.get("STACKGEN_OUTPUT_DIR", ".")),
            templates_dir=Path(templates_dir) if templates_dir else None,
            overwrite=os.environ.get("STACKGEN_OVERWRITE", "").lower() in _TRUTHY,
            verbose=os.environ.get("STACKGEN_VERBOSE", "").lower() in _TRUTHY,
        )
