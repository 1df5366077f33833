"""Stack selection models and compatibility validation.

Usage::

    from stackgen.stack import ProjectConfig, validate

    config = validate(ProjectConfig(name="my-app", framework="react"))
    print(config.warnings)
"""

from stackgen.stack.models import (
    FeatureFlag,
    ProjectConfig,
    ProjectLayout,
    ValidatedConfig,
)
from stackgen.stack.validator import (
    ConfigError,
    UnknownOption,
    UnsupportedCombination,
    recommendations,
    validate,
)

__all__ = [
    "ConfigError",
    "FeatureFlag",
    "ProjectConfig",
    "ProjectLayout",
    "UnknownOption",
    "UnsupportedCombination",
    "ValidatedConfig",
    "recommendations",
    "validate",
]
