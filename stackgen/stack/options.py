"""Closed vocabularies for the stack axes that have no generator of their own.

Framework, backend, database, ORM and auth values are owned by the generator
registry (:mod:`stackgen.scaffolder.registry`); an id is valid exactly when a
generator is registered for it.  Styling, deployment target and package
manager are plain choices consumed by templates, so they are listed here.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

NONE = "none"


class StackOption(BaseModel):
    """One selectable value of a stack axis."""

    id: str = Field(..., description="Identifier used in configs and on the CLI")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="One-line summary")

    model_config = {"frozen": True}


STYLING_OPTIONS: tuple[StackOption, ...] = (
    StackOption(id="css", name="CSS", description="Plain CSS files"),
    StackOption(id="scss", name="SCSS", description="Sass stylesheets"),
    StackOption(id="tailwind", name="Tailwind CSS", description="Utility-first CSS framework"),
    StackOption(
        id="styled-components",
        name="Styled Components",
        description="CSS-in-JS for React",
    ),
)

DEPLOYMENT_OPTIONS: tuple[StackOption, ...] = (
    StackOption(id=NONE, name="None", description="No deployment configuration"),
    StackOption(id="vercel", name="Vercel"),
    StackOption(id="netlify", name="Netlify"),
    StackOption(id="cloudflare", name="Cloudflare"),
    StackOption(id="fly", name="Fly.io"),
    StackOption(id="railway", name="Railway"),
    StackOption(id="render", name="Render"),
)

PACKAGE_MANAGERS: tuple[StackOption, ...] = (
    StackOption(id="npm", name="npm"),
    StackOption(id="pnpm", name="pnpm"),
    StackOption(id="yarn", name="Yarn"),
    StackOption(id="bun", name="Bun"),
)

# Frameworks built on React; styled-components and several auth SDKs need one.
REACT_FAMILY: frozenset[str] = frozenset(
    {"react", "next", "tanstack-start", "react-native"}
)

# Frameworks with their own server runtime; they can own a data layer
# without a separate backend.
FULLSTACK_FRAMEWORKS: frozenset[str] = frozenset(
    {"next", "nuxt", "tanstack-start", "astro"}
)


def option_ids(options: tuple[StackOption, ...]) -> tuple[str, ...]:
    """Return the ids of *options* in declaration order."""
    return tuple(option.id for option in options)
