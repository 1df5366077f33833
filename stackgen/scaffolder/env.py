"""``.env`` file maintenance for generated projects.

Generators call :func:`update_env_files` to add a titled block of variables to
``.env`` and ``.env.example``.  Keys that are already present are left alone,
so running a generator twice, or two generators sharing a key, never produces
duplicates.  Secret values are written to ``.env`` only; ``.env.example``
gets the key with an empty value.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path

ENV_FILE = ".env"
ENV_EXAMPLE_FILE = ".env.example"

_KEY_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=")


@dataclass(frozen=True)
class EnvVar:
    key: str
    value: str = ""
    secret: bool = False


def existing_keys(text: str) -> set[str]:
    """Return the variable names defined in dotenv *text*."""
    keys: set[str] = set()
    for line in text.splitlines():
        match = _KEY_RE.match(line)
        if match:
            keys.add(match.group(1))
    return keys


def _format_value(value: str) -> str:
    if value and re.search(r"[\s#\"']", value):
        escaped = value.replace('"', '\\"')
        return f'"{escaped}"'
    return value


def render_block(title: str, variables: list[EnvVar], skip: set[str], *, example: bool) -> str:
    """Render the lines for *variables* not in *skip*, or ``""`` if none remain."""
    lines = [
        f"{var.key}={'' if (example and var.secret) else _format_value(var.value)}"
        for var in variables
        if var.key not in skip
    ]
    if not lines:
        return ""
    return "\n".join([f"# {title}", *lines]) + "\n"


def _append_block(path: Path, title: str, variables: list[EnvVar], *, example: bool) -> bool:
    current = path.read_text(encoding="utf-8") if path.exists() else ""
    block = render_block(title, variables, existing_keys(current), example=example)
    if not block:
        return False
    separator = ""
    if current and not current.endswith("\n"):
        separator = "\n\n"
    elif current:
        separator = "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(current + separator + block, encoding="utf-8")
    return True


async def update_env_files(project_path: Path, title: str, variables: list[EnvVar]) -> list[Path]:
    """Add *variables* under a ``# title`` comment to both env files.

    Returns the files that changed.
    """
    changed: list[Path] = []
    for name, example in ((ENV_FILE, False), (ENV_EXAMPLE_FILE, True)):
        path = project_path / name
        if await asyncio.to_thread(_append_block, path, title, variables, example=example):
            changed.append(path)
    return changed
