"""Read the pinned generator version from the environment-declaration file.

The declaration file is a plain ``KEY=value`` file at the repository root,
written so a shell can ``source`` it. python-dotenv parses the same subset
(``export`` prefixes, quoting, comments, ``${VAR}`` interpolation).

No default version is ever assumed: a missing file, a missing key, or a
value that is not a version string aborts the build.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from dotenv import dotenv_values

from pagewright.errors import VersionDeclarationError
from pagewright.models.versioning import ToolVersionPin

logger = logging.getLogger(__name__)

# 0.4.25, 0.4.0-beta.1, 1.0.0+build.5; an optional leading "v" is tolerated.
_VERSION_RE = re.compile(r"^v?(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?)$")


def read_declaration(path: Path) -> dict[str, str]:
    """Parse the declaration file into a ``{key: value}`` mapping.

    Keys declared without a value are dropped.
    """
    path = Path(path)
    if not path.is_file():
        raise VersionDeclarationError(f"Version declaration file not found: {path}")
    values = dotenv_values(path, interpolate=True)
    return {key: value for key, value in values.items() if value is not None}


def resolve_tool_version(path: Path, key: str = "MDBOOK_VERSION") -> ToolVersionPin:
    """Return the single pinned version declared under *key* in *path*."""
    declarations = read_declaration(path)
    raw = declarations.get(key, "").strip()
    if not raw:
        raise VersionDeclarationError(f"{key} is not declared in {path}")

    match = _VERSION_RE.match(raw)
    if match is None:
        raise VersionDeclarationError(
            f"{key}={raw!r} in {path} is not a version string"
        )

    pin = ToolVersionPin(key=key, version=match.group(1), source=Path(path))
    logger.info("Resolved %s=%s from %s", key, pin.version, path)
    return pin
