"""``pagewright version`` — resolve the pinned generator version.

Reads the declaration file exactly as the Build stage does and prints
``KEY=version``; in GitHub Actions the pair is also exported as a step
output.
"""

from __future__ import annotations

from pathlib import Path

import typer

from pagewright.cli.commands._common import console, load_settings, write_github_output
from pagewright.core.env_declaration import resolve_tool_version
from pagewright.errors import VersionDeclarationError


def version_cmd(
    source: Path = typer.Option(
        Path("."),
        "--source",
        "-s",
        help="Repository root holding the declaration file.",
    ),
    github_output: bool = typer.Option(
        False,
        "--github-output",
        help="Also append KEY=version to $GITHUB_OUTPUT.",
    ),
) -> None:
    """Print the pinned documentation generator version."""
    settings = load_settings(source)
    env_file = settings.env_file if settings.env_file.is_absolute() else source / settings.env_file
    try:
        pin = resolve_tool_version(env_file, settings.version_key)
    except VersionDeclarationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if github_output:
        write_github_output(pin.key, pin.version)
    console.print(f"{pin.key}={pin.version}", highlight=False)
