"""Helpers shared by the CLI commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from pagewright.config import ProdConfig

console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def load_settings(source: Path | None = None) -> ProdConfig:
    """Settings from the environment, optionally rooted at *source*.

    When a source tree is given, its ``.env`` is read for PAGEWRIGHT_*
    overrides as well.
    """
    if source is None:
        return ProdConfig()
    settings = ProdConfig(_env_file=source / ".env")
    return settings.model_copy(update={"source_dir": source})


def write_github_output(key: str, value: str) -> bool:
    """Append ``key=value`` to ``$GITHUB_OUTPUT`` when running in Actions."""
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return False
    with open(output_path, "a", encoding="utf-8") as fh:
        fh.write(f"{key}={value}\n")
    return True
