"""Subprocess seam for external tools (generator, version probes).

Stages never call ``subprocess`` directly; they take a ``CommandRunner`` so
tests can substitute a fake that emulates the generator's contract.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Runs an external command and returns its completed process."""

    def __call__(
        self, args: Sequence[str], *, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        ...


def run_command(
    args: Sequence[str], *, cwd: Path | None = None
) -> subprocess.CompletedProcess[str]:
    """Run *args* to completion, capturing text output. Never raises on exit code."""
    logger.debug("exec: %s (cwd=%s)", " ".join(args), cwd or ".")
    return subprocess.run(
        list(args),
        cwd=str(cwd) if cwd is not None else None,
        capture_output=True,
        text=True,
        check=False,
    )
