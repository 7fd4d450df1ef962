"""Documentation generator invocation (mdbook, treated as a black box).

Contract: given a source tree and an output directory, either produce a
directory of static assets or fail. Failures surface the generator's own
diagnostics verbatim.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pagewright.core.process import CommandRunner, run_command
from pagewright.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)


class MdBookGenerator:
    """Runs ``mdbook build -d <output>`` inside the book's source tree."""

    def __init__(self, binary: Path | str, *, runner: CommandRunner = run_command) -> None:
        self._binary = str(binary)
        self._runner = runner

    def build(self, source_dir: Path, output_dir: Path) -> Path:
        """Render *source_dir* into *output_dir* and return the output path.

        The output directory is emptied first so nothing from a previous
        build ends up in the artifact. An output directory that is the
        source tree, or contains it, is refused.
        """
        source_dir = Path(source_dir).resolve()
        output_dir = Path(output_dir).resolve()
        if source_dir.is_relative_to(output_dir):
            raise ConfigurationError(
                f"Output directory {output_dir} would replace the source tree {source_dir}"
            )
        if output_dir.exists():
            shutil.rmtree(output_dir)

        args = [self._binary, "build", "-d", str(output_dir)]
        logger.info("Running %s", " ".join(args))
        try:
            result = self._runner(args, cwd=source_dir)
        except OSError as exc:
            raise GenerationError(
                f"Cannot execute {self._binary}: {exc}", returncode=-1
            ) from exc

        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        if result.returncode != 0:
            raise GenerationError(
                f"{Path(self._binary).name} build failed with exit code "
                f"{result.returncode}:\n{output}",
                returncode=result.returncode,
                output=output,
            )
        if not output_dir.is_dir():
            raise GenerationError(
                f"{Path(self._binary).name} build reported success but produced no {output_dir}",
                returncode=result.returncode,
                output=output,
            )

        logger.info("Generated site at %s", output_dir)
        return output_dir
