"""Main Typer application — imports and registers all CLI commands.

Entry point: ``pagewright`` (configured via pyproject.toml scripts).

Commands: version, build, deploy, run.
"""

from __future__ import annotations

import typer

from pagewright.cli.commands._common import configure_logging
from pagewright.cli.commands.build import build_cmd
from pagewright.cli.commands.deploy import deploy_cmd
from pagewright.cli.commands.run import run_cmd
from pagewright.cli.commands.version import version_cmd
from pagewright.config import config

app = typer.Typer(
    name="pagewright",
    help="Pagewright: build an mdBook site at a pinned version and publish it.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to PAGEWRIGHT_LOG_LEVEL.",
    ),
) -> None:
    """Pagewright documentation pipeline."""
    configure_logging(log_level or ("DEBUG" if config.debug else config.log_level))


# Register subcommands
app.command(name="version", help="Print the pinned mdbook version from .env.")(version_cmd)
app.command(name="build", help="Build and package the site without publishing.")(build_cmd)
app.command(name="deploy", help="Publish a previously built artifact.")(deploy_cmd)
app.command(name="run", help="Run the pipeline for a trigger event.")(run_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
