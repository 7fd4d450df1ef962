"""``pagewright build`` — run the Build stage only.

Resolves the pinned generator, builds the book into the output directory,
overlays the assets directory and packages the result. Nothing is
published; the archive path is printed (and exported as the ``artifact``
step output in GitHub Actions) so that ``pagewright deploy`` can pick it up.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from pagewright.cli.commands._common import console, load_settings, write_github_output
from pagewright.core.orchestrator import Orchestrator
from pagewright.monitor.renderer import MonitorRenderer
from pagewright.stages.base import StageExecutionError


def build_cmd(
    source: Path = typer.Option(
        Path("."),
        "--source",
        "-s",
        help="Repository root containing book.toml, .env and assets/.",
    ),
    system_generator: bool = typer.Option(
        False,
        "--system-generator",
        help="Use the mdbook found on PATH instead of downloading it.",
    ),
    log_dir: Path = typer.Option(
        Path(".pagewright/runs"),
        "--log-dir",
        help="Directory the run log is exported into.",
    ),
) -> None:
    """Build the site and package it as an artifact."""
    settings = load_settings(source)
    if system_generator:
        settings = settings.model_copy(update={"use_system_generator": True})

    orchestrator = Orchestrator(prod_config=settings)
    renderer = MonitorRenderer(console)
    console.print(f"[bold]Build[/bold] {orchestrator.run_id}  [dim]{source.resolve()}[/dim]")

    try:
        artifact = orchestrator.build()
    except StageExecutionError as exc:
        console.print(
            Panel(
                f"[bold red]{type(exc.cause).__name__}[/bold red]\n\n{exc.cause}",
                title="[bold red]Build failed[/bold red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)
    finally:
        orchestrator.export_log(orchestrator.config.resolve(log_dir))

    renderer.print_artifact(artifact)
    write_github_output("artifact", str(artifact.archive_path))
