"""``pagewright deploy ARCHIVE`` — publish a previously built artifact.

The archive must come from ``pagewright build``. Publish credentials are
resolved from the environment: the Actions OIDC token when the job was
granted ``id-token: write``, otherwise ``PAGEWRIGHT_PUBLISH_TOKEN``.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from pagewright.cli.commands._common import console, load_settings, write_github_output
from pagewright.core.orchestrator import Orchestrator
from pagewright.core.packager import artifact_from_archive
from pagewright.errors import PagewrightError
from pagewright.stages.base import StageExecutionError


def deploy_cmd(
    archive: Path = typer.Argument(
        ...,
        help="Artifact archive produced by `pagewright build`.",
    ),
    source: Path = typer.Option(
        Path("."),
        "--source",
        "-s",
        help="Repository root (read for PAGEWRIGHT_* settings).",
    ),
    target_dir: Path = typer.Option(
        None,
        "--target-dir",
        help="Publish into a local directory instead of the configured endpoint.",
    ),
) -> None:
    """Publish a site artifact and print its URL."""
    settings = load_settings(source)
    if target_dir is not None:
        settings = settings.model_copy(update={"publish_target_dir": target_dir})

    try:
        artifact = artifact_from_archive(archive)
        orchestrator = Orchestrator(prod_config=settings)
        deployment = orchestrator.deploy(artifact)
    except StageExecutionError as exc:
        console.print(
            Panel(
                f"[bold red]{type(exc.cause).__name__}[/bold red]\n\n{exc.cause}",
                title="[bold red]Deploy failed[/bold red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)
    except PagewrightError as exc:
        console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
        raise typer.Exit(code=1)

    write_github_output("page_url", deployment.page_url)
    console.print(
        Panel(
            f"[bold]Environment:[/bold] {deployment.environment}\n"
            f"[bold]Artifact:[/bold]    {deployment.artifact_address}\n"
            f"[bold]URL:[/bold]         {deployment.page_url}",
            title="[bold green]Deployed[/bold green]",
            border_style="green",
            padding=(1, 2),
        )
    )
