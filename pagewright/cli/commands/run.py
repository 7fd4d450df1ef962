"""``pagewright run`` — execute the pipeline for one trigger event.

Without options the event is read from the GitHub Actions environment
(``GITHUB_EVENT_NAME``, ``GITHUB_REF``, ``GITHUB_SHA``). A push to the
deploy branch builds and deploys; a pull request only builds; any other
push is not a pipeline event and exits cleanly without doing anything.

Exit code 0 means the run succeeded (deployed, or built for a pull
request); failures and cancellations exit 1.
"""

from __future__ import annotations

import os
from pathlib import Path

import typer

from pagewright.cli.commands._common import console, load_settings, write_github_output
from pagewright.core.orchestrator import Orchestrator
from pagewright.errors import ConfigurationError, TriggerRejectedError
from pagewright.models.triggers import EventName, TriggerEvent
from pagewright.monitor.renderer import MonitorRenderer


def run_cmd(
    event: EventName = typer.Option(
        None,
        "--event",
        "-e",
        help="Trigger event (push, pull_request, workflow_dispatch). Defaults to $GITHUB_EVENT_NAME.",
    ),
    ref: str = typer.Option(
        None,
        "--ref",
        "-r",
        help="Git ref the event targets, e.g. refs/heads/doc. Defaults to $GITHUB_REF.",
    ),
    sha: str = typer.Option(
        None,
        "--sha",
        help="Commit the event refers to. Defaults to $GITHUB_SHA.",
    ),
    source: Path = typer.Option(
        Path("."),
        "--source",
        "-s",
        help="Repository root containing book.toml, .env and assets/.",
    ),
    log_dir: Path = typer.Option(
        Path(".pagewright/runs"),
        "--log-dir",
        help="Directory the run log is exported into.",
    ),
    show_log: bool = typer.Option(
        False,
        "--show-log",
        help="Print the run's transition log after the summary.",
    ),
) -> None:
    """Run Build and, where the trigger allows it, Deploy."""
    env = dict(os.environ)
    if event is not None:
        env["GITHUB_EVENT_NAME"] = event.value
    if ref is not None:
        env["GITHUB_REF"] = ref
    if sha is not None:
        env["GITHUB_SHA"] = sha
    try:
        trigger = TriggerEvent.from_environment(env)
    except ValueError:
        console.print(
            f"[yellow]Nothing to do:[/yellow] {env.get('GITHUB_EVENT_NAME')} is not a pipeline event"
        )
        return

    settings = load_settings(source)
    orchestrator = Orchestrator(prod_config=settings)
    renderer = MonitorRenderer(console)

    try:
        report = orchestrator.run(trigger)
    except TriggerRejectedError as exc:
        console.print(f"[yellow]Nothing to do:[/yellow] {exc}")
        return
    except ConfigurationError as exc:
        orchestrator.export_log(orchestrator.config.resolve(log_dir))
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    orchestrator.export_log(orchestrator.config.resolve(log_dir))
    renderer.print_report(report)
    if show_log:
        renderer.print_log(orchestrator.log.entries)

    if report.page_url:
        write_github_output("page_url", report.page_url)
    if not report.succeeded:
        raise typer.Exit(code=1)
