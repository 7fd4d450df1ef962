"""Rich terminal renderer for run reports and run logs.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
- magenta   : CANCELLED
- bold red  : BLOCKED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pagewright.models.artifacts import SiteArtifact
from pagewright.models.ledger import RunLogEntry
from pagewright.models.reports import RunReport
from pagewright.models.stages import DEFAULT_STAGE_DEFINITIONS, RunState, StageState

_STATE_STYLES: dict[StageState, str] = {
    StageState.PASSED: "bold green",
    StageState.FAILED: "bold red",
    StageState.RUNNING: "bold yellow",
    StageState.NOT_STARTED: "dim",
    StageState.CANCELLED: "bold magenta",
    StageState.BLOCKED: "bold red",
}

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.CANCELLED: "[magenta]CANCELLED[/magenta]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}

_RUN_BORDERS: dict[RunState, str] = {
    RunState.DEPLOYED: "green",
    RunState.SKIPPED: "green",
    RunState.BUILT: "cyan",
    RunState.CANCELLED: "magenta",
    RunState.BUILD_FAILED: "red",
    RunState.DEPLOY_FAILED: "red",
}


class MonitorRenderer:
    """Renders run reports as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_report(self, report: RunReport) -> Panel:
        """Render a RunReport as a Panel with the stage table and a summary."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Stage", min_width=12)
        table.add_column("State", min_width=14, justify="center")
        table.add_column("Details", min_width=20)

        for definition in DEFAULT_STAGE_DEFINITIONS:
            state = report.stage_states.get(definition.stage_id, StageState.NOT_STARTED)
            style = _STATE_STYLES.get(state, "")
            table.add_row(
                f"[{style}]{definition.display_name}[/{style}]",
                _STATE_ICONS.get(state, state.value),
                self._details(report, definition.stage_id, state),
            )

        summary_parts = [
            f"[bold]Run:[/bold] {report.run_id}",
            f"[bold]Event:[/bold] {report.trigger.event_name.value} {report.trigger.ref}".rstrip(),
            f"[bold]State:[/bold] {report.state.value}",
        ]
        if report.tool_version:
            summary_parts.append(f"[bold]mdbook:[/bold] {report.tool_version}")
        body: list = [table, Text(""), Text.from_markup("  |  ".join(summary_parts))]

        if report.error:
            body.extend([Text(""), Text(f"{report.error_type}: {report.error}", style="red")])

        return Panel(
            Group(*body),
            title="[bold]Pages Pipeline[/bold]",
            border_style=_RUN_BORDERS.get(report.state, "blue"),
            padding=(1, 2),
        )

    @staticmethod
    def _details(report: RunReport, stage_id: str, state: StageState) -> str:
        if state != StageState.PASSED:
            return "[dim]-[/dim]"
        if stage_id == "build" and report.artifact is not None:
            return (
                f"{report.artifact.name} {report.artifact.content_address[:19]} "
                f"[dim]({report.artifact.file_count} files)[/dim]"
            )
        if stage_id == "deploy" and report.deployment is not None:
            return f"[link={report.deployment.page_url}]{report.deployment.page_url}[/link]"
        return "[dim]-[/dim]"

    def print_report(self, report: RunReport) -> None:
        self.console.print(self.render_report(report))

    def print_artifact(self, artifact: SiteArtifact) -> None:
        lines = [
            f"[bold]Artifact:[/bold]  {artifact.name}",
            f"[bold]Address:[/bold]   {artifact.content_address}",
            f"[bold]Archive:[/bold]   {artifact.archive_path}",
            f"[bold]Files:[/bold]     {artifact.file_count} ({len(artifact.asset_files)} assets)",
        ]
        if artifact.collisions:
            lines.append(
                f"[yellow][bold]Overwritten by assets:[/bold] {', '.join(artifact.collisions)}[/yellow]"
            )
        self.console.print(Panel("\n".join(lines), border_style="green", padding=(1, 2)))

    def print_log(self, entries: list[RunLogEntry]) -> None:
        """Print the run's transition log."""
        table = Table(title="Run log", show_header=True, header_style="bold cyan")
        table.add_column("Time", style="dim")
        table.add_column("Stage")
        table.add_column("Transition")
        table.add_column("Detail")
        table.add_column("Seal", style="dim")
        for entry in entries:
            table.add_row(
                entry.timestamp_utc.strftime("%H:%M:%S"),
                entry.stage_id,
                entry.state_transition,
                entry.detail,
                entry.entry_hash[:12],
            )
        self.console.print(table)
