"""CLI entry point using Typer."""

import structlog
import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="labstate",
    help="Lab State - activity signal ingestion and derived portfolio snapshot generation.",
)
console = Console()

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)


@app.command()
def run(
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute the snapshot without writing it"),
    focus: str | None = typer.Option(None, "--focus", help="Pin focus to a project id"),
    projects_path: str | None = typer.Option(None, help="Path to projects YAML file"),
    state_path: str | None = typer.Option(None, help="Path to the snapshot JSON file"),
) -> None:
    """Ingest signals and refresh the lab-state snapshot."""
    from labstate.jobs.refresh import run_refresh

    console.print("[bold blue]Refreshing lab state...[/bold blue]")
    stats = run_refresh(
        projects_path=projects_path,
        state_path=state_path,
        focus_override=focus,
        dry_run=dry_run,
    )

    table = Table(title="Refresh Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Projects", str(stats.get("projects", 0)))
    table.add_row("Signals", str(stats.get("signals", 0)))
    table.add_row("Pulses", str(stats.get("pulses", 0)))
    table.add_row("Timeline events", str(stats.get("timeline_events", 0)))
    table.add_row("Adapter failures", str(stats.get("adapter_failures", 0)))
    table.add_row("Focus", stats.get("focus") or "-")
    console.print(table)

    if not stats.get("success"):
        console.print(f"[bold red]Error:[/bold red] {stats.get('error', 'unknown failure')}")
        raise typer.Exit(1)

    if dry_run:
        console.print("[yellow]Dry run: snapshot not written.[/yellow]")
    else:
        console.print(f"[bold green]Snapshot written:[/bold green] {stats.get('path')}")


@app.command()
def status(
    state_path: str | None = typer.Option(None, help="Path to the snapshot JSON file"),
) -> None:
    """Show projects, health and focus from the current snapshot."""
    from labstate.config import settings
    from labstate.snapshot.writer import SnapshotWriter

    state = SnapshotWriter(state_path or settings.state_path).read()
    if state is None:
        console.print("[yellow]No snapshot yet. Run 'labstate run' first.[/yellow]")
        raise typer.Exit(1)

    focus_id = state.derived.current_focus_project_id
    table = Table(title=f"Lab State ({state.meta.generated_at})")
    table.add_column("Project", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Health", style="green")
    table.add_column("Focus score", style="white")
    table.add_column("Activity", style="white")
    table.add_column("Reason", style="white")

    for project in state.projects:
        health = project.health
        name = f"* {project.name}" if project.id == focus_id else project.name
        table.add_row(
            name,
            project.status,
            f"{health.score} (was {health.previous_score})" if health else "-",
            str(project.derived.focus_score),
            project.derived.activity_level,
            health.change_reason if health else "",
        )

    console.print(table)
    if focus_id:
        console.print(f"Focus: [bold]{focus_id}[/bold] since {state.derived.tenure_start}")
    else:
        console.print("[yellow]No project currently has focus.[/yellow]")
    console.print(f"System health: {state.meta.system_health}, global health: {state.derived.global_health}")


if __name__ == "__main__":
    app()
