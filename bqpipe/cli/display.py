"""Rich display functions for the bqpipe CLI."""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bqpipe.core.discovery import Unit
from bqpipe.core.runner import (
    RunReporter,
    RunResult,
    RunState,
    UnitOutcome,
    UnitStatus,
)
from bqpipe.core.settings import RunConfiguration
from bqpipe.exceptions import BQPipeError

console = Console(soft_wrap=True)


def format_duration(seconds: float) -> str:
    """Format seconds as e.g. ``850ms``, ``12.3s`` or ``2m05s``."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}m{rest:02d}s"


def format_bytes(num_bytes: Optional[int]) -> str:
    if num_bytes is None:
        return "unknown"
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024 or unit == "TB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{num_bytes} B"


def display_run_configuration(config: RunConfiguration) -> None:
    """Display the merged configuration a run will use."""
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Config", escape(config.settings_path or "(none)"))
    table.add_row("Directory", escape(config.directory))
    table.add_row("Project ID", escape(config.project_id))
    if config.dataset:
        table.add_row("Dataset", escape(config.dataset))
    if config.location:
        table.add_row("Location", escape(config.location))
    if config.impersonate_service_account:
        table.add_row("Impersonate", escape(config.impersonate_service_account))
    for key, value in sorted(config.variables.items()):
        table.add_row(f"var {escape(key)}", escape(value))

    console.print(table)
    if config.dry_run:
        console.print(
            "🧪 [yellow]Dry run enabled: queries will be validated but not "
            "executed.[/yellow]"
        )


class ConsoleReporter(RunReporter):
    """Line-oriented progress output for a pipeline run."""

    def run_started(self, config: RunConfiguration) -> None:
        display_run_configuration(config)

    def units_discovered(self, directory: str, units: List[Unit]) -> None:
        if not units:
            console.print(
                f"📭 [yellow]No .sql files found under {escape(directory)}[/yellow]"
            )
            return
        console.print(f"📋 Found [cyan]{len(units)}[/cyan] file(s) to process.")

    def unit_started(self, unit: Unit, dry_run: bool) -> None:
        mode = " (dry-run)" if dry_run else ""
        console.print(
            f"\n→ Processing [cyan]{escape(unit.relative_path)}[/cyan]{mode}"
        )

    def unit_skipped(self, outcome: UnitOutcome) -> None:
        console.print(
            f"⏭️  [yellow]Skipping empty SQL in "
            f"{escape(outcome.unit.relative_path)}[/yellow]"
        )

    def unit_finished(self, outcome: UnitOutcome) -> None:
        verb = outcome.status.value.capitalize()
        line = (
            f"✅ {verb} [cyan]{escape(outcome.unit.relative_path)}[/cyan] "
            f"in {format_duration(outcome.duration)}"
        )
        if outcome.total_bytes_processed is not None:
            if outcome.status == UnitStatus.VALIDATED:
                label = "would process"
            else:
                label = "processed"
            line += f" ({label} {format_bytes(outcome.total_bytes_processed)})"
        if outcome.num_dml_affected_rows is not None:
            line += f" ({outcome.num_dml_affected_rows} row(s) affected)"
        if outcome.job_id:
            line += f" [dim]job {escape(outcome.job_id)}[/dim]"
        console.print(line)

    def run_finished(self, result: RunResult) -> None:
        if result.state == RunState.EMPTY:
            return
        verb = "validated" if result.dry_run else "completed"
        summary = f"{result.completed} file(s) {verb}"
        if result.skipped:
            summary += f", {result.skipped} skipped"
        console.print(
            f"\n✅ [bold green]All files processed successfully.[/bold green] "
            f"[dim]{summary} in {format_duration(result.duration)}[/dim]"
        )


def display_run_error(error: BQPipeError) -> None:
    """Display the error that stopped a run."""
    # Per-file errors, render errors and path errors all carry the file path
    path = getattr(error, "path", None)
    where = f" at {escape(path)}" if path else ""
    console.print(f"❌ [bold red]Run failed{where}[/bold red]")
    console.print(f"🔍 [dim]{escape(error.message)}[/dim]")

    if error.context:
        for key, value in error.context.items():
            console.print(f"   {escape(str(key))}: {escape(str(value))}")

    if error.suggested_actions:
        console.print("💡 [bold yellow]Suggestions:[/bold yellow]")
        for suggestion in error.suggested_actions:
            console.print(f"   • {escape(suggestion)}")


def display_generic_error(error: Exception, context: str = "") -> None:
    """Display generic error with context.

    Args:
        error: Exception that occurred
        context: Optional context about where the error occurred
    """
    context_text = f" during {context}" if context else ""
    console.print(f"❌ [bold red]Error{context_text}[/bold red]")
    console.print(f"🔍 [dim]{escape(str(error))}[/dim]")


def display_success(message: str) -> None:
    console.print(f"✅ [bold green]{escape(message)}[/bold green]")


def display_warning(message: str) -> None:
    console.print(f"⚠️  [yellow]{escape(message)}[/yellow]")
