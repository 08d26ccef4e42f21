"""
Display utilities for presenting sync progress and results.
"""

from rich.console import Console
from rich.table import Table

from ..models import SyncSettings, SyncReport

console = Console()


def display_sync_header() -> None:
    """Display the tool introduction."""
    console.print("[bold green]🔑 Vault SSH Sync - SSH Configuration Generator[/bold green]")
    console.print("Builds SSH Host entries from agent identities and vault metadata.\n")


def display_configuration_info(settings: SyncSettings) -> None:
    """Display configuration information."""
    console.print("[bold]Configuration:[/bold]")
    console.print(f"  • Output Dir: {settings.output_dir}")
    console.print(f"  • Config File: {settings.config_path}")
    console.print(f"  • Link: {settings.link_path or 'disabled'}")
    console.print(f"  • Rotate Existing: {'yes' if settings.rotate_existing else 'no'}")


def display_stage(title: str) -> None:
    """Display a stage header."""
    console.print(f"\n[bold blue]{title}[/bold blue]")


def display_sync_report(report: SyncReport) -> None:
    """Display a summary table of reconciled entries."""
    if report.outcomes:
        table = Table(title="SSH Config Entries")
        table.add_column("Host", style="cyan")
        table.add_column("HostName", style="green")
        table.add_column("User", style="yellow")
        table.add_column("Status", style="magenta")

        for outcome in report.outcomes:
            entry = outcome.entry
            table.add_row(
                entry.alias,
                entry.hostname,
                entry.user or "-",
                "written" if outcome.written else "exists",
            )

        console.print("\n", table)
    else:
        console.print("[yellow]No identities found in the SSH agent[/yellow]")

    console.print(f"\n[bold]Summary:[/bold]")
    console.print(f"  • Identities processed: {report.processed}")
    console.print(f"  • New entries written: {report.written}")
    console.print(f"  • Existing entries kept: {report.skipped}")
    if report.backup_path:
        console.print(f"[dim]Previous config saved to {report.backup_path}[/dim]")
