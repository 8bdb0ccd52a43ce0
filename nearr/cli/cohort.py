"""Cohort operations from the command line."""

from typing import Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..errors import NearrError
from ..services import AppContext, build_context

console = Console()
cohort_app = typer.Typer(help="Inspect and operate cohorts")


def _context() -> AppContext:
    try:
        return build_context(Config())
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]\nRun 'nearr init' first.")
        raise typer.Exit(1)
    except NearrError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)


def _ago(value) -> str:
    if not value:
        return "-"
    return pendulum.instance(value).diff_for_humans()


@cohort_app.command("status")
def cohort_status(cluster_id: int = typer.Argument(..., help="Cluster id")) -> None:
    """Show the active cohort and its members."""
    context = _context()
    try:
        status = context.cohorts.get_status(cluster_id)
        members = context.cohorts.list_members(cluster_id)
    except NearrError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)
    finally:
        context.close()

    console.print(f"[bold]{status.cluster_name}[/bold] (cluster {cluster_id})")
    console.print(f"Cohort:    {status.cohort_id}")
    console.print(f"State:     [yellow]{status.state.value}[/yellow]")
    console.print(f"Members:   {status.current_members}/{status.max_members} ({status.spots_left} spots left)")
    if status.vcf_uploaded:
        console.print(f"Contacts:  {status.vcf_file_name} ({status.vcf_download_count} downloads)")

    if not members:
        return

    table = Table(title="Members")
    table.add_column("Nickname", style="cyan")
    table.add_column("Profession", style="magenta")
    table.add_column("Country")
    table.add_column("Joined", style="dim")
    table.add_column("Downloaded", style="green")

    for member in members:
        table.add_row(
            member.nickname,
            member.profession if member.display_profession else "",
            member.country,
            _ago(member.joined_at),
            _ago(member.vcf_downloaded_at),
        )

    console.print(table)


@cohort_app.command("generate")
def cohort_generate(cluster_id: int = typer.Argument(..., help="Cluster id")) -> None:
    """Retry contact file generation for a full cohort."""
    context = _context()
    try:
        status = context.cohorts.generate_exchange(cluster_id)
    except NearrError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)
    finally:
        context.close()

    console.print(f"[green]✅ Contacts ready: {status.vcf_file_name}[/green]")


@cohort_app.command("reset")
def cohort_reset(
    cluster_id: int = typer.Argument(..., help="Cluster id"),
    cohort_id: Optional[str] = typer.Option(None, "--cohort", help="Only reset if this cohort is active"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Clear the active cohort and open a new one."""
    if not yes:
        typer.confirm(f"Reset cluster {cluster_id}? All memberships of the active cohort are removed.", abort=True)

    context = _context()
    try:
        cohort = context.cohorts.reset(cluster_id, cohort_id)
    except NearrError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)
    finally:
        context.close()

    console.print(f"[green]✅ Cluster {cluster_id} reset; new cohort {cohort.cohort_id}[/green]")
