"""Cluster definition commands."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import ClusterRegistry, get_connection

console = Console()
clusters_app = typer.Typer(help="Manage cluster definitions")


def _load_config() -> Config:
    config = Config()
    try:
        config.config
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]\nRun 'nearr init' first.")
        raise typer.Exit(1)
    return config


@clusters_app.command("list")
def clusters_list() -> None:
    """List clusters and their active cohorts."""
    config = _load_config()
    with get_connection(config.get_db_config()) as conn:
        rows = ClusterRegistry().list_clusters(conn)

    if not rows:
        console.print("[yellow]No clusters configured.[/yellow]")
        return

    table = Table(title="Clusters")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Category", style="magenta")
    table.add_column("Members", style="green", justify="right")
    table.add_column("State", style="yellow")
    table.add_column("Cohort", style="dim")

    for row in rows:
        capacity = row.get("cohort_max_members") or row["max_members"]
        table.add_row(
            str(row["id"]),
            row["name"],
            row.get("category") or "",
            f"{row.get('current_members') or 0}/{capacity}",
            row.get("state") or "not started",
            (row.get("cohort_id") or "")[:8],
        )

    console.print(table)


@clusters_app.command("add")
def clusters_add(
    name: str = typer.Option(..., "--name", "-n", help="Cluster name"),
    max_members: Optional[int] = typer.Option(None, "--max-members", "-m", help="Cohort capacity", min=1),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Cluster category"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Short description"),
) -> None:
    """Add a new cluster."""
    config = _load_config()
    defaults = config.config.cohorts

    with get_connection(config.get_db_config()) as conn:
        cluster = ClusterRegistry().create_cluster(
            conn,
            name=name,
            max_members=max_members or defaults.default_max_members,
            category=category or defaults.default_category,
            description=description,
        )

    console.print(f"[green]✅ Added cluster {cluster['id']}: {name} (capacity {cluster['max_members']})[/green]")


@clusters_app.command("remove")
def clusters_remove(
    cluster_id: int = typer.Argument(..., help="Cluster id to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove a cluster together with its cohorts and memberships."""
    config = _load_config()
    if not yes:
        typer.confirm(f"Delete cluster {cluster_id} and all of its memberships?", abort=True)

    with get_connection(config.get_db_config()) as conn:
        removed = ClusterRegistry().delete_cluster(conn, cluster_id)

    if not removed:
        console.print(f"[red]Cluster {cluster_id} not found.[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Removed cluster {cluster_id}[/green]")
