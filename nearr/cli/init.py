"""Init command implementation."""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, default_config_path, save_config
from ..db import init_database, validate_connection

console = Console()


def init_command(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file to write (default: ~/.config/nearr/config.yaml or $NEARR_CONFIG)",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("postgres", "--db-name", help="Database name"),
    db_user: str = typer.Option("postgres", "--db-user", help="Database user"),
    supabase_url: str = typer.Option(None, "--supabase-url", help="Supabase project URL"),
    max_members: int = typer.Option(5, "--max-members", help="Default cohort capacity", min=1),
    skip_db: bool = typer.Option(False, "--skip-db", help="Only write the config file"),
) -> None:
    """Write a default configuration and create the database schema."""
    console.print(Panel.fit("NEARR - Initialization", style="bold blue"))

    config_path = config_path or default_config_path()
    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "NEARR_DB_PASSWORD",
        },
        supabase={"url": supabase_url},
        cohorts={"default_max_members": max_members},
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    if skip_db:
        return

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = config.postgres.model_dump()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export NEARR_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
        console.print("✅ Database schema initialized")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ NEARR initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export NEARR_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set storage key: [bold]export SUPABASE_SERVICE_ROLE_KEY=your_key[/bold]\n"
            f"3. Add a cluster: [bold]nearr clusters add --name 'Runners'[/bold]\n"
            f"4. Run: [bold]nearr serve[/bold]",
            style="green",
        )
    )
