"""Serve command implementation."""

from typing import Optional

import typer
import uvicorn
from rich.console import Console

from ..api import create_app
from ..config import Config
from ..db import validate_connection
from ..errors import NearrError

console = Console()


def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default from config)"),
) -> None:
    """Run the HTTP API."""
    try:
        config = Config()
        server = config.config.server
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]\nRun 'nearr init' first.")
        raise typer.Exit(1)

    console.print("[dim]Checking database connection...[/dim]")
    if not validate_connection(config.get_db_config()):
        console.print("[red]❌ Database connection failed![/red]")
        console.print("Please check your database configuration and ensure Postgres is running.")
        raise typer.Exit(1)

    try:
        app = create_app(config)
    except NearrError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)

    uvicorn.run(
        app,
        host=host or server.host,
        port=port or server.port,
        log_level=server.log_level.lower(),
    )
