"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..logging_config import setup_logging
from .clusters import clusters_app
from .cohort import cohort_app
from .init import init_command
from .serve import serve_command

app = typer.Typer(
    name="nearr",
    help="NEARR - cluster cohorts and contact exchange backend",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    setup_logging("DEBUG" if verbose else "INFO")


# Register commands
app.command("init")(init_command)
app.command("serve")(serve_command)
app.add_typer(clusters_app, name="clusters", help="Manage cluster definitions")
app.add_typer(cohort_app, name="cohort", help="Inspect and operate cohorts")


if __name__ == "__main__":
    app()
