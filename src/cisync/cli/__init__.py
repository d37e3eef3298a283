"""
cisync CLI - Main application entry point.

Registers the sync and inspection commands on one Typer app.
"""

import typer
from rich.console import Console

from cisync import __version__
from cisync.cli import report, status, sync
from cisync.cli.errors import setup_logging
from cisync.core.config import load_layered_env

PANEL_SYNC = "Sync Builds"
PANEL_INSPECT = "Inspect Results"

app = typer.Typer(
    name="cisync",
    help="Keep a local store of CI workflow runs and test results current",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    cisync - CI execution-history sync.

    Mirrors GitHub Actions workflow runs and their JUnit test results for
    the builds configured in .cisync.json.

    Common Workflows:
        cisync sync --all            # Backfill or update every build
        cisync check --all           # Sync only builds whose head moved
        cisync status                # Where each build stands
        cisync report results.xml    # Parse a report locally
    """
    # Load .env files first so the access token is visible to the config loader.
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="sync", rich_help_panel=PANEL_SYNC)(sync.sync)
app.command(name="check", rich_help_panel=PANEL_SYNC)(sync.check)
app.command(name="status", rich_help_panel=PANEL_INSPECT)(status.status)
app.command(name="report", rich_help_panel=PANEL_INSPECT)(report.report)


@app.command(rich_help_panel=PANEL_INSPECT)
def version() -> None:
    """Show cisync version."""
    console.print(f"cisync version {__version__}")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
