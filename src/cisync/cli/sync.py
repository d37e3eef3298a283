"""
Sync commands: run the orchestrator directly or through the change detector.
"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from cisync.cli.engine import open_engine, resolve_builds
from cisync.cli.errors import ExitCode, handle_error
from cisync.core.builds import Build
from cisync.core.config import load_config
from cisync.core.sync import SyncResult

console = Console()

BuildIdArg = Annotated[Optional[str], typer.Argument(help="Configured build id")]
AllOption = Annotated[bool, typer.Option("--all", "-a", help="Act on every configured build")]


def _result_table(results: list[tuple[Build, SyncResult]]) -> Table:
    table = Table(title="Sync Results", border_style="cyan")
    table.add_column("Build", style="cyan", no_wrap=True)
    table.add_column("Repository")
    table.add_column("New Runs", justify="right")
    table.add_column("Test Reports", justify="right")
    table.add_column("Hydration Errors", justify="right")
    table.add_column("Synced At", style="dim")
    for build, result in results:
        failures = len(result.hydration_failures)
        table.add_row(
            build.display_name,
            build.full_name,
            str(result.new_runs_synced),
            str(result.test_results_parsed),
            f"[yellow]{failures}[/yellow]" if failures else "0",
            result.last_synced_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    return table


def sync(build_id: BuildIdArg = None, all_builds: AllOption = False) -> None:
    """
    Fetch new workflow runs and test reports for configured builds.

    The first sync of a build backfills its full history; later syncs are
    incremental.

    Examples:
        cisync sync web-release
        cisync sync --all
    """
    try:
        config = load_config()
        builds = resolve_builds(config, build_id, all_builds)

        async def _run() -> list[tuple[Build, SyncResult]]:
            async with open_engine(config) as engine:
                return [(build, await engine.service.sync(build)) for build in builds]

        results = asyncio.run(_run())
    except Exception as e:
        handle_error(e, "sync")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(_result_table(results))


def check(build_id: BuildIdArg = None, all_builds: AllOption = False) -> None:
    """
    Sync builds whose repository head commit changed since the last sync.

    Builds are checked concurrently. Failures are logged and reported as
    "unchanged or failed" rather than aborting the other builds.

    Examples:
        cisync check --all
    """
    try:
        config = load_config()
        builds = resolve_builds(config, build_id, all_builds)

        async def _run() -> dict[str, bool]:
            async with open_engine(config) as engine:
                return await engine.detector.check_builds(builds)

        outcomes = asyncio.run(_run())
    except Exception as e:
        handle_error(e, "check")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    table = Table(title="Change Check", border_style="cyan")
    table.add_column("Build", style="cyan", no_wrap=True)
    table.add_column("Result")
    for build in builds:
        synced = outcomes.get(build.id, False)
        table.add_row(
            build.display_name,
            "[green]synced[/green]" if synced else "[dim]unchanged or failed[/dim]",
        )
    console.print(table)
