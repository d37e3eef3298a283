"""
Status command: show sync bookkeeping for configured builds.
"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from cisync.cli.engine import open_store
from cisync.cli.errors import ExitCode, handle_error, print_error
from cisync.core.config import CisyncConfig, load_config
from cisync.core.store import SyncPhase, SyncStatus

console = Console()

_PHASE_STYLES = {
    SyncPhase.NEVER_SYNCED: "dim",
    SyncPhase.BACKFILLING: "yellow",
    SyncPhase.STEADY: "green",
}


def _fmt(value: object) -> str:
    if value is None:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value)


async def _load_statuses(
    config: CisyncConfig, build_ids: list[str]
) -> dict[str, SyncStatus | None]:
    store = open_store(config)
    try:
        return {
            build_id: await store.find_sync_status(build_id, config.tenant)
            for build_id in build_ids
        }
    finally:
        store.close()


def status(
    build_id: Annotated[Optional[str], typer.Argument(help="Configured build id")] = None,
) -> None:
    """
    Show the sync state of configured builds.

    Examples:
        cisync status
        cisync status web-release
    """
    try:
        config = load_config()
        if build_id is not None and config.get_build(build_id) is None:
            print_error(
                f"Unknown build: {build_id}",
                solution="cisync status  # to list configured builds",
            )
            raise typer.Exit(ExitCode.USER_ERROR)
        build_ids = [build_id] if build_id else [b.id for b in config.builds]
        statuses = asyncio.run(_load_statuses(config, build_ids))
    except typer.Exit:
        raise
    except Exception as e:
        handle_error(e, "status")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not statuses:
        console.print("[yellow]No builds configured.[/yellow]")
        return

    table = Table(title="Sync Status", border_style="cyan")
    table.add_column("Build", style="cyan", no_wrap=True)
    table.add_column("Phase")
    table.add_column("Runs Synced", justify="right")
    table.add_column("Last Synced")
    table.add_column("Newest Run")
    table.add_column("Last Error", style="red")
    for bid, row in statuses.items():
        if row is None:
            table.add_row(bid, "[dim]never_synced[/dim]", "0", "-", "-", "")
            continue
        style = _PHASE_STYLES[row.phase]
        table.add_row(
            bid,
            f"[{style}]{row.phase.value}[/{style}]",
            str(row.total_runs_synced),
            _fmt(row.last_synced_at),
            _fmt(row.last_synced_run_id),
            row.last_sync_error or "",
        )
    console.print(table)
