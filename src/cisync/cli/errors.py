"""
Error display, exit codes and logging setup for the cisync CLI.
"""

import logging
import sys
import traceback
from enum import IntEnum

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from cisync.core.exceptions import AuthenticationError, CisyncError

console = Console()

_debug_mode = False


class ExitCode(IntEnum):
    """Standard exit codes for cisync commands."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Sync, provider or store failure."""

    USER_ERROR = 2
    """Bad arguments or configuration (actionable by user)."""


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging and full tracebacks
    """
    global _debug_mode
    _debug_mode = debug

    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Example:
        >>> print_error(
        ...     "Unknown build: web",
        ...     reason="No build with that id is configured",
        ...     solution="cisync status  # to list configured builds",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")
    if reason:
        console.print(f"[dim]{reason}[/dim]")
    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_auth_error(error: AuthenticationError) -> None:
    """Print the credentials hint shown whenever the provider rejects the token."""
    print_error(
        str(error),
        reason="GitHub rejected the configured access token, or none is configured",
        solution="export GITHUB_TOKEN=<token>  # or set CISYNC_GITHUB_TOKEN in .env",
    )


def handle_error(error: Exception, command_name: str) -> None:
    """
    Display an error raised by a command.

    Authentication failures get the credentials hint; everything else is
    shown in a panel, with a traceback in debug mode.
    """
    if isinstance(error, AuthenticationError):
        print_auth_error(error)
        return

    error_text = Text()
    error_text.append("Error in ", style="bold red")
    error_text.append(command_name, style="bold yellow")
    error_text.append(": ", style="bold red")
    error_text.append(str(error))

    console.print()
    console.print(
        Panel(
            error_text,
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )

    if _debug_mode:
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())
    elif not isinstance(error, CisyncError):
        console.print("[dim]Run with --debug for full traceback[/dim]")
    console.print()
