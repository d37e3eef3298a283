"""
Report command: parse a local JUnit XML file or zipped artifact.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from cisync.cli.errors import ExitCode, handle_error
from cisync.core.exceptions import ReportParseError
from cisync.core.reports import (
    TestCaseStatus,
    TestReport,
    iter_report_documents,
    parse_test_report,
)

console = Console()

_STATUS_STYLES = {
    TestCaseStatus.PASSED: "green",
    TestCaseStatus.FAILED: "red",
    TestCaseStatus.SKIPPED: "yellow",
}


def _parse_file(path: Path) -> TestReport:
    """
    Return the first usable report in an XML file or zip archive.

    Raises:
        ReportParseError: If no document in the file has a non-zero test count
    """
    for document in iter_report_documents(path.read_bytes()):
        parsed = parse_test_report(document)
        if parsed is not None:
            return parsed
    raise ReportParseError(f"No usable test report in {path}", path=str(path))


def report(
    path: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="XML file or zip archive"),
    ],
    show_cases: Annotated[
        bool, typer.Option("--cases", "-c", help="List individual test cases")
    ] = False,
) -> None:
    """
    Parse a test report the same way synced artifacts are parsed.

    Examples:
        cisync report build/test-results.xml
        cisync report test-results.zip --cases
    """
    try:
        parsed = _parse_file(path)
    except ReportParseError as e:
        handle_error(e, "report")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    summary = Table(title=f"Test Report: {path.name}", border_style="cyan")
    summary.add_column("Total", justify="right")
    summary.add_column("Passed", justify="right", style="green")
    summary.add_column("Failed", justify="right", style="red")
    summary.add_column("Skipped", justify="right", style="yellow")
    summary.add_column("Pass Rate", justify="right")
    summary.add_row(
        str(parsed.total_tests),
        str(parsed.passed_tests),
        str(parsed.failed_tests),
        str(parsed.skipped_tests),
        f"{parsed.pass_rate:.1%}",
    )
    console.print(summary)

    if show_cases and parsed.test_cases:
        cases = Table(border_style="dim")
        cases.add_column("Suite", style="dim")
        cases.add_column("Test")
        cases.add_column("Status")
        cases.add_column("Duration (ms)", justify="right")
        for case in parsed.test_cases:
            style = _STATUS_STYLES[case.status]
            cases.add_row(
                case.suite,
                case.name,
                f"[{style}]{case.status.value}[/{style}]",
                str(case.duration_ms),
            )
        console.print(cases)
