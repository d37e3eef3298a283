"""
Tolerant JUnit-style test report parsing.

Two independent layers:
- :func:`parse_junit_summary` reads counts from raw text
- :func:`parse_test_cases` walks the parsed tree for per-case detail

Neither raises; unusable input produces ``None`` or an empty list.

Example:
    >>> from cisync.core.reports import parse_test_report
    >>> report = parse_test_report(xml_text)
    >>> if report:
    ...     print(report.failed_tests, len(report.test_cases or []))
"""

from cisync.core.reports.archive import iter_report_documents
from cisync.core.reports.cases import (
    DocumentShape,
    SuiteShape,
    classify_document,
    classify_suite,
    parse_test_cases,
)
from cisync.core.reports.models import TestCase, TestCaseStatus, TestReport
from cisync.core.reports.summary import is_test_artifact, parse_junit_summary


def parse_test_report(xml_content: str) -> TestReport | None:
    """
    Parse a report into counts plus per-case detail.

    Returns:
        TestReport with ``test_cases`` populated when detail is available,
        or None if the document has no usable counts
    """
    summary = parse_junit_summary(xml_content)
    if summary is None:
        return None
    cases = parse_test_cases(xml_content)
    return summary.model_copy(update={"test_cases": cases or None})


__all__ = [
    "DocumentShape",
    "SuiteShape",
    "TestCase",
    "TestCaseStatus",
    "TestReport",
    "classify_document",
    "classify_suite",
    "is_test_artifact",
    "iter_report_documents",
    "parse_junit_summary",
    "parse_test_cases",
    "parse_test_report",
]
