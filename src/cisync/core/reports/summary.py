"""
Summary extraction from JUnit-style XML.

Works on the raw text with attribute lookups rather than a full parse, so
truncated or slightly malformed reports still yield counts.
"""

from __future__ import annotations

import logging
import re

from cisync.core.reports.models import TestReport

logger = logging.getLogger(__name__)

# First wrapper or suite opening tag, whichever appears first
_TOP_LEVEL_TAG = re.compile(r"<testsuites?\b[^>]*>", re.IGNORECASE)
# Every suite opening tag (not the <testsuites> wrapper)
_SUITE_TAG = re.compile(r"<testsuite\b[^>]*>", re.IGNORECASE)


def _attribute(tag: str, name: str) -> int:
    match = re.search(
        rf"(?<![\w:.-]){name}\s*=\s*[\"'](\d+)[\"']",
        tag,
        re.IGNORECASE,
    )
    return int(match.group(1)) if match else 0


def _counts(tag: str) -> tuple[int, int, int, int]:
    return (
        _attribute(tag, "tests"),
        _attribute(tag, "failures"),
        _attribute(tag, "errors"),
        _attribute(tag, "skipped"),
    )


def _report(tests: int, failures: int, errors: int, skipped: int) -> TestReport:
    failed = failures + errors
    return TestReport(
        total_tests=tests,
        failed_tests=failed,
        passed_tests=tests - failed - skipped,
        skipped_tests=skipped,
    )


def parse_junit_summary(xml_content: str) -> TestReport | None:
    """
    Extract test counts from JUnit XML text.

    The first ``<testsuite>``/``<testsuites>`` tag is used when it carries a
    non-zero ``tests`` attribute. Otherwise the counts of every
    ``<testsuite>`` tag with a non-zero ``tests`` attribute are summed.

    Args:
        xml_content: Report text

    Returns:
        TestReport without test cases, or None if no usable counts exist

    Example:
        >>> parse_junit_summary('<testsuite tests="10" failures="2" errors="1" skipped="1">')
        TestReport(total_tests=10, passed_tests=6, failed_tests=3, skipped_tests=1, ...)
    """
    try:
        top = _TOP_LEVEL_TAG.search(xml_content)
        if top:
            tests, failures, errors, skipped = _counts(top.group(0))
            if tests > 0:
                return _report(tests, failures, errors, skipped)

        totals = [0, 0, 0, 0]
        found = False
        for match in _SUITE_TAG.finditer(xml_content):
            counts = _counts(match.group(0))
            if counts[0] > 0:
                found = True
                totals = [a + b for a, b in zip(totals, counts)]

        if found:
            return _report(*totals)
        return None
    except Exception as e:
        logger.warning("Failed to parse JUnit summary: %s", e)
        return None


def is_test_artifact(filename: str) -> bool:
    """
    Return True if an artifact name looks like it holds test results.

    A plain substring check on ``"test"``; it can match unrelated names
    such as ``latest-build``. XML restriction happens when enumerating the
    archive contents, not here.
    """
    return "test" in filename.lower()
