"""
Detailed test-case extraction from JUnit-style XML.

Different CI runners emit different report shapes:

- a single ``<testsuite>`` root
- a ``<testsuites>`` wrapper around one or many suites
- suites nested inside suites
- aggregate-only suites that carry counts but no ``<testcase>`` children

The document is parsed with ElementTree, its root is classified into a
:class:`DocumentShape`, and every suite is classified into a
:class:`SuiteShape` variant. Each variant has its own visit function.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from cisync.core.reports.models import TestCase, TestCaseStatus

logger = logging.getLogger(__name__)


class DocumentShape(str, Enum):
    """Shape of the report root."""

    SINGLE_SUITE = "single_suite"
    WRAPPED = "wrapped"
    UNRECOGNIZED = "unrecognized"


class SuiteShape(str, Enum):
    """Shape of one ``<testsuite>`` element."""

    CASES = "cases"  # <testcase> children only
    CONTAINER = "container"  # nested <testsuite> children only
    MIXED = "mixed"  # both
    AGGREGATE = "aggregate"  # neither; counts live on the suite itself


@dataclass(frozen=True)
class SuiteNode:
    """A classified suite element with its relevant children split out."""

    element: ET.Element
    shape: SuiteShape
    cases: list[ET.Element] = field(default_factory=list)
    children: list[ET.Element] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.element.get("name") or self.element.get("file") or "Unknown Suite"

    @property
    def identity(self) -> str:
        """Suite identifier for test cases; the file path wins over the name."""
        return self.element.get("file") or self.name


def _local_name(element: ET.Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and "}" in tag:
        return tag.rsplit("}", 1)[1]
    return tag if isinstance(tag, str) else ""


def _children_named(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child) == name]


def _first_child_named(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child) == name:
            return child
    return None


def _int_attr(element: ET.Element, name: str) -> int:
    try:
        return int(float(element.get(name, "0") or "0"))
    except ValueError:
        return 0


def _seconds_to_ms(value: str | None) -> float:
    if not value:
        return 0.0
    try:
        return max(0.0, float(value.replace(",", "")) * 1000)
    except ValueError:
        return 0.0


def classify_document(root: ET.Element) -> tuple[DocumentShape, list[ET.Element]]:
    """Return the document shape and its top-level suite elements."""
    name = _local_name(root)
    if name == "testsuites":
        return DocumentShape.WRAPPED, _children_named(root, "testsuite")
    if name == "testsuite":
        return DocumentShape.SINGLE_SUITE, [root]
    return DocumentShape.UNRECOGNIZED, []


def classify_suite(element: ET.Element) -> SuiteNode:
    """Split a suite element into its cases and nested suites."""
    cases = _children_named(element, "testcase")
    children = _children_named(element, "testsuite")
    if cases and children:
        shape = SuiteShape.MIXED
    elif cases:
        shape = SuiteShape.CASES
    elif children:
        shape = SuiteShape.CONTAINER
    else:
        shape = SuiteShape.AGGREGATE
    return SuiteNode(element=element, shape=shape, cases=cases, children=children)


def _case_outcome(case: ET.Element) -> tuple[TestCaseStatus, str | None, str | None]:
    for tag, status, default in (
        ("failure", TestCaseStatus.FAILED, "Test failed"),
        ("error", TestCaseStatus.FAILED, "Test error"),
        ("skipped", TestCaseStatus.SKIPPED, "Test skipped"),
    ):
        child = _first_child_named(case, tag)
        if child is None:
            continue
        text = (child.text or "").strip() or None
        message = child.get("message") or (text.splitlines()[0] if text else None) or default
        return status, message, text
    return TestCaseStatus.PASSED, None, None


def _visit_cases(node: SuiteNode, out: list[TestCase]) -> None:
    for case in node.cases:
        status, message, trace = _case_outcome(case)
        out.append(
            TestCase(
                name=case.get("name") or "Unknown Test",
                suite=node.identity,
                status=status,
                duration_ms=_seconds_to_ms(case.get("time")),
                error_message=message,
                stack_trace=trace,
            )
        )


def _visit_container(node: SuiteNode, out: list[TestCase]) -> None:
    for child in node.children:
        visit_suite(classify_suite(child), out)


def _visit_mixed(node: SuiteNode, out: list[TestCase]) -> None:
    _visit_cases(node, out)
    _visit_container(node, out)


def _visit_aggregate(node: SuiteNode, out: list[TestCase]) -> None:
    element = node.element
    tests = _int_attr(element, "tests")
    if tests <= 0:
        return

    failures = _int_attr(element, "failures")
    skipped = _int_attr(element, "skipped")
    if failures > 0:
        status = TestCaseStatus.FAILED
    elif skipped > 0:
        status = TestCaseStatus.SKIPPED
    else:
        status = TestCaseStatus.PASSED

    out.append(
        TestCase(
            name=node.name,
            suite=node.identity,
            status=status,
            duration_ms=_seconds_to_ms(element.get("time")),
            error_message=f"{failures} test(s) failed in this suite" if failures else None,
        )
    )


_VISITORS: dict[SuiteShape, Callable[[SuiteNode, list[TestCase]], None]] = {
    SuiteShape.CASES: _visit_cases,
    SuiteShape.CONTAINER: _visit_container,
    SuiteShape.MIXED: _visit_mixed,
    SuiteShape.AGGREGATE: _visit_aggregate,
}


def visit_suite(node: SuiteNode, out: list[TestCase]) -> None:
    """Dispatch a classified suite to the visit function for its shape."""
    _VISITORS[node.shape](node, out)


def parse_test_cases(xml_content: str) -> list[TestCase]:
    """
    Extract every test case from a JUnit-style report.

    Never raises: malformed or unrecognized input yields an empty list.

    Args:
        xml_content: Report text

    Returns:
        Test cases in document order
    """
    cases: list[TestCase] = []
    try:
        root = ET.fromstring(xml_content.lstrip("\ufeff").strip())
    except ET.ParseError as e:
        logger.debug("Report is not well-formed XML: %s", e)
        return cases

    try:
        shape, suites = classify_document(root)
        if shape == DocumentShape.UNRECOGNIZED:
            logger.debug("Unrecognized report root <%s>", _local_name(root))
            return cases
        for suite in suites:
            visit_suite(classify_suite(suite), cases)
    except Exception as e:
        logger.warning("Failed to extract test cases: %s", e)
    return cases
