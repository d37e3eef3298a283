"""
Data models for parsed test reports.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class TestCaseStatus(str, Enum):
    """Outcome of a single test case."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TestCase(BaseModel):
    """
    One test case extracted from a JUnit-style report.

    Aggregate-only suites produce a single pseudo case whose ``name`` is the
    suite name.
    """

    __test__ = False

    name: str
    suite: str
    status: TestCaseStatus
    duration_ms: float = Field(default=0.0, ge=0)
    error_message: str | None = None
    stack_trace: str | None = None


class TestReport(BaseModel):
    """
    Test counts for one run, optionally with per-case detail.

    Example:
        >>> TestReport(total_tests=10, passed_tests=6, failed_tests=3, skipped_tests=1)
    """

    __test__ = False

    total_tests: int = Field(default=0, ge=0)
    passed_tests: int = 0
    failed_tests: int = Field(default=0, ge=0)
    skipped_tests: int = Field(default=0, ge=0)
    test_cases: list[TestCase] | None = None

    @property
    def pass_rate(self) -> float:
        """Passed share of executed (non-skipped) tests, 0.0 when nothing ran."""
        executed = self.total_tests - self.skipped_tests
        if executed <= 0:
            return 0.0
        return self.passed_tests / executed
