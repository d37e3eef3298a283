"""
Selector matching engine.

Decides whether a remote workflow run belongs to a Build. A run matches a
Build iff it matches at least one of the Build's selectors:

- ``branch``: the pattern is matched against ``run.head_branch``
- ``workflow``: the pattern is matched against ``run.name``
- ``tag``: ``run.head_branch`` equals a tag name that matches the pattern,
  either bare or as ``refs/tags/<tag>``

Patterns are globs (``*`` and ``?``) compiled to anchored, case-insensitive
regular expressions.

Example:
    >>> matches_pattern("v1.2.3", "v*")
    True
    >>> matches_pattern("Main", "main")
    True
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from cisync.core.builds.models import Selector, SelectorType
from cisync.core.provider.models import WorkflowRun


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a glob pattern into an anchored, case-insensitive regex.

    Every regex metacharacter is escaped; ``*`` becomes ``.*`` and ``?``
    becomes ``.``.
    """
    parts: list[str] = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile(f"^{''.join(parts)}$", re.IGNORECASE | re.DOTALL)


def matches_pattern(value: str, pattern: str) -> bool:
    """Return True if ``value`` matches the glob ``pattern``."""
    return compile_pattern(pattern).match(value) is not None


def needs_tags(selectors: Iterable[Selector]) -> bool:
    """Whether matching these selectors requires a tag listing."""
    return any(selector.type == SelectorType.TAG for selector in selectors)


class SelectorMatcher:
    """
    Matches runs against a Build's selectors.

    Tag selectors need the repository's tag names; pass them at construction
    time (the orchestrator fetches them through the cached client). Matching
    tag names are resolved once per selector.

    Example:
        >>> matcher = SelectorMatcher(
        ...     [Selector(type=SelectorType.TAG, pattern="v*")],
        ...     tags=["v1.0.0", "nightly"],
        ... )
        >>> matcher.matches(run_on("refs/tags/v1.0.0"))
        True
    """

    def __init__(self, selectors: Sequence[Selector], tags: Sequence[str] = ()) -> None:
        self.selectors = list(selectors)
        self.tags = list(tags)
        self._tag_refs: dict[str, frozenset[str]] = {}

    def _refs_for_tag_pattern(self, pattern: str) -> frozenset[str]:
        refs = self._tag_refs.get(pattern)
        if refs is None:
            matching = [tag for tag in self.tags if matches_pattern(tag, pattern)]
            refs = frozenset(matching) | frozenset(f"refs/tags/{tag}" for tag in matching)
            self._tag_refs[pattern] = refs
        return refs

    def matches_selector(self, run: WorkflowRun, selector: Selector) -> bool:
        """Return True if ``run`` satisfies a single selector."""
        if selector.type == SelectorType.BRANCH:
            return bool(run.head_branch) and matches_pattern(run.head_branch, selector.pattern)
        if selector.type == SelectorType.WORKFLOW:
            return bool(run.name) and matches_pattern(run.name, selector.pattern)
        if selector.type == SelectorType.TAG:
            if not run.head_branch:
                return False
            return run.head_branch in self._refs_for_tag_pattern(selector.pattern)
        return False

    def matches(self, run: WorkflowRun) -> bool:
        """Return True if ``run`` satisfies at least one selector."""
        return any(self.matches_selector(run, selector) for selector in self.selectors)

    def filter_runs(self, runs: Iterable[WorkflowRun]) -> list[WorkflowRun]:
        """Return matching runs sorted newest-first by creation time."""
        matched = [run for run in runs if self.matches(run)]
        matched.sort(key=lambda run: run.created_at, reverse=True)
        return matched
