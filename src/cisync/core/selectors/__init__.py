"""Glob selectors deciding which remote runs belong to a Build."""

from cisync.core.selectors.matcher import (
    SelectorMatcher,
    compile_pattern,
    matches_pattern,
    needs_tags,
)

__all__ = [
    "SelectorMatcher",
    "compile_pattern",
    "matches_pattern",
    "needs_tags",
]
