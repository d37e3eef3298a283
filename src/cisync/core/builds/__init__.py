"""Tracked builds and their run selectors."""

from cisync.core.builds.models import Build, Selector, SelectorType

__all__ = ["Build", "Selector", "SelectorType"]
