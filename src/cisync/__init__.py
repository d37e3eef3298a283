"""
cisync - CI execution-history synchronization

Mirrors workflow runs, tags and JUnit test results from GitHub Actions into
a local store, incrementally and without re-fetching trusted data.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from cisync.core.builds import Build, Selector, SelectorType
from cisync.core.config.models import CisyncConfig

__all__ = ["Build", "CisyncConfig", "Selector", "SelectorType", "__version__"]
