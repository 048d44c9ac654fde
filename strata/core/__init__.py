"""
core/ - Shared value types

Result types passed between the cache, the orchestrator and callers.
"""

from .results import (
    SkipReason,
    UnitBuildResult,
    BuildResult,
)

__all__ = [
    "SkipReason",
    "UnitBuildResult",
    "BuildResult",
]
