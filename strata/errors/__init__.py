"""
errors/ - Error Taxonomy

Structured error classification and the engine exception hierarchy.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
)

from .exceptions import (
    StrataError,
    DependencyGraphError,
    DuplicateUnitError,
    UnknownUnitError,
    WouldCreateCycleError,
    HasDependentsError,
    CyclicGraphError,
    UnitBuildFailed,
    BuildInProgressError,
    CacheSnapshotError,
    ConfigurationError,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    # Exceptions
    "StrataError",
    "DependencyGraphError",
    "DuplicateUnitError",
    "UnknownUnitError",
    "WouldCreateCycleError",
    "HasDependentsError",
    "CyclicGraphError",
    "UnitBuildFailed",
    "BuildInProgressError",
    "CacheSnapshotError",
    "ConfigurationError",
]
