"""
errors/exceptions.py - Engine exception hierarchy

Graph-construction errors are raised synchronously from the mutating call
and leave the graph unchanged. UnitBuildFailed is recorded by the
orchestrator rather than raised out of a build run.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from .taxonomy import CATEGORY_FOR_CODE, ErrorCategory, ErrorCode, ErrorSeverity


class StrataError(Exception):
    """Base class for all engine errors."""

    code: ErrorCode = ErrorCode.GRF_UNKNOWN_UNIT
    severity: ErrorSeverity = ErrorSeverity.ERROR

    @property
    def category(self) -> ErrorCategory:
        return CATEGORY_FOR_CODE[self.code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "error_type": type(self).__name__,
            "message": str(self),
        }


# =============================================================================
# GRAPH ERRORS
# =============================================================================

class DependencyGraphError(StrataError):
    """Base exception for dependency graph errors."""
    pass


class DuplicateUnitError(DependencyGraphError):
    """Raised when a unit name is registered twice."""

    code = ErrorCode.GRF_DUPLICATE_UNIT

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unit already exists: {name}")


class UnknownUnitError(DependencyGraphError):
    """Raised when an operation names a unit that is not in the graph."""

    code = ErrorCode.GRF_UNKNOWN_UNIT

    def __init__(self, names: Iterable[str], context: str = ""):
        self.names = sorted(set(names))
        message = f"Unknown unit(s): {', '.join(self.names)}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


class WouldCreateCycleError(DependencyGraphError):
    """Raised when adding an edge would make the graph cyclic."""

    code = ErrorCode.GRF_WOULD_CREATE_CYCLE

    def __init__(self, from_unit: str, to_unit: str, path: Optional[List[str]] = None):
        self.from_unit = from_unit
        self.to_unit = to_unit
        # Existing path to_unit -> ... -> from_unit that the new edge would close
        self.path = path or []
        detail = f" (existing path: {' -> '.join(self.path)})" if self.path else ""
        super().__init__(
            f"Adding dependency {from_unit} -> {to_unit} would create a cycle{detail}"
        )


class HasDependentsError(DependencyGraphError):
    """Raised when removing a unit that other units still depend on."""

    code = ErrorCode.GRF_HAS_DEPENDENTS

    def __init__(self, name: str, dependents: Iterable[str]):
        self.name = name
        self.dependents = sorted(dependents)
        super().__init__(
            f"Cannot remove unit {name}: depended on by {', '.join(self.dependents)}"
        )


class CyclicGraphError(DependencyGraphError):
    """Raised when scheduling a graph that contains a cycle."""

    code = ErrorCode.SCH_CYCLIC_GRAPH

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        closed = self.cycle + self.cycle[:1]
        super().__init__(f"Cyclic dependency detected: {' -> '.join(closed)}")


# =============================================================================
# BUILD ERRORS
# =============================================================================

class UnitBuildFailed(StrataError):
    """A unit's build callback failed. Recorded per unit, never raised out of a run."""

    code = ErrorCode.BLD_UNIT_FAILED

    def __init__(self, unit: str, cause: Optional[BaseException] = None, message: str = ""):
        self.unit = unit
        self.cause = cause
        reason = message or (str(cause) if cause is not None else "build reported failure")
        super().__init__(f"Build failed for {unit}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["unit"] = self.unit
        data["cause_type"] = type(self.cause).__name__ if self.cause is not None else None
        return data


class BuildInProgressError(StrataError):
    """Raised when a build run is started while another is running."""

    code = ErrorCode.BLD_IN_PROGRESS

    def __init__(self):
        super().__init__("Build already in progress")


# =============================================================================
# CACHE / CONFIG ERRORS
# =============================================================================

class CacheSnapshotError(StrataError):
    """Raised when a persisted cache snapshot cannot be loaded."""

    code = ErrorCode.CCH_SNAPSHOT_INVALID


class ConfigurationError(StrataError):
    """Raised for invalid configuration values."""

    code = ErrorCode.CFG_INVALID
