"""
strata Build Results

Per-unit results and the outcome of one orchestration run.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SkipReason(Enum):
    """Why a unit was not built in a run."""
    CACHED = "cached/unaffected"
    ABORTED = "aborted — upstream failure"


@dataclass(frozen=True)
class UnitBuildResult:
    """Result of building a single unit."""
    unit: str
    success: bool
    diagnostics: Tuple[str, ...] = ()
    duration_seconds: float = 0.0
    error: Optional[str] = None
    error_type: Optional[str] = None
    from_cache: bool = False

    def __post_init__(self):
        # Lists passed by callers are frozen into a tuple
        object.__setattr__(self, "diagnostics", tuple(self.diagnostics))

    def with_timing(self, unit: str, duration_seconds: float) -> "UnitBuildResult":
        """Copy stamped with the orchestrator's unit name and measured duration."""
        return replace(self, unit=unit, duration_seconds=duration_seconds)

    def as_cached(self) -> "UnitBuildResult":
        return replace(self, from_cache=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit,
            "success": self.success,
            "diagnostics": list(self.diagnostics),
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "error_type": self.error_type,
            "from_cache": self.from_cache,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnitBuildResult":
        return cls(
            unit=data["unit"],
            success=data["success"],
            diagnostics=tuple(data.get("diagnostics", ())),
            duration_seconds=data.get("duration_seconds", 0.0),
            error=data.get("error"),
            error_type=data.get("error_type"),
            from_cache=data.get("from_cache", False),
        )


@dataclass
class BuildResult:
    """
    Outcome of one orchestration run.

    `skipped_units` means "not attempted", never "failed".
    """
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    succeeded_units: List[str] = field(default_factory=list)
    failed_units: List[str] = field(default_factory=list)
    skipped_units: Dict[str, SkipReason] = field(default_factory=dict)

    # Results for built units and reused cached results for skipped ones
    results: Dict[str, UnitBuildResult] = field(default_factory=dict)
    # Failure details keyed by unit (UnitBuildFailed.to_dict())
    failures: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    stages_executed: int = 0
    aborted: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed_units

    @property
    def first_failure(self) -> Optional[str]:
        return self.failed_units[0] if self.failed_units else None

    def skipped_with(self, reason: SkipReason) -> List[str]:
        return [unit for unit, r in self.skipped_units.items() if r is reason]

    def get_summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "success": self.success,
            "succeeded": len(self.succeeded_units),
            "failed": len(self.failed_units),
            "skipped": len(self.skipped_units),
            "stages_executed": self.stages_executed,
            "aborted": self.aborted,
            "duration_seconds": self.duration_seconds,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "succeeded_units": list(self.succeeded_units),
            "failed_units": list(self.failed_units),
            "skipped_units": {u: r.value for u, r in self.skipped_units.items()},
            "results": {u: r.to_dict() for u, r in self.results.items()},
            "failures": self.failures,
            "stages_executed": self.stages_executed,
            "aborted": self.aborted,
            "duration_seconds": self.duration_seconds,
        }
