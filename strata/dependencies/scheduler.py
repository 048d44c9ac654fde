"""
strata Build Scheduler

Computes a total build order and its partition into parallel stages.

Ordering uses Kahn's algorithm; a unit's stage is one more than the
deepest stage among its dependencies (stage 0 for units without any).
Ready units are drawn by (stage, name), which makes the total order equal
to the stages flattened, and deterministic across runs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from heapq import heappop, heappush
from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING
import logging

from strata.core.results import utc_now
from strata.errors import CyclicGraphError, UnknownUnitError
from .cycles import CycleDetector

if TYPE_CHECKING:
    from .graph import UnitGraph
    from strata.cache.store import BuildCache

logger = logging.getLogger(__name__)


class PlanKind(Enum):
    """Whether a plan covers every unit or a narrowed subset."""
    FULL = "full"
    INCREMENTAL = "incremental"


# =============================================================================
# BUILD PLAN
# =============================================================================

@dataclass(frozen=True)
class BuildPlan:
    """
    Immutable scheduling result.

    Invariants: every dependency precedes its dependents in `order`;
    flattening `stages` reproduces `order`; each unit is in exactly one stage.
    """
    order: Tuple[str, ...]
    stages: Tuple[Tuple[str, ...], ...]
    kind: PlanKind = PlanKind.FULL
    reason: str = ""
    created_at: datetime = field(default_factory=utc_now, compare=False)

    @property
    def unit_count(self) -> int:
        return len(self.order)

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    @property
    def is_empty(self) -> bool:
        return not self.order

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, unit: object) -> bool:
        return unit in self.order

    def flatten(self) -> List[str]:
        return [unit for stage in self.stages for unit in stage]

    def stage_of(self, unit: str) -> int:
        for index, stage in enumerate(self.stages):
            if unit in stage:
                return index
        raise UnknownUnitError([unit], context="not in build plan")

    def restrict_to(self, units: Iterable[str], reason: str = "") -> "BuildPlan":
        """Narrow the plan to a subset, keeping stage order and dropping empty stages."""
        keep = set(units)
        stages = tuple(
            narrowed
            for narrowed in (tuple(u for u in stage if u in keep) for stage in self.stages)
            if narrowed
        )
        return BuildPlan(
            order=tuple(u for u in self.order if u in keep),
            stages=stages,
            kind=PlanKind.INCREMENTAL,
            reason=reason or f"{sum(len(s) for s in stages)} of {self.unit_count} units",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": list(self.order),
            "stages": [list(stage) for stage in self.stages],
            "kind": self.kind.value,
            "reason": self.reason,
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# SCHEDULER
# =============================================================================

class BuildScheduler:
    """Produces BuildPlans from a UnitGraph."""

    def __init__(self, detector: Optional[CycleDetector] = None):
        self._detector = detector or CycleDetector()

    def schedule(self, graph: "UnitGraph") -> BuildPlan:
        """
        Compute the build plan.

        Raises:
            UnknownUnitError: a unit depends on an unregistered unit
            CyclicGraphError: the graph is not a DAG (no partial plan)
        """
        missing = graph.missing_dependencies()
        if missing:
            raise UnknownUnitError(
                {dep for _, dep in missing},
                context="referenced as dependencies but never registered",
            )

        cycles = self._detector.find_cycles(graph)
        if cycles:
            raise CyclicGraphError(cycles[0])

        names = graph.unit_names()
        in_degree = {name: len(graph.dependencies_of(name)) for name in names}
        stage: Dict[str, int] = {}
        ready: List[Tuple[int, str]] = []

        for name in names:
            if in_degree[name] == 0:
                stage[name] = 0
                heappush(ready, (0, name))

        order: List[str] = []
        stages: List[List[str]] = []

        while ready:
            level, name = heappop(ready)
            order.append(name)
            if level == len(stages):
                stages.append([])
            stages[level].append(name)

            for dependent in graph.dependents_of(name):
                stage[dependent] = max(stage.get(dependent, 0), level + 1)
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heappush(ready, (stage[dependent], dependent))

        if len(order) != len(names):
            # Unreachable unless the detector missed a cycle
            unresolved = sorted(n for n in names if in_degree[n] > 0)
            logger.error(f"Topological sort left {len(unresolved)} units unresolved")
            raise CyclicGraphError(unresolved)

        plan = BuildPlan(
            order=tuple(order),
            stages=tuple(tuple(s) for s in stages),
            kind=PlanKind.FULL,
            reason=f"Full build of {len(order)} units",
        )

        logger.info(
            f"Scheduled {plan.unit_count} units in {plan.stage_count} stages"
        )
        return plan

    @staticmethod
    def estimate_duration(plan: BuildPlan, cache: "BuildCache") -> float:
        """
        Estimate wall time from measured durations in the cache.

        Stages run one after another and a stage lasts as long as its
        slowest unit; units never built contribute nothing.
        """
        total = 0.0
        for stage in plan.stages:
            durations = [
                entry.last_result.duration_seconds
                for entry in (cache.peek(unit) for unit in stage)
                if entry is not None
            ]
            total += max(durations, default=0.0)
        return total
