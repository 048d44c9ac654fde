"""
strata Dependency Engine

Provides:
- UnitGraph: units with forward and reverse dependency adjacency
- CycleDetector: three-color DFS validation
- GraphValidator: whole-graph validation report
- BuildScheduler: topological order and parallel stages
- ChangeImpactAnalyzer: changed paths -> affected units
"""

from .graph import (
    Unit,
    DependencyEdge,
    UnitGraph,
)
from .cycles import (
    CycleDetector,
    find_cycles,
)
from .validation import (
    GraphValidator,
    ValidationReport,
)
from .scheduler import (
    BuildPlan,
    BuildScheduler,
    PlanKind,
)
from .impact import (
    ChangeImpactAnalyzer,
    ImpactReport,
    normalize_path,
)

__all__ = [
    # Graph
    "Unit",
    "DependencyEdge",
    "UnitGraph",
    # Cycles
    "CycleDetector",
    "find_cycles",
    # Validation
    "GraphValidator",
    "ValidationReport",
    # Scheduling
    "BuildPlan",
    "BuildScheduler",
    "PlanKind",
    # Impact
    "ChangeImpactAnalyzer",
    "ImpactReport",
    "normalize_path",
]
