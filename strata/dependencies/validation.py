"""
strata Graph Validator

Whole-graph validation report for bulk-loaded graphs: dangling
dependencies, cycles, and source-root layout warnings.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING
import logging

from .cycles import CycleDetector
from .impact import normalize_path

if TYPE_CHECKING:
    from .graph import UnitGraph

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of GraphValidator.validate."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    missing_dependencies: List[Tuple[str, str]] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "cycles": self.cycles,
            "missing_dependencies": [list(pair) for pair in self.missing_dependencies],
            "suggestions": self.suggestions,
        }


class GraphValidator:
    """Runs every structural check over a UnitGraph."""

    def __init__(self, detector: Optional[CycleDetector] = None):
        self._detector = detector or CycleDetector()

    def validate(self, graph: "UnitGraph") -> ValidationReport:
        report = ValidationReport()

        # Dependencies on units that were never registered
        report.missing_dependencies = graph.missing_dependencies()
        for unit, dep in report.missing_dependencies:
            report.errors.append(f"Unit {unit} depends on missing unit: {dep}")

        report.cycles = self._detector.find_cycles(graph)
        for cycle in report.cycles:
            report.errors.append(
                f"Circular dependency: {' -> '.join(cycle + cycle[:1])}"
            )

        self._check_source_roots(graph, report)
        report.suggestions = self._suggestions(report)

        if report.is_valid:
            logger.debug(f"Graph valid: {graph.unit_count} units")
        else:
            logger.warning(f"Graph invalid: {len(report.errors)} error(s)")
        return report

    def _check_source_roots(self, graph: "UnitGraph", report: ValidationReport) -> None:
        roots = {
            name: normalize_path(root)
            for name, root in graph.source_roots().items()
            if root
        }

        for name, root in graph.source_roots().items():
            if not root:
                report.warnings.append(
                    f"Unit {name} has no source root; file changes can never affect it"
                )

        names = sorted(roots)
        for i, outer in enumerate(names):
            for inner in names[i + 1:]:
                a, b = roots[outer], roots[inner]
                if a == b:
                    report.warnings.append(
                        f"Units {outer} and {inner} share source root {a}"
                    )
                elif b.startswith(a + "/") or a.startswith(b + "/"):
                    report.warnings.append(
                        f"Source roots of {outer} ({a}) and {inner} ({b}) are nested; "
                        f"files attribute to the longest match"
                    )

    @staticmethod
    def _suggestions(report: ValidationReport) -> List[str]:
        suggestions = []

        if report.missing_dependencies:
            suggestions.append("Register every referenced unit before scheduling")

        if report.cycles:
            suggestions.append(
                "Break circular dependencies by extracting shared code into a common unit"
            )

        if any("no source root" in w for w in report.warnings):
            suggestions.append("Give each unit a source root so changes can be attributed")

        if any("share source root" in w for w in report.warnings):
            suggestions.append("Split shared source roots so each file has a single owner")

        return suggestions
