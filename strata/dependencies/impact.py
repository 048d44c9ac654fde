"""
strata Change Impact Analyzer

Maps changed source paths to the units that must be rebuilt: the units
owning the files, plus every transitive dependent of those units.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, TYPE_CHECKING
import logging
import posixpath

if TYPE_CHECKING:
    from .graph import UnitGraph

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Normalize a path for prefix comparison (forward slashes, no trailing slash)."""
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _is_under(path: str, root: str) -> bool:
    if root == ".":
        return not path.startswith("/") and not path.startswith("..")
    return path == root or path.startswith(root.rstrip("/") + "/")


@dataclass
class ImpactReport:
    """Result of mapping a change set onto the unit graph."""
    changed_paths: List[str] = field(default_factory=list)
    is_full_build: bool = False

    # path -> owning unit(s)
    path_owners: Dict[str, List[str]] = field(default_factory=dict)
    ignored_paths: List[str] = field(default_factory=list)

    directly_touched: Set[str] = field(default_factory=set)
    transitive_dependents: Set[str] = field(default_factory=set)

    @property
    def affected(self) -> Set[str]:
        return self.directly_touched | self.transitive_dependents

    @property
    def reason(self) -> str:
        if self.is_full_build:
            return "Full build requested"
        if not self.changed_paths:
            return "No changed files - nothing to rebuild"
        return (
            f"{len(self.directly_touched)} units changed, "
            f"{len(self.transitive_dependents)} dependents need rebuilding"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed_paths": self.changed_paths,
            "is_full_build": self.is_full_build,
            "path_owners": self.path_owners,
            "ignored_paths": self.ignored_paths,
            "directly_touched": sorted(self.directly_touched),
            "transitive_dependents": sorted(self.transitive_dependents),
            "affected": sorted(self.affected),
            "reason": self.reason,
        }


class ChangeImpactAnalyzer:
    """Computes the affected set for a change set."""

    def owners_of(self, graph: "UnitGraph", path: str) -> List[str]:
        """
        Units owning a path by longest source-root prefix.

        Units sharing the same longest root all own the path. A path under
        no source root has no owner.
        """
        target = normalize_path(path)
        best_length = -1
        owners: List[str] = []

        for name, root in graph.source_roots().items():
            if not root:
                continue
            normalized_root = normalize_path(root)
            if not _is_under(target, normalized_root):
                continue
            length = 0 if normalized_root == "." else len(normalized_root)
            if length > best_length:
                best_length = length
                owners = [name]
            elif length == best_length:
                owners.append(name)

        return sorted(owners)

    def analyze(
        self,
        graph: "UnitGraph",
        changed_paths: Optional[Iterable[str]],
    ) -> ImpactReport:
        """
        Build the full impact report.

        Args:
            graph: Unit graph
            changed_paths: Changed files; None requests a full build, an
                empty list is a no-op incremental build
        """
        if changed_paths is None:
            report = ImpactReport(is_full_build=True)
            report.directly_touched = set(graph.unit_names())
            return report

        report = ImpactReport(changed_paths=list(changed_paths))

        # Step 1: attribute each path to its owning unit(s)
        for path in report.changed_paths:
            owners = self.owners_of(graph, path)
            if owners:
                report.path_owners[path] = owners
                report.directly_touched.update(owners)
            else:
                report.ignored_paths.append(path)

        # Step 2: breadth-first walk over reverse edges
        seen = set(report.directly_touched)
        queue = deque(sorted(report.directly_touched))
        while queue:
            current = queue.popleft()
            for dependent in sorted(graph.dependents_of(current)):
                if dependent not in seen:
                    seen.add(dependent)
                    report.transitive_dependents.add(dependent)
                    queue.append(dependent)

        if report.ignored_paths:
            logger.debug(
                f"Ignored {len(report.ignored_paths)} path(s) outside every source root"
            )
        logger.info(f"Change impact: {report.reason}")
        return report

    def affected_units(
        self,
        graph: "UnitGraph",
        changed_paths: Optional[Iterable[str]],
    ) -> Set[str]:
        """Directly touched units plus all transitive dependents (unordered)."""
        return self.analyze(graph, changed_paths).affected
