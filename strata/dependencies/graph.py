"""
strata Unit Graph

Directed graph of buildable units and their dependency edges.

Units are stored once, keyed by name. Edges live in two adjacency maps:
forward (unit -> the units it requires) for scheduling, and reverse
(unit -> the units that require it) for impact analysis. There are no
references between unit objects; every traversal is a name lookup.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging

from strata.errors import (
    DuplicateUnitError,
    HasDependentsError,
    UnknownUnitError,
    WouldCreateCycleError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# UNIT
# =============================================================================

@dataclass(frozen=True)
class Unit:
    """A named buildable entity."""
    name: str
    source_root: str = ""
    dependency_names: Tuple[str, ...] = ()
    artifact_paths: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source_root": self.source_root,
            "dependency_names": list(self.dependency_names),
            "artifact_paths": list(self.artifact_paths),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Unit":
        return cls(
            name=data["name"],
            source_root=data.get("source_root", ""),
            dependency_names=tuple(data.get("dependency_names", [])),
            artifact_paths=tuple(data.get("artifact_paths", [])),
        )


@dataclass(frozen=True)
class DependencyEdge:
    """An edge in the unit graph: from_unit requires to_unit to build first."""
    from_unit: str
    to_unit: str


@dataclass
class _UnitRecord:
    """Graph-owned unit attributes (edges are kept in the adjacency maps)."""
    source_root: str
    artifact_paths: Tuple[str, ...] = field(default_factory=tuple)


# =============================================================================
# UNIT GRAPH
# =============================================================================

class UnitGraph:
    """
    Units plus forward and reverse dependency adjacency.

    Mutations are all-or-nothing: a rejected call leaves the graph as it was.
    Queries return copies, so callers cannot alter internal state.
    """

    def __init__(self):
        self._units: Dict[str, _UnitRecord] = {}
        # Dicts used as insertion-ordered sets
        self._forward: Dict[str, Dict[str, None]] = {}
        self._reverse: Dict[str, Dict[str, None]] = {}

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add_unit(self, unit: Unit) -> None:
        """
        Add a unit together with its declared dependencies.

        Raises:
            DuplicateUnitError: name already registered
            UnknownUnitError: a declared dependency is not registered
            WouldCreateCycleError: the unit depends on itself, or on a unit
                that already (through a bulk load) depends on it
        """
        if unit.name in self._units:
            raise DuplicateUnitError(unit.name)

        missing = [d for d in unit.dependency_names if d not in self._units and d != unit.name]
        if missing:
            raise UnknownUnitError(missing, context=f"dependencies of {unit.name}")
        if unit.name in unit.dependency_names:
            raise WouldCreateCycleError(unit.name, unit.name)

        # Bulk-loaded units may already name this unit as a dangling dependency
        if self._reverse.get(unit.name):
            for dep in unit.dependency_names:
                path = self._find_path(dep, unit.name)
                if path is not None:
                    raise WouldCreateCycleError(unit.name, dep, path)

        self._insert(unit)
        logger.debug(
            f"Added unit {unit.name} with {len(unit.dependency_names)} dependencies"
        )

    def add_dependency(self, from_unit: str, to_unit: str) -> None:
        """
        Add an edge: from_unit depends on to_unit.

        The edge is checked before it is committed by walking forward edges
        from to_unit; reaching from_unit means the edge would close a cycle.
        """
        missing = [n for n in (from_unit, to_unit) if n not in self._units]
        if missing:
            raise UnknownUnitError(missing)

        if to_unit in self._forward[from_unit]:
            return

        path = self._find_path(to_unit, from_unit)
        if path is not None:
            raise WouldCreateCycleError(from_unit, to_unit, path)

        self._forward[from_unit][to_unit] = None
        self._reverse[to_unit][from_unit] = None
        logger.debug(f"Added dependency {from_unit} -> {to_unit}")

    def remove_dependency(self, from_unit: str, to_unit: str) -> None:
        """Remove an edge. Removing an edge that does not exist is a no-op."""
        missing = [n for n in (from_unit, to_unit) if n not in self._units]
        if missing:
            raise UnknownUnitError(missing)

        self._forward[from_unit].pop(to_unit, None)
        self._reverse[to_unit].pop(from_unit, None)

    def remove_unit(self, name: str) -> None:
        """
        Remove a unit and its outgoing edges.

        Raises:
            UnknownUnitError: unit not registered
            HasDependentsError: other units still depend on it
        """
        if name not in self._units:
            raise UnknownUnitError([name])

        dependents = self._reverse.get(name, {})
        if dependents:
            raise HasDependentsError(name, dependents)

        for dep in self._forward[name]:
            self._reverse[dep].pop(name, None)

        del self._units[name]
        del self._forward[name]
        del self._reverse[name]
        logger.debug(f"Removed unit {name}")

    def bulk_load(self, units: Iterable[Unit]) -> None:
        """
        Insert units and edges without reachability or existence checks.

        Used for graphs deserialized from a manifest; validate the
        result with CycleDetector / GraphValidator before scheduling.
        Duplicate names are still rejected, before anything is inserted.
        """
        units = list(units)
        seen: Set[str] = set()
        for unit in units:
            if unit.name in self._units or unit.name in seen:
                raise DuplicateUnitError(unit.name)
            seen.add(unit.name)

        for unit in units:
            self._insert(unit)

        logger.info(f"Bulk-loaded {len(units)} units ({self.edge_count} edges total)")

    def _insert(self, unit: Unit) -> None:
        self._units[unit.name] = _UnitRecord(
            source_root=unit.source_root,
            artifact_paths=tuple(unit.artifact_paths),
        )
        self._forward[unit.name] = dict.fromkeys(unit.dependency_names)
        self._reverse.setdefault(unit.name, {})
        for dep in unit.dependency_names:
            # Dangling names are allowed here for bulk loads
            self._reverse.setdefault(dep, {})[unit.name] = None

    def _find_path(self, start: str, goal: str) -> Optional[List[str]]:
        """Depth-first search over forward edges; returns start..goal or None."""
        parents: Dict[str, Optional[str]] = {start: None}
        stack = [start]

        while stack:
            current = stack.pop()
            if current == goal:
                path = [current]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])
                return list(reversed(path))

            for dep in self._forward.get(current, {}):
                if dep not in parents:
                    parents[dep] = current
                    stack.append(dep)

        return None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_unit(self, name: str) -> bool:
        return name in self._units

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)

    @property
    def unit_count(self) -> int:
        return len(self._units)

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self._forward.values())

    def unit_names(self) -> List[str]:
        """All unit names in registration order."""
        return list(self._units)

    def get_unit(self, name: str) -> Unit:
        """Snapshot of a unit, with dependency_names reflecting current edges."""
        record = self._units.get(name)
        if record is None:
            raise UnknownUnitError([name])
        return Unit(
            name=name,
            source_root=record.source_root,
            dependency_names=tuple(self._forward[name]),
            artifact_paths=record.artifact_paths,
        )

    def units(self) -> List[Unit]:
        return [self.get_unit(name) for name in self._units]

    def source_roots(self) -> Dict[str, str]:
        return {name: record.source_root for name, record in self._units.items()}

    def dependencies_of(self, name: str) -> Set[str]:
        """Units that this unit directly depends on."""
        if name not in self._units:
            raise UnknownUnitError([name])
        return set(self._forward[name])

    def dependents_of(self, name: str) -> Set[str]:
        """Units that directly depend on this unit."""
        if name not in self._units:
            raise UnknownUnitError([name])
        return set(self._reverse.get(name, {}))

    def edges(self) -> List[DependencyEdge]:
        return [
            DependencyEdge(from_unit=name, to_unit=dep)
            for name, deps in self._forward.items()
            for dep in deps
        ]

    def missing_dependencies(self) -> List[Tuple[str, str]]:
        """(unit, dependency) pairs whose dependency is not registered."""
        return [
            (name, dep)
            for name, deps in self._forward.items()
            for dep in deps
            if dep not in self._units
        ]

    def get_all_dependencies(self, name: str) -> Set[str]:
        """All upstream dependencies (transitive closure)."""
        return self._closure(name, self._forward)

    def get_all_dependents(self, name: str) -> Set[str]:
        """All downstream dependents (transitive closure)."""
        return self._closure(name, self._reverse)

    def _closure(self, name: str, adjacency: Dict[str, Dict[str, None]]) -> Set[str]:
        if name not in self._units:
            raise UnknownUnitError([name])

        result: Set[str] = set()
        to_process = [name]

        while to_process:
            current = to_process.pop()
            for neighbor in adjacency.get(current, {}):
                if neighbor not in result:
                    result.add(neighbor)
                    to_process.append(neighbor)

        return result

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def copy(self) -> "UnitGraph":
        clone = UnitGraph()
        clone.bulk_load(self.units())
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """Serialize graph for persistence."""
        return {"units": [unit.to_dict() for unit in self.units()]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnitGraph":
        """Load graph from serialized data (bulk load, unchecked edges)."""
        graph = cls()
        graph.bulk_load(Unit.from_dict(u) for u in data.get("units", []))
        return graph
