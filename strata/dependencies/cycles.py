"""
strata Cycle Detector

Validates that a UnitGraph is acyclic.

Graphs built through UnitGraph.add_unit / add_dependency can never contain
a cycle; this detector exists for graphs that were bulk-loaded.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Iterator, List, Set, Tuple, TYPE_CHECKING
import logging

import networkx as nx

if TYPE_CHECKING:
    from .graph import UnitGraph

logger = logging.getLogger(__name__)


class _Color(Enum):
    WHITE = 0   # not visited
    GRAY = 1    # on the current DFS path
    BLACK = 2   # fully explored


class CycleDetector:
    """Three-color depth-first search over forward (dependency) edges."""

    def find_cycles(self, graph: "UnitGraph") -> List[List[str]]:
        """
        Find one representative cycle per strongly connected component.

        Components are grouped with networkx; the DFS reconstructs the
        cycle as the path slice from the revisited node to the node that
        closed it, e.g. ["a", "b", "c"] for a -> b -> c -> a. Later back
        edges into an already-reported component are skipped.

        Returns:
            List of cycles (empty for a DAG)
        """
        component_of = self._components(graph)
        color: Dict[str, _Color] = {name: _Color.WHITE for name in graph.unit_names()}
        cycles: List[List[str]] = []
        reported: Set[int] = set()

        for root in sorted(color):
            if color[root] is not _Color.WHITE:
                continue

            path: List[str] = [root]
            color[root] = _Color.GRAY
            stack: List[Tuple[str, Iterator[str]]] = [
                (root, iter(self._neighbors(graph, root)))
            ]

            while stack:
                node, neighbors = stack[-1]
                advanced = False

                for dep in neighbors:
                    state = color.get(dep)
                    if state is None:
                        # Dangling dependency; reported by GraphValidator
                        continue
                    if state is _Color.GRAY:
                        component = component_of[dep]
                        if component not in reported:
                            cycles.append(path[path.index(dep):])
                            reported.add(component)
                        continue
                    if state is _Color.WHITE:
                        color[dep] = _Color.GRAY
                        path.append(dep)
                        stack.append((dep, iter(self._neighbors(graph, dep))))
                        advanced = True
                        break

                if not advanced:
                    color[node] = _Color.BLACK
                    path.pop()
                    stack.pop()

        if cycles:
            logger.warning(f"Found {len(cycles)} dependency cycle(s)")
        return cycles

    def is_acyclic(self, graph: "UnitGraph") -> bool:
        return not self.find_cycles(graph)

    @staticmethod
    def _components(graph: "UnitGraph") -> Dict[str, int]:
        """Unit name -> index of its strongly connected component."""
        digraph = nx.DiGraph()
        digraph.add_nodes_from(graph.unit_names())
        for name in graph.unit_names():
            for dep in graph.dependencies_of(name):
                if graph.has_unit(dep):
                    digraph.add_edge(name, dep)

        return {
            name: index
            for index, members in enumerate(nx.strongly_connected_components(digraph))
            for name in members
        }

    @staticmethod
    def _neighbors(graph: "UnitGraph", name: str) -> List[str]:
        return sorted(graph.dependencies_of(name))


def find_cycles(graph: "UnitGraph") -> List[List[str]]:
    """Convenience wrapper around CycleDetector.find_cycles."""
    return CycleDetector().find_cycles(graph)
