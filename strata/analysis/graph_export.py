"""
strata/analysis/graph_export.py - Graph Export and Analysis

networkx views of a UnitGraph for reporting: critical path and summary
statistics. Edges point from a unit to the unit it depends on.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
import logging

import networkx as nx

if TYPE_CHECKING:
    from strata.cache.store import BuildCache
    from strata.dependencies.graph import UnitGraph

logger = logging.getLogger(__name__)

__all__ = [
    'to_networkx',
    'critical_path',
    'graph_summary',
]


def to_networkx(graph: 'UnitGraph') -> nx.DiGraph:
    """
    Convert a unit graph to a directed networkx graph.

    Args:
        graph: Unit graph

    Returns:
        DiGraph with an edge unit -> dependency for every dependency
    """
    digraph = nx.DiGraph()

    for unit in graph.units():
        digraph.add_node(
            unit.name,
            source_root=unit.source_root,
            artifact_paths=list(unit.artifact_paths),
        )

    for edge in graph.edges():
        digraph.add_edge(edge.from_unit, edge.to_unit)

    return digraph


def critical_path(graph: 'UnitGraph', cache: Optional['BuildCache'] = None) -> List[str]:
    """
    Longest dependency chain, dependencies first.

    With a cache, each unit weighs its last measured build duration
    (units never built weigh zero); without one every unit weighs 1.

    Raises:
        networkx.NetworkXUnfeasible: graph contains a cycle
    """
    # dependency -> dependent, so topological order is build order
    build_order = to_networkx(graph).reverse(copy=True)

    def weight(unit: str) -> float:
        if cache is None:
            return 1.0
        entry = cache.peek(unit)
        return entry.last_result.duration_seconds if entry is not None else 0.0

    best: Dict[str, float] = {}
    previous: Dict[str, Optional[str]] = {}

    for unit in nx.lexicographical_topological_sort(build_order):
        predecessors = sorted(build_order.predecessors(unit))
        chosen = max(predecessors, key=lambda p: best[p], default=None)
        best[unit] = weight(unit) + (best[chosen] if chosen is not None else 0.0)
        previous[unit] = chosen

    if not best:
        return []

    tail = max(sorted(best), key=lambda u: best[u])
    path = []
    current: Optional[str] = tail
    while current is not None:
        path.append(current)
        current = previous[current]

    path.reverse()
    return path


def graph_summary(graph: 'UnitGraph') -> Dict[str, Any]:
    """
    Summary statistics of a unit graph.

    Returns:
        Dict with units, edges, roots (no dependencies), leaves (no
        dependents), components, is_dag and depth (stage count, None when
        the graph is cyclic)
    """
    digraph = to_networkx(graph)
    is_dag = nx.is_directed_acyclic_graph(digraph)

    if digraph.number_of_nodes() == 0:
        depth: Optional[int] = 0
    elif is_dag:
        depth = nx.dag_longest_path_length(digraph) + 1
    else:
        depth = None

    summary = {
        "units": graph.unit_count,
        "edges": digraph.number_of_edges(),
        "roots": sorted(n for n in digraph.nodes if digraph.out_degree(n) == 0),
        "leaves": sorted(n for n in digraph.nodes if digraph.in_degree(n) == 0),
        "components": nx.number_weakly_connected_components(digraph),
        "is_dag": is_dag,
        "depth": depth,
    }

    logger.debug(f"Graph summary: {summary['units']} units, {summary['edges']} edges")
    return summary
