"""
Unit tests for strata CycleDetector.
"""

from strata.dependencies import CycleDetector, Unit, UnitGraph, find_cycles


def _bulk(*units):
    graph = UnitGraph()
    graph.bulk_load(units)
    return graph


class TestCycleDetector:
    """Test three-color DFS cycle detection."""

    def test_dag_has_no_cycles(self, diamond_graph):
        """Test an API-built graph is always acyclic."""
        detector = CycleDetector()
        assert detector.find_cycles(diamond_graph) == []
        assert detector.is_acyclic(diamond_graph)

    def test_empty_graph(self):
        """Test an empty graph."""
        assert find_cycles(UnitGraph()) == []

    def test_two_unit_cycle(self):
        """Test a mutual dependency."""
        graph = _bulk(Unit("a", "a", ("b",)), Unit("b", "b", ("a",)))
        assert find_cycles(graph) == [["a", "b"]]

    def test_self_loop(self):
        """Test a bulk-loaded self dependency."""
        graph = _bulk(Unit("a", "a", ("a",)))
        assert find_cycles(graph) == [["a"]]

    def test_cycle_slice_excludes_tail(self):
        """Test the reported cycle starts at the revisited node."""
        graph = _bulk(
            Unit("entry", "e", ("x",)),
            Unit("x", "x", ("y",)),
            Unit("y", "y", ("z",)),
            Unit("z", "z", ("x",)),
        )
        assert find_cycles(graph) == [["x", "y", "z"]]

    def test_independent_cycles_each_reported(self):
        """Test each separate strongly connected component gets its own cycle."""
        graph = _bulk(
            Unit("a", "a", ("b",)), Unit("b", "b", ("a",)),
            Unit("c", "c", ("d",)), Unit("d", "d", ("c",)),
        )
        cycles = find_cycles(graph)

        assert cycles == [["a", "b"], ["c", "d"]]

    def test_overlapping_cycles_reported_once(self):
        """Test cycles sharing a node belong to one component and yield one cycle."""
        graph = _bulk(
            Unit("a", "a", ("b",)),
            Unit("b", "b", ("a", "c")),
            Unit("c", "c", ("b",)),
        )
        assert find_cycles(graph) == [["a", "b"]]

    def test_disjoint_cycles_in_one_component_reported_once(self):
        """Test node-disjoint cycles joined into one component yield one cycle."""
        graph = _bulk(
            Unit("a", "a", ("b", "c")),
            Unit("b", "b", ("a",)),
            Unit("c", "c", ("a", "d")),
            Unit("d", "d", ("c",)),
        )
        assert find_cycles(graph) == [["a", "b"]]

    def test_cycle_reachable_from_acyclic_prefix(self):
        """Test a component reached through other units is still reported once."""
        graph = _bulk(
            Unit("app", "app", ("x", "y")),
            Unit("x", "x", ("y",)),
            Unit("y", "y", ("x",)),
        )
        assert find_cycles(graph) == [["x", "y"]]

    def test_dangling_dependency_ignored(self):
        """Test edges to unregistered units do not break traversal."""
        graph = _bulk(Unit("a", "a", ("ghost",)))
        assert find_cycles(graph) == []

    def test_cycle_members_are_edges(self):
        """Test consecutive cycle members are connected by dependency edges."""
        graph = _bulk(
            Unit("p", "p", ("q",)),
            Unit("q", "q", ("r",)),
            Unit("r", "r", ("p",)),
        )
        (cycle,) = find_cycles(graph)
        closed = cycle + cycle[:1]
        for current, following in zip(closed, closed[1:]):
            assert following in graph.dependencies_of(current)
