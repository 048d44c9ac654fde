"""
Unit tests for strata GraphValidator.
"""

from strata.dependencies import GraphValidator, Unit, UnitGraph


def _bulk(*units):
    graph = UnitGraph()
    graph.bulk_load(units)
    return graph


class TestGraphValidator:
    """Test whole-graph validation reports."""

    def test_valid_graph(self, diamond_graph):
        """Test a clean graph produces no errors or warnings."""
        report = GraphValidator().validate(diamond_graph)

        assert report.is_valid
        assert report.errors == []
        assert report.warnings == []
        assert report.suggestions == []

    def test_missing_dependency(self):
        """Test dependencies on unregistered units are errors."""
        report = GraphValidator().validate(_bulk(Unit("app", "app", ("lib",))))

        assert not report.is_valid
        assert report.missing_dependencies == [("app", "lib")]
        assert "missing unit: lib" in report.errors[0]
        assert report.suggestions

    def test_cycle_error(self):
        """Test cycles are reported with a closed path."""
        report = GraphValidator().validate(
            _bulk(Unit("a", "a", ("b",)), Unit("b", "b", ("a",)))
        )

        assert report.cycles == [["a", "b"]]
        assert "Circular dependency: a -> b -> a" in report.errors

    def test_empty_source_root_warning(self):
        """Test a unit without a source root is a warning, not an error."""
        report = GraphValidator().validate(_bulk(Unit("virtual", "")))

        assert report.is_valid
        assert any("no source root" in w for w in report.warnings)

    def test_shared_and_nested_roots(self):
        """Test overlapping source roots are warned about."""
        report = GraphValidator().validate(_bulk(
            Unit("a", "pkg/a"),
            Unit("b", "./pkg/a/"),
            Unit("c", "pkg/a/sub"),
            Unit("d", "pkg/ab"),
        ))

        assert report.is_valid
        shared = [w for w in report.warnings if "share source root" in w]
        nested = [w for w in report.warnings if "nested" in w]
        assert len(shared) == 1
        assert len(nested) == 2
        assert not any("pkg/ab" in w for w in report.warnings)

    def test_to_dict(self):
        """Test report serialization."""
        data = GraphValidator().validate(_bulk(Unit("app", "app", ("lib",)))).to_dict()

        assert data["is_valid"] is False
        assert data["missing_dependencies"] == [["app", "lib"]]
