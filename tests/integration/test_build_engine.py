"""
Integration tests for strata BuildEngine.

Exercises registration, planning, execution and cache persistence
together, against real source trees in a temporary directory.
"""

import random

import pytest

from strata.bootstrap import CacheConfig, EngineConfig, SchedulerConfig
from strata.core import SkipReason
from strata.dependencies import PlanKind, Unit
from strata.engine import BuildEngine
from strata.errors import (
    ConfigurationError,
    CyclicGraphError,
    UnknownUnitError,
    WouldCreateCycleError,
)


@pytest.fixture
def workspace(tmp_path):
    """Source tree with one directory per unit."""
    for name in ("a", "b", "c", "d"):
        src = tmp_path / "packages" / name / "src"
        src.mkdir(parents=True)
        (src / "index.ts").write_text(f"export const {name} = 1;\n")
    return tmp_path


def _root(workspace, name):
    return str(workspace / "packages" / name)


def _register_diamond(engine, workspace):
    engine.register_unit("A", _root(workspace, "a"))
    engine.register_unit("B", _root(workspace, "b"), dependencies=["A"])
    engine.register_unit("C", _root(workspace, "c"), dependencies=["A"])
    engine.register_unit("D", _root(workspace, "d"), dependencies=["B", "C"])


@pytest.fixture
def engine(workspace):
    engine = BuildEngine()
    _register_diamond(engine, workspace)
    return engine


class TestDiamondScenario:
    """Test the four-unit diamond end to end."""

    def test_schedule(self, engine):
        """Test the diamond schedules into three stages."""
        assert engine.schedule().stages == (("A",), ("B", "C"), ("D",))

    def test_incremental_plan(self, engine, workspace):
        """Test a change owned by C affects C and D only."""
        changed = [str(workspace / "packages" / "c" / "src" / "index.ts")]

        assert engine.plan_incremental_build(changed) == {"C", "D"}

        plan = engine.plan_build(changed)
        assert plan.kind == PlanKind.INCREMENTAL
        assert plan.stages == (("C",), ("D",))

    def test_failure_aborts_dependents(self, engine, workspace, builder, make_builder):
        """Test C failing leaves D not attempted and A, B cached."""
        engine.build(None, builder)

        changed = [str(workspace / "packages" / "c" / "src" / "index.ts")]
        failing = make_builder(fail=("C",))
        result = engine.build(changed, failing)

        assert failing.calls == ["C"]
        assert result.failed_units == ["C"]
        assert result.skipped_units["D"] is SkipReason.ABORTED
        assert result.skipped_units["A"] is SkipReason.CACHED
        assert result.skipped_units["B"] is SkipReason.CACHED
        assert result.results["B"].from_cache

    def test_idempotent_build(self, engine, builder, make_builder):
        """Test an empty change set after a full build builds nothing."""
        engine.build(None, builder)

        second = make_builder()
        result = engine.build([], second)

        assert second.calls == []
        assert result.succeeded_units == []
        assert set(result.skipped_units) == {"A", "B", "C", "D"}
        assert all(r is SkipReason.CACHED for r in result.skipped_units.values())

    def test_rejected_cycle_keeps_graph_schedulable(self, engine):
        """Test a rejected edge leaves scheduling intact."""
        with pytest.raises(WouldCreateCycleError):
            engine.add_dependency("A", "D")

        assert engine.schedule().order == ("A", "B", "C", "D")

    def test_register_unknown_dependency(self, engine, workspace):
        """Test registering against an unknown dependency."""
        with pytest.raises(UnknownUnitError):
            engine.register_unit("E", _root(workspace, "e"), dependencies=["missing"])
        assert not engine.graph.has_unit("E")

    def test_remove_unit_clears_cache(self, engine, builder):
        """Test removing a leaf unit drops its cache entry."""
        engine.build(None, builder)
        engine.remove_unit("D")

        assert "D" not in engine.cache
        assert engine.schedule().unit_count == 3

    def test_describe(self, engine, builder):
        """Test the engine summary."""
        engine.build(None, builder)
        summary = engine.describe()

        assert summary["units"] == 4
        assert summary["depth"] == 3
        assert summary["cache"]["total_entries"] == 4
        assert summary["critical_path"][0] == "A"
        assert engine.estimate_duration() >= 0.0


class TestPersistence:
    """Test cross-invocation incrementality through cache snapshots."""

    def test_snapshot_survives_restart(self, workspace, builder, make_builder):
        """Test a restarted engine only rebuilds what changed on disk."""
        snapshot = str(workspace / ".strata" / "cache.json")
        config = EngineConfig(
            scheduler=SchedulerConfig(reuse_fresh_cache=True),
            cache=CacheConfig(snapshot_path=snapshot, autoload=True, autosave=True),
        )

        with BuildEngine(config=config) as first:
            _register_diamond(first, workspace)
            assert first.build(None, builder).success

        second = BuildEngine(config=config)
        _register_diamond(second, workspace)
        assert len(second.cache) == 4

        unchanged = make_builder()
        second.build(None, unchanged)
        assert unchanged.calls == []

        (workspace / "packages" / "b" / "src" / "index.ts").write_text("export const b = 2;\n")
        changed = make_builder()
        result = second.build(None, changed)

        assert changed.calls == ["B", "D"]
        assert sorted(result.skipped_with(SkipReason.CACHED)) == ["A", "C"]

    def test_save_and_load_explicit_path(self, engine, workspace, builder):
        """Test save_cache / load_cache with an explicit path."""
        engine.build(None, builder)
        path = workspace / "cache.json"

        assert engine.save_cache(path) == 4

        fresh = BuildEngine()
        assert fresh.load_cache(path) == 4
        assert fresh.cache.entries() == engine.cache.entries()

    def test_autoload_without_snapshot(self, workspace):
        """Test autoload starts cold when no snapshot exists yet."""
        config = EngineConfig(cache=CacheConfig(
            snapshot_path=str(workspace / "none.json"), autoload=True,
        ))
        assert len(BuildEngine(config=config).cache) == 0

    def test_corrupt_snapshot_discarded(self, workspace):
        """Test an unreadable snapshot is discarded on autoload."""
        path = workspace / "cache.json"
        path.write_text("not json")
        config = EngineConfig(cache=CacheConfig(snapshot_path=str(path), autoload=True))

        assert len(BuildEngine(config=config).cache) == 0

    def test_save_without_path(self, engine):
        """Test saving with no path given or configured."""
        with pytest.raises(ConfigurationError):
            engine.save_cache()


class TestBulkLoadedGraphs:
    """Test graphs loaded without incremental checks."""

    def test_cycle_reported_and_unschedulable(self):
        """Test validation reports a cycle and scheduling refuses it."""
        engine = BuildEngine()
        report = engine.load_units([
            Unit("x", "x", ("y",)),
            Unit("y", "y", ("x",)),
        ])

        assert not report.is_valid
        assert report.cycles == [["x", "y"]]
        with pytest.raises(CyclicGraphError):
            engine.schedule()


def _random_engine(seed, size=25, edge_probability=0.2):
    rng = random.Random(seed)
    engine = BuildEngine()
    names = [f"u{i:02d}" for i in range(size)]
    for i, name in enumerate(names):
        deps = [d for d in names[:i] if rng.random() < edge_probability]
        engine.register_unit(name, f"src/{name}", dependencies=deps)
    return engine, rng


class TestRandomGraphProperties:
    """Test scheduling and impact invariants on seeded random DAGs."""

    @pytest.mark.parametrize("seed", range(8))
    def test_plan_invariants(self, seed):
        """Test order, stages and edges agree on random graphs."""
        engine, _ = _random_engine(seed)
        graph = engine.graph
        plan = engine.schedule()

        assert sorted(plan.order) == sorted(graph.unit_names())
        assert list(plan.order) == plan.flatten()

        position = {unit: i for i, unit in enumerate(plan.order)}
        for edge in graph.edges():
            assert position[edge.to_unit] < position[edge.from_unit]
            assert plan.stage_of(edge.to_unit) < plan.stage_of(edge.from_unit)

        for stage in plan.stages:
            assert list(stage) == sorted(stage)
            members = set(stage)
            for unit in stage:
                assert graph.dependencies_of(unit).isdisjoint(members)

    @pytest.mark.parametrize("seed", range(8))
    def test_affected_closure(self, seed):
        """Test the affected set is closed under dependents and minimal."""
        engine, rng = _random_engine(seed)
        graph = engine.graph
        touched = rng.sample(graph.unit_names(), 3)

        affected = engine.plan_incremental_build([f"src/{name}/file.ts" for name in touched])

        expected = set(touched)
        for name in touched:
            expected |= graph.get_all_dependents(name)
        assert affected == expected

    @pytest.mark.parametrize("seed", range(4))
    def test_execution_respects_dependencies(self, seed):
        """Test every unit is built after all of its dependencies."""
        engine, _ = _random_engine(seed)
        graph = engine.graph
        built = []

        def build(unit):
            assert graph.dependencies_of(unit) <= set(built)
            built.append(unit)

        result = engine.execute(None, build)

        assert result.success
        assert sorted(built) == sorted(graph.unit_names())
