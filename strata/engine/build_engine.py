"""
strata/engine/build_engine.py - Build Engine

In-process API for build drivers. Owns one UnitGraph and one BuildCache
and wires the scheduler, change-impact analysis and orchestrator together.

The graph must not be mutated while a build is executing; callers that
share an engine across threads serialize access themselves.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set, Union
import logging

from strata.analysis import critical_path, graph_summary
from strata.bootstrap.config import EngineConfig
from strata.build import BuildCallback, BuildEventLog, BuildOrchestrator, DigestProvider
from strata.cache import BuildCache, digest_source_root, load_cache, save_cache
from strata.core.results import BuildResult
from strata.dependencies import (
    BuildPlan,
    BuildScheduler,
    ChangeImpactAnalyzer,
    GraphValidator,
    Unit,
    UnitGraph,
    ValidationReport,
)
from strata.errors import CacheSnapshotError, ConfigurationError

logger = logging.getLogger(__name__)


class BuildEngine:
    """
    Facade over graph registration, planning and execution.

    Usage:
        engine = BuildEngine()
        engine.register_unit("core", "packages/core")
        engine.register_unit("app", "packages/app", dependencies=["core"])
        affected = engine.plan_incremental_build(["packages/core/index.ts"])
        result = engine.execute(affected, build_unit)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        cache: Optional[BuildCache] = None,
        event_log: Optional[BuildEventLog] = None,
        digest_provider: Optional[DigestProvider] = None,
    ):
        self.config = config or EngineConfig()
        self.config.validate()

        self.graph = UnitGraph()
        self.cache = cache if cache is not None else BuildCache()
        self.event_log = event_log or BuildEventLog(max_entries=self.config.event_log.max_entries)

        self._scheduler = BuildScheduler()
        self._analyzer = ChangeImpactAnalyzer()
        self._validator = GraphValidator()
        self._orchestrator = BuildOrchestrator(
            self.graph,
            cache=self.cache,
            digest_provider=digest_provider or self._digest_unit,
            max_workers=self.config.scheduler.max_workers,
            reuse_fresh_cache=self.config.scheduler.reuse_fresh_cache,
            event_log=self.event_log,
        )

        if self.config.cache.autoload:
            self._autoload()

    # -------------------------------------------------------------------------
    # Graph registration
    # -------------------------------------------------------------------------

    def register_unit(
        self,
        name: str,
        source_root: str,
        dependencies: Iterable[str] = (),
        artifact_paths: Iterable[str] = (),
    ) -> Unit:
        """
        Register a unit whose dependencies are already registered.

        Raises:
            DuplicateUnitError, UnknownUnitError, WouldCreateCycleError
        """
        unit = Unit(
            name=name,
            source_root=source_root,
            dependency_names=tuple(dependencies),
            artifact_paths=tuple(artifact_paths),
        )
        self.graph.add_unit(unit)
        logger.debug(f"Registered unit {name} ({len(unit.dependency_names)} dependencies)")
        return unit

    def add_dependency(self, from_unit: str, to_unit: str) -> None:
        self.graph.add_dependency(from_unit, to_unit)

    def remove_dependency(self, from_unit: str, to_unit: str) -> None:
        self.graph.remove_dependency(from_unit, to_unit)

    def remove_unit(self, name: str) -> None:
        self.graph.remove_unit(name)
        self.cache.clear(name)

    def load_units(self, units: Iterable[Unit]) -> ValidationReport:
        """Bulk-load units without incremental checks and return a validation report."""
        self.graph.bulk_load(units)
        report = self.validate()
        if not report.is_valid:
            logger.warning(f"Bulk-loaded graph has {len(report.errors)} error(s)")
        return report

    def validate(self) -> ValidationReport:
        return self._validator.validate(self.graph)

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def schedule(self) -> BuildPlan:
        """
        Raises:
            CyclicGraphError: the graph contains a cycle
            UnknownUnitError: a dependency was never registered
        """
        return self._scheduler.schedule(self.graph)

    def plan_incremental_build(self, changed_paths: Optional[Iterable[str]]) -> Set[str]:
        """Units affected by the changed paths (None = every unit)."""
        return self._analyzer.affected_units(self.graph, changed_paths)

    def plan_build(self, changed_paths: Optional[Iterable[str]] = None) -> BuildPlan:
        """
        Full plan when changed_paths is None, otherwise the plan narrowed
        to the affected units.
        """
        plan = self.schedule()
        if changed_paths is None:
            return plan

        report = self._analyzer.analyze(self.graph, changed_paths)
        return plan.restrict_to(report.affected, reason=report.reason)

    def estimate_duration(self, plan: Optional[BuildPlan] = None) -> float:
        return self._scheduler.estimate_duration(plan or self.schedule(), self.cache)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, affected: Optional[Iterable[str]], build: BuildCallback) -> BuildResult:
        """
        Build the affected units (None = all) in dependency-respecting stages.

        Raises:
            CyclicGraphError, UnknownUnitError: the graph cannot be scheduled
            BuildInProgressError: another build is running on this engine
        """
        plan = self.schedule()
        return self._orchestrator.execute(plan, affected, self.cache, build)

    def build(self, changed_paths: Optional[Iterable[str]], build: BuildCallback) -> BuildResult:
        """Plan from changed paths and execute in one call."""
        affected = None if changed_paths is None else self.plan_incremental_build(changed_paths)
        return self.execute(affected, build)

    def on_progress(self, callback) -> None:
        self._orchestrator.on_progress(callback)

    def is_building(self) -> bool:
        return self._orchestrator.is_running()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save_cache(self, path: Optional[Union[str, Path]] = None) -> int:
        return save_cache(self.cache, self._snapshot_path(path))

    def load_cache(self, path: Optional[Union[str, Path]] = None) -> int:
        """
        Merge a snapshot into the engine's cache.

        Returns:
            Number of entries in the cache after loading
        """
        load_cache(self._snapshot_path(path), self.cache)
        return len(self.cache)

    def close(self) -> None:
        if self.config.cache.autosave:
            self.save_cache()

    def __enter__(self) -> "BuildEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def describe(self) -> Dict[str, Any]:
        summary = graph_summary(self.graph)
        summary["cache"] = self.cache.get_stats()
        summary["critical_path"] = critical_path(self.graph, self.cache) if summary["is_dag"] else []
        return summary

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _digest_unit(self, name: str) -> str:
        return digest_source_root(self.graph.get_unit(name).source_root)

    def _snapshot_path(self, path: Optional[Union[str, Path]]) -> Union[str, Path]:
        resolved = path or self.config.cache.snapshot_path
        if not resolved:
            raise ConfigurationError("No cache snapshot path given or configured")
        return resolved

    def _autoload(self) -> None:
        path = Path(self.config.cache.snapshot_path)
        if not path.exists():
            logger.info(f"No cache snapshot at {path}, starting cold")
            return
        try:
            self.load_cache(path)
        except CacheSnapshotError as e:
            logger.warning(f"Discarding unreadable cache snapshot: {e}")
