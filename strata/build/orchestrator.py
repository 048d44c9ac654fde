"""
strata Build Orchestrator

Executes a build plan stage by stage.

Units within a stage build concurrently on a thread pool; the stage is a
barrier, and the next stage starts only after every unit in the current
one has finished and its result has been written to the cache. Workers
never touch the cache: each returns its result through its future, and
the orchestrator thread commits all cache writes between stages.

On the first failing unit no further stage is started. Siblings already
running in the same stage are allowed to finish.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, TYPE_CHECKING
import logging
import threading
import time
import traceback
import uuid

from strata.cache.fingerprint import compute_fingerprint
from strata.cache.store import BuildCache, CacheEntry
from strata.core.results import BuildResult, SkipReason, UnitBuildResult, utc_now
from strata.errors import BuildInProgressError, CyclicGraphError, UnitBuildFailed
from .event_log import BuildEventLog, BuildEventType

if TYPE_CHECKING:
    from strata.dependencies.graph import UnitGraph
    from strata.dependencies.scheduler import BuildPlan

logger = logging.getLogger(__name__)

# build(unit) -> None (success) | UnitBuildResult; raising marks the unit failed
BuildCallback = Callable[[str], Optional[UnitBuildResult]]
DigestProvider = Callable[[str], str]
ProgressCallback = Callable[[str, UnitBuildResult], None]

_Outcome = Tuple[UnitBuildResult, Optional[UnitBuildFailed], Optional[str]]


class BuildOrchestrator:
    """
    Runs build callbacks over a BuildPlan with fail-fast stage semantics.

    Args:
        graph: Unit graph the plan was scheduled from (read-only during a run)
        cache: Default cache consulted and updated by runs
        digest_provider: unit name -> digest of the unit's own sources
        max_workers: Per-stage concurrency limit (None = one worker per unit)
        reuse_fresh_cache: Also skip eligible units whose cached fingerprint
            is current and whose last build succeeded
        event_log: Optional audit trail
    """

    def __init__(
        self,
        graph: "UnitGraph",
        cache: Optional[BuildCache] = None,
        digest_provider: Optional[DigestProvider] = None,
        max_workers: Optional[int] = None,
        reuse_fresh_cache: bool = False,
        event_log: Optional[BuildEventLog] = None,
    ):
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1 or None")

        self._graph = graph
        self._cache = cache if cache is not None else BuildCache()
        self._digest_provider = digest_provider or (lambda unit: "")
        self._max_workers = max_workers
        self._reuse_fresh_cache = reuse_fresh_cache
        self._event_log = event_log

        # Execution state
        self._lock = threading.Lock()
        self._is_running = False
        self._current_run: Optional[BuildResult] = None

        self._progress_callbacks: List[ProgressCallback] = []

    @property
    def cache(self) -> BuildCache:
        return self._cache

    def execute(
        self,
        plan: "BuildPlan",
        affected: Optional[Iterable[str]],
        cache: Optional[BuildCache],
        build: BuildCallback,
    ) -> BuildResult:
        """
        Execute a plan.

        Args:
            plan: Plan from BuildScheduler.schedule
            affected: Units to rebuild; None rebuilds every planned unit.
                Planned units outside this set are skipped as cached and
                their cached result (if any) is reused.
            cache: Cache to consult and update; None uses the orchestrator's own
            build: Per-unit build callback

        Returns:
            BuildResult for the run
        """
        with self._lock:
            if self._is_running:
                raise BuildInProgressError()
            self._is_running = True

        cache = cache if cache is not None else self._cache

        try:
            run_id = str(uuid.uuid4())[:8]
            result = BuildResult(run_id=run_id, started_at=utc_now())
            self._current_run = result
            start = time.perf_counter()

            eligible = self._eligible_units(plan, affected)
            self._record(BuildEventType.RUN_STARTED, run_id,
                         message=f"{len(eligible)} of {plan.unit_count} units eligible")

            fingerprints = self._fingerprints(plan, eligible, cache)

            if self._reuse_fresh_cache:
                eligible -= self._fresh_units(plan, eligible, cache, fingerprints)

            for unit in plan.order:
                if unit not in eligible:
                    self._skip(unit, SkipReason.CACHED, cache, result)

            narrowed = plan.restrict_to(eligible)
            logger.info(
                f"Starting build {run_id}: {narrowed.unit_count} units in "
                f"{narrowed.stage_count} stages, {len(result.skipped_units)} cached/unaffected"
            )

            for index, stage in enumerate(narrowed.stages):
                logger.info(
                    f"Building stage {index + 1}/{narrowed.stage_count}: {', '.join(stage)}"
                )
                self._record(BuildEventType.STAGE_STARTED, run_id, stage=index,
                             message=", ".join(stage))

                outcomes = self._run_stage(stage, build)
                result.stages_executed += 1

                # Barrier passed: commit the whole stage before the next one starts
                for unit_result, failure, trace in outcomes:
                    self._commit(unit_result, failure, trace, fingerprints, cache, result, index)

                if result.failed_units:
                    self._abort(narrowed.stages[index + 1:], cache, result)
                    break

            result.completed_at = utc_now()
            result.duration_seconds = time.perf_counter() - start
            summary = result.get_summary()
            summary.pop("run_id")
            self._record(BuildEventType.RUN_COMPLETED, run_id,
                         message="success" if result.success else "failed",
                         **summary)

            logger.info(
                f"Build {run_id} complete: "
                f"{len(result.succeeded_units)} succeeded, "
                f"{len(result.failed_units)} failed, "
                f"{len(result.skipped_units)} skipped in {result.duration_seconds:.3f}s"
            )
            return result

        finally:
            with self._lock:
                self._is_running = False
                self._current_run = None

    # -------------------------------------------------------------------------
    # Planning helpers
    # -------------------------------------------------------------------------

    def _eligible_units(self, plan: "BuildPlan", affected: Optional[Iterable[str]]) -> Set[str]:
        planned = set(plan.order)
        if affected is None:
            return planned

        requested = set(affected)
        unknown = requested - planned
        if unknown:
            logger.warning(f"Ignoring units not in the plan: {', '.join(sorted(unknown))}")
        return requested & planned

    def _fingerprints(
        self,
        plan: "BuildPlan",
        eligible: Set[str],
        cache: BuildCache,
    ) -> Dict[str, str]:
        """
        Current fingerprints of the eligible units and everything they depend on.

        Units outside the eligible set keep their cached fingerprint and
        are only digested when they have never been built. Walks with an
        explicit stack, so chain depth is not bounded by the interpreter's
        recursion limit.
        """
        memo: Dict[str, str] = {}
        expanded: Set[str] = set()

        for root in plan.order:
            if root not in eligible or root in memo:
                continue

            stack = [root]
            while stack:
                unit = stack[-1]
                if unit in memo:
                    stack.pop()
                    continue

                if unit not in eligible:
                    entry = cache.peek(unit)
                    if entry is not None:
                        memo[unit] = entry.fingerprint
                        stack.pop()
                        continue

                dependencies = self._graph.dependencies_of(unit)
                pending = sorted(dep for dep in dependencies if dep not in memo)
                if pending:
                    if unit in expanded:
                        raise CyclicGraphError([unit] + pending[:1])
                    expanded.add(unit)
                    stack.extend(pending)
                    continue

                memo[unit] = compute_fingerprint(
                    self._digest_provider(unit), [memo[dep] for dep in dependencies]
                )
                stack.pop()

        return memo

    def _fresh_units(
        self,
        plan: "BuildPlan",
        eligible: Set[str],
        cache: BuildCache,
        fingerprints: Dict[str, str],
    ) -> Set[str]:
        fresh = set()
        for unit in plan.order:
            if unit not in eligible:
                continue
            entry = cache.peek(unit)
            if (entry is not None and entry.last_result.success
                    and not cache.is_stale(unit, fingerprints[unit])):
                fresh.add(unit)
        if fresh:
            logger.debug(f"{len(fresh)} units have fresh cache entries")
        return fresh

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _run_stage(self, stage: Tuple[str, ...], build: BuildCallback) -> List[_Outcome]:
        """Build every unit of a stage concurrently; returns outcomes in completion order."""
        workers = min(self._max_workers or len(stage), len(stage))
        outcomes: List[_Outcome] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="strata-build") as executor:
            futures = {executor.submit(self._build_unit, unit, build): unit for unit in stage}
            for future in as_completed(futures):
                outcomes.append(future.result())

        return outcomes

    def _build_unit(self, unit: str, build: BuildCallback) -> _Outcome:
        """Run one build callback. Never raises for callback errors."""
        logger.debug(f"Building {unit}")
        start = time.perf_counter()

        try:
            returned = build(unit)
        except Exception as e:
            duration = time.perf_counter() - start
            logger.error(f"Build error for {unit}: {e}")
            unit_result = UnitBuildResult(
                unit=unit,
                success=False,
                diagnostics=(f"{type(e).__name__}: {e}",),
                duration_seconds=duration,
                error=str(e),
                error_type=type(e).__name__,
            )
            return unit_result, UnitBuildFailed(unit, e), traceback.format_exc()

        duration = time.perf_counter() - start

        if returned is None:
            return UnitBuildResult(unit=unit, success=True, duration_seconds=duration), None, None

        if not isinstance(returned, UnitBuildResult):
            message = f"build callback returned {type(returned).__name__}, expected UnitBuildResult or None"
            logger.error(f"Build error for {unit}: {message}")
            unit_result = UnitBuildResult(
                unit=unit, success=False, duration_seconds=duration,
                error=message, error_type="TypeError",
            )
            return unit_result, UnitBuildFailed(unit, TypeError(message)), None

        unit_result = returned.with_timing(unit, duration)
        if unit_result.success:
            return unit_result, None, None

        logger.error(f"Build failed for {unit}: {unit_result.error or 'reported failure'}")
        return unit_result, UnitBuildFailed(unit, message=unit_result.error or ""), None

    def _commit(
        self,
        unit_result: UnitBuildResult,
        failure: Optional[UnitBuildFailed],
        trace: Optional[str],
        fingerprints: Dict[str, str],
        cache: BuildCache,
        result: BuildResult,
        stage: int,
    ) -> None:
        unit = unit_result.unit
        cache.put(unit, CacheEntry(
            fingerprint=fingerprints[unit],
            last_result=unit_result,
            built_at=utc_now(),
        ))
        result.results[unit] = unit_result

        if failure is None:
            result.succeeded_units.append(unit)
            self._record(BuildEventType.UNIT_SUCCEEDED, result.run_id, unit=unit, stage=stage,
                         duration_seconds=unit_result.duration_seconds)
        else:
            result.failed_units.append(unit)
            details = failure.to_dict()
            if trace:
                details["traceback"] = trace
            result.failures[unit] = details
            self._record(BuildEventType.UNIT_FAILED, result.run_id, unit=unit, stage=stage,
                         message=str(failure))

        self._notify_progress(unit, unit_result)

    def _skip(self, unit: str, reason: SkipReason, cache: BuildCache, result: BuildResult) -> None:
        result.skipped_units[unit] = reason
        if reason is SkipReason.CACHED:
            entry = cache.get(unit)
            if entry is not None:
                result.results[unit] = entry.last_result.as_cached()
        self._record(BuildEventType.UNIT_SKIPPED, result.run_id, unit=unit, message=reason.value)

    def _abort(
        self,
        remaining_stages: Tuple[Tuple[str, ...], ...],
        cache: BuildCache,
        result: BuildResult,
    ) -> None:
        result.aborted = True
        skipped = [unit for stage in remaining_stages for unit in stage]
        for unit in skipped:
            self._skip(unit, SkipReason.ABORTED, cache, result)

        logger.warning(
            f"Aborting build {result.run_id} after failure in "
            f"{', '.join(result.failed_units)}; {len(skipped)} units not attempted"
        )
        self._record(BuildEventType.RUN_ABORTED, result.run_id,
                     message=f"failed: {', '.join(result.failed_units)}",
                     skipped=skipped)

    # -------------------------------------------------------------------------
    # Callbacks / state
    # -------------------------------------------------------------------------

    def _record(self, event_type: BuildEventType, run_id: str, **kwargs) -> None:
        if self._event_log is not None:
            self._event_log.record(event_type, run_id, **kwargs)

    def _notify_progress(self, unit: str, unit_result: UnitBuildResult) -> None:
        for callback in self._progress_callbacks:
            try:
                callback(unit, unit_result)
            except Exception as e:
                logger.error(f"Progress callback error: {e}")

    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback invoked after each built unit's result is committed."""
        self._progress_callbacks.append(callback)

    def is_running(self) -> bool:
        return self._is_running

    def get_current_run(self) -> Optional[BuildResult]:
        return self._current_run
