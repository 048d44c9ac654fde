"""
strata Build Execution

Provides:
- BuildOrchestrator: barrier-staged parallel execution with fail-fast abort
- BuildEventLog: audit trail of build runs
"""

from strata.core.results import (
    SkipReason,
    UnitBuildResult,
    BuildResult,
)
from .event_log import (
    BuildEvent,
    BuildEventLog,
    BuildEventType,
)
from .orchestrator import (
    BuildOrchestrator,
    BuildCallback,
    DigestProvider,
)

__all__ = [
    # Results
    "SkipReason",
    "UnitBuildResult",
    "BuildResult",
    # Event log
    "BuildEvent",
    "BuildEventLog",
    "BuildEventType",
    # Orchestration
    "BuildOrchestrator",
    "BuildCallback",
    "DigestProvider",
]
