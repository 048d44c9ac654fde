"""
errors/taxonomy.py - Error classification system

Codes and categories shared by every engine exception, so failures can be
reported in a structured form (see StrataError.to_dict).
"""

from __future__ import annotations
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Graph construction errors (1xxx)
    GRAPH = "graph"

    # Scheduling errors (2xxx)
    SCHEDULING = "scheduling"

    # Unit build errors (3xxx)
    BUILD = "build"

    # Cache errors (4xxx)
    CACHE = "cache"

    # Configuration errors (5xxx)
    CONFIGURATION = "configuration"


class ErrorCode(Enum):
    """Specific error codes."""

    # Graph (1xxx)
    GRF_DUPLICATE_UNIT = 1001
    GRF_UNKNOWN_UNIT = 1002
    GRF_WOULD_CREATE_CYCLE = 1003
    GRF_HAS_DEPENDENTS = 1004

    # Scheduling (2xxx)
    SCH_CYCLIC_GRAPH = 2001

    # Build (3xxx)
    BLD_UNIT_FAILED = 3001
    BLD_IN_PROGRESS = 3002

    # Cache (4xxx)
    CCH_SNAPSHOT_INVALID = 4001

    # Configuration (5xxx)
    CFG_INVALID = 5001


CATEGORY_FOR_CODE = {
    ErrorCode.GRF_DUPLICATE_UNIT: ErrorCategory.GRAPH,
    ErrorCode.GRF_UNKNOWN_UNIT: ErrorCategory.GRAPH,
    ErrorCode.GRF_WOULD_CREATE_CYCLE: ErrorCategory.GRAPH,
    ErrorCode.GRF_HAS_DEPENDENTS: ErrorCategory.GRAPH,
    ErrorCode.SCH_CYCLIC_GRAPH: ErrorCategory.SCHEDULING,
    ErrorCode.BLD_UNIT_FAILED: ErrorCategory.BUILD,
    ErrorCode.BLD_IN_PROGRESS: ErrorCategory.BUILD,
    ErrorCode.CCH_SNAPSHOT_INVALID: ErrorCategory.CACHE,
    ErrorCode.CFG_INVALID: ErrorCategory.CONFIGURATION,
}
