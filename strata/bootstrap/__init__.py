"""
bootstrap/ - Configuration and logging

Provides:
- EngineConfig and section configs, loaded from JSON files or STRATA_* env vars
- setup_logging: console/file handlers with optional JSON lines
"""

from .config import (
    SchedulerConfig,
    CacheConfig,
    LoggingConfig,
    EventLogConfig,
    EngineConfig,
    load_config,
)
from .logging_setup import (
    JSONFormatter,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    # Config
    "SchedulerConfig",
    "CacheConfig",
    "LoggingConfig",
    "EventLogConfig",
    "EngineConfig",
    "load_config",
    # Logging
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_config",
]
