"""
bootstrap/config.py - Engine configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from strata.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class SchedulerConfig:
    """Build execution configuration."""

    max_workers: Optional[int] = None  # None = one worker per unit in a stage
    reuse_fresh_cache: bool = False

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        workers = _env_int("STRATA_MAX_WORKERS", "0")
        return cls(
            max_workers=workers or None,
            reuse_fresh_cache=_env_bool("STRATA_REUSE_FRESH_CACHE"),
        )


@dataclass
class CacheConfig:
    """Cache persistence configuration."""

    snapshot_path: Optional[str] = None
    autoload: bool = False
    autosave: bool = False

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(
            snapshot_path=os.getenv("STRATA_CACHE_PATH") or None,
            autoload=_env_bool("STRATA_CACHE_AUTOLOAD"),
            autosave=_env_bool("STRATA_CACHE_AUTOSAVE"),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("STRATA_LOG_LEVEL", "INFO"),
            format=os.getenv("STRATA_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv("STRATA_LOG_FILE"),
            json_logs=_env_bool("STRATA_JSON_LOGS"),
        )


@dataclass
class EventLogConfig:
    """Build event log configuration."""

    max_entries: int = 10000

    @classmethod
    def from_env(cls) -> "EventLogConfig":
        return cls(max_entries=_env_int("STRATA_EVENT_LOG_MAX", "10000"))


@dataclass
class EngineConfig:
    """Root configuration for a BuildEngine."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    event_log: EventLogConfig = field(default_factory=EventLogConfig)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create configuration from environment variables."""
        config = cls(
            scheduler=SchedulerConfig.from_env(),
            cache=CacheConfig.from_env(),
            logging=LoggingConfig.from_env(),
            event_log=EventLogConfig.from_env(),
        )
        config.validate()
        return config

    @classmethod
    def from_file(cls, filepath: str) -> "EngineConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using environment")
            return cls.from_env()

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {filepath}: {e}") from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Environment values overridden by known file keys."""
        config = cls.from_env()

        for section in ("scheduler", "cache", "logging", "event_log"):
            if section not in data:
                continue
            target = getattr(config, section)
            for key, value in data[section].items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key: {section}.{key}")

        config.validate()
        return config

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: a value is out of range
        """
        workers = self.scheduler.max_workers
        if workers is not None and (not isinstance(workers, int) or workers < 1):
            raise ConfigurationError(f"scheduler.max_workers must be a positive integer, got {workers!r}")

        if self.event_log.max_entries < 1:
            raise ConfigurationError(f"event_log.max_entries must be positive, got {self.event_log.max_entries}")

        if str(self.logging.level).upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self.logging.level}")

        if (self.cache.autoload or self.cache.autosave) and not self.cache.snapshot_path:
            raise ConfigurationError("cache.autoload/autosave require cache.snapshot_path")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "scheduler": {
                "max_workers": self.scheduler.max_workers,
                "reuse_fresh_cache": self.scheduler.reuse_fresh_cache,
            },
            "cache": {
                "snapshot_path": self.cache.snapshot_path,
                "autoload": self.cache.autoload,
                "autosave": self.cache.autosave,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
            "event_log": {
                "max_entries": self.event_log.max_entries,
            },
        }


def load_config(filepath: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        EngineConfig instance
    """
    if filepath:
        return EngineConfig.from_file(filepath)

    default_paths = [
        "./strata.json",
        "./config/strata.json",
        os.path.expanduser("~/.strata/config.json"),
    ]

    for path in default_paths:
        if Path(path).exists():
            logger.info(f"Loading config from: {path}")
            return EngineConfig.from_file(path)

    return EngineConfig.from_env()
