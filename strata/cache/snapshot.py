"""
strata Cache Snapshots

Persisted form of a BuildCache for cross-invocation incrementality.

The snapshot is a JSON document validated with pydantic on load:

    {"version": 1, "saved_at": "...", "entries": {unit: {fingerprint,
     last_result, built_at}}}

Round-tripping preserves every CacheEntry field exactly.
"""

from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

from pydantic import BaseModel, Field, ValidationError

from strata.core.results import UnitBuildResult, utc_now
from strata.errors import CacheSnapshotError
from .store import BuildCache, CacheEntry

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class UnitResultModel(BaseModel):
    unit: str
    success: bool
    diagnostics: List[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    error: Optional[str] = None
    error_type: Optional[str] = None
    from_cache: bool = False


class CacheEntryModel(BaseModel):
    fingerprint: str
    last_result: UnitResultModel
    built_at: datetime


class CacheSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    saved_at: datetime = Field(default_factory=utc_now)
    entries: Dict[str, CacheEntryModel] = Field(default_factory=dict)

    @classmethod
    def from_cache(cls, cache: BuildCache) -> "CacheSnapshot":
        return cls(
            entries={
                unit: CacheEntryModel(
                    fingerprint=entry.fingerprint,
                    last_result=UnitResultModel(**entry.last_result.to_dict()),
                    built_at=entry.built_at,
                )
                for unit, entry in cache.entries().items()
            }
        )

    def to_cache(self, cache: Optional[BuildCache] = None) -> BuildCache:
        cache = cache if cache is not None else BuildCache()
        for unit, model in self.entries.items():
            cache.put(
                unit,
                CacheEntry(
                    fingerprint=model.fingerprint,
                    last_result=UnitBuildResult(**model.last_result.model_dump()),
                    built_at=model.built_at,
                ),
            )
        return cache


def save_cache(cache: BuildCache, path: Union[str, Path]) -> int:
    """
    Write a cache snapshot to disk.

    Returns:
        Number of entries written
    """
    path = Path(path)
    snapshot = CacheSnapshot.from_cache(cache)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")

    logger.info(f"Saved {len(snapshot.entries)} cache entries to {path}")
    return len(snapshot.entries)


def load_cache(path: Union[str, Path], cache: Optional[BuildCache] = None) -> BuildCache:
    """
    Read a cache snapshot from disk into `cache` (or a new BuildCache).

    Raises:
        CacheSnapshotError: file missing, unreadable, or schema mismatch
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CacheSnapshotError(f"Cannot read cache snapshot {path}: {e}") from e

    try:
        snapshot = CacheSnapshot.model_validate_json(raw)
    except ValidationError as e:
        raise CacheSnapshotError(f"Invalid cache snapshot {path}: {e}") from e

    if snapshot.version != SNAPSHOT_VERSION:
        raise CacheSnapshotError(
            f"Unsupported cache snapshot version {snapshot.version} in {path}"
        )

    loaded = snapshot.to_cache(cache)
    logger.info(f"Loaded {len(snapshot.entries)} cache entries from {path}")
    return loaded
