"""
strata Build Cache

In-memory store of the last build result per unit.

Entries are immutable and replaced whole under a lock, so a reader never
sees a half-written entry. Nothing is evicted automatically; callers
manage capacity with clear() / clear_all().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set
import logging
import threading

from strata.core.results import UnitBuildResult, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Cached build state for one unit."""
    fingerprint: str
    last_result: UnitBuildResult
    built_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "last_result": self.last_result.to_dict(),
            "built_at": self.built_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            fingerprint=data["fingerprint"],
            last_result=UnitBuildResult.from_dict(data["last_result"]),
            built_at=datetime.fromisoformat(data["built_at"]),
        )


class BuildCache:
    """Per-unit fingerprints and last results."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._invalidated: Set[str] = set()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, unit: str) -> Optional[CacheEntry]:
        """Entry for a unit, or None. Counts toward hit/miss statistics."""
        with self._lock:
            entry = self._entries.get(unit)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    def peek(self, unit: str) -> Optional[CacheEntry]:
        """Like get() without touching statistics."""
        with self._lock:
            return self._entries.get(unit)

    def put(self, unit: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[unit] = entry
            self._invalidated.discard(unit)

    def is_stale(self, unit: str, current_fingerprint: str) -> bool:
        """True if there is no entry, it was invalidated, or the fingerprint differs."""
        with self._lock:
            entry = self._entries.get(unit)
            if entry is None or unit in self._invalidated:
                return True
            return entry.fingerprint != current_fingerprint

    def invalidate(self, units: Iterable[str]) -> int:
        """
        Mark entries stale without deleting them.

        Returns:
            Number of existing entries marked
        """
        with self._lock:
            marked = [u for u in units if u in self._entries]
            self._invalidated.update(marked)
        if marked:
            logger.debug(f"Invalidated {len(marked)} cache entries")
        return len(marked)

    def clear(self, unit: str) -> bool:
        with self._lock:
            self._invalidated.discard(unit)
            return self._entries.pop(unit, None) is not None

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._invalidated.clear()

    def unit_names(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def entries(self) -> Dict[str, CacheEntry]:
        """Snapshot of all entries."""
        with self._lock:
            return dict(self._entries)

    def __contains__(self, unit: object) -> bool:
        with self._lock:
            return unit in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "total_entries": len(self._entries),
                "invalidated_entries": len(self._invalidated),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }

    def to_dict(self) -> Dict[str, Any]:
        return {unit: entry.to_dict() for unit, entry in self.entries().items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildCache":
        cache = cls()
        for unit, entry_data in data.items():
            cache.put(unit, CacheEntry.from_dict(entry_data))
        return cache
