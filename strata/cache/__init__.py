"""
strata Build Cache

Provides:
- BuildCache / CacheEntry: per-unit fingerprint and last result
- compute_fingerprint / digest_source_root: staleness hashing
- save_cache / load_cache: JSON snapshots validated with pydantic
"""

from .fingerprint import (
    compute_fingerprint,
    digest_source_root,
    digest_text,
)
from .store import (
    BuildCache,
    CacheEntry,
)
from .snapshot import (
    CacheSnapshot,
    save_cache,
    load_cache,
)

__all__ = [
    # Fingerprints
    "compute_fingerprint",
    "digest_source_root",
    "digest_text",
    # Store
    "BuildCache",
    "CacheEntry",
    # Snapshots
    "CacheSnapshot",
    "save_cache",
    "load_cache",
]
