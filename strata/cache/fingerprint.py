"""
strata Fingerprints

A unit's fingerprint hashes its own source digest together with the
current fingerprints of its direct dependencies. Since each dependency
fingerprint already folds in that dependency's own history, staleness
propagates transitively through a single level of lookup.
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterable
import hashlib
import logging

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


def compute_fingerprint(source_digest: str, dependency_fingerprints: Iterable[str]) -> str:
    """Pure function of (own digest, sorted dependency fingerprints)."""
    hasher = hashlib.sha256()
    hasher.update(source_digest.encode("utf-8"))
    for fingerprint in sorted(dependency_fingerprints):
        hasher.update(b"\0")
        hasher.update(fingerprint.encode("utf-8"))
    return hasher.hexdigest()


def digest_text(*parts: str) -> str:
    """Digest of in-memory content, for callers that do not build from disk."""
    hasher = hashlib.sha256()
    for part in parts:
        hasher.update(part.encode("utf-8"))
        hasher.update(b"\0")
    return hasher.hexdigest()


def digest_source_root(source_root: str) -> str:
    """
    Digest every file below a source root.

    Relative paths and file contents are hashed in sorted path order. A
    missing root digests as empty; a single file is digested on its own.
    """
    hasher = hashlib.sha256()
    if not source_root:
        return hasher.hexdigest()

    root = Path(source_root)
    if root.is_file():
        files = [root]
        base = root.parent
    elif root.is_dir():
        files = sorted(p for p in root.rglob("*") if p.is_file())
        base = root
    else:
        logger.debug(f"Source root does not exist: {source_root}")
        return hasher.hexdigest()

    for path in files:
        hasher.update(path.relative_to(base).as_posix().encode("utf-8"))
        hasher.update(b"\0")
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                hasher.update(chunk)
        hasher.update(b"\0")

    return hasher.hexdigest()
