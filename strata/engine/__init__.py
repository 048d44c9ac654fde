"""
engine/ - Build engine facade
"""

from .build_engine import BuildEngine

__all__ = [
    "BuildEngine",
]
