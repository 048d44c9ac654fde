"""
strata Test Configuration and Fixtures
"""

import pytest
from typing import Callable, Dict, List

from strata.cache import BuildCache, digest_text
from strata.dependencies import Unit, UnitGraph


@pytest.fixture
def diamond_graph() -> UnitGraph:
    """
    A (no deps), B -> A, C -> A, D -> B, C.

    Source roots live under packages/<lowercase name>.
    """
    graph = UnitGraph()
    graph.add_unit(Unit("A", "packages/a"))
    graph.add_unit(Unit("B", "packages/b", ("A",)))
    graph.add_unit(Unit("C", "packages/c", ("A",)))
    graph.add_unit(Unit("D", "packages/d", ("B", "C")))
    return graph


@pytest.fixture
def cache() -> BuildCache:
    return BuildCache()


class RecordingBuilder:
    """Build callback that records calls and fails selected units."""

    def __init__(self, fail: tuple = ()):
        self.fail = set(fail)
        self.calls: List[str] = []

    def __call__(self, unit: str):
        self.calls.append(unit)
        if unit in self.fail:
            raise RuntimeError(f"compile error in {unit}")
        return None


@pytest.fixture
def builder() -> RecordingBuilder:
    return RecordingBuilder()


@pytest.fixture
def make_builder() -> Callable[..., RecordingBuilder]:
    return RecordingBuilder


class SourceDigests:
    """In-memory source contents per unit, used as a digest provider."""

    def __init__(self):
        self.contents: Dict[str, str] = {}

    def touch(self, unit: str) -> None:
        self.contents[unit] = self.contents.get(unit, "") + "+"

    def __call__(self, unit: str) -> str:
        return digest_text(unit, self.contents.get(unit, ""))


@pytest.fixture
def digests() -> SourceDigests:
    return SourceDigests()
