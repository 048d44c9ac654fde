"""
analysis/ - Graph export and reporting

networkx-based views of a UnitGraph.
"""

from .graph_export import (
    to_networkx,
    critical_path,
    graph_summary,
)

__all__ = [
    "to_networkx",
    "critical_path",
    "graph_summary",
]
