"""Graph module providing dependency graph abstractions.

This module contains:
- DependencyGraph[T]: A generic, immutable directed graph
- topological_sort: Algorithm for ordering nodes by dependencies
- find_cycles: Cycle participants via strongly connected components
- schedule: Deterministic evaluation order for a subset of the graph
"""

from ._algorithms import CycleError, find_cycles, strongly_connected_components, topological_sort
from ._dependency_graph import DependencyGraph
from ._scheduler import Schedule, schedule

__all__ = [
    "CycleError",
    "DependencyGraph",
    "Schedule",
    "find_cycles",
    "schedule",
    "strongly_connected_components",
    "topological_sort",
]
