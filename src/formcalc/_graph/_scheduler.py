"""Evaluation ordering for a subset of a dependency graph."""

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ._algorithms import find_cycles, topological_sort
from ._dependency_graph import DependencyGraph

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True, slots=True)
class Schedule(Generic[T]):
    """Evaluation plan for one propagation pass.

    Attributes:
        order: Nodes to evaluate, each after all of its scheduled dependencies.
        cycle_members: Nodes of the target set that sit on a cycle. They are
            not in ``order``; callers give them their fallback value.

    """

    order: tuple[T, ...]
    cycle_members: frozenset[T]

    def __len__(self) -> int:
        return len(self.order)


def schedule(
    graph: DependencyGraph[T],
    targets: Iterable[T],
    *,
    key: Callable[[T], Any],
) -> Schedule[T]:
    """Order ``targets`` for evaluation using Kahn's algorithm on the target subgraph.

    Edges from nodes outside ``targets`` are ignored: those nodes already
    hold their values for this pass. Cycle members are pulled out of the
    ordering and their outgoing edges count as satisfied, so fields that
    merely depend on a cycle are still scheduled.

    Args:
        graph: The full dependency graph.
        targets: Nodes that need evaluation in this pass.
        key: Tie-break key (declaration order) for nodes ready at the same time.

    Returns:
        The Schedule for the pass.

    Example:
        >>> graph = DependencyGraph.from_edges([("x", "y"), ("y", "z")])
        >>> schedule(graph, {"y", "z"}, key=["x", "y", "z"].index).order
        ('y', 'z')

    """
    target_set = frozenset(targets)
    sub = graph.subgraph(target_set)
    ordered_targets = sorted(target_set, key=key)
    successors = {node: sorted(sub.successors(node), key=key) for node in ordered_targets}

    members: frozenset[T] = frozenset().union(*find_cycles(successors))
    acyclic = {
        node: [succ for succ in succs if succ not in members]
        for node, succs in successors.items()
        if node not in members
    }
    order = topological_sort(acyclic, key=key)
    return Schedule(order=tuple(order), cycle_members=members)
