"""Graph algorithms for dependency graph operations."""

import heapq
from collections import defaultdict
from collections.abc import Callable, Collection, Hashable, Iterable, Mapping
from typing import Any, TypeVar

T = TypeVar("T", bound=Hashable)


class CycleError(ValueError):
    """Raised when a graph that must be acyclic contains a cycle.

    Attributes:
        nodes: The nodes that could not be ordered (cycle members and
            everything downstream of them).

    """

    def __init__(self, nodes: Iterable[Hashable]) -> None:
        self.nodes = frozenset(nodes)
        super().__init__(f"Cycle detected in graph among {len(self.nodes)} node(s)")


def _insertion_key(nodes: Iterable[T]) -> Callable[[T], Any]:
    index = {node: i for i, node in enumerate(nodes)}
    return index.__getitem__


def topological_sort(
    successors: Mapping[T, Collection[T]],
    *,
    key: Callable[[T], Any] | None = None,
) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Given a graph represented as a mapping from nodes to their successors
    (nodes that depend on them), return nodes in an order where each node
    appears before all nodes that depend on it. Among nodes that become
    ready at the same time the one with the smallest ``key`` goes first, so
    the order is deterministic for a given graph.

    Args:
        successors: Mapping from node to collection of nodes that depend on it.
            An edge (a -> b) means "b depends on a".
        key: Sort key used to break ties. Defaults to first appearance in
            ``successors``.

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If the graph contains a cycle.

    Example:
        >>> # a -> b -> c means c depends on b, b depends on a
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []})
        ['a', 'b', 'c']

    """
    # Calculate in-degree for each node
    indegree: defaultdict[T, int] = defaultdict(int)
    for node, deps in successors.items():
        indegree[node] = indegree.get(node, 0)
        for dep in deps:
            indegree[dep] += 1

    if key is None:
        key = _insertion_key(indegree)

    # Start with nodes that have no predecessors (in-degree 0)
    ready = [(key(node), i, node) for i, node in enumerate(indegree) if indegree[node] == 0]
    heapq.heapify(ready)
    counter = len(indegree)
    order: list[T] = []

    while ready:
        _, _, node = heapq.heappop(ready)
        order.append(node)
        for successor in successors.get(node, ()):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                heapq.heappush(ready, (key(successor), counter, successor))
                counter += 1

    if len(order) != len(indegree):
        placed = set(order)
        raise CycleError(node for node in indegree if node not in placed)

    return order


def strongly_connected_components(successors: Mapping[T, Collection[T]]) -> list[frozenset[T]]:
    """Find the strongly connected components of a graph (Tarjan's algorithm).

    Iterative, so deep chains do not hit the recursion limit.

    Args:
        successors: Mapping from node to collection of nodes that depend on it.

    Returns:
        Components in reverse topological order of the condensed graph.

    """
    index: dict[T, int] = {}
    lowlink: dict[T, int] = {}
    on_stack: set[T] = set()
    stack: list[T] = []
    components: list[frozenset[T]] = []
    counter = 0

    nodes: dict[T, None] = {}
    for node, succs in successors.items():
        nodes.setdefault(node)
        for succ in succs:
            nodes.setdefault(succ)

    for root in nodes:
        if root in index:
            continue
        work: list[tuple[T, list[T]]] = [(root, list(successors.get(root, ())))]
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)

        while work:
            node, pending = work[-1]
            if pending:
                succ = pending.pop()
                if succ not in index:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, list(successors.get(succ, ()))))
                elif succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
            if lowlink[node] == index[node]:
                component: set[T] = set()
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.add(member)
                    if member == node:
                        break
                components.append(frozenset(component))

    return components


def find_cycles(successors: Mapping[T, Collection[T]]) -> list[frozenset[T]]:
    """Return the node sets that form cycles.

    A cycle is a strongly connected component with more than one node, or a
    single node with an edge to itself. Nodes that merely depend on a cycle
    are not reported.

    Example:
        >>> find_cycles({"a": ["b"], "b": ["a"], "c": []})
        [frozenset({'a', 'b'})]

    """
    return [
        component
        for component in strongly_connected_components(successors)
        if len(component) > 1 or any(node in successors.get(node, ()) for node in component)
    ]
