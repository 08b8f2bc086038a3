"""Generic directed graph with cycle detection and topological ordering.

One implementation serves both the file import graph and the job ``needs``
graph. An edge ``a -> b`` means "a depends on b". Every traversal visits
nodes and neighbors in sorted order so results are deterministic.
"""

from __future__ import annotations

import heapq
from collections.abc import Callable, Hashable, Iterable
from typing import Any, Generic, TypeVar

from pipewright.errors import CompilationError

NodeT = TypeVar("NodeT", bound=Hashable)

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DirectedGraph(Generic[NodeT]):
    """Directed graph over hashable node identities.

    Args:
        sort_key: Key giving the lexical order used to break ties.

    Example:
        >>> graph: DirectedGraph[str] = DirectedGraph()
        >>> graph.add_edge("a", "b")
        >>> graph.add_edge("b", "a")
        >>> graph.find_cycle()
        ['a', 'b', 'a']
    """

    def __init__(self, sort_key: Callable[[NodeT], Any] = str) -> None:
        self._sort_key = sort_key
        self._edges: dict[NodeT, set[NodeT]] = {}
        self._reverse: dict[NodeT, set[NodeT]] = {}

    def _sorted(self, nodes: Iterable[NodeT]) -> list[NodeT]:
        return sorted(nodes, key=self._sort_key)

    def add_node(self, node: NodeT) -> None:
        """Add a node without edges (no-op if present)."""
        self._edges.setdefault(node, set())
        self._reverse.setdefault(node, set())

    def add_edge(self, source: NodeT, target: NodeT) -> None:
        """Add ``source -> target``, creating either node as needed."""
        self.add_node(source)
        self.add_node(target)
        self._edges[source].add(target)
        self._reverse[target].add(source)

    def remove_node(self, node: NodeT) -> None:
        """Remove a node and every edge touching it."""
        for target in self._edges.pop(node, set()):
            self._reverse[target].discard(node)
        for source in self._reverse.pop(node, set()):
            self._edges[source].discard(node)

    def clear_edges_from(self, node: NodeT) -> None:
        """Drop every outgoing edge of ``node``."""
        for target in self._edges.get(node, set()):
            self._reverse[target].discard(node)
        if node in self._edges:
            self._edges[node] = set()

    def __contains__(self, node: object) -> bool:
        return node in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    @property
    def nodes(self) -> list[NodeT]:
        """All nodes in lexical order."""
        return self._sorted(self._edges)

    def successors(self, node: NodeT) -> list[NodeT]:
        """Direct dependencies of ``node``."""
        return self._sorted(self._edges.get(node, ()))

    def predecessors(self, node: NodeT) -> list[NodeT]:
        """Nodes depending directly on ``node``."""
        return self._sorted(self._reverse.get(node, ()))

    def find_cycle(self) -> list[NodeT] | None:
        """Find the first cycle reached by a three-color depth-first search.

        Returns:
            Cycle as the node list from its start back to itself
            (``[a, b, a]``), or None if the graph is acyclic.
        """
        color = dict.fromkeys(self._edges, _WHITE)

        for root in self.nodes:
            if color[root] != _WHITE:
                continue
            color[root] = _GRAY
            path = [root]
            stack = [iter(self.successors(root))]

            while stack:
                for successor in stack[-1]:
                    if color[successor] == _GRAY:
                        start = path.index(successor)
                        return [*path[start:], successor]
                    if color[successor] == _WHITE:
                        color[successor] = _GRAY
                        path.append(successor)
                        stack.append(iter(self.successors(successor)))
                        break
                else:
                    color[path.pop()] = _BLACK
                    stack.pop()

        return None

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def cyclic_components(self) -> list[list[NodeT]]:
        """Strongly connected components that contain a cycle.

        Uses Tarjan's algorithm. Each component is sorted; components are
        ordered by their first node.
        """
        index_of: dict[NodeT, int] = {}
        lowlink: dict[NodeT, int] = {}
        on_stack: set[NodeT] = set()
        stack: list[NodeT] = []
        components: list[list[NodeT]] = []
        counter = 0

        def strongconnect(node: NodeT) -> None:
            nonlocal counter
            index_of[node] = lowlink[node] = counter
            counter += 1
            stack.append(node)
            on_stack.add(node)

            for successor in self.successors(node):
                if successor not in index_of:
                    strongconnect(successor)
                    lowlink[node] = min(lowlink[node], lowlink[successor])
                elif successor in on_stack:
                    lowlink[node] = min(lowlink[node], index_of[successor])

            if lowlink[node] == index_of[node]:
                component: list[NodeT] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                if len(component) > 1 or node in self._edges[node]:
                    components.append(self._sorted(component))

        for node in self.nodes:
            if node not in index_of:
                strongconnect(node)

        return sorted(components, key=lambda c: self._sort_key(c[0]))

    def topological_order(self) -> list[NodeT]:
        """Order nodes so every dependency precedes its dependents.

        Kahn's algorithm with a lexical min-heap for ties.

        Raises:
            CompilationError: If the graph contains a cycle.
        """
        remaining = {node: len(targets) for node, targets in self._edges.items()}
        heap = [(self._sort_key(n), i, n) for i, n in enumerate(self.nodes) if remaining[n] == 0]
        heapq.heapify(heap)
        tiebreak = len(heap)
        order: list[NodeT] = []

        while heap:
            _, _, node = heapq.heappop(heap)
            order.append(node)
            for dependent in self.predecessors(node):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(heap, (self._sort_key(dependent), tiebreak, dependent))
                    tiebreak += 1

        if len(order) != len(self._edges):
            cycle = self.find_cycle() or []
            raise CompilationError(
                "Cannot order a graph that contains a cycle",
                internal_details=" -> ".join(str(n) for n in cycle),
            )
        return order

    def subgraph(self, nodes: Iterable[NodeT]) -> DirectedGraph[NodeT]:
        """Induced subgraph over ``nodes``."""
        keep = set(nodes)
        sub: DirectedGraph[NodeT] = DirectedGraph(self._sort_key)
        for node in self._sorted(keep):
            sub.add_node(node)
            for target in self._edges.get(node, ()):
                if target in keep:
                    sub.add_edge(node, target)
        return sub

    def reachable_from(self, node: NodeT) -> list[NodeT]:
        """Transitive dependencies of ``node`` (excluding itself unless cyclic)."""
        seen: set[NodeT] = set()
        pending = list(self.successors(node))
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.successors(current))
        return self._sorted(seen)
