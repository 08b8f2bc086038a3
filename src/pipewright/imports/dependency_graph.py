"""File-level import graph.

Tracks which file imports which, for:
- Cycle detection (circular imports)
- Compilation order (dependencies before dependents)
- Invalidation (which files must recompile when one changes)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from pipewright.analysis.graph import DirectedGraph
from pipewright.imports.paths import normalize_path


@dataclass(frozen=True)
class ImportEdge:
    """One import relation from the importing file to ``target``.

    Attributes:
        target: Path of the imported file.
        names: Names imported from the target.
    """

    target: str
    names: tuple[str, ...] = field(default_factory=tuple)


class ImportGraph:
    """Directed graph over normalized file paths.

    Example:
        >>> graph = ImportGraph()
        >>> graph.add_file("a.pipe", [ImportEdge("./b.pipe", ("Result",))])
        >>> graph.add_file("b.pipe", [])
        >>> graph.get_topological_order()
        ['b.pipe', 'a.pipe']
    """

    def __init__(self) -> None:
        self._graph: DirectedGraph[str] = DirectedGraph()
        self._names: dict[tuple[str, str], tuple[str, ...]] = {}

    def add_file(self, path: str, edges: Iterable[ImportEdge]) -> None:
        """Register ``path`` and its import edges.

        Re-adding a file replaces its previous edges.
        """
        source = normalize_path(path)
        self._graph.add_node(source)
        for target in self._graph.successors(source):
            self._names.pop((source, target), None)
        self._graph.clear_edges_from(source)

        for edge in edges:
            target = normalize_path(edge.target)
            self._graph.add_edge(source, target)
            merged = self._names.get((source, target), ()) + tuple(edge.names)
            self._names[(source, target)] = merged

    def remove_file(self, path: str) -> None:
        """Remove a file and every edge touching it."""
        node = normalize_path(path)
        self._names = {k: v for k, v in self._names.items() if node not in k}
        self._graph.remove_node(node)

    def has_file(self, path: str) -> bool:
        return normalize_path(path) in self._graph

    @property
    def files(self) -> list[str]:
        """All known files in lexical order."""
        return self._graph.nodes

    def __len__(self) -> int:
        return len(self._graph)

    def has_cycle(self) -> bool:
        return self._graph.has_cycle()

    def get_cycle(self) -> list[str] | None:
        """First cycle found, as ``[a, b, ..., a]``, or None."""
        return self._graph.find_cycle()

    def cyclic_components(self) -> list[list[str]]:
        """Every group of files that import each other in a cycle."""
        return self._graph.cyclic_components()

    def cycle_through(self, component: Iterable[str]) -> list[str]:
        """A concrete cycle path inside one cyclic component."""
        return self._graph.subgraph(component).find_cycle() or []

    def get_topological_order(self) -> list[str]:
        """Files ordered so every import precedes its importer.

        Raises:
            CompilationError: If the graph contains a cycle.
        """
        return self._graph.topological_order()

    def get_direct_imports(self, path: str) -> list[str]:
        return self._graph.successors(normalize_path(path))

    def get_direct_dependents(self, path: str) -> list[str]:
        return self._graph.predecessors(normalize_path(path))

    def get_dependencies_of(self, path: str) -> list[str]:
        """Every file ``path`` imports, directly or transitively."""
        return self._graph.reachable_from(normalize_path(path))

    def get_dependents_of(self, path: str) -> list[str]:
        """Every file importing ``path``, directly or transitively."""
        start = normalize_path(path)
        seen: set[str] = set()
        pending = self._graph.predecessors(start)
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self._graph.predecessors(current))
        return sorted(seen)

    def imported_names(self, source: str, target: str) -> tuple[str, ...]:
        """Names ``source`` imports from ``target``."""
        return self._names.get((normalize_path(source), normalize_path(target)), ())
