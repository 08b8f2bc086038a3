"""Unit tests for the generic directed graph."""

from __future__ import annotations

import pytest

from pipewright.analysis import DirectedGraph
from pipewright.errors import CompilationError


def graph_of(*edges: tuple[str, str], nodes: tuple[str, ...] = ()) -> DirectedGraph[str]:
    graph: DirectedGraph[str] = DirectedGraph()
    for node in nodes:
        graph.add_node(node)
    for source, target in edges:
        graph.add_edge(source, target)
    return graph


class TestStructure:
    """Tests for node and edge bookkeeping."""

    def test_add_edge_creates_nodes(self) -> None:
        """Adding an edge adds both of its nodes."""
        graph = graph_of(("a", "b"))
        assert "a" in graph and "b" in graph
        assert len(graph) == 2
        assert graph.successors("a") == ["b"]
        assert graph.predecessors("b") == ["a"]

    def test_nodes_are_sorted(self) -> None:
        """Nodes are listed in lexical order."""
        assert graph_of(("c", "a"), nodes=("b",)).nodes == ["a", "b", "c"]

    def test_remove_node_drops_edges(self) -> None:
        """Removing a node removes its edges."""
        graph = graph_of(("a", "b"), ("b", "c"))
        graph.remove_node("b")
        assert "b" not in graph
        assert graph.successors("a") == []
        assert graph.predecessors("c") == []

    def test_clear_edges_from(self) -> None:
        """clear_edges_from drops outgoing edges in both directions."""
        graph = graph_of(("a", "b"), ("a", "c"))
        graph.clear_edges_from("a")
        assert graph.successors("a") == []
        assert graph.predecessors("b") == []
        assert "a" in graph

    def test_unknown_node_has_no_neighbors(self) -> None:
        """Unknown nodes have no neighbors."""
        graph = graph_of()
        assert graph.successors("x") == []
        assert graph.predecessors("x") == []


class TestCycles:
    """Tests for cycle detection."""

    def test_acyclic(self) -> None:
        """An acyclic graph has no cycle."""
        graph = graph_of(("a", "b"), ("b", "c"), ("a", "c"))
        assert graph.find_cycle() is None
        assert not graph.has_cycle()
        assert graph.cyclic_components() == []

    def test_two_node_cycle(self) -> None:
        """A two-node cycle is returned closed."""
        assert graph_of(("a", "b"), ("b", "a")).find_cycle() == ["a", "b", "a"]

    def test_three_node_cycle(self) -> None:
        """A three-node cycle is returned closed."""
        graph = graph_of(("a", "b"), ("b", "c"), ("c", "a"))
        assert graph.find_cycle() == ["a", "b", "c", "a"]

    def test_self_loop(self) -> None:
        """A self loop is a cycle of one node."""
        graph = graph_of(("a", "a"))
        assert graph.find_cycle() == ["a", "a"]
        assert graph.cyclic_components() == [["a"]]

    def test_cycle_reached_from_acyclic_prefix(self) -> None:
        """The cycle starts where it begins, not at the path root."""
        graph = graph_of(("a", "b"), ("b", "c"), ("c", "b"))
        assert graph.find_cycle() == ["b", "c", "b"]

    def test_cyclic_components_are_separate(self) -> None:
        """Each strongly connected component is listed once."""
        graph = graph_of(("a", "b"), ("b", "a"), ("c", "d"), ("d", "c"), ("e", "a"))
        assert graph.cyclic_components() == [["a", "b"], ["c", "d"]]


class TestTopologicalOrder:
    """Tests for dependency ordering."""

    def test_diamond_dependencies_first(self) -> None:
        """Dependencies come before the nodes that need them."""
        graph = graph_of(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"))
        assert graph.topological_order() == ["d", "b", "c", "a"]

    def test_independent_nodes_in_lexical_order(self) -> None:
        """Unrelated nodes come out in lexical order."""
        assert graph_of(nodes=("c", "a", "b")).topological_order() == ["a", "b", "c"]

    def test_is_deterministic(self) -> None:
        """Insertion order does not change the result."""
        edges = [("app", "lib"), ("lib", "core"), ("cli", "core"), ("app", "cli")]
        forward = graph_of(*edges).topological_order()
        backward = graph_of(*reversed(edges)).topological_order()
        assert forward == backward == ["core", "cli", "lib", "app"]

    def test_cyclic_graph_raises(self) -> None:
        """Ordering a cyclic graph raises CompilationError."""
        with pytest.raises(CompilationError):
            graph_of(("a", "b"), ("b", "a")).topological_order()


class TestSubgraphAndReachability:
    """Tests for subgraph extraction and reachability."""

    def test_subgraph_keeps_internal_edges(self) -> None:
        """A subgraph keeps only edges between its nodes."""
        graph = graph_of(("a", "b"), ("b", "c"), ("c", "a"))
        sub = graph.subgraph(["a", "b"])
        assert sub.nodes == ["a", "b"]
        assert sub.successors("a") == ["b"]
        assert sub.successors("b") == []

    def test_reachable_from(self) -> None:
        """reachable_from lists transitive successors."""
        graph = graph_of(("a", "b"), ("b", "c"), ("d", "a"))
        assert graph.reachable_from("a") == ["b", "c"]
        assert graph.reachable_from("c") == []
