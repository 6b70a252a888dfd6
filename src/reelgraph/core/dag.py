"""DAG operations over a pipeline's nodes.

Uses NetworkX for graph operations including:
- Acyclicity validation
- Topological sorting
- Longest-path layering for editor layout

Edges run from the producing node to the consuming node. References to
ids that are not in the node set are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import networkx as nx
from networkx import DiGraph

from reelgraph.contracts.errors import ValidationError

if TYPE_CHECKING:
    from reelgraph.contracts.nodes import Node


class GraphValidationError(ValidationError):
    """Raised when the node graph contains a cycle."""


class PipelineGraph:
    """Dependency graph for a pipeline.

    Wraps NetworkX DiGraph with pipeline-specific queries.
    """

    def __init__(self) -> None:
        self._graph: DiGraph[str] = nx.DiGraph()

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> PipelineGraph:
        """Build the graph from nodes' input slots."""
        graph = cls()
        node_list = list(nodes)
        for node in node_list:
            graph._graph.add_node(node.id, type=node.type)
        for node in node_list:
            for input_key, refs in node.inputs.items():
                for ref in refs:
                    if graph._graph.has_node(ref):
                        graph._graph.add_edge(ref, node.id, input_key=input_key)
        return graph

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def is_acyclic(self) -> bool:
        """Check if the graph is acyclic (a valid DAG)."""
        return nx.is_directed_acyclic_graph(self._graph)

    def _require_acyclic(self) -> None:
        if self.is_acyclic():
            return
        cycle = nx.find_cycle(self._graph)
        cycle_str = " -> ".join(f"{u}" for u, _ in cycle)
        raise GraphValidationError(f"Graph contains a cycle: {cycle_str}")

    def topological_order(self) -> list[str]:
        """Node ids with every producer before its consumers.

        Ties are broken by id so the order is stable across calls.

        Raises:
            GraphValidationError: If the graph has a cycle
        """
        self._require_acyclic()
        return list(nx.lexicographical_topological_sort(self._graph))

    def layers(self) -> dict[str, int]:
        """Longest-path depth of every node (sources are depth 0).

        Raises:
            GraphValidationError: If the graph has a cycle
        """
        depth: dict[str, int] = {}
        for node_id in self.topological_order():
            preds = list(self._graph.predecessors(node_id))
            depth[node_id] = max((depth[p] + 1 for p in preds), default=0)
        return depth

    def dependents(self, node_id: str) -> list[str]:
        """Direct consumers of a node's output, sorted by id."""
        if not self._graph.has_node(node_id):
            return []
        return sorted(self._graph.successors(node_id))
