"""
Explicit graph edits with a linear undo/redo history.
"""

import logging
from typing import Any, Dict, List, Optional

from ..errors import GraphValidationError
from .schema import GraphMetadata, InfraGraph, Position, ResourceEdge, ResourceNode

logger = logging.getLogger(__name__)


class GraphEditor:
    """Holds the current graph and every committed state up to MAX_HISTORY."""

    MAX_HISTORY = 50

    def __init__(self, graph: Optional[InfraGraph] = None):
        self.graph: Optional[InfraGraph] = None
        self._history: List[InfraGraph] = []
        self._index = -1
        if graph is not None:
            self.set_graph(graph)

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def set_graph(self, graph: InfraGraph) -> None:
        self._commit(graph.copy(), touch=False)

    def add_node(self, node: ResourceNode) -> None:
        if self.graph is None:
            graph = InfraGraph(nodes=[node], metadata=GraphMetadata())
            self._history = []
            self._index = -1
            self._commit(graph, touch=False)
            return
        if self.graph.get_node(node.id) is not None:
            raise GraphValidationError([f"Node id '{node.id}' already exists"])
        graph = self.graph.copy()
        graph.nodes.append(node)
        self._commit(graph)

    def update_node(
        self,
        node_id: str,
        label: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
        position: Optional[Position] = None,
    ) -> None:
        """Edit a node. Properties are merged into the existing ones; type is fixed."""
        graph = self._require_graph().copy()
        node = self._require_node(graph, node_id)
        if label is not None:
            node.label = label
        if properties:
            node.properties = {**node.properties, **properties}
        if position is not None:
            node.position = position
        self._commit(graph)

    def apply_patch(self, node_id: str, patch: Dict[str, Any]) -> None:
        """Apply an auto-fix property patch to one node."""
        self.update_node(node_id, properties=patch)

    def remove_node(self, node_id: str) -> None:
        graph = self._require_graph().copy()
        self._require_node(graph, node_id)
        graph.nodes = [n for n in graph.nodes if n.id != node_id]
        graph.edges = [e for e in graph.edges if e.source != node_id and e.target != node_id]
        self._commit(graph)

    def add_edge(self, edge: ResourceEdge) -> None:
        graph = self._require_graph().copy()
        issues = []
        for end in (edge.source, edge.target):
            if graph.get_node(end) is None:
                issues.append(f"Edge endpoint '{end}' does not reference a node")
        if edge.source == edge.target:
            issues.append(f"Edge '{edge.id}' is a self-loop")
        if issues:
            raise GraphValidationError(issues)
        graph.edges.append(edge)
        self._commit(graph)

    def remove_edge(self, edge_id: str) -> None:
        graph = self._require_graph().copy()
        graph.edges = [e for e in graph.edges if e.id != edge_id]
        self._commit(graph)

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._index -= 1
        self.graph = self._history[self._index].copy()
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._index += 1
        self.graph = self._history[self._index].copy()
        return True

    def _commit(self, graph: InfraGraph, touch: bool = True) -> None:
        if touch:
            graph.touch()
        history = self._history[: self._index + 1]
        history.append(graph.copy())
        self._history = history[-self.MAX_HISTORY:]
        self._index = len(self._history) - 1
        self.graph = graph
        logger.debug(f"Committed graph state {self._index} ({len(graph.nodes)} nodes)")

    def _require_graph(self) -> InfraGraph:
        if self.graph is None:
            raise ValueError("No graph loaded")
        return self.graph

    @staticmethod
    def _require_node(graph: InfraGraph, node_id: str) -> ResourceNode:
        node = graph.get_node(node_id)
        if node is None:
            raise KeyError(f"Unknown node: {node_id}")
        return node
