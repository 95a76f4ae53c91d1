"""
Shared graph model consumed by the extractor, the scanner and the UI.
"""

from .schema import (
    EdgeKinds,
    GraphMetadata,
    InfraGraph,
    Position,
    RESOURCE_CATALOG,
    RESOURCE_TYPES,
    ResourceEdge,
    ResourceNode,
    ResourceTypes,
)
from .validate import load_graph, read_graph_file, validate_graph_dict, write_graph_file
from .layout import auto_layout, layer_for
from .editor import GraphEditor

__all__ = [
    "EdgeKinds",
    "GraphMetadata",
    "InfraGraph",
    "Position",
    "RESOURCE_CATALOG",
    "RESOURCE_TYPES",
    "ResourceEdge",
    "ResourceNode",
    "ResourceTypes",
    "load_graph",
    "read_graph_file",
    "validate_graph_dict",
    "write_graph_file",
    "auto_layout",
    "layer_for",
    "GraphEditor",
]
