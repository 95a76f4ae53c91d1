"""
Structural validation for graph documents coming from outside the process
(file imports, API payloads, the remote generation service).
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Union

from ..errors import GraphValidationError
from .schema import EDGE_KINDS, RESOURCE_TYPES, InfraGraph

logger = logging.getLogger(__name__)


def validate_graph_dict(data: Any) -> List[str]:
    """Validate a graph document and return a list of issues (empty when valid)."""
    if not isinstance(data, dict):
        return [f"Graph document must be an object, got {type(data).__name__}"]

    issues: List[str] = []

    nodes = data.get("nodes")
    edges = data.get("edges")
    if not isinstance(nodes, list):
        issues.append(f"'nodes' must be an array, got {_kind(nodes)}")
    if not isinstance(edges, list):
        issues.append(f"'edges' must be an array, got {_kind(edges)}")
    if "metadata" in data and not isinstance(data["metadata"], dict):
        issues.append(f"'metadata' must be an object, got {_kind(data['metadata'])}")
    if issues:
        return issues

    node_ids = set()
    for index, node in enumerate(nodes):
        issues.extend(_validate_node(index, node, node_ids))

    for index, edge in enumerate(edges):
        issues.extend(_validate_edge(index, edge, node_ids))

    return issues


def load_graph(data: Any) -> InfraGraph:
    """
    Validate a graph document and build an InfraGraph from it.

    Raises:
        GraphValidationError: If the document is structurally invalid
    """
    issues = validate_graph_dict(data)
    if issues:
        logger.warning(f"Rejected graph document with {len(issues)} issue(s)")
        raise GraphValidationError(issues)
    return InfraGraph.from_dict(data)


def read_graph_file(path: Union[str, Path]) -> InfraGraph:
    """Read and validate a graph JSON file."""
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise GraphValidationError([f"Not valid JSON: {e}"])
    return load_graph(data)


def write_graph_file(graph: InfraGraph, path: Union[str, Path]) -> None:
    with open(path, "w") as f:
        json.dump(graph.to_dict(), f, indent=2)


def _validate_node(index: int, node: Any, seen_ids: set) -> List[str]:
    where = f"nodes[{index}]"
    if not isinstance(node, dict):
        return [f"{where} must be an object, got {_kind(node)}"]

    issues = []
    node_id = node.get("id")
    if not isinstance(node_id, str) or not node_id:
        issues.append(f"{where}.id must be a non-empty string")
    elif node_id in seen_ids:
        issues.append(f"{where}.id '{node_id}' is duplicated")
    else:
        seen_ids.add(node_id)

    node_type = node.get("type")
    if node_type not in RESOURCE_TYPES:
        issues.append(f"{where}.type '{node_type}' is not a known resource type")

    if "label" in node and not isinstance(node["label"], str):
        issues.append(f"{where}.label must be a string")

    if "properties" in node and not isinstance(node["properties"], dict):
        issues.append(f"{where}.properties must be an object")

    if "position" in node:
        position = node["position"]
        if not isinstance(position, dict):
            issues.append(f"{where}.position must be an object")
        else:
            for axis in ("x", "y"):
                if not _is_number(position.get(axis)):
                    issues.append(f"{where}.position.{axis} must be a number")

    return issues


def _validate_edge(index: int, edge: Any, node_ids: set) -> List[str]:
    where = f"edges[{index}]"
    if not isinstance(edge, dict):
        return [f"{where} must be an object, got {_kind(edge)}"]

    issues = []
    if not isinstance(edge.get("id"), str) or not edge.get("id"):
        issues.append(f"{where}.id must be a non-empty string")

    source = edge.get("source")
    target = edge.get("target")
    for end, value in (("source", source), ("target", target)):
        if not isinstance(value, str):
            issues.append(f"{where}.{end} must be a string")
        elif value not in node_ids:
            issues.append(f"{where}.{end} '{value}' does not reference a node")

    if isinstance(source, str) and source == target:
        issues.append(f"{where} is a self-loop on '{source}'")

    if edge.get("type") is not None and edge["type"] not in EDGE_KINDS:
        issues.append(f"{where}.type '{edge['type']}' must be one of {sorted(EDGE_KINDS)}")

    if edge.get("label") is not None and not isinstance(edge["label"], str):
        issues.append(f"{where}.label must be a string")

    return issues


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _kind(value: Any) -> str:
    if value is None:
        return "nothing"
    return type(value).__name__
