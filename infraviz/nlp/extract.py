"""
Main extraction orchestrator: free text in, laid-out resource graph out.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..graph.layout import auto_layout
from ..graph.schema import DEFAULT_REGION, GraphMetadata, InfraGraph, ResourceNode, utc_now_iso
from ..ids import new_element_id
from .relations import infer_edges
from .rules import extract_region, extract_resources

logger = logging.getLogger(__name__)

GENERATED_GRAPH_NAME = "Generated Infrastructure"


@dataclass
class ExtractionReport:
    """What the extractor did with a piece of text."""
    hits: List[str] = field(default_factory=list)     # Rules that fired
    implied: List[str] = field(default_factory=list)  # Resource types added without being named
    region: str = DEFAULT_REGION
    node_count: int = 0
    edge_count: int = 0
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "implied": self.implied,
            "region": self.region,
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "duration_ms": self.duration_ms,
        }


def extract(text: str) -> InfraGraph:
    """Convert a free-text description into a resource graph."""
    graph, _ = extract_with_report(text)
    return graph


def extract_with_report(text: str, *, default_region: Optional[str] = None) -> Tuple[InfraGraph, ExtractionReport]:
    """
    Convert a free-text description into a resource graph.

    Never raises on arbitrary text; unmatched text yields an empty graph.

    Args:
        text: Raw description, may be empty
        default_region: Region used when the text names none. Falls back to
            INFRAVIZ_DEFAULT_REGION, then us-east-1.

    Returns:
        Tuple of (graph, report)
    """
    start_time = time.time()
    text = text or ""

    resources, hits = extract_resources(text)
    region = (
        extract_region(text, hits)
        or default_region
        or os.environ.get("INFRAVIZ_DEFAULT_REGION", DEFAULT_REGION)
    )

    nodes = [
        ResourceNode(
            id=new_element_id(),
            type=resource.type,
            label=resource.label,
            properties=resource.properties,
        )
        for resource in resources
    ]
    edges = infer_edges(nodes)
    auto_layout(nodes)

    now = utc_now_iso()
    graph = InfraGraph(
        nodes=nodes,
        edges=edges,
        metadata=GraphMetadata(name=GENERATED_GRAPH_NAME, region=region, created_at=now, updated_at=now),
    )

    report = ExtractionReport(
        hits=hits,
        implied=[hit.split(":", 1)[1] for hit in hits if hit.startswith("implied:")],
        region=region,
        node_count=len(nodes),
        edge_count=len(edges),
        duration_ms=int((time.time() - start_time) * 1000),
    )
    logger.debug(f"Extraction hits: {hits}")
    logger.info(f"Extracted {len(nodes)} nodes and {len(edges)} edges")

    return graph, report
