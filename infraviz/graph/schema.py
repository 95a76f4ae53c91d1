"""
Shared graph model: resource catalog plus node, edge and graph dataclasses.

The JSON interchange shape is::

    {
      "nodes": [{"id", "type", "label", "properties", "position": {"x", "y"}}],
      "edges": [{"id", "source", "target", "label"?, "type"?}],
      "metadata": {"name", "region", "createdAt", "updatedAt"}
    }

``to_dict``/``from_dict`` convert between that shape and the dataclasses.
``from_dict`` trusts its input; run documents from outside the process
through :func:`infraviz.graph.validate.load_graph` first.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class ResourceTypes:
    VPC = "vpc"
    SUBNET = "subnet"
    EC2 = "ec2"
    RDS = "rds"
    ALB = "alb"
    S3 = "s3"
    LAMBDA = "lambda"
    SECURITY_GROUP = "security-group"
    IAM_ROLE = "iam-role"
    NAT_GATEWAY = "nat-gateway"
    INTERNET_GATEWAY = "internet-gateway"
    ROUTE_TABLE = "route-table"
    CLOUDFRONT = "cloudfront"
    API_GATEWAY = "api-gateway"
    DYNAMODB = "dynamodb"
    SQS = "sqs"
    SNS = "sns"
    ELASTICACHE = "elasticache"


class EdgeKinds:
    CONTAINS = "contains"
    CONNECTS = "connects"
    DEPENDS = "depends"


EDGE_KINDS = {EdgeKinds.CONTAINS, EdgeKinds.CONNECTS, EdgeKinds.DEPENDS}


@dataclass(frozen=True)
class ResourceMeta:
    """Display metadata for one resource type."""
    type: str
    label: str
    category: str  # "compute", "storage", "networking", "security", "database", "integration"
    description: str


RESOURCE_CATALOG: Dict[str, ResourceMeta] = {
    meta.type: meta
    for meta in [
        ResourceMeta(ResourceTypes.VPC, "VPC", "networking", "Virtual Private Cloud - Isolated network environment"),
        ResourceMeta(ResourceTypes.SUBNET, "Subnet", "networking", "Subnet within a VPC"),
        ResourceMeta(ResourceTypes.EC2, "EC2", "compute", "Elastic Compute Cloud instance"),
        ResourceMeta(ResourceTypes.RDS, "RDS", "database", "Relational Database Service"),
        ResourceMeta(ResourceTypes.ALB, "ALB", "networking", "Application Load Balancer"),
        ResourceMeta(ResourceTypes.S3, "S3", "storage", "Simple Storage Service bucket"),
        ResourceMeta(ResourceTypes.LAMBDA, "Lambda", "compute", "Serverless function"),
        ResourceMeta(ResourceTypes.SECURITY_GROUP, "Security Group", "security", "Virtual firewall for instances"),
        ResourceMeta(ResourceTypes.IAM_ROLE, "IAM Role", "security", "Identity and Access Management role"),
        ResourceMeta(ResourceTypes.NAT_GATEWAY, "NAT Gateway", "networking", "Network Address Translation gateway"),
        ResourceMeta(ResourceTypes.INTERNET_GATEWAY, "Internet Gateway", "networking", "Gateway to the internet"),
        ResourceMeta(ResourceTypes.ROUTE_TABLE, "Route Table", "networking", "Routing rules for subnets"),
        ResourceMeta(ResourceTypes.CLOUDFRONT, "CloudFront", "networking", "Content Delivery Network"),
        ResourceMeta(ResourceTypes.API_GATEWAY, "API Gateway", "integration", "Managed API service"),
        ResourceMeta(ResourceTypes.DYNAMODB, "DynamoDB", "database", "NoSQL database service"),
        ResourceMeta(ResourceTypes.SQS, "SQS", "integration", "Simple Queue Service"),
        ResourceMeta(ResourceTypes.SNS, "SNS", "integration", "Simple Notification Service"),
        ResourceMeta(ResourceTypes.ELASTICACHE, "ElastiCache", "database", "In-memory caching service"),
    ]
}

RESOURCE_TYPES = frozenset(RESOURCE_CATALOG)

DEFAULT_GRAPH_NAME = "New Infrastructure"
DEFAULT_REGION = "us-east-1"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class ResourceNode:
    """A typed infrastructure element."""
    id: str
    type: str                                             # key of RESOURCE_CATALOG
    label: str
    properties: Dict[str, Any] = field(default_factory=dict)
    position: Position = field(default_factory=Position)  # presentational only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "properties": copy.deepcopy(self.properties),
            "position": self.position.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceNode":
        position = data.get("position") or {}
        return cls(
            id=data["id"],
            type=data["type"],
            label=data.get("label", ""),
            properties=copy.deepcopy(data.get("properties") or {}),
            position=Position(x=position.get("x", 0.0), y=position.get("y", 0.0)),
        )


@dataclass
class ResourceEdge:
    """A directed relationship between two node ids."""
    id: str
    source: str
    target: str
    label: Optional[str] = None
    kind: Optional[str] = None  # one of EDGE_KINDS, serialized as "type"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label is not None:
            result["label"] = self.label
        if self.kind is not None:
            result["type"] = self.kind
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceEdge":
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            label=data.get("label"),
            kind=data.get("type"),
        )


@dataclass
class GraphMetadata:
    name: str = DEFAULT_GRAPH_NAME
    region: str = DEFAULT_REGION
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "region": self.region,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphMetadata":
        now = utc_now_iso()
        return cls(
            name=data.get("name", DEFAULT_GRAPH_NAME),
            region=data.get("region", DEFAULT_REGION),
            created_at=data.get("createdAt", now),
            updated_at=data.get("updatedAt", now),
        )


@dataclass
class InfraGraph:
    """Nodes in creation order, edges, and metadata."""
    nodes: List[ResourceNode] = field(default_factory=list)
    edges: List[ResourceEdge] = field(default_factory=list)
    metadata: GraphMetadata = field(default_factory=GraphMetadata)

    def get_node(self, node_id: str) -> Optional[ResourceNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, resource_type: str) -> List[ResourceNode]:
        return [node for node in self.nodes if node.type == resource_type]

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def copy(self) -> "InfraGraph":
        return copy.deepcopy(self)

    def touch(self) -> None:
        """Refresh the updated timestamp."""
        self.metadata.updated_at = utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InfraGraph":
        return cls(
            nodes=[ResourceNode.from_dict(n) for n in data.get("nodes", [])],
            edges=[ResourceEdge.from_dict(e) for e in data.get("edges", [])],
            metadata=GraphMetadata.from_dict(data.get("metadata") or {}),
        )
