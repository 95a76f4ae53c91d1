"""
Relationship inference between extracted resources.
"""

from typing import List, Optional

from ..graph.schema import EdgeKinds, ResourceEdge, ResourceNode, ResourceTypes
from ..ids import new_element_id

GATEWAY_TYPES = (ResourceTypes.INTERNET_GATEWAY, ResourceTypes.NAT_GATEWAY)


def infer_edges(nodes: List[ResourceNode]) -> List[ResourceEdge]:
    """
    Derive edges from fixed pairing rules, applied in order:

    1. the VPC contains every subnet and every gateway
    2. the load balancer routes to every EC2 instance
    3. every EC2 instance queries the database
    4. the security group protects every EC2 instance and the database

    Only the first VPC, load balancer, database and security group take part.
    """
    edges: List[ResourceEdge] = []

    vpc = _first(nodes, ResourceTypes.VPC)
    subnets = [n for n in nodes if n.type == ResourceTypes.SUBNET]
    gateways = [n for n in nodes if n.type in GATEWAY_TYPES]
    instances = [n for n in nodes if n.type == ResourceTypes.EC2]
    database = _first(nodes, ResourceTypes.RDS)
    load_balancer = _first(nodes, ResourceTypes.ALB)
    security_group = _first(nodes, ResourceTypes.SECURITY_GROUP)

    if vpc:
        for child in subnets + gateways:
            edges.append(_edge(vpc, child, EdgeKinds.CONTAINS))

    if load_balancer:
        for instance in instances:
            edges.append(_edge(load_balancer, instance, EdgeKinds.CONNECTS, "routes to"))

    if database:
        for instance in instances:
            edges.append(_edge(instance, database, EdgeKinds.CONNECTS, "queries"))

    if security_group:
        protected = instances + ([database] if database else [])
        for resource in protected:
            edges.append(_edge(security_group, resource, EdgeKinds.CONNECTS, "protects"))

    return edges


def _first(nodes: List[ResourceNode], resource_type: str) -> Optional[ResourceNode]:
    for node in nodes:
        if node.type == resource_type:
            return node
    return None


def _edge(source: ResourceNode, target: ResourceNode, kind: str, label: Optional[str] = None) -> ResourceEdge:
    return ResourceEdge(id=new_element_id(), source=source.id, target=target.id, label=label, kind=kind)
