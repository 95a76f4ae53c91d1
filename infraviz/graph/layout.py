"""
Layered auto-layout.

Each resource type sits in a fixed layer. Occupied layers stack top to
bottom in ascending order; nodes inside a layer are centered horizontally
in creation order.
"""

from typing import Dict, List

from .schema import Position, ResourceNode, ResourceTypes


LAYER_MAP: Dict[str, int] = {
    ResourceTypes.INTERNET_GATEWAY: 0,
    ResourceTypes.CLOUDFRONT: 0,
    ResourceTypes.VPC: 0,
    ResourceTypes.ALB: 1,
    ResourceTypes.API_GATEWAY: 1,
    ResourceTypes.SUBNET: 2,
    ResourceTypes.NAT_GATEWAY: 2,
    ResourceTypes.ROUTE_TABLE: 2,
    ResourceTypes.EC2: 3,
    ResourceTypes.LAMBDA: 3,
    ResourceTypes.SECURITY_GROUP: 4,
    ResourceTypes.RDS: 4,
    ResourceTypes.DYNAMODB: 4,
    ResourceTypes.ELASTICACHE: 4,
    ResourceTypes.S3: 5,
    ResourceTypes.SQS: 5,
    ResourceTypes.SNS: 5,
    ResourceTypes.IAM_ROLE: 6,
}
DEFAULT_LAYER = 3

START_X = 100
START_Y = 100
X_GAP = 200
Y_GAP = 150
X_SHIFT = 300


def layer_for(resource_type: str) -> int:
    return LAYER_MAP.get(resource_type, DEFAULT_LAYER)


def group_by_layer(nodes: List[ResourceNode]) -> Dict[int, List[ResourceNode]]:
    """Bucket nodes by layer, keeping creation order inside each bucket."""
    layers: Dict[int, List[ResourceNode]] = {}
    for node in nodes:
        layers.setdefault(layer_for(node.type), []).append(node)
    return layers


def auto_layout(nodes: List[ResourceNode]) -> List[ResourceNode]:
    """
    Assign positions to nodes in place.

    Empty layers are skipped, so the n-th occupied layer lands on row n.

    Args:
        nodes: Nodes in creation order

    Returns:
        The same list, for chaining
    """
    layers = group_by_layer(nodes)

    for row, layer in enumerate(sorted(layers)):
        layer_nodes = layers[layer]
        layer_width = len(layer_nodes) * X_GAP
        offset_x = START_X - (layer_width / 2) + (X_GAP / 2)

        for index, node in enumerate(layer_nodes):
            node.position = Position(
                x=offset_x + (index * X_GAP) + X_SHIFT,
                y=START_Y + (row * Y_GAP),
            )

    return nodes
