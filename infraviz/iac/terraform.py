"""
Render a resource graph as a Terraform configuration for the AWS provider.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..graph.schema import EdgeKinds, InfraGraph, ResourceNode, ResourceTypes

logger = logging.getLogger(__name__)

TERRAFORM_TYPES: Dict[str, str] = {
    ResourceTypes.VPC: "aws_vpc",
    ResourceTypes.SUBNET: "aws_subnet",
    ResourceTypes.EC2: "aws_instance",
    ResourceTypes.RDS: "aws_db_instance",
    ResourceTypes.ALB: "aws_lb",
    ResourceTypes.S3: "aws_s3_bucket",
    ResourceTypes.LAMBDA: "aws_lambda_function",
    ResourceTypes.SECURITY_GROUP: "aws_security_group",
    ResourceTypes.IAM_ROLE: "aws_iam_role",
    ResourceTypes.NAT_GATEWAY: "aws_nat_gateway",
    ResourceTypes.INTERNET_GATEWAY: "aws_internet_gateway",
    ResourceTypes.ROUTE_TABLE: "aws_route_table",
    ResourceTypes.CLOUDFRONT: "aws_cloudfront_distribution",
    ResourceTypes.API_GATEWAY: "aws_apigatewayv2_api",
    ResourceTypes.DYNAMODB: "aws_dynamodb_table",
    ResourceTypes.SQS: "aws_sqs_queue",
    ResourceTypes.SNS: "aws_sns_topic",
    ResourceTypes.ELASTICACHE: "aws_elasticache_cluster",
}

LAMBDA_ASSUME_ROLE = {
    "Version": "2012-10-17",
    "Statement": [
        {"Action": "sts:AssumeRole", "Effect": "Allow", "Principal": {"Service": "lambda.amazonaws.com"}}
    ],
}


class _Ref:
    """A bare HCL expression, rendered without quotes."""

    def __init__(self, expr: str):
        self.expr = expr


def render_terraform(graph: InfraGraph) -> str:
    """
    Render graph as HCL.

    Subnets and gateways pick up vpc_id from their containing VPC; instances
    and databases pick up the security groups that protect them.
    """
    names = _assign_names(graph.nodes)
    parents = _containers(graph)
    subnets = _subnets_by_vpc(graph.nodes, parents)
    guards = _protectors(graph)
    default_vpc = next((n for n in graph.nodes if n.type == ResourceTypes.VPC), None)

    blocks = [_header(graph.metadata.region)]
    for node in graph.nodes:
        attrs = _attributes(node, names, parents, guards, subnets, default_vpc)
        blocks.append(_block(TERRAFORM_TYPES[node.type], names[node.id], attrs))
        if node.type == ResourceTypes.VPC and node.properties.get("flowLogsEnabled") is True:
            blocks.append(_block("aws_flow_log", f"{names[node.id]}_flow_log", {
                "vpc_id": _Ref(f"aws_vpc.{names[node.id]}.id"),
                "traffic_type": "ALL",
                "log_destination_type": "s3",
            }))
        if node.type == ResourceTypes.S3:
            blocks.extend(_bucket_extras(node, names[node.id]))

    logger.info(f"Rendered {len(graph.nodes)} resources to Terraform")
    return "\n\n".join(blocks) + "\n"


def write_terraform(graph: InfraGraph, dest_dir: Union[str, Path]) -> Path:
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    main_tf = dest / "main.tf"
    with open(main_tf, "w") as f:
        f.write(render_terraform(graph))
    return main_tf


def _header(region: str) -> str:
    return (
        "terraform {\n"
        "  required_providers {\n"
        "    aws = {\n"
        '      source  = "hashicorp/aws"\n'
        '      version = "~> 5.0"\n'
        "    }\n"
        "  }\n"
        "}\n\n"
        'provider "aws" {\n'
        f"  region = {_value(region)}\n"
        "}"
    )


def _attributes(
    node: ResourceNode,
    names: Dict[str, str],
    parents: Dict[str, ResourceNode],
    guards: Dict[str, List[ResourceNode]],
    subnets: Dict[str, List[ResourceNode]],
    default_vpc: Optional[ResourceNode] = None,
) -> Dict[str, Any]:
    props = node.properties
    parent = parents.get(node.id)
    # Load balancers are not contained by a VPC, so they fall back to the first one
    network = parent or default_vpc
    network_subnets = subnets.get(network.id, []) if network is not None else []
    vpc_ref = _Ref(f"aws_vpc.{names[parent.id]}.id") if parent is not None else None
    sg_refs = [_Ref(f"aws_security_group.{names[g.id]}.id") for g in guards.get(node.id, [])]
    attrs: Dict[str, Any] = {}

    if node.type == ResourceTypes.VPC:
        attrs["cidr_block"] = props.get("cidr", "10.0.0.0/16")
        attrs["enable_dns_hostnames"] = True
    elif node.type == ResourceTypes.SUBNET:
        if vpc_ref:
            attrs["vpc_id"] = vpc_ref
        attrs["cidr_block"] = props.get("cidr", "10.0.1.0/24")
        attrs["map_public_ip_on_launch"] = props.get("isPublic") is True
    elif node.type == ResourceTypes.EC2:
        attrs["ami"] = props.get("ami", "ami-0c55b159cbfafe1f0")
        attrs["instance_type"] = props.get("instanceType", "t3.micro")
        if sg_refs:
            attrs["vpc_security_group_ids"] = sg_refs
        attrs["root_block_device"] = {"encrypted": props.get("ebsEncrypted") is True}
    elif node.type == ResourceTypes.RDS:
        attrs["engine"] = props.get("engine", "postgres")
        attrs["instance_class"] = props.get("instanceClass", "db.t3.micro")
        attrs["allocated_storage"] = props.get("allocatedStorage", 20)
        attrs["storage_encrypted"] = props.get("encrypted") is True
        attrs["multi_az"] = props.get("multiAz") is True
        attrs["publicly_accessible"] = props.get("publiclyAccessible") is True
        attrs["skip_final_snapshot"] = True
        if sg_refs:
            attrs["vpc_security_group_ids"] = sg_refs
    elif node.type == ResourceTypes.ALB:
        attrs["load_balancer_type"] = "application"
        attrs["internal"] = False
        if network_subnets:
            attrs["subnets"] = [_Ref(f"aws_subnet.{names[s.id]}.id") for s in network_subnets]
    elif node.type == ResourceTypes.S3:
        attrs["bucket_prefix"] = names[node.id].replace("_", "-")
    elif node.type == ResourceTypes.LAMBDA:
        attrs["function_name"] = names[node.id]
        attrs["runtime"] = props.get("runtime", "python3.12")
        attrs["handler"] = props.get("handler", "index.handler")
        attrs["filename"] = "lambda.zip"
        attrs["role"] = props.get("roleArn", "REPLACE_WITH_ROLE_ARN")
    elif node.type == ResourceTypes.SECURITY_GROUP:
        if vpc_ref is None and default_vpc is not None:
            vpc_ref = _Ref(f"aws_vpc.{names[default_vpc.id]}.id")
        if vpc_ref:
            attrs["vpc_id"] = vpc_ref
        attrs["ingress"] = [_sg_rule(r) for r in props.get("ingressRules") or [] if isinstance(r, dict)]
        attrs["egress"] = [_sg_rule(r) for r in props.get("egressRules") or [] if isinstance(r, dict)]
    elif node.type == ResourceTypes.IAM_ROLE:
        attrs["name"] = names[node.id]
        attrs["assume_role_policy"] = _Ref(f"jsonencode({json.dumps(LAMBDA_ASSUME_ROLE)})")
    elif node.type in (ResourceTypes.INTERNET_GATEWAY, ResourceTypes.ROUTE_TABLE):
        if vpc_ref:
            attrs["vpc_id"] = vpc_ref
    elif node.type == ResourceTypes.NAT_GATEWAY:
        attrs["connectivity_type"] = "private"
        if network_subnets:
            public = [s for s in network_subnets if s.properties.get("isPublic") is True]
            attrs["subnet_id"] = _Ref(f"aws_subnet.{names[(public or network_subnets)[0].id]}.id")
    elif node.type == ResourceTypes.DYNAMODB:
        attrs["name"] = names[node.id]
        attrs["billing_mode"] = "PAY_PER_REQUEST"
        attrs["hash_key"] = props.get("hashKey", "id")
        attrs["server_side_encryption"] = {"enabled": props.get("encrypted") is True}
    elif node.type == ResourceTypes.SQS:
        attrs["name"] = names[node.id]
        attrs["sqs_managed_sse_enabled"] = props.get("encrypted") is True
    elif node.type == ResourceTypes.SNS:
        attrs["name"] = names[node.id]
    elif node.type == ResourceTypes.ELASTICACHE:
        attrs["cluster_id"] = names[node.id].replace("_", "-")
        attrs["engine"] = "redis"
        attrs["node_type"] = props.get("nodeType", "cache.t3.micro")
        attrs["num_cache_nodes"] = 1
    elif node.type == ResourceTypes.API_GATEWAY:
        attrs["name"] = names[node.id]
        attrs["protocol_type"] = "HTTP"
    elif node.type == ResourceTypes.CLOUDFRONT:
        attrs["enabled"] = True
        attrs["comment"] = node.label

    attrs["tags"] = {"Name": node.label}
    return attrs


def _sg_rule(rule: Dict[str, Any]) -> Dict[str, Any]:
    port = rule.get("port", 0)
    wildcard = port in (0, -1)
    return {
        "from_port": 0 if wildcard else port,
        "to_port": 0 if wildcard else port,
        "protocol": "-1" if wildcard else rule.get("protocol", "tcp"),
        "cidr_blocks": [rule.get("cidr", "0.0.0.0/0")],
    }


def _bucket_extras(node: ResourceNode, name: str) -> List[str]:
    bucket = _Ref(f"aws_s3_bucket.{name}.id")
    blocks = []
    if node.properties.get("encrypted") is True:
        blocks.append(_block("aws_s3_bucket_server_side_encryption_configuration", name, {
            "bucket": bucket,
            "rule": {"apply_server_side_encryption_by_default": {"sse_algorithm": "AES256"}},
        }))
    blocked = node.properties.get("publicAccess") is not True
    blocks.append(_block("aws_s3_bucket_public_access_block", name, {
        "bucket": bucket,
        "block_public_acls": blocked,
        "block_public_policy": blocked,
        "ignore_public_acls": blocked,
        "restrict_public_buckets": blocked,
    }))
    return blocks


def _assign_names(nodes: List[ResourceNode]) -> Dict[str, str]:
    """Slug labels into unique Terraform identifiers."""
    names: Dict[str, str] = {}
    used = set()
    for node in nodes:
        base = re.sub(r"[^a-z0-9]+", "_", node.label.lower()).strip("_") or node.type.replace("-", "_")
        if base[0].isdigit():
            base = f"r_{base}"
        name = base
        suffix = 2
        while (node.type, name) in used:
            name = f"{base}_{suffix}"
            suffix += 1
        used.add((node.type, name))
        names[node.id] = name
    return names


def _containers(graph: InfraGraph) -> Dict[str, ResourceNode]:
    """Map child node id to its containing VPC."""
    parents: Dict[str, ResourceNode] = {}
    for edge in graph.edges:
        if edge.kind != EdgeKinds.CONTAINS:
            continue
        source = graph.get_node(edge.source)
        if source is not None and source.type == ResourceTypes.VPC:
            parents[edge.target] = source
    return parents


def _subnets_by_vpc(nodes: List[ResourceNode], parents: Dict[str, ResourceNode]) -> Dict[str, List[ResourceNode]]:
    """Map VPC node id to the subnets it contains, in node order."""
    subnets: Dict[str, List[ResourceNode]] = {}
    for node in nodes:
        parent = parents.get(node.id)
        if node.type == ResourceTypes.SUBNET and parent is not None:
            subnets.setdefault(parent.id, []).append(node)
    return subnets


def _protectors(graph: InfraGraph) -> Dict[str, List[ResourceNode]]:
    """Map node id to the security groups with an edge onto it."""
    guards: Dict[str, List[ResourceNode]] = {}
    for edge in graph.edges:
        source = graph.get_node(edge.source)
        if source is not None and source.type == ResourceTypes.SECURITY_GROUP:
            guards.setdefault(edge.target, []).append(source)
    return guards


def _block(resource_type: str, name: str, attrs: Dict[str, Any]) -> str:
    lines = [f'resource "{resource_type}" "{name}" {{']
    lines.extend(_body(attrs, indent=1))
    lines.append("}")
    return "\n".join(lines)


def _body(attrs: Dict[str, Any], indent: int) -> List[str]:
    pad = "  " * indent
    lines = []
    for key, value in attrs.items():
        if isinstance(value, dict) and key != "tags":
            lines.append(f"{pad}{key} {{")
            lines.extend(_body(value, indent + 1))
            lines.append(f"{pad}}}")
        elif isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
            for item in value:
                lines.append(f"{pad}{key} {{")
                lines.extend(_body(item, indent + 1))
                lines.append(f"{pad}}}")
        elif isinstance(value, list) and not value and key in ("ingress", "egress"):
            continue
        else:
            lines.append(f"{pad}{key} = {_value(value, indent)}")
    return lines


def _value(value: Any, indent: int = 0) -> str:
    if isinstance(value, _Ref):
        return value.expr
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_value(v, indent) for v in value) + "]"
    if isinstance(value, dict):
        pad = "  " * (indent + 1)
        inner = "\n".join(f"{pad}{k} = {_value(v, indent + 1)}" for k, v in value.items())
        return "{\n" + inner + "\n" + "  " * indent + "}"
    return json.dumps(str(value))
