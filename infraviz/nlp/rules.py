"""
Deterministic keyword rules that turn free text into resource specs.
"""

import ipaddress
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..graph.schema import RESOURCE_CATALOG, ResourceTypes
from .patterns import (
    CIDR_PATTERN,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_VPC_CIDR,
    ENCRYPTION_PATTERN,
    FIREWALLED_TYPES,
    INSTANCE_TYPE_PATTERN,
    MAX_COUNT,
    NETWORK_SEGMENT_TYPES,
    REGION_ALIASES,
    REGION_PATTERN,
    RESOURCE_PATTERNS,
    RESOURCE_SYNONYMS,
    parse_quantity,
    quantity_pattern,
)

logger = logging.getLogger(__name__)


@dataclass
class ResourceSpec:
    """A resource to be materialized as a node."""
    type: str
    label: str
    properties: Dict[str, Any] = field(default_factory=dict)


def extract_resources(text: str) -> Tuple[List[ResourceSpec], List[str]]:
    """
    Extract resource specs from free text using deterministic rules.

    Args:
        text: Raw description

    Returns:
        Tuple of (resources, hits) where hits are the rules that fired
    """
    lower_text = text.lower()
    hits: List[str] = []

    counts = _match_resource_types(lower_text, hits)
    resources = _build_resources(text, lower_text, counts, hits)
    _add_implied_resources(resources, hits)
    _assign_network_properties(resources, lower_text, hits)

    return resources, hits


def extract_region(text: str, hits: List[str]) -> Optional[str]:
    """Extract a region from text, either literal or by city alias."""
    lower_text = text.lower()
    match = REGION_PATTERN.search(lower_text)
    if match:
        hits.append(f"region:direct:{match.group(1)}")
        return match.group(1)

    for alias, canonical in REGION_ALIASES.items():
        if alias in lower_text:
            hits.append(f"region:alias:{alias}->{canonical}")
            return canonical

    return None


def _match_resource_types(lower_text: str, hits: List[str]) -> Dict[str, int]:
    """Return requested count per resource type, in first-match order."""
    counts: Dict[str, int] = {}
    for phrase, resource_type in RESOURCE_PATTERNS:
        if phrase not in lower_text:
            continue
        count = _extract_quantity(lower_text, phrase)
        if resource_type not in counts:
            counts[resource_type] = count
            hits.append(f"resource:{resource_type}:{phrase}")
        elif count > counts[resource_type]:
            counts[resource_type] = count
        logger.debug(f"Phrase '{phrase}' matched {resource_type} (count {count})")
    return counts


def _extract_quantity(lower_text: str, phrase: str) -> int:
    """Largest quantity written directly in front of phrase, 1 when absent."""
    quantities = [parse_quantity(token) for token in quantity_pattern(phrase).findall(lower_text)]
    return max([1] + quantities)


def _build_resources(
    text: str, lower_text: str, counts: Dict[str, int], hits: List[str]
) -> List[ResourceSpec]:
    encrypted = bool(ENCRYPTION_PATTERN.search(lower_text))
    if encrypted:
        hits.append("property:encrypted")

    instance_match = INSTANCE_TYPE_PATTERN.search(text)
    instance_type = instance_match.group(1).lower() if instance_match else DEFAULT_INSTANCE_TYPE
    if instance_match:
        hits.append(f"property:instance_type:{instance_type}")

    wants_public = "public" in lower_text
    wants_private = "private" in lower_text

    resources: List[ResourceSpec] = []
    for resource_type, requested in counts.items():
        count = min(requested, MAX_COUNT)
        if count < requested:
            hits.append(f"quantity:capped:{resource_type}:{requested}->{count}")
        base_label = RESOURCE_CATALOG[resource_type].label

        if resource_type == ResourceTypes.SUBNET and wants_public and wants_private:
            # Exactly one of each, regardless of quantity
            hits.append("subnet:public+private")
            for label, is_public in (("Public Subnet", True), ("Private Subnet", False)):
                properties = {"encrypted": True} if encrypted else {}
                properties["isPublic"] = is_public
                resources.append(ResourceSpec(resource_type, label, properties))
            continue

        for index in range(count):
            properties = {}
            if encrypted:
                properties["encrypted"] = True
            if resource_type == ResourceTypes.SUBNET:
                if wants_public:
                    properties["isPublic"] = True
                elif wants_private:
                    properties["isPublic"] = False
            if resource_type == ResourceTypes.EC2:
                properties["instanceType"] = instance_type
                if encrypted:
                    properties["ebsEncrypted"] = True

            label = f"{base_label} {index + 1}" if count > 1 else base_label
            resources.append(ResourceSpec(resource_type, label, properties))

    return resources


def _add_implied_resources(resources: List[ResourceSpec], hits: List[str]) -> None:
    """Add the VPC and security group that other resources depend on."""
    types = {r.type for r in resources}

    if types & NETWORK_SEGMENT_TYPES and ResourceTypes.VPC not in types:
        resources.insert(0, ResourceSpec(ResourceTypes.VPC, "VPC", {}))
        hits.append(f"implied:{ResourceTypes.VPC}")
        logger.info("Added implied VPC for networking resources")

    if types & FIREWALLED_TYPES and ResourceTypes.SECURITY_GROUP not in types:
        resources.append(
            ResourceSpec(
                ResourceTypes.SECURITY_GROUP,
                "Security Group",
                {"ingressRules": [], "egressRules": []},
            )
        )
        hits.append(f"implied:{ResourceTypes.SECURITY_GROUP}")
        logger.info("Added implied security group for compute/database resources")


def _assign_network_properties(resources: List[ResourceSpec], lower_text: str, hits: List[str]) -> None:
    """
    Give VPCs and subnets CIDR blocks, explicit ones first, then defaults.

    An explicit block belongs to whichever of "vpc" or "subnet" is written
    closest to it. With neither keyword nearby, blocks of /16 or wider go to
    VPCs and narrower ones to subnets.
    """
    vpc_spans = _keyword_spans(lower_text, RESOURCE_SYNONYMS[ResourceTypes.VPC])
    subnet_spans = _keyword_spans(lower_text, RESOURCE_SYNONYMS[ResourceTypes.SUBNET])

    container_cidrs: List[str] = []
    segment_cidrs: List[str] = []
    for match in CIDR_PATTERN.finditer(lower_text):
        try:
            network = ipaddress.ip_network(match.group(1), strict=False)
        except ValueError:
            continue
        hits.append(f"property:cidr:{network}")

        to_vpc = _distance(match.span(), vpc_spans)
        to_subnet = _distance(match.span(), subnet_spans)
        if to_vpc < to_subnet or (to_vpc == to_subnet and network.prefixlen <= 16):
            container_cidrs.append(str(network))
        else:
            segment_cidrs.append(str(network))

    vpcs = [r for r in resources if r.type == ResourceTypes.VPC]
    for index, vpc in enumerate(vpcs):
        if index < len(container_cidrs):
            vpc.properties["cidr"] = container_cidrs[index]
        else:
            vpc.properties["cidr"] = DEFAULT_VPC_CIDR if index == 0 else f"10.{index}.0.0/16"

    base_cidr = vpcs[0].properties["cidr"] if vpcs else DEFAULT_VPC_CIDR
    subnets = [r for r in resources if r.type == ResourceTypes.SUBNET]
    for index, subnet in enumerate(subnets):
        if index < len(segment_cidrs):
            subnet.properties["cidr"] = segment_cidrs[index]
        else:
            subnet.properties["cidr"] = _nth_subnet(base_cidr, index + 1)


def _keyword_spans(lower_text: str, phrases: List[str]) -> List[Tuple[int, int]]:
    spans = []
    for phrase in phrases:
        start = lower_text.find(phrase)
        while start != -1:
            spans.append((start, start + len(phrase)))
            start = lower_text.find(phrase, start + 1)
    return spans


def _distance(span: Tuple[int, int], keyword_spans: List[Tuple[int, int]]) -> float:
    """Characters between span and the nearest keyword, inf when there is none."""
    start, end = span
    gaps = [max(k_start - end, start - k_end, 0) for k_start, k_end in keyword_spans]
    return min(gaps, default=float("inf"))


def _nth_subnet(base_cidr: str, n: int) -> str:
    """The n-th /24 inside base_cidr, or 10.0.n.0/24 when it does not fit."""
    network = ipaddress.ip_network(base_cidr, strict=False)
    if network.version == 4 and network.prefixlen <= 23:
        subnet = next(itertools.islice(network.subnets(new_prefix=24), n, n + 1), None)
        if subnet is not None:
            return str(subnet)
    return f"10.0.{n}.0/24"
