"""
Declarative security rules evaluated per node against the whole graph.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..graph.schema import ResourceNode, ResourceTypes


class Severity(Enum):
    """Finding severity levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


CheckFn = Callable[[ResourceNode, Sequence[ResourceNode]], bool]
AutoFixFn = Callable[[ResourceNode], Dict[str, Any]]


@dataclass(frozen=True)
class SecurityRule:
    """A rule for detecting one misconfiguration on one node."""
    id: str
    name: str
    description: str
    severity: Severity
    check: CheckFn
    recommendation: str
    compliance: Tuple[str, ...] = ()
    auto_fix: Optional[AutoFixFn] = None  # Returns a property patch

    @property
    def auto_fix_available(self) -> bool:
        return self.auto_fix is not None

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "severity": self.severity.value,
            "compliance": list(self.compliance),
            "autoFixAvailable": self.auto_fix_available,
        }


def _exists(nodes: Sequence[ResourceNode], resource_type: str) -> bool:
    return any(n.type == resource_type for n in nodes)


def _flag_patch(key: str, value: Any) -> AutoFixFn:
    return lambda node: {key: value}


def _is_wide_open(node: ResourceNode) -> bool:
    rules = node.properties.get("ingressRules") or []
    return any(
        isinstance(r, dict) and r.get("cidr") == "0.0.0.0/0" and r.get("port") in (0, -1)
        for r in rules
    )


def build_default_rules() -> Tuple[SecurityRule, ...]:
    """Build the standard rule set, in evaluation order."""
    return (
        SecurityRule(
            id="rds-encryption",
            name="RDS Encryption at Rest",
            description="RDS instance does not have encryption enabled",
            severity=Severity.HIGH,
            check=lambda node, nodes: node.type == ResourceTypes.RDS and node.properties.get("encrypted") is not True,
            recommendation="Enable storage encryption for the RDS instance to protect data at rest.",
            compliance=("HIPAA", "PCI-DSS", "SOC2"),
            auto_fix=_flag_patch("encrypted", True),
        ),
        SecurityRule(
            id="s3-encryption",
            name="S3 Bucket Encryption",
            description="S3 bucket does not have encryption enabled",
            severity=Severity.HIGH,
            check=lambda node, nodes: node.type == ResourceTypes.S3 and node.properties.get("encrypted") is not True,
            recommendation="Enable server-side encryption (SSE-S3 or SSE-KMS) for the S3 bucket.",
            compliance=("HIPAA", "GDPR", "SOC2"),
            auto_fix=_flag_patch("encrypted", True),
        ),
        SecurityRule(
            id="public-ec2-no-sg",
            name="EC2 Without Security Group",
            description="EC2 instance has no security group anywhere in the infrastructure",
            severity=Severity.CRITICAL,
            check=lambda node, nodes: node.type == ResourceTypes.EC2 and not _exists(nodes, ResourceTypes.SECURITY_GROUP),
            recommendation="Add a security group to restrict inbound and outbound traffic.",
            compliance=("CIS", "NIST"),
        ),
        SecurityRule(
            id="wide-open-sg",
            name="Overly Permissive Security Group",
            description="Security group allows traffic from 0.0.0.0/0 on all ports",
            severity=Severity.CRITICAL,
            check=lambda node, nodes: node.type == ResourceTypes.SECURITY_GROUP and _is_wide_open(node),
            recommendation="Restrict security group rules to specific ports and IP ranges.",
            compliance=("CIS", "SOC2", "PCI-DSS"),
        ),
        SecurityRule(
            id="no-vpc-flow-logs",
            name="VPC Flow Logs Not Enabled",
            description="VPC does not have flow logs enabled for traffic monitoring",
            severity=Severity.MEDIUM,
            check=lambda node, nodes: node.type == ResourceTypes.VPC and node.properties.get("flowLogsEnabled") is not True,
            recommendation="Enable VPC Flow Logs for network traffic analysis and security monitoring.",
            compliance=("CIS", "NIST", "SOC2"),
            auto_fix=_flag_patch("flowLogsEnabled", True),
        ),
        SecurityRule(
            id="public-rds",
            name="Publicly Accessible RDS",
            description="RDS instance is publicly accessible",
            severity=Severity.CRITICAL,
            check=lambda node, nodes: node.type == ResourceTypes.RDS and node.properties.get("publiclyAccessible") is True,
            recommendation="Place RDS instance in a private subnet and disable public accessibility.",
            compliance=("CIS", "HIPAA", "PCI-DSS"),
            auto_fix=_flag_patch("publiclyAccessible", False),
        ),
        SecurityRule(
            id="no-iam-role",
            name="Lambda Without IAM Role",
            description="Lambda function does not have an IAM role for least privilege access",
            severity=Severity.MEDIUM,
            check=lambda node, nodes: node.type == ResourceTypes.LAMBDA and not _exists(nodes, ResourceTypes.IAM_ROLE),
            recommendation="Create an IAM role with minimal required permissions for the Lambda function.",
            compliance=("CIS", "SOC2"),
        ),
        SecurityRule(
            id="s3-public-access",
            name="S3 Public Access Enabled",
            description="S3 bucket allows public access",
            severity=Severity.HIGH,
            check=lambda node, nodes: node.type == ResourceTypes.S3 and node.properties.get("publicAccess") is True,
            recommendation="Block public access to the S3 bucket unless explicitly required.",
            compliance=("CIS", "GDPR", "SOC2"),
            auto_fix=_flag_patch("publicAccess", False),
        ),
        SecurityRule(
            id="no-nat-gateway",
            name="Private Subnet Without NAT Gateway",
            description="Private subnet cannot access internet for updates",
            severity=Severity.LOW,
            check=lambda node, nodes: (
                node.type == ResourceTypes.SUBNET
                and node.properties.get("isPublic") is False
                and not _exists(nodes, ResourceTypes.NAT_GATEWAY)
            ),
            recommendation="Add a NAT Gateway to allow private subnet resources to access the internet.",
        ),
        SecurityRule(
            id="rds-no-multi-az",
            name="RDS Single AZ Deployment",
            description="RDS instance is not configured for Multi-AZ deployment",
            severity=Severity.MEDIUM,
            check=lambda node, nodes: node.type == ResourceTypes.RDS and node.properties.get("multiAz") is not True,
            recommendation="Enable Multi-AZ deployment for high availability.",
            compliance=("SOC2",),
            auto_fix=_flag_patch("multiAz", True),
        ),
        SecurityRule(
            id="ec2-no-ebs-encryption",
            name="EC2 EBS Volume Not Encrypted",
            description="EC2 instance EBS volumes are not encrypted",
            severity=Severity.MEDIUM,
            check=lambda node, nodes: node.type == ResourceTypes.EC2 and node.properties.get("ebsEncrypted") is not True,
            recommendation="Enable EBS encryption for EC2 instance volumes.",
            compliance=("HIPAA", "PCI-DSS"),
            auto_fix=_flag_patch("ebsEncrypted", True),
        ),
    )


DEFAULT_RULES: Tuple[SecurityRule, ...] = build_default_rules()


def get_rule(rule_id: str, rules: Sequence[SecurityRule] = DEFAULT_RULES) -> Optional[SecurityRule]:
    """Get a rule by its ID."""
    for rule in rules:
        if rule.id == rule_id:
            return rule
    return None


def describe_rules(rules: Sequence[SecurityRule] = DEFAULT_RULES) -> List[Dict[str, Any]]:
    return [rule.describe() for rule in rules]
