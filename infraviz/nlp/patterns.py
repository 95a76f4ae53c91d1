"""
Keyword tables and regexes for text-to-graph extraction.
"""

import re
from typing import Dict, List, Tuple

from ..graph.schema import ResourceTypes


# Surface phrases per resource type. Type order is the creation order of
# extracted nodes; phrase order decides which synonym is reported as the hit.
RESOURCE_SYNONYMS: Dict[str, List[str]] = {
    ResourceTypes.VPC: ["vpc", "virtual private cloud"],
    ResourceTypes.SUBNET: ["subnet", "public subnet", "private subnet"],
    ResourceTypes.EC2: ["ec2", "instance", "server"],
    ResourceTypes.RDS: ["rds", "database", "postgres", "mysql"],
    ResourceTypes.ALB: ["alb", "load balancer", "application load balancer", "elb"],
    ResourceTypes.S3: ["s3", "bucket", "storage"],
    ResourceTypes.LAMBDA: ["lambda", "function", "serverless"],
    ResourceTypes.SECURITY_GROUP: ["security group", "firewall"],
    ResourceTypes.IAM_ROLE: ["iam role", "iam", "role"],
    ResourceTypes.NAT_GATEWAY: ["nat gateway", "nat"],
    ResourceTypes.INTERNET_GATEWAY: ["internet gateway", "igw"],
    ResourceTypes.CLOUDFRONT: ["cloudfront", "cdn"],
    ResourceTypes.API_GATEWAY: ["api gateway", "api"],
    ResourceTypes.DYNAMODB: ["dynamodb", "dynamo", "nosql"],
    ResourceTypes.SQS: ["sqs", "queue"],
    ResourceTypes.SNS: ["sns", "notification"],
    ResourceTypes.ELASTICACHE: ["elasticache", "cache", "redis"],
}

# Flattened (phrase, type) pairs in matching order
RESOURCE_PATTERNS: List[Tuple[str, str]] = [
    (phrase, resource_type)
    for resource_type, phrases in RESOURCE_SYNONYMS.items()
    for phrase in phrases
]

MAX_COUNT = 4

NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

QUANTITY_TOKEN = r"(\d+|" + "|".join(NUMBER_WORDS) + r")"

CIDR_PATTERN = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}/\d{1,2})\b")
INSTANCE_TYPE_PATTERN = re.compile(
    r"\b((?:t[234]g?|m[4-7][a-z]?|c[5-7][a-z]?|r[5-7][a-z]?)\."
    r"(?:nano|micro|small|medium|large|\d*xlarge))\b",
    re.IGNORECASE,
)
ENCRYPTION_PATTERN = re.compile(r"\b(encrypted|encryption|encrypt)\b")

REGION_PATTERN = re.compile(r"\b((?:us|eu|ap|ca|sa|me|af)-[a-z]+-\d)\b")

REGION_ALIASES = {
    "oregon": "us-west-2",
    "n. virginia": "us-east-1",
    "northern virginia": "us-east-1",
    "frankfurt": "eu-central-1",
    "ireland": "eu-west-1",
    "london": "eu-west-2",
    "tokyo": "ap-northeast-1",
    "singapore": "ap-southeast-1",
    "sydney": "ap-southeast-2",
    "mumbai": "ap-south-1",
    "seoul": "ap-northeast-2",
    "california": "us-west-1",
    "ohio": "us-east-2",
}

DEFAULT_INSTANCE_TYPE = "t3.micro"
DEFAULT_VPC_CIDR = "10.0.0.0/16"

# Types whose presence implies an enclosing VPC
NETWORK_SEGMENT_TYPES = {
    ResourceTypes.SUBNET,
    ResourceTypes.ALB,
    ResourceTypes.NAT_GATEWAY,
    ResourceTypes.INTERNET_GATEWAY,
}

# Types whose presence implies a security group
FIREWALLED_TYPES = {
    ResourceTypes.EC2,
    ResourceTypes.RDS,
    ResourceTypes.LAMBDA,
}


def parse_quantity(token: str) -> int:
    """Turn a digit string or number word into an int."""
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS.get(token, 1)


def quantity_pattern(phrase: str) -> "re.Pattern[str]":
    """Regex for a quantity token directly in front of a phrase."""
    return re.compile(rf"(?<![./])\b{QUANTITY_TOKEN}\s*{re.escape(phrase)}")
