"""
Security rule engine: findings, weighted score, compliance percentages.
"""

from .rules import DEFAULT_RULES, SecurityRule, Severity, build_default_rules, describe_rules, get_rule
from .report import ComplianceScores, SecurityFinding, SecurityReport, emit_report, render_markdown
from .scanner import apply_auto_fix, auto_fix, auto_fix_finding, scan

__all__ = [
    "DEFAULT_RULES",
    "SecurityRule",
    "Severity",
    "build_default_rules",
    "describe_rules",
    "get_rule",
    "ComplianceScores",
    "SecurityFinding",
    "SecurityReport",
    "emit_report",
    "render_markdown",
    "apply_auto_fix",
    "auto_fix",
    "auto_fix_finding",
    "scan",
]
