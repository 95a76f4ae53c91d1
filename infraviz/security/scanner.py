"""
Static security scanner: rules in, findings, score and compliance out.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..errors import UnknownFindingError
from ..graph.schema import InfraGraph, ResourceNode, utc_now_iso
from .report import ComplianceScores, SecurityFinding, SecurityReport
from .rules import DEFAULT_RULES, SecurityRule, Severity, get_rule

logger = logging.getLogger(__name__)

SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]

SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
    Severity.INFO: 1,
}

# Linear penalty per tagged finding
COMPLIANCE_PENALTY = 20


def scan(graph: InfraGraph, rules: Sequence[SecurityRule] = DEFAULT_RULES) -> SecurityReport:
    """
    Evaluate every rule against every node.

    Args:
        graph: Well-formed graph, may be empty
        rules: Rule descriptors in evaluation order

    Returns:
        Report with findings sorted by severity
    """
    findings: List[SecurityFinding] = []

    for node in graph.nodes:
        for rule in rules:
            if rule.check(node, graph.nodes):
                findings.append(_finding(rule, node))

    findings.sort(key=lambda f: SEVERITY_ORDER.index(f.severity))

    report = SecurityReport(
        findings=findings,
        score=calculate_security_score(findings),
        scanned_at=utc_now_iso(),
        compliance=calculate_compliance_scores(findings),
    )
    logger.info(f"Scanned {len(graph.nodes)} nodes: {len(findings)} findings, score {report.score}")
    return report


def calculate_security_score(findings: Sequence[SecurityFinding]) -> int:
    total_deduction = sum(SEVERITY_WEIGHTS[f.severity] for f in findings)
    return max(0, 100 - total_deduction)


def calculate_compliance_scores(findings: Sequence[SecurityFinding]) -> ComplianceScores:
    iso27001 = gdpr = hipaa = 0
    for finding in findings:
        tags = set(finding.compliance)
        if tags & {"ISO27001", "CIS", "SOC2"}:
            iso27001 += 1
        if "GDPR" in tags:
            gdpr += 1
        if "HIPAA" in tags:
            hipaa += 1

    return ComplianceScores(
        iso27001=max(0, 100 - iso27001 * COMPLIANCE_PENALTY),
        gdpr=max(0, 100 - gdpr * COMPLIANCE_PENALTY),
        hipaa=max(0, 100 - hipaa * COMPLIANCE_PENALTY),
    )


def auto_fix(node: ResourceNode, rule_id: str, rules: Sequence[SecurityRule] = DEFAULT_RULES) -> Optional[Dict[str, Any]]:
    """
    Property patch that resolves rule_id on node.

    Returns:
        Patch dict, or None when the rule has no structural fix

    Raises:
        UnknownFindingError: If rule_id is not in rules
    """
    rule = get_rule(rule_id, rules)
    if rule is None:
        raise UnknownFindingError(f"Unknown rule: {rule_id}")
    if rule.auto_fix is None:
        return None
    return rule.auto_fix(node)


def auto_fix_finding(
    graph: InfraGraph, finding: SecurityFinding, rules: Sequence[SecurityRule] = DEFAULT_RULES
) -> Optional[Dict[str, Any]]:
    node = graph.get_node(finding.node_id)
    if node is None:
        raise UnknownFindingError(f"Unknown node: {finding.node_id}")
    return auto_fix(node, finding.rule_id, rules)


def apply_auto_fix(
    graph: InfraGraph, rule_id: str, node_id: str, rules: Sequence[SecurityRule] = DEFAULT_RULES
) -> InfraGraph:
    """
    Return a copy of graph with the fix for (rule_id, node_id) merged in.

    Raises:
        UnknownFindingError: If the rule or node is unknown
        ValueError: If the rule has no auto-fix
    """
    fixed = graph.copy()
    node = fixed.get_node(node_id)
    if node is None:
        raise UnknownFindingError(f"Unknown node: {node_id}")

    patch = auto_fix(node, rule_id, rules)
    if patch is None:
        raise ValueError(f"Rule {rule_id} has no auto-fix; add the missing resource instead")

    node.properties = {**node.properties, **patch}
    fixed.touch()
    logger.info(f"Applied auto-fix {rule_id} to node {node_id}: {patch}")
    return fixed


def _finding(rule: SecurityRule, node: ResourceNode) -> SecurityFinding:
    return SecurityFinding(
        rule_id=rule.id,
        node_id=node.id,
        severity=rule.severity,
        title=rule.name,
        description=f"{rule.description} ({node.label})",
        recommendation=rule.recommendation,
        compliance=list(rule.compliance),
        auto_fix_available=rule.auto_fix_available,
    )
