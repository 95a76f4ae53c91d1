"""
Basic tests for the security rule engine.
"""

import pytest

from infraviz.errors import UnknownFindingError
from infraviz.graph import InfraGraph, ResourceNode
from infraviz.nlp import extract
from infraviz.security import (
    DEFAULT_RULES,
    SecurityReport,
    Severity,
    apply_auto_fix,
    auto_fix,
    auto_fix_finding,
    describe_rules,
    emit_report,
    get_rule,
    scan,
)
from infraviz.security.scanner import SEVERITY_ORDER, calculate_compliance_scores, calculate_security_score


def _graph(*nodes):
    return InfraGraph(nodes=list(nodes))


def _node(node_id, resource_type, **properties):
    return ResourceNode(id=node_id, type=resource_type, label=node_id.upper(), properties=properties)


class TestRuleSet:
    """Test the default rule descriptors."""

    def test_rule_ids(self):
        assert [rule.id for rule in DEFAULT_RULES] == [
            "rds-encryption",
            "s3-encryption",
            "public-ec2-no-sg",
            "wide-open-sg",
            "no-vpc-flow-logs",
            "public-rds",
            "no-iam-role",
            "s3-public-access",
            "no-nat-gateway",
            "rds-no-multi-az",
            "ec2-no-ebs-encryption",
        ]

    def test_describe(self):
        described = {rule["id"]: rule for rule in describe_rules()}
        assert described["rds-encryption"]["severity"] == "high"
        assert described["rds-encryption"]["autoFixAvailable"] is True
        assert described["no-iam-role"]["autoFixAvailable"] is False
        assert described["no-nat-gateway"]["compliance"] == []

    def test_get_rule(self):
        assert get_rule("wide-open-sg").severity == Severity.CRITICAL
        assert get_rule("nope") is None


class TestScan:
    """Test findings, scores and compliance."""

    def test_empty_graph(self):
        report = scan(InfraGraph())
        assert report.findings == []
        assert report.score == 100
        assert report.compliance.to_dict() == {"iso27001": 100, "gdpr": 100, "hipaa": 100}

    def test_unencrypted_single_az_database(self):
        report = scan(_graph(_node("db", "rds", encrypted=False, multiAz=False)))
        assert [f.rule_id for f in report.findings] == ["rds-encryption", "rds-no-multi-az"]
        assert report.score == 77
        assert report.findings[0].id == "rds-encryption-db"
        assert report.findings[0].node_id == "db"

    def test_missing_properties_count_as_unsafe(self):
        report = scan(_graph(_node("bucket", "s3")))
        assert [f.rule_id for f in report.findings] == ["s3-encryption"]

    def test_clean_graph(self):
        graph = _graph(
            _node("vpc", "vpc", flowLogsEnabled=True),
            _node("db", "rds", encrypted=True, multiAz=True, publiclyAccessible=False),
            _node("sg", "security-group", ingressRules=[{"port": 443, "cidr": "0.0.0.0/0"}]),
        )
        assert scan(graph).score == 100

    def test_wide_open_security_group(self):
        for port in (0, -1):
            graph = _graph(_node("sg", "security-group", ingressRules=[{"port": port, "cidr": "0.0.0.0/0"}]))
            assert [f.rule_id for f in scan(graph).findings] == ["wide-open-sg"]

    def test_graph_level_rules(self):
        """Test rules that look for other resource types."""
        report = scan(_graph(_node("web", "ec2", ebsEncrypted=True), _node("fn", "lambda")))
        assert {f.rule_id for f in report.findings} == {"public-ec2-no-sg", "no-iam-role"}

        report = scan(_graph(
            _node("web", "ec2", ebsEncrypted=True),
            _node("fn", "lambda"),
            _node("sg", "security-group"),
            _node("role", "iam-role"),
        ))
        assert report.findings == []

    def test_private_subnet_without_nat(self):
        graph = _graph(_node("priv", "subnet", isPublic=False), _node("pub", "subnet", isPublic=True))
        assert [f.node_id for f in scan(graph).findings] == ["priv"]
        graph.nodes.append(_node("nat", "nat-gateway"))
        assert scan(graph).findings == []

    def test_findings_sorted_by_severity(self):
        graph = _graph(
            _node("vpc", "vpc"),
            _node("db", "rds", encrypted=False, multiAz=True, publiclyAccessible=True),
            _node("priv", "subnet", isPublic=False),
        )
        severities = [f.severity for f in scan(graph).findings]
        assert severities == sorted(severities, key=SEVERITY_ORDER.index)
        assert severities[0] == Severity.CRITICAL
        assert severities[-1] == Severity.LOW

    def test_scan_is_idempotent(self):
        graph = extract("two EC2 instances behind a load balancer with a postgres database")
        first = scan(graph).to_dict()
        second = scan(graph).to_dict()
        first.pop("scannedAt")
        second.pop("scannedAt")
        assert first == second

    def test_web_tier_scores(self):
        graph = extract("two EC2 instances behind a load balancer with a postgres database")
        report = scan(graph)
        assert report.score == 53
        assert report.compliance.to_dict() == {"iso27001": 40, "gdpr": 100, "hipaa": 40}
        assert report.counts_by_severity() == {"critical": 0, "high": 1, "medium": 4, "low": 0, "info": 0}

    def test_score_floors_at_zero(self):
        graph = _graph(*[_node(f"db{i}", "rds", publiclyAccessible=True) for i in range(4)])
        report = scan(graph)
        assert report.score == 0
        assert calculate_security_score(report.findings) == 0
        assert calculate_compliance_scores(report.findings).hipaa == 0


class TestAutoFix:
    """Test auto-fix patches."""

    def test_patch_contents(self):
        node = _node("db", "rds", encrypted=False, engine="mysql")
        assert auto_fix(node, "rds-encryption") == {"encrypted": True}
        assert auto_fix(node, "public-rds") == {"publiclyAccessible": False}
        assert auto_fix(node, "no-iam-role") is None

    def test_unknown_rule(self):
        with pytest.raises(UnknownFindingError):
            auto_fix(_node("db", "rds"), "made-up-rule")

    def test_fix_resolves_finding(self):
        graph = _graph(_node("db", "rds", encrypted=False, multiAz=False, engine="mysql"))
        finding = scan(graph).findings[0]
        assert auto_fix_finding(graph, finding) == {"encrypted": True}

        fixed = apply_auto_fix(graph, finding.rule_id, finding.node_id)
        assert fixed.get_node("db").properties == {"encrypted": True, "multiAz": False, "engine": "mysql"}
        assert [f.rule_id for f in scan(fixed).findings] == ["rds-no-multi-az"]
        # Original untouched
        assert graph.get_node("db").properties["encrypted"] is False

    def test_fix_every_fixable_finding(self):
        graph = extract("an ec2 server, an s3 bucket and a database in a vpc")
        for finding in scan(graph).findings:
            if finding.auto_fix_available:
                graph = apply_auto_fix(graph, finding.rule_id, finding.node_id)
        assert all(not f.auto_fix_available for f in scan(graph).findings)

    def test_fix_errors(self):
        graph = _graph(_node("fn", "lambda"))
        with pytest.raises(UnknownFindingError):
            apply_auto_fix(graph, "rds-encryption", "missing")
        with pytest.raises(ValueError):
            apply_auto_fix(graph, "no-iam-role", "fn")


class TestReportOutput:
    def test_report_round_trip(self):
        report = scan(_graph(_node("db", "rds")))
        restored = SecurityReport.from_dict(report.to_dict())
        assert restored.to_dict() == report.to_dict()

    def test_emit_report(self, tmp_path):
        report = scan(_graph(_node("db", "rds")))
        emit_report(report, tmp_path / "out", "Demo")
        markdown = (tmp_path / "out" / "security_report.md").read_text()
        assert "# Security Report: Demo" in markdown
        assert "RDS Encryption at Rest" in markdown
        assert (tmp_path / "out" / "security_report.json").exists()
