"""
Security findings, reports and report emission.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from .rules import Severity


@dataclass(frozen=True)
class SecurityFinding:
    """One rule firing against one node."""
    rule_id: str
    node_id: str
    severity: Severity
    title: str
    description: str
    recommendation: str
    compliance: List[str] = field(default_factory=list)
    auto_fix_available: bool = False

    @property
    def id(self) -> str:
        """Display id. Never parsed back; rule_id and node_id are authoritative."""
        return f"{self.rule_id}-{self.node_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ruleId": self.rule_id,
            "nodeId": self.node_id,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation,
            "compliance": list(self.compliance),
            "autoFixAvailable": self.auto_fix_available,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityFinding":
        return cls(
            rule_id=data["ruleId"],
            node_id=data["nodeId"],
            severity=Severity(data["severity"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            recommendation=data.get("recommendation", ""),
            compliance=list(data.get("compliance", [])),
            auto_fix_available=bool(data.get("autoFixAvailable", False)),
        )


@dataclass(frozen=True)
class ComplianceScores:
    iso27001: int = 100
    gdpr: int = 100
    hipaa: int = 100

    def to_dict(self) -> Dict[str, int]:
        return {"iso27001": self.iso27001, "gdpr": self.gdpr, "hipaa": self.hipaa}


@dataclass
class SecurityReport:
    findings: List[SecurityFinding]
    score: int
    scanned_at: str
    compliance: ComplianceScores

    def counts_by_severity(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "scannedAt": self.scanned_at,
            "compliance": self.compliance.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityReport":
        return cls(
            findings=[SecurityFinding.from_dict(f) for f in data.get("findings", [])],
            score=int(data["score"]),
            scanned_at=data["scannedAt"],
            compliance=ComplianceScores(**data.get("compliance", {})),
        )


def render_markdown(report: SecurityReport, graph_name: str = "") -> str:
    lines = []
    lines.append(f"# Security Report{': ' + graph_name if graph_name else ''}")
    lines.append("")
    lines.append(f"Scanned at: {report.scanned_at}")
    lines.append(f"Score: {report.score}/100")
    lines.append("")
    lines.append("Compliance:")
    lines.append(f"- ISO 27001: {report.compliance.iso27001}%")
    lines.append(f"- GDPR: {report.compliance.gdpr}%")
    lines.append(f"- HIPAA: {report.compliance.hipaa}%")
    lines.append("")
    if not report.findings:
        lines.append("No findings.")
        return "\n".join(lines)

    lines.append(f"Findings ({len(report.findings)}):")
    for finding in report.findings:
        fix = " [auto-fix]" if finding.auto_fix_available else ""
        lines.append(f"- **{finding.severity.value.upper()}** {finding.title}{fix}")
        lines.append(f"  - {finding.description}")
        lines.append(f"  - Recommendation: {finding.recommendation}")
        if finding.compliance:
            lines.append(f"  - Compliance: {', '.join(finding.compliance)}")
    return "\n".join(lines)


def emit_report(report: SecurityReport, dest_path: Union[str, Path], graph_name: str = "") -> None:
    dest = Path(dest_path)
    dest.mkdir(parents=True, exist_ok=True)
    with open(dest / "security_report.json", "w") as f:
        json.dump(report.to_dict(), f, indent=2)
    with open(dest / "security_report.md", "w") as f:
        f.write(render_markdown(report, graph_name))
