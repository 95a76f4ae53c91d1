"""
Tests for the infraviz command line.
"""

import json

import pytest
from click.testing import CliRunner

from infraviz.cli import main
from infraviz.graph.validate import read_graph_file
from infraviz.state import list_projects, load_report


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("INFRAVIZ_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("INFRAVIZ_GENERATOR", raising=False)
    return CliRunner()


def _extract_to_file(runner, tmp_path, text):
    path = tmp_path / "graph.json"
    result = runner.invoke(main, ["extract", text, "--out", str(path)])
    assert result.exit_code == 0, result.output
    return path


def test_extract_json(runner):
    result = runner.invoke(main, ["--json", "extract", "an s3 bucket in us-west-2"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["graph"]["metadata"]["region"] == "us-west-2"
    assert payload["report"]["node_count"] == 1


def test_extract_human_and_save(runner):
    result = runner.invoke(main, ["extract", "a load balancer", "--save"])
    assert result.exit_code == 0
    assert "Extracted 2 resources" in result.output
    assert "Implied: vpc" in result.output
    assert len(list_projects()) == 1


def test_scan_file(runner, tmp_path):
    path = _extract_to_file(runner, tmp_path, "a postgres database")
    result = runner.invoke(main, ["--json", "scan", str(path), "--report-dir", str(tmp_path / "report")])
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["score"] == 77
    assert (tmp_path / "report" / "security_report.md").exists()


def test_scan_fail_on(runner, tmp_path):
    path = _extract_to_file(runner, tmp_path, "a postgres database")
    assert runner.invoke(main, ["scan", str(path), "--fail-on", "high"]).exit_code == 1
    assert runner.invoke(main, ["scan", str(path), "--fail-on", "critical"]).exit_code == 0


def test_scan_project_keeps_report(runner):
    runner.invoke(main, ["extract", "an s3 bucket", "--save"])
    project_id = list_projects()[0]
    result = runner.invoke(main, ["scan", project_id])
    assert result.exit_code == 0
    assert "Security score: 85/100" in result.output
    assert load_report(project_id).score == 85


def test_scan_errors(runner, tmp_path):
    assert runner.invoke(main, ["scan", "p-20240101-000000-abcd"]).exit_code == 2
    bad = tmp_path / "bad.json"
    bad.write_text("{}")
    result = runner.invoke(main, ["scan", str(bad)])
    assert result.exit_code == 1
    assert "Cannot load graph" in result.output


def test_fix_file(runner, tmp_path):
    path = _extract_to_file(runner, tmp_path, "a postgres database")
    db = read_graph_file(path).nodes_of_type("rds")[0]

    result = runner.invoke(main, ["fix", str(path), "--rule", "rds-encryption", "--node", db.id])
    assert result.exit_code == 0
    assert read_graph_file(path).get_node(db.id).properties["encrypted"] is True

    result = runner.invoke(main, ["fix", str(path), "--rule", "bogus", "--node", db.id])
    assert result.exit_code == 1


def test_rules(runner):
    result = runner.invoke(main, ["--json", "rules"])
    assert len(json.loads(result.output)) == 11
    result = runner.invoke(main, ["rules"])
    assert "wide-open-sg" in result.output


def test_terraform(runner, tmp_path):
    path = _extract_to_file(runner, tmp_path, "a vpc with a subnet")
    result = runner.invoke(main, ["terraform", str(path)])
    assert result.exit_code == 0
    assert 'resource "aws_vpc" "vpc"' in result.output

    result = runner.invoke(main, ["terraform", str(path), "--out", str(tmp_path / "tf")])
    assert (tmp_path / "tf" / "main.tf").exists()


def test_projects_commands(runner):
    runner.invoke(main, ["extract", "an s3 bucket", "--save"])
    project_id = list_projects()[0]

    result = runner.invoke(main, ["projects", "list"])
    assert project_id in result.output

    result = runner.invoke(main, ["--json", "projects", "show", project_id])
    payload = json.loads(result.output)
    assert payload["report"] is None
    assert payload["events"][0]["type"] == "PROJECT_SAVED"

    result = runner.invoke(main, ["projects", "delete", project_id], input="n\n")
    assert "Cancelled" in result.output
    result = runner.invoke(main, ["projects", "delete", project_id, "--yes"])
    assert result.exit_code == 0
    assert list_projects() == []
    assert runner.invoke(main, ["projects", "show", project_id]).exit_code == 2


@pytest.mark.parametrize("content", ['{"nodes": 5, "edges": []}', "{not json"])
def test_corrupt_project(runner, tmp_path, content):
    runner.invoke(main, ["extract", "an s3 bucket", "--save"])
    project_id = list_projects()[0]
    (tmp_path / "home" / project_id / "graph.json").write_text(content)

    for args in (["scan", project_id], ["terraform", project_id], ["projects", "show", project_id]):
        result = runner.invoke(main, args)
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Cannot load graph" in result.output

    result = runner.invoke(main, ["fix", project_id, "--rule", "s3-encryption", "--node", "x"])
    assert result.exit_code == 1

    result = runner.invoke(main, ["projects", "list"])
    assert result.exit_code == 1
    assert "corrupt graph.json" in result.output
