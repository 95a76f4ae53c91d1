"""
Local project store for graphs and security reports.

Layout under INFRAVIZ_HOME (default ``.infraviz``)::

    <project_id>/graph.json
    <project_id>/report.json
    <project_id>/events.ndjson
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from .errors import GraphValidationError, ProjectNotFoundError
from .graph.schema import InfraGraph
from .graph.validate import load_graph
from .ids import is_valid_project_id, new_project_id
from .security.report import SecurityReport

logger = logging.getLogger(__name__)


def get_infraviz_home() -> Path:
    """
    Get the InfraViz home directory.

    Returns:
        Path: InfraViz home directory
    """
    home = os.environ.get("INFRAVIZ_HOME", ".infraviz")
    return Path(home).resolve()


def get_project_dir(project_id: str) -> Path:
    """
    Get the directory for a specific project.

    Raises:
        ValueError: If project ID is invalid
    """
    if not is_valid_project_id(project_id):
        raise ValueError(f"Invalid project ID: {project_id}")

    return get_infraviz_home() / project_id


def project_exists(project_id: str) -> bool:
    project_dir = get_project_dir(project_id)
    return (project_dir / "graph.json").exists()


def save_project(graph: InfraGraph, project_id: Optional[str] = None) -> str:
    """
    Write a graph to the store, creating the project if needed.

    Args:
        graph: Graph to store verbatim
        project_id: Existing project to overwrite, or None for a new one

    Returns:
        str: Project ID
    """
    from .events import EventTypes, emit_event

    project_id = project_id or new_project_id()
    project_dir = get_project_dir(project_id)
    project_dir.mkdir(parents=True, exist_ok=True)

    with open(project_dir / "graph.json", "w") as f:
        json.dump(graph.to_dict(), f, indent=2)

    emit_event(project_id, EventTypes.PROJECT_SAVED, {
        "name": graph.metadata.name,
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
    })
    logger.info(f"Saved project {project_id} ({len(graph.nodes)} nodes)")
    return project_id


def load_project(project_id: str) -> InfraGraph:
    """
    Read a stored graph.

    Raises:
        ProjectNotFoundError: If the project doesn't exist
        GraphValidationError: If the stored document is corrupt
    """
    graph_file = get_project_dir(project_id) / "graph.json"
    if not graph_file.exists():
        raise ProjectNotFoundError(f"Project {project_id} not found")

    with open(graph_file, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise GraphValidationError([f"Stored graph is not valid JSON: {e}"])
    return load_graph(data)


def save_report(project_id: str, report: SecurityReport) -> None:
    from .events import EventTypes, emit_event

    if not project_exists(project_id):
        raise ProjectNotFoundError(f"Project {project_id} not found")

    with open(get_project_dir(project_id) / "report.json", "w") as f:
        json.dump(report.to_dict(), f, indent=2)

    emit_event(project_id, EventTypes.SCAN_COMPLETED, {
        "score": report.score,
        "findings": len(report.findings),
    })


def load_report(project_id: str) -> Optional[SecurityReport]:
    """
    Read the last security report of a project.

    Returns:
        SecurityReport or None if the project was never scanned
    """
    if not project_exists(project_id):
        raise ProjectNotFoundError(f"Project {project_id} not found")

    report_file = get_project_dir(project_id) / "report.json"
    if not report_file.exists():
        return None

    with open(report_file, "r") as f:
        return SecurityReport.from_dict(json.load(f))


def list_projects() -> list[str]:
    """
    List all project IDs.

    Returns:
        List of project IDs, most recent first
    """
    home = get_infraviz_home()

    if not home.exists():
        return []

    projects = []
    for item in home.iterdir():
        if item.is_dir() and is_valid_project_id(item.name) and (item / "graph.json").exists():
            projects.append(item.name)

    return sorted(projects, reverse=True)


def delete_project(project_id: str) -> None:
    """
    Remove a project directory and all its contents.

    Raises:
        ProjectNotFoundError: If the project doesn't exist
    """
    project_dir = get_project_dir(project_id)

    if not project_dir.exists():
        raise ProjectNotFoundError(f"Project {project_id} not found")

    shutil.rmtree(project_dir)
    logger.info(f"Deleted project {project_id}")


def fix_project(project_id: str, rule_id: str, node_id: str) -> InfraGraph:
    """
    Apply one auto-fix to a stored graph and write it back.

    Raises:
        ProjectNotFoundError: If the project doesn't exist
        UnknownFindingError: If the rule or node is unknown
        ValueError: If the rule has no auto-fix
    """
    from .events import EventTypes, emit_event
    from .security.scanner import apply_auto_fix

    fixed = apply_auto_fix(load_project(project_id), rule_id, node_id)
    save_project(fixed, project_id)
    emit_event(project_id, EventTypes.AUTOFIX_APPLIED, {"rule_id": rule_id, "node_id": node_id})
    return fixed
