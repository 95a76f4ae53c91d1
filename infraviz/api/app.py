"""Main FastAPI application for InfraViz REST API."""

import os
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .. import __version__
from ..errors import GenerationError, GraphValidationError, ProjectNotFoundError, UnknownFindingError
from ..graph.schema import InfraGraph
from ..graph.validate import load_graph
from ..iac import render_terraform
from ..ids import is_valid_project_id
from ..nlp import extract_with_report, get_provider
from ..security import apply_auto_fix, describe_rules, scan
from ..state import (
    delete_project,
    fix_project,
    list_projects,
    load_project,
    load_report,
    project_exists,
    save_project,
    save_report,
)


# Pydantic models
class ExtractRequest(BaseModel):
    text: str
    provider: Optional[str] = None


class ExtractResponse(BaseModel):
    graph: Dict[str, Any]
    report: Optional[Dict[str, Any]] = None


class GraphRequest(BaseModel):
    graph: Dict[str, Any]


class AutoFixRequest(BaseModel):
    graph: Dict[str, Any]
    rule_id: str
    node_id: str


class ProjectFixRequest(BaseModel):
    rule_id: str
    node_id: str


class ProjectResponse(BaseModel):
    project_id: str
    graph: Dict[str, Any]
    report: Optional[Dict[str, Any]] = None


class DeleteResponse(BaseModel):
    ok: bool


app = FastAPI(
    title="InfraViz API",
    description="Text-to-infrastructure graphs and static security checks",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("UI_ORIGIN", "*").split(","),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _invalid_graph(e: GraphValidationError, message: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "code": "invalid_graph",
            "message": message,
            "hint": "Check nodes, edges and metadata against the interchange schema",
            "issues": e.issues,
        },
    )


def _parse_graph(data: Dict[str, Any]) -> InfraGraph:
    try:
        return load_graph(data)
    except GraphValidationError as e:
        raise _invalid_graph(e, "Graph document is structurally invalid")


def _load_project_or_404(project_id: str) -> InfraGraph:
    try:
        return load_project(project_id)
    except GraphValidationError as e:
        raise _invalid_graph(e, f"Stored project {project_id} is corrupt")
    except (ProjectNotFoundError, ValueError):
        raise _not_found(project_id)


def _not_found(project_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "code": "project_not_found",
            "message": f"Project {project_id} not found",
            "hint": "Check the project ID",
        },
    )


def _require_project(project_id: str) -> None:
    if not is_valid_project_id(project_id) or not project_exists(project_id):
        raise _not_found(project_id)


def _fix_error(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "code": "autofix_failed",
            "message": str(e),
            "hint": "Only findings marked autoFixAvailable can be fixed automatically",
        },
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "InfraViz API is running", "version": __version__}


@app.post("/extract", response_model=ExtractResponse)
def extract_endpoint(request: ExtractRequest):
    """Generate a graph from a description."""
    provider = get_provider(request.provider)
    if provider.name == "rules":
        graph, report = extract_with_report(request.text)
        return ExtractResponse(graph=graph.to_dict(), report=report.to_dict())

    try:
        graph = provider.generate(request.text)
    except GenerationError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "code": "generation_failed",
                "message": str(e),
                "hint": "Check the generation service or use the rules provider",
            },
        )
    return ExtractResponse(graph=graph.to_dict())


@app.post("/scan")
def scan_endpoint(request: GraphRequest):
    """Run security checks against a graph."""
    graph = _parse_graph(request.graph)
    return scan(graph).to_dict()


@app.post("/autofix")
def autofix_endpoint(request: AutoFixRequest):
    """Apply the auto-fix for one finding and return the patched graph."""
    graph = _parse_graph(request.graph)
    try:
        fixed = apply_auto_fix(graph, request.rule_id, request.node_id)
    except (UnknownFindingError, ValueError) as e:
        raise _fix_error(e)
    return fixed.to_dict()


@app.get("/rules")
async def rules_endpoint() -> List[Dict[str, Any]]:
    """List the security rules."""
    return describe_rules()


@app.post("/terraform", response_class=PlainTextResponse)
def terraform_endpoint(request: GraphRequest):
    """Render a graph as Terraform."""
    graph = _parse_graph(request.graph)
    return render_terraform(graph)


@app.get("/projects")
def list_projects_endpoint() -> List[str]:
    return list_projects()


@app.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project_endpoint(request: GraphRequest):
    """Store a graph as a new project."""
    graph = _parse_graph(request.graph)
    project_id = save_project(graph)
    return ProjectResponse(project_id=project_id, graph=graph.to_dict())


@app.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project_endpoint(project_id: str):
    graph = _load_project_or_404(project_id)
    report = load_report(project_id)
    return ProjectResponse(
        project_id=project_id,
        graph=graph.to_dict(),
        report=report.to_dict() if report else None,
    )


@app.put("/projects/{project_id}", response_model=ProjectResponse)
def update_project_endpoint(project_id: str, request: GraphRequest):
    """Overwrite a stored graph, including one that no longer loads."""
    _require_project(project_id)
    graph = _parse_graph(request.graph)
    save_project(graph, project_id)
    return ProjectResponse(project_id=project_id, graph=graph.to_dict())


@app.delete("/projects/{project_id}", response_model=DeleteResponse)
def delete_project_endpoint(project_id: str):
    _require_project(project_id)
    delete_project(project_id)
    return DeleteResponse(ok=True)


@app.post("/projects/{project_id}/scan")
def scan_project_endpoint(project_id: str):
    """Scan a stored project and keep the report."""
    graph = _load_project_or_404(project_id)
    report = scan(graph)
    save_report(project_id, report)
    return report.to_dict()


@app.post("/projects/{project_id}/autofix", response_model=ProjectResponse)
def fix_project_endpoint(project_id: str, request: ProjectFixRequest):
    _load_project_or_404(project_id)
    try:
        fixed = fix_project(project_id, request.rule_id, request.node_id)
    except (UnknownFindingError, ValueError) as e:
        raise _fix_error(e)
    return ProjectResponse(project_id=project_id, graph=fixed.to_dict())


if __name__ == "__main__":
    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
