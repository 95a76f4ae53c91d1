"""Main CLI entrypoint for InfraViz."""

import json
import logging
import sys
from typing import Any, Dict

import click

from .errors import GenerationError, GraphValidationError, ProjectNotFoundError, UnknownFindingError
from .graph.schema import InfraGraph
from .graph.validate import read_graph_file, write_graph_file
from .iac import render_terraform, write_terraform
from .ids import is_valid_project_id
from .nlp import extract_with_report, get_provider
from .security import SecurityReport, Severity, apply_auto_fix, describe_rules, emit_report, scan
from .security.scanner import SEVERITY_ORDER
from .state import delete_project, fix_project, list_projects, load_project, load_report, save_project, save_report
from .events import read_events


@click.group()
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, output_json, verbose):
    """InfraViz - describe infrastructure, get a diagram graph and a security report."""
    ctx.ensure_object(dict)
    ctx.obj['json'] = output_json
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _json_output(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2))


def _human_output(message: str) -> None:
    """Output human-readable message."""
    if not click.get_current_context().obj.get('json', False):
        click.echo(message)


def _fail(message: str, code: int = 1) -> None:
    if click.get_current_context().obj.get('json', False):
        _json_output({'error': message})
    else:
        click.echo(f"❌ {message}", err=True)
    sys.exit(code)


def _load_source(source: str) -> InfraGraph:
    """Load a graph from a project ID or a JSON file path."""
    if is_valid_project_id(source):
        return load_project(source)
    return read_graph_file(source)


@main.command()
@click.argument('text')
@click.option('--out', 'out_file', type=click.Path(dir_okay=False), help='Write graph JSON to file')
@click.option('--provider', help='Generation provider (rules, remote)')
@click.option('--save', is_flag=True, help='Store the graph as a new project')
@click.pass_context
def extract(ctx, text, out_file, provider, save):
    """Turn a description into a resource graph."""
    report = None
    try:
        generator = get_provider(provider)
        if generator.name == "rules":
            graph, report = extract_with_report(text)
        else:
            graph = generator.generate(text)
    except GenerationError as e:
        _fail(f"Generation failed: {e}")
        return

    project_id = save_project(graph) if save else None

    if out_file:
        write_graph_file(graph, out_file)

    if ctx.obj['json']:
        payload: Dict[str, Any] = {'graph': graph.to_dict()}
        if report is not None:
            payload['report'] = report.to_dict()
        if project_id:
            payload['project_id'] = project_id
        _json_output(payload)
        return

    _human_output(f"🧩 Extracted {len(graph.nodes)} resources and {len(graph.edges)} relationships")
    for node in graph.nodes:
        _human_output(f"  - {node.label} ({node.type})")
    if report is not None and report.implied:
        _human_output(f"Implied: {', '.join(report.implied)}")
    if out_file:
        _human_output(f"Graph written to {out_file}")
    if project_id:
        _human_output(f"Saved as project {project_id}")


@main.command('scan')
@click.argument('source')
@click.option('--fail-on', type=click.Choice([s.value for s in Severity]), help='Exit 1 if any finding is at least this severe')
@click.option('--report-dir', type=click.Path(file_okay=False), help='Write JSON and Markdown reports here')
@click.pass_context
def scan_cmd(ctx, source, fail_on, report_dir):
    """Run security checks against a graph file or stored project."""
    try:
        graph = _load_source(source)
    except ProjectNotFoundError as e:
        _fail(str(e), code=2)
        return
    except (GraphValidationError, OSError) as e:
        _fail(f"Cannot load graph: {e}")
        return

    report = scan(graph)

    if is_valid_project_id(source):
        save_report(source, report)
    if report_dir:
        emit_report(report, report_dir, graph.metadata.name)

    if ctx.obj['json']:
        _json_output(report.to_dict())
    else:
        _print_report_human(report)

    if fail_on:
        threshold = SEVERITY_ORDER.index(Severity(fail_on))
        if any(SEVERITY_ORDER.index(f.severity) <= threshold for f in report.findings):
            sys.exit(1)


@main.command()
@click.argument('source')
@click.option('--rule', 'rule_id', required=True, help='Rule ID of the finding')
@click.option('--node', 'node_id', required=True, help='Node ID of the finding')
@click.option('--out', 'out_file', type=click.Path(dir_okay=False), help='Write fixed graph here (files only)')
@click.pass_context
def fix(ctx, source, rule_id, node_id, out_file):
    """Apply the auto-fix for one finding."""
    try:
        if is_valid_project_id(source):
            fixed = fix_project(source, rule_id, node_id)
        else:
            fixed = apply_auto_fix(read_graph_file(source), rule_id, node_id)
            write_graph_file(fixed, out_file or source)
    except ProjectNotFoundError as e:
        _fail(str(e), code=2)
        return
    except (UnknownFindingError, GraphValidationError, ValueError, OSError) as e:
        _fail(f"Auto-fix failed: {e}")
        return

    node = fixed.get_node(node_id)
    if ctx.obj['json']:
        _json_output({'node': node.to_dict()})
    else:
        _human_output(f"🔧 Fixed {rule_id} on {node.label}")


@main.command()
@click.pass_context
def rules(ctx):
    """List the security rules."""
    described = describe_rules()
    if ctx.obj['json']:
        _json_output(described)
        return
    for rule in described:
        fix_marker = " [auto-fix]" if rule['autoFixAvailable'] else ""
        _human_output(f"{rule['id']:<24} {rule['severity']:<9} {rule['name']}{fix_marker}")


@main.command()
@click.argument('source')
@click.option('--out', 'out_dir', type=click.Path(file_okay=False), help='Write main.tf to this directory')
@click.pass_context
def terraform(ctx, source, out_dir):
    """Render a graph as Terraform."""
    try:
        graph = _load_source(source)
    except ProjectNotFoundError as e:
        _fail(str(e), code=2)
        return
    except (GraphValidationError, OSError) as e:
        _fail(f"Cannot load graph: {e}")
        return

    if out_dir:
        path = write_terraform(graph, out_dir)
        _human_output(f"📄 Terraform written to {path}")
    else:
        click.echo(render_terraform(graph))


@main.group()
def projects():
    """Manage stored projects."""


@projects.command('list')
@click.pass_context
def projects_list(ctx):
    """List stored projects."""
    project_ids = list_projects()
    if ctx.obj['json']:
        _json_output(project_ids)
        return
    if not project_ids:
        _human_output("No projects found")
        return
    corrupt = 0
    for project_id in project_ids:
        try:
            graph = load_project(project_id)
        except GraphValidationError:
            corrupt += 1
            _human_output(f"{project_id}  ⚠️  corrupt graph.json")
            continue
        _human_output(f"{project_id}  {graph.metadata.name} ({len(graph.nodes)} nodes)")
    if corrupt:
        sys.exit(1)


@projects.command('show')
@click.argument('project_id')
@click.pass_context
def projects_show(ctx, project_id):
    """Show a stored project."""
    try:
        graph = load_project(project_id)
        report = load_report(project_id)
    except ProjectNotFoundError as e:
        _fail(str(e), code=2)
        return
    except GraphValidationError as e:
        _fail(f"Cannot load graph: {e}")
        return
    except ValueError as e:
        _fail(str(e))
        return

    if ctx.obj['json']:
        _json_output({
            'graph': graph.to_dict(),
            'report': report.to_dict() if report else None,
            'events': read_events(project_id),
        })
        return

    _human_output(f"Project: {project_id}")
    _human_output(f"Name: {graph.metadata.name}")
    _human_output(f"Region: {graph.metadata.region}")
    _human_output(f"Updated: {graph.metadata.updated_at}")
    _human_output(f"Resources ({len(graph.nodes)}):")
    for node in graph.nodes:
        _human_output(f"  - {node.id} {node.label} ({node.type})")
    if report:
        _human_output(f"Last scan: score {report.score}/100 at {report.scanned_at}")


@projects.command('delete')
@click.argument('project_id')
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def projects_delete(ctx, project_id, yes):
    """Delete a stored project."""
    if not yes and not click.confirm(f"Are you sure you want to delete project {project_id}?"):
        _human_output("Cancelled")
        return
    try:
        delete_project(project_id)
    except ProjectNotFoundError as e:
        _fail(str(e), code=2)
        return
    except ValueError as e:
        _fail(str(e))
        return

    if ctx.obj['json']:
        _json_output({'ok': True})
    else:
        _human_output(f"🗑️  Deleted project {project_id}")


@main.command()
@click.option('--host', default='0.0.0.0', help='Bind address')
@click.option('--port', type=int, default=None, help='Port (defaults to $PORT or 8080)')
def serve(host, port):
    """Run the REST API."""
    import os
    import uvicorn

    uvicorn.run("infraviz.api.app:app", host=host, port=port or int(os.getenv("PORT", 8080)))


def _print_report_human(report: SecurityReport) -> None:
    icon = "✅" if report.score >= 80 else "⚠️" if report.score >= 50 else "🚨"
    _human_output(f"{icon} Security score: {report.score}/100")
    _human_output(
        f"Compliance: ISO 27001 {report.compliance.iso27001}% | "
        f"GDPR {report.compliance.gdpr}% | HIPAA {report.compliance.hipaa}%"
    )
    if not report.findings:
        _human_output("No findings")
        return
    _human_output(f"\nFindings ({len(report.findings)}):")
    for finding in report.findings:
        fix_marker = " [auto-fix]" if finding.auto_fix_available else ""
        _human_output(f"  [{finding.severity.value.upper()}] {finding.title}{fix_marker}")
        _human_output(f"      {finding.description}")
        _human_output(f"      rule={finding.rule_id} node={finding.node_id}")


if __name__ == "__main__":
    main()
