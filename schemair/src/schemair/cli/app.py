"""Typer CLI application."""

import json
from pathlib import Path
from typing import List, Optional

import typer

from schemair.config.logging import setup_logging
from schemair.config.settings import get_settings
from schemair.agents.orchestrator import SchemaOrchestrator
from schemair.ir.validators import Violation, validate_application
from schemair.planning.planner import PlanningError, plan_components
from schemair.render.prisma import render_application
from schemair.utils.ir_io import (
    load_application,
    load_components,
    save_application,
    save_components,
    write_rendered_files,
)

app = typer.Typer(help="SchemaIR: validate and render structured database schemas as Prisma")


def _report_violations(violations: List[Violation]) -> None:
    typer.echo(f"Rejected with {len(violations)} violation(s):", err=True)
    for v in violations:
        typer.echo(f"  - [{v.kind}] {v.location}: {v.message}", err=True)


def _report_planning_error(error: PlanningError) -> None:
    typer.echo(f"Planning failed with {len(error.issues)} issue(s):", err=True)
    for issue in error.issues:
        typer.echo(f"  - [{issue.kind}] {issue.message}", err=True)


@app.command()
def plan(hints_json: Path, out_components: Path):
    """
    Partition tables into components.

    Args:
        hints_json: JSON with "required", "domains" and optional "references" / "namespaces"
        out_components: Output path for the component plan JSON
    """
    setup_logging()
    hints = json.loads(hints_json.read_text(encoding="utf-8"))
    try:
        components = plan_components(
            hints["required"],
            hints["domains"],
            references=hints.get("references"),
            namespaces=hints.get("namespaces"),
        )
    except PlanningError as e:
        _report_planning_error(e)
        raise typer.Exit(1)

    save_components(components, out_components)
    for c in components:
        typer.echo(f"  {c.filename} [{c.namespace}]: {', '.join(c.tables)}")
    typer.echo(f"✓ Plan written to {out_components}")


@app.command()
def validate(application_json: Path, components_json: Path):
    """
    Validate an application against its component plan.

    Args:
        application_json: Path to Application JSON
        components_json: Path to component plan JSON
    """
    setup_logging()
    result = validate_application(
        load_application(application_json),
        load_components(components_json),
    )
    if not result.accepted:
        _report_violations(result.violations)
        raise typer.Exit(1)
    typer.echo("✓ Application is valid")


@app.command()
def render(application_json: Path, components_json: Path, out_dir: Path):
    """
    Validate and render an application to .prisma files.

    Args:
        application_json: Path to Application JSON
        components_json: Path to component plan JSON
        out_dir: Output directory for schema files
    """
    setup_logging()
    result = validate_application(
        load_application(application_json),
        load_components(components_json),
    )
    if not result.accepted:
        _report_violations(result.violations)
        raise typer.Exit(1)

    for path in write_rendered_files(render_application(result.application), out_dir):
        typer.echo(f"  wrote {path}")
    typer.echo(f"✓ Complete! Schema written to {out_dir}")


@app.command()
def generate(
    components_json: Path,
    context_file: Path,
    out_dir: Optional[Path] = typer.Option(None, help="Output directory"),
):
    """
    Generate every component with the LLM schema designer.

    Args:
        components_json: Path to component plan JSON
        context_file: Requirements text handed to the designer
        out_dir: Output directory (default: settings.output_dir)
    """
    from schemair.agents.roles.schema_designer import SchemaDesigner

    setup_logging()
    out_dir = Path(out_dir or get_settings().output_dir)
    components = load_components(components_json)
    context = context_file.read_text(encoding="utf-8")

    typer.echo(f"Generating {len(components)} components...")
    try:
        result = SchemaOrchestrator(SchemaDesigner()).generate(components, context)
    except PlanningError as e:
        _report_planning_error(e)
        raise typer.Exit(1)

    for filename, reason in result.failures.items():
        typer.echo(f"  ✗ {filename}: {reason}", err=True)
    if not result.accepted:
        if result.violations:
            _report_violations(result.violations)
        raise typer.Exit(1)

    save_application(result.application.application, out_dir / "application.json")
    write_rendered_files(result.files, out_dir)
    typer.echo(f"✓ Complete! Output directory: {out_dir}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
