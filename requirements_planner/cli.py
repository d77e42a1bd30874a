from __future__ import annotations

import json
import logging
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from requirements_planner.core.errors import (
    ContractError,
    DocumentLoadError,
    PlannerError,
    ResourceLoadError,
    RulesConfigError,
)
from requirements_planner.core.extract.extract_tasks import (
    extract,
    extract_requirements,
    promote_by_dependents,
    summarize_extraction,
)
from requirements_planner.core.graph.build_graph import build_graph
from requirements_planner.core.graph.cycles import describe_cycle, find_cycles
from requirements_planner.core.graph.layout import ITERATIONS, layout
from requirements_planner.core.io.load_document import load_document
from requirements_planner.core.io.load_resources import parse_resources, read_resource_records
from requirements_planner.core.knowledge.relevance import find_relevant, score
from requirements_planner.core.model import ExtractionResult
from requirements_planner.core.route.route_tasks import format_assignments, route
from requirements_planner.core.route.rules_config import KeywordRule, load_and_merge

app = typer.Typer(add_completion=False, no_args_is_help=True)

RULES_FILE_ENV = "REQPLAN_RULES_FILE"


def _rules_file_option() -> Any:
    return typer.Option(
        None,
        "--rules-file",
        envvar=RULES_FILE_ENV,
        help="Optional YAML file overriding routing keywords per category",
    )


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline details to stderr"),
) -> None:
    """Requirements planner CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


@app.command("extract")
def extract_cmd(
    path: str = typer.Argument(..., help="Path to a requirements document (.md/.markdown/.txt)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json|yaml"),
    rules_file: Optional[str] = _rules_file_option(),
    promote_dependencies: bool = typer.Option(
        False,
        "--promote-dependencies",
        help="Raise priority of tasks that other tasks depend on",
    ),
) -> None:
    """Extract phases, tasks and requirements from a document."""
    _check_format(format, ("text", "json", "yaml"), "E_EXTRACT_UNKNOWN_FORMAT")
    rules = _load_rules(rules_file)
    document = _load_document(path)

    result = extract(document, rules)
    if promote_dependencies:
        result = ExtractionResult(
            phases=promote_by_dependents(result.phases),
            requirements=result.requirements,
        )

    if format == "json":
        _echo_json(result.to_dict())
        return
    if format == "yaml":
        typer.echo(yaml.safe_dump(result.to_dict(), sort_keys=False, allow_unicode=True))
        return

    typer.echo(summarize_extraction(result))
    console = Console()
    for phase in result.phases:
        table = Table(title=phase.title)
        table.add_column("ID")
        table.add_column("Task")
        table.add_column("Category")
        table.add_column("Priority")
        table.add_column("Hours", justify="right")
        table.add_column("Depends on")
        for task in phase.tasks:
            for t in task.walk():
                indent = "  " * t.id.count(".")
                table.add_row(
                    t.id,
                    indent + t.title,
                    t.category,
                    t.priority,
                    f"{t.estimated_effort:g}",
                    ", ".join(t.dependencies),
                )
        console.print(table)


@app.command("requirements")
def requirements_cmd(
    path: str = typer.Argument(..., help="Path to a requirements document (.md/.markdown/.txt)"),
) -> None:
    """List requirement statements found anywhere in a document."""
    document = _load_document(path)
    reqs = extract_requirements(document)
    if not reqs:
        typer.echo("No requirements found.")
        return
    for r in reqs:
        typer.echo(f"- {r}")


@app.command("route")
def route_cmd(
    path: str = typer.Argument(..., help="Path to a requirements document (.md/.markdown/.txt)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    rules_file: Optional[str] = _rules_file_option(),
) -> None:
    """Assign each task to a specialist category."""
    _check_format(format, ("text", "json"), "E_ROUTE_UNKNOWN_FORMAT")
    rules = _load_rules(rules_file)
    document = _load_document(path)

    assignments = route(extract(document, rules).phases, rules)
    if format == "json":
        _echo_json(assignments)
        return
    typer.echo(format_assignments(assignments))


@app.command("graph")
def graph_cmd(
    path: str = typer.Argument(..., help="Path to a requirements document (.md/.markdown/.txt)"),
    width: float = typer.Option(800.0, "--width", help="Canvas width"),
    height: float = typer.Option(600.0, "--height", help="Canvas height"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible layouts"),
    iterations: int = typer.Option(ITERATIONS, "--iterations", help="Simulation iterations"),
    format: str = typer.Option("json", "--format", help="Output format: json|yaml"),
    rules_file: Optional[str] = _rules_file_option(),
) -> None:
    """Build the dependency graph and lay it out on a canvas."""
    _check_format(format, ("json", "yaml"), "E_GRAPH_UNKNOWN_FORMAT")
    rules = _load_rules(rules_file)
    document = _load_document(path)

    graph = build_graph(extract(document, rules).tasks)
    try:
        positioned = layout(graph, width, height, seed=seed, iterations=iterations)
    except ContractError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    cycles = find_cycles(graph)
    for c in cycles:
        typer.echo(f"WARN: {describe_cycle(c)}", err=True)

    payload = {
        "graph": graph.to_dict(),
        "layout": [n.to_dict() for n in positioned],
        "canvas": {"width": width, "height": height},
        "cycles": cycles,
    }
    if format == "yaml":
        typer.echo(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))
        return
    _echo_json(payload)


@app.command("retrieve")
def retrieve_cmd(
    resources_path: str = typer.Argument(..., help="Knowledge resources file (.yaml/.yml/.json)"),
    query: str = typer.Argument(..., help="Conversation context to match against"),
    limit: int = typer.Option(5, "--limit", help="Maximum resources to return"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    show_scores: bool = typer.Option(False, "--show-scores", help="Include relevance scores"),
) -> None:
    """Rank knowledge resources against a query."""
    _check_format(format, ("text", "json"), "E_RETRIEVE_UNKNOWN_FORMAT")

    try:
        records = read_resource_records(resources_path)
    except ResourceLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    resources, errors = parse_resources(records, file=resources_path)
    if errors:
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    try:
        top = find_relevant(resources, query, limit)
    except ContractError as e:
        _print_errors([e])
        raise typer.Exit(code=2)
    ranked = [(r, score(r, query)) for r in top]

    if format == "json":
        items: list[dict[str, Any]] = []
        for r, s in ranked:
            item = r.to_dict()
            if show_scores:
                item["score"] = s
            items.append(item)
        _echo_json({"query": query, "count": len(items), "resources": items})
        return

    if not ranked:
        typer.echo("No relevant resources.")
        return

    table = Table(title=f"Resources for: {query}")
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Category")
    if show_scores:
        table.add_column("Score", justify="right")
    for i, (r, s) in enumerate(ranked, start=1):
        row = [str(i), r.id, r.title, r.category or ""]
        if show_scores:
            row.append(f"{s:.2f}")
        table.add_row(*row)
    Console().print(table)


@app.command("rules")
def rules_cmd(rules_file: Optional[str] = _rules_file_option()) -> None:
    """List routing keyword rules in the order they are checked."""
    rules = _load_rules(rules_file)
    typer.echo("Rules (first match wins; unmatched -> management):")
    for rule in rules:
        typer.echo(f"- {rule.category}: {', '.join(rule.keywords)}")


def _load_rules(rules_file: Optional[str]) -> list[KeywordRule]:
    try:
        return load_and_merge(rules_file)
    except FileNotFoundError:
        _print_errors(
            [
                PlannerError(
                    code="E_RULES_FILE_NOT_FOUND",
                    message=f"rules file not found: {rules_file}",
                    path="rules_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except (RulesConfigError, yaml.YAMLError) as e:
        _print_errors(
            [
                PlannerError(
                    code="E_RULES_FILE_INVALID",
                    message=str(e),
                    file=rules_file,
                    path="rules_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _load_document(path: str) -> str:
    try:
        return load_document(path)
    except DocumentLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)


def _check_format(format: str, allowed: tuple[str, ...], code: str) -> None:
    if format in allowed:
        return
    _print_errors(
        [
            PlannerError(
                code=code,
                message=f"unknown format: {format} (choose one of: {', '.join(allowed)})",
                path="format",
            )
        ]
    )
    raise typer.Exit(code=2)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _print_errors(errors: list[PlannerError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="reqplan")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
