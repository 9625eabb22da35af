"""FlowForm CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flowform.config import EngineConfig, FlowConfigError, resolve_config
from flowform.graph.builder import build_flow
from flowform.graph.errors import FlowBuildError
from flowform.graph.io import FlowFileError, load_flow, load_generated, save_flow
from flowform.graph.layout import layout_full, layout_tidy
from flowform.graph.traversal import connected_branch
from flowform.graph.validation import run_all_checks
from flowform.graph.walk import screen_text, simulate
from flowform.models.flow import MULTI_SELECT_QUESTION_TYPES, FlowDocument, answer_text
from flowform.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from flowform.graph.validation_types import Issue
    from flowform.models.flow import FlowNode

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="flowform",
    help="FlowForm: validate, lay out and walk branching questionnaire flows.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

NUMERIC_QUESTION_TYPES = frozenset({"number", "rating", "nps"})

# Global state set by the callback, used by commands
_config_path: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Also write every log event to {log_dir}/flowform.jsonl.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file (default: ./flowform.yaml if present).",
            envvar="FLOWFORM_CONFIG",
        ),
    ] = None,
) -> None:
    """FlowForm: validate, lay out and walk branching questionnaire flows."""
    global _config_path
    _config_path = config

    configure_logging(verbosity=verbose, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


def _load_config() -> EngineConfig:
    try:
        return resolve_config(_config_path)
    except FlowConfigError as e:
        raise _fail(str(e)) from e


def _load(path: Path) -> FlowDocument:
    try:
        return load_flow(path)
    except FlowFileError as e:
        raise _fail(str(e)) from e


def _save(document: FlowDocument, path: Path) -> None:
    try:
        save_flow(document, path)
    except FlowFileError as e:
        raise _fail(str(e)) from e


def _print_issues(issues: list[Issue]) -> None:
    if not issues:
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Severity")
    table.add_column("Check", style="cyan")
    table.add_column("Node / Edge", style="dim")
    table.add_column("Message")

    for issue in issues:
        severity = "[red]error[/red]" if issue.is_blocking else "[yellow]warning[/yellow]"
        target = issue.node_id or issue.edge_id or "-"
        table.add_row(severity, issue.code, target, issue.message)
    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from flowform import __version__

    console.print(f"FlowForm v{__version__}")


@app.command()
def validate(
    flow_file: Annotated[Path, typer.Argument(help="Flow document (.json or .yaml).")],
) -> None:
    """Check a flow for structural errors and warnings.

    Exits with code 1 if any blocking error is found.
    """
    document = _load(flow_file)
    report = run_all_checks(document.nodes, document.edges)

    _print_issues(report.issues)
    if report.has_errors:
        console.print(f"[red]✗[/red] Not publishable: {report.summary}")
        raise typer.Exit(1)
    if report.has_warnings:
        console.print(f"[green]✓[/green] Publishable with {report.summary}")
    else:
        console.print("[green]✓[/green] No issues found")


@app.command()
def layout(
    flow_file: Annotated[Path, typer.Argument(help="Flow document (.json or .yaml).")],
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="'full' recomputes every position; 'tidy' only fixes overlaps."),
    ] = "tidy",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write here instead of overwriting the input."),
    ] = None,
) -> None:
    """Lay out a flow and write the new positions."""
    if mode not in ("full", "tidy"):
        raise _fail(f"Unknown layout mode '{mode}' (expected 'full' or 'tidy').")

    config = _load_config()
    document = _load(flow_file)
    if mode == "full":
        nodes = layout_full(document.nodes, document.edges, config.layout)
    else:
        nodes = layout_tidy(document.nodes, config.tidy)

    target = output or flow_file
    _save(FlowDocument(nodes=nodes, edges=document.edges), target)
    console.print(f"[green]✓[/green] {mode.capitalize()} layout of {len(nodes)} nodes written to {target}")


def _parse_answer(node: FlowNode | None, raw: str) -> Any:
    """Turn a command-line answer into the shape the node's question expects."""
    question = node.question if node is not None else None
    if question is None:
        return raw
    if question.question_type in MULTI_SELECT_QUESTION_TYPES:
        return [part.strip() for part in raw.split(",") if part.strip()]
    if question.question_type in NUMERIC_QUESTION_TYPES:
        try:
            return float(raw)
        except ValueError:
            return raw
    return raw


@app.command()
def walk(
    flow_file: Annotated[Path, typer.Argument(help="Flow document (.json or .yaml).")],
    answer: Annotated[
        list[str] | None,
        typer.Option(
            "--answer",
            "-a",
            help="Scripted answer as NODE_ID=VALUE (repeatable). Multi-select values are comma-separated.",
        ),
    ] = None,
) -> None:
    """Simulate a respondent walking the flow with scripted answers."""
    config = _load_config()
    document = _load(flow_file)
    by_id = {node.id: node for node in document.nodes}

    answers: dict[str, Any] = {}
    for item in answer or []:
        node_id, sep, value = item.partition("=")
        if not sep or not node_id:
            raise _fail(f"Invalid answer '{item}' (expected NODE_ID=VALUE).")
        answers[node_id] = _parse_answer(by_id.get(node_id), value)

    try:
        result = simulate(document.nodes, document.edges, answers, max_steps=config.max_walk_steps)
    except ValueError as e:
        raise _fail(str(e)) from e

    table = Table(title="Path", show_header=True, header_style="bold")
    table.add_column("#", style="dim")
    table.add_column("Node", style="cyan")
    table.add_column("Screen")
    table.add_column("Answer")
    for step, node_id in enumerate(result.path, start=1):
        node = by_id[node_id]
        texts = screen_text(node, result.state, config.pipe_fallback)
        heading = texts.get("question_text") or texts.get("title", "")
        recorded = result.state.answers.get(node_id)
        table.add_row(str(step), node_id, heading, answer_text(recorded) if recorded is not None else "")
    console.print(table)

    if result.hit_step_limit:
        console.print(f"[yellow]Stopped after {config.max_walk_steps} steps (loop?).[/yellow]")
        raise typer.Exit(1)

    reason = result.state.end_reason.value if result.state.end_reason else "unfinished"
    console.print(
        Panel(
            f"Ended at [bold]{result.state.current}[/bold] ({reason})\nScore: {result.state.score:g}",
            title="Result",
            border_style="green" if reason == "terminal" else "yellow",
        )
    )


@app.command()
def build(
    generated_file: Annotated[Path, typer.Argument(help="Generated assessment (.json or .yaml).")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Flow document to write (default: <name>.flow.json)."),
    ] = None,
) -> None:
    """Build a laid-out, validated flow from a generated assessment."""
    try:
        generated = load_generated(generated_file)
        result = build_flow(generated)
    except FlowFileError as e:
        raise _fail(str(e)) from e
    except FlowBuildError as e:
        _print_issues(e.issues)
        raise _fail(str(e)) from e

    target = output or generated_file.with_name(f"{generated_file.stem}.flow.json")
    _save(result.document, target)
    _print_issues(result.issues)
    console.print(
        f"[green]✓[/green] Built '{result.title}': {len(result.nodes)} nodes, "
        f"{len(result.edges)} edges → {target}"
    )


@app.command()
def branch(
    flow_file: Annotated[Path, typer.Argument(help="Flow document (.json or .yaml).")],
    node_id: Annotated[str, typer.Argument(help="Node whose branch to show.")],
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="'full', 'downstream' or 'upstream'."),
    ] = "full",
) -> None:
    """List the nodes and edges on the branch through a node."""
    if mode not in ("full", "downstream", "upstream"):
        raise _fail(f"Unknown branch mode '{mode}'.")
    document = _load(flow_file)
    if node_id not in {node.id for node in document.nodes}:
        raise _fail(f"Node '{node_id}' not found in {flow_file}.")

    result = connected_branch(node_id, document.edges, mode)  # type: ignore[arg-type]
    log.debug("branch_listed", node_id=node_id, mode=mode, nodes=len(result.node_ids))

    console.print(f"[bold]Nodes ({len(result.node_ids)}):[/bold]")
    for nid in result.node_ids:
        console.print(f"  {nid}")
    console.print(f"[bold]Edges ({len(result.edge_ids)}):[/bold]")
    for eid in result.edge_ids:
        console.print(f"  {eid}")
