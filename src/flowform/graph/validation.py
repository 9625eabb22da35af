"""Structural validation of a flow graph.

Pure, deterministic checks deciding whether a graph is safe to publish.
Issues are returned as data and never raised: the caller decides that any
``error`` blocks publishing while ``warning`` issues are only surfaced to the
author.

Checks (all independent, all run on every call):
- errors: start count, reachable end, dangling edges, duplicate default
  edges, insufficient options, stale option handles
- warnings: orphan questions, broken answer pipes, reachable cycles,
  empty question text, handles on nodes without options
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from flowform.graph.piping import find_broken_references, node_text_fields
from flowform.graph.traversal import find_reachable_cycles, reachable_from
from flowform.graph.validation_types import Issue, ValidationReport
from flowform.models.flow import MIN_OPTIONS
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from flowform.models.flow import FlowEdge, FlowNode

    Check = Callable[[Sequence[FlowNode], Sequence[FlowEdge]], list[Issue]]

__all__ = [
    "Issue",
    "ValidationReport",
    "check_cycles",
    "check_dangling_edges",
    "check_default_edges",
    "check_empty_questions",
    "check_end_reachable",
    "check_option_counts",
    "check_orphans",
    "check_pipe_references",
    "check_single_start",
    "check_source_handles",
    "run_all_checks",
    "validate_flow",
]

log = get_logger(__name__)


def _start_ids(nodes: Sequence[FlowNode]) -> list[str]:
    return [n.id for n in nodes if n.type == "start"]


# ---------------------------------------------------------------------------
# Blocking checks
# ---------------------------------------------------------------------------


def check_single_start(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Exactly one start node must exist."""
    starts = _start_ids(nodes)
    if len(starts) == 1:
        return []
    if not starts:
        return [Issue("error", "Assessment must have a start node", code="missing_start")]
    return [
        Issue(
            "error",
            f"Assessment can only have one start node (found {len(starts)})",
            code="multiple_start",
            node_id=starts[1],
        )
    ]


def check_end_reachable(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """At least one end node must be reachable from the start node.

    When the start count is wrong, only the total absence of end nodes is
    reported; reachability is undefined without a single start.
    """
    end_ids = {n.id for n in nodes if n.type == "end"}
    if not end_ids:
        return [Issue("error", "Assessment must have at least one end node", code="unreachable_end")]

    starts = _start_ids(nodes)
    if len(starts) != 1:
        return []

    if end_ids & reachable_from(starts, edges):
        return []
    return [
        Issue(
            "error",
            "No end node is reachable from the start node",
            code="unreachable_end",
            node_id=starts[0],
        )
    ]


def check_dangling_edges(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Every edge endpoint must reference an existing node."""
    node_ids = {n.id for n in nodes}
    issues: list[Issue] = []
    for edge in edges:
        missing = [end for end in (edge.source, edge.target) if end not in node_ids]
        if missing:
            issues.append(
                Issue(
                    "error",
                    f"Edge '{edge.id}' references missing node(s): {', '.join(missing)}",
                    code="dangling_edge",
                    edge_id=edge.id,
                )
            )
    return issues


def check_default_edges(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """A node may have at most one default (unconditioned, handle-less) edge.

    Two defaults make the fallback ambiguous; neither is silently preferred.
    """
    counts = Counter(e.source for e in edges if e.is_default)
    return [
        Issue(
            "error",
            f"Node has {count} default edges; only one unconditioned fallback is allowed",
            code="duplicate_default",
            node_id=source,
        )
        for source, count in counts.items()
        if count > 1
    ]


def check_option_counts(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Option-bearing questions need at least two options."""
    issues: list[Issue] = []
    for node in nodes:
        question = node.question
        if question is None or not question.is_option_bearing:
            continue
        count = len(question.options or [])
        if count < MIN_OPTIONS:
            issues.append(
                Issue(
                    "error",
                    f"Question needs at least {MIN_OPTIONS} options (has {count})",
                    code="insufficient_options",
                    node_id=node.id,
                )
            )
    return issues


def check_source_handles(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Per-option edges must name an option that still exists on the source.

    A handle on an option-bearing question that names a removed option is an
    error. A handle on any other node can never be selected and is a warning.
    """
    by_id = {n.id: n for n in nodes}
    issues: list[Issue] = []
    for edge in edges:
        if edge.source_handle is None:
            continue
        source = by_id.get(edge.source)
        if source is None:
            continue  # reported as dangling
        question = source.question
        if question is not None and question.is_option_bearing:
            if edge.source_handle not in question.option_ids:
                issues.append(
                    Issue(
                        "error",
                        f"Edge '{edge.id}' routes from option '{edge.source_handle}' "
                        "which no longer exists",
                        code="stale_handle",
                        node_id=source.id,
                        edge_id=edge.id,
                    )
                )
        else:
            issues.append(
                Issue(
                    "warning",
                    f"Edge '{edge.id}' has an option handle but its source has no options",
                    code="stale_handle",
                    node_id=source.id,
                    edge_id=edge.id,
                )
            )
    return issues


# ---------------------------------------------------------------------------
# Non-blocking checks
# ---------------------------------------------------------------------------


def check_empty_questions(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Question text should not be blank."""
    return [
        Issue("warning", "Question text is empty", code="empty_question", node_id=node.id)
        for node in nodes
        if node.question is not None and not node.question.question_text.strip()
    ]


def check_orphans(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Question nodes should be reachable from the start node."""
    starts = _start_ids(nodes)
    if not starts:
        return []
    reachable = reachable_from(starts, edges)
    return [
        Issue(
            "warning",
            "Question is not reachable from the start node",
            code="orphan",
            node_id=node.id,
        )
        for node in nodes
        if node.type == "question" and node.id not in reachable
    ]


def check_pipe_references(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Answer-pipe tokens should reference nodes that still exist."""
    existing = {n.id for n in nodes}
    issues: list[Issue] = []
    for node in nodes:
        broken: list[str] = []
        for text in node_text_fields(node):
            broken.extend(find_broken_references(text, existing))
        if broken:
            issues.append(
                Issue(
                    "warning",
                    f"Text references {len(broken)} deleted question(s); "
                    "piped answers will show fallback text",
                    code="broken_pipe",
                    node_id=node.id,
                )
            )
    return issues


def check_cycles(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Flag loops reachable from the start node.

    Loop-back screens are allowed; authors are only told they exist.
    """
    starts = _start_ids(nodes)
    if not starts:
        return []
    return [
        Issue(
            "warning",
            f"Flow contains a loop through: {', '.join(members)}",
            code="cycle",
            node_id=members[0],
        )
        for members in find_reachable_cycles(starts, edges)
    ]


_CHECKS: tuple[Check, ...] = (
    check_single_start,
    check_end_reachable,
    check_dangling_edges,
    check_default_edges,
    check_option_counts,
    check_source_handles,
    check_empty_questions,
    check_orphans,
    check_pipe_references,
    check_cycles,
)


def validate_flow(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> list[Issue]:
    """Run every structural check on a flow snapshot.

    Args:
        nodes: All nodes of the flow.
        edges: All edges of the flow.

    Returns:
        Every issue found. The flow may be published iff none is an error.
    """
    issues: list[Issue] = []
    for check in _CHECKS:
        issues.extend(check(nodes, edges))

    log.debug(
        "flow_validated",
        nodes=len(nodes),
        edges=len(edges),
        errors=sum(1 for i in issues if i.severity == "error"),
        warnings=sum(1 for i in issues if i.severity == "warning"),
    )
    return issues


def run_all_checks(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> ValidationReport:
    """Validate a flow and wrap the issues in a report."""
    return ValidationReport(issues=validate_flow(nodes, edges))
