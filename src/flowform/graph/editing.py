"""Editor operations on flow snapshots.

Each function takes the current ``nodes``/``edges`` and returns new lists;
nothing is modified in place. Operations never auto-resolve ambiguous
routing (for example two default edges from one node): the validator flags
those for the author instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flowform.graph.factory import create_edge
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flowform.models.flow import EdgeCondition, FlowEdge, FlowNode

log = get_logger(__name__)

Snapshot = tuple[list["FlowNode"], list["FlowEdge"]]


def _replace_node(nodes: Sequence[FlowNode], updated: FlowNode) -> list[FlowNode]:
    return [updated if node.id == updated.id else node for node in nodes]


def can_disable_branching(edges: Sequence[FlowEdge], node_id: str) -> bool:
    """False while per-option edges from ``node_id`` lead to 2+ distinct targets.

    Collapsing such edges would silently discard routes, so the author must
    remove the extra branches first.
    """
    targets = {e.target for e in edges if e.source == node_id and e.source_handle is not None}
    return len(targets) <= 1


def toggle_branching(
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    node_id: str,
    enabled: bool,
) -> Snapshot:
    """Turn per-option routing on or off for an option-bearing question.

    Enabling moves every default edge of the node onto its first option.
    Disabling clears the option handles and keeps one edge per target.
    Unknown nodes and nodes without options are returned unchanged.
    """
    node = next((n for n in nodes if n.id == node_id), None)
    if node is None or node.question is None or not node.is_option_bearing:
        return list(nodes), list(edges)

    question = node.question
    updated = node.model_copy(update={"data": question.model_copy(update={"enable_branching": enabled})})
    new_nodes = _replace_node(nodes, updated)

    new_edges: list[FlowEdge] = []
    if enabled:
        first_option = question.option_ids[0] if question.option_ids else None
        for edge in edges:
            if edge.source == node_id and edge.is_default and first_option is not None:
                new_edges.append(edge.model_copy(update={"source_handle": first_option}))
            else:
                new_edges.append(edge)
    else:
        seen_targets: set[str] = set()
        for edge in edges:
            if edge.source != node_id:
                new_edges.append(edge)
                continue
            if edge.source_handle is not None:
                edge = edge.model_copy(update={"source_handle": None})
            if edge.condition is None:
                if edge.target in seen_targets:
                    continue
                seen_targets.add(edge.target)
            new_edges.append(edge)

    log.debug("branching_toggled", node_id=node_id, enabled=enabled, edges=len(new_edges))
    return new_nodes, new_edges


def remove_option(
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    node_id: str,
    option_id: str,
) -> Snapshot:
    """Delete an option and every edge routed from it.

    The option count is not enforced here; dropping below two options is
    reported by the validator.
    """
    node = next((n for n in nodes if n.id == node_id), None)
    if node is None or node.question is None or option_id not in node.question.option_ids:
        return list(nodes), list(edges)

    question = node.question
    options = [option for option in question.options or [] if option.id != option_id]
    updated = node.model_copy(update={"data": question.model_copy(update={"options": options})})
    new_edges = [e for e in edges if not (e.source == node_id and e.source_handle == option_id)]
    return _replace_node(nodes, updated), new_edges


def delete_node(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge], node_id: str) -> Snapshot:
    """Delete a node and every edge touching it."""
    return (
        [n for n in nodes if n.id != node_id],
        [e for e in edges if e.source != node_id and e.target != node_id],
    )


def connect(
    edges: Sequence[FlowEdge],
    source: str,
    target: str,
    source_handle: str | None = None,
) -> list[FlowEdge]:
    """Add an edge unless an identical connection already exists."""
    for edge in edges:
        if edge.source == source and edge.target == target and edge.source_handle == source_handle:
            return list(edges)
    return [*edges, create_edge(source, target, source_handle=source_handle)]


def set_edge_condition(
    edges: Sequence[FlowEdge],
    edge_id: str,
    condition: EdgeCondition | None,
) -> list[FlowEdge]:
    """Set (or with None, clear) the condition of one edge."""
    return [e.model_copy(update={"condition": condition}) if e.id == edge_id else e for e in edges]
