"""Deterministic conversion of a generated assessment into a flow graph.

The generator returns a linear question list plus branch hints. The builder
chains ``start → q1 → … → qN → end`` with default edges, adds each useful
hint as a conditioned edge, lays the graph out left to right and validates
it. Anything that still has blocking errors is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flowform.graph.errors import FlowBuildError
from flowform.graph.factory import (
    create_edge,
    create_end_node,
    create_question_node,
    create_start_node,
    make_options,
)
from flowform.graph.layout import LayoutOptions, layout_full
from flowform.graph.validation import validate_flow
from flowform.models.flow import (
    OPTION_QUESTION_TYPES,
    EdgeCondition,
    EndNodeData,
    FlowDocument,
    FlowEdge,
    FlowNode,
    StartNodeData,
)
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from flowform.graph.validation_types import Issue
    from flowform.models.generation import GeneratedAssessment, GeneratedQuestion

log = get_logger(__name__)

BUILD_LAYOUT = LayoutOptions(direction="LR", rank_gap=100, node_gap=60)

_SCALE_DEFAULTS = {"rating": (1, 5), "nps": (0, 10)}


@dataclass
class BuildResult:
    """A built flow with its validation outcome.

    Attributes:
        title: Assessment title.
        description: Assessment description.
        nodes: Laid-out nodes: start, questions in order, end.
        edges: Linear chain plus conditioned branch edges.
        issues: Non-blocking validation issues.
        id_map: Generated question id to node id.
    """

    title: str
    description: str | None
    nodes: list[FlowNode]
    edges: list[FlowEdge]
    issues: list[Issue] = field(default_factory=list)
    id_map: dict[str, str] = field(default_factory=dict)

    @property
    def document(self) -> FlowDocument:
        """The flow as a persistable document."""
        return FlowDocument(nodes=self.nodes, edges=self.edges)


def _question_node(question: GeneratedQuestion) -> FlowNode:
    node = create_question_node(question_type=question.type)

    updates: dict[str, object] = {
        "question_text": question.text,
        "description": question.description,
        "required": question.required,
    }
    if question.options and question.type in OPTION_QUESTION_TYPES:
        updates["options"] = make_options(*question.options)

    if question.type in _SCALE_DEFAULTS:
        low, high = _SCALE_DEFAULTS[question.type]
        updates["min_value"] = question.min if question.min is not None else low
        updates["max_value"] = question.max if question.max is not None else high
        if question.min_label:
            updates["min_label"] = question.min_label
        if question.max_label:
            updates["max_label"] = question.max_label
    elif question.type == "number":
        if question.min is not None:
            updates["min_value"] = question.min
        if question.max is not None:
            updates["max_value"] = question.max

    return node.model_copy(update={"data": node.data.model_copy(update=updates)})


def build_flow(
    output: GeneratedAssessment,
    layout: LayoutOptions | None = BUILD_LAYOUT,
) -> BuildResult:
    """Convert a generated assessment into a validated flow.

    Args:
        output: The generator's assessment.
        layout: Options for the full layout; None keeps every node at the
            origin.

    Returns:
        The laid-out flow and its non-blocking issues.

    Raises:
        FlowBuildError: If the built flow has blocking validation errors.
    """
    start = create_start_node()
    start = start.model_copy(
        update={
            "data": StartNodeData(
                title=output.start_node.title,
                description=output.start_node.description,
                button_text=output.start_node.button_text,
            )
        }
    )

    id_map: dict[str, str] = {}
    questions: list[FlowNode] = []
    for generated in output.questions:
        node = _question_node(generated)
        id_map[generated.id] = node.id
        questions.append(node)

    end = create_end_node()
    end = end.model_copy(
        update={
            "data": EndNodeData(
                title=output.end_node.title,
                description=output.end_node.description,
                show_score=output.end_node.show_score,
            )
        }
    )

    chain = [start, *questions, end]
    edges = [create_edge(a.id, b.id) for a, b in zip(chain, chain[1:], strict=False)]
    default_target = {e.source: e.target for e in edges}

    for hint in output.branching:
        source = id_map.get(hint.from_id)
        target = end.id if hint.goto == "end" else id_map.get(hint.goto)
        if source is None or target is None:
            log.warning("build_hint_unknown_id", source=hint.from_id, goto=hint.goto)
            continue
        if default_target.get(source) == target:
            log.debug("build_hint_redundant", source=hint.from_id, goto=hint.goto)
            continue
        edges.append(create_edge(source, target, EdgeCondition(type=hint.condition, value=hint.value)))

    nodes = layout_full(chain, edges, layout) if layout is not None else chain

    issues = validate_flow(nodes, edges)
    if any(i.is_blocking for i in issues):
        raise FlowBuildError(issues=issues, title=output.title)

    log.info("flow_built", title=output.title, nodes=len(nodes), edges=len(edges), warnings=len(issues))
    return BuildResult(
        title=output.title,
        description=output.description,
        nodes=nodes,
        edges=edges,
        issues=issues,
        id_map=id_map,
    )
