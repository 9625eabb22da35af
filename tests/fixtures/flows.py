"""Small flow builders with readable, fixed ids for tests."""

from __future__ import annotations

from typing import Any

from flowform.models.flow import (
    EdgeCondition,
    EndNodeData,
    FlowEdge,
    FlowNode,
    Position,
    QuestionNodeData,
    QuestionOption,
    StartNodeData,
)


def start(node_id: str = "start", x: float = 0, y: float = 0) -> FlowNode:
    return FlowNode(id=node_id, type="start", position=Position(x=x, y=y), data=StartNodeData())


def end(node_id: str = "end", x: float = 0, y: float = 0) -> FlowNode:
    return FlowNode(id=node_id, type="end", position=Position(x=x, y=y), data=EndNodeData())


def question(
    node_id: str,
    question_type: str = "short_text",
    text: str = "Question?",
    options: list[str] | None = None,
    x: float = 0,
    y: float = 0,
    **fields: Any,
) -> FlowNode:
    """Question node; ``options`` texts get ids ``{node_id}-{text.lower()}``."""
    data: dict[str, Any] = {"question_type": question_type, "question_text": text, **fields}
    if options is not None:
        data["options"] = [QuestionOption(id=f"{node_id}-{t.lower()}", text=t) for t in options]
    return FlowNode(id=node_id, type="question", position=Position(x=x, y=y), data=QuestionNodeData(**data))


def edge(
    source: str,
    target: str,
    handle: str | None = None,
    condition: tuple[str, Any] | None = None,
    edge_id: str | None = None,
) -> FlowEdge:
    cond = EdgeCondition(type=condition[0], value=condition[1]) if condition else None
    return FlowEdge(
        id=edge_id or f"{source}->{target}",
        source=source,
        target=target,
        source_handle=handle,
        condition=cond,
    )


def make_color_flow() -> tuple[list[FlowNode], list[FlowEdge]]:
    """start → q1 (short text) → q2 (Red/Blue; Red → end_a, default → end_b)."""
    nodes = [
        start(),
        question("q1", "short_text", "What is your name?"),
        question("q2", "multiple_choice_single", "Favourite colour, {{q1:What is your name}}?", ["Red", "Blue"]),
        end("end_a"),
        end("end_b"),
    ]
    edges = [
        edge("start", "q1"),
        edge("q1", "q2"),
        edge("q2", "end_a", handle="q2-red"),
        edge("q2", "end_b"),
    ]
    return nodes, edges
