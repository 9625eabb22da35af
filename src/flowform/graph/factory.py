"""Node and edge construction with sensible defaults.

Construction never fails and never validates: every factory returns an
internally consistent entity with a fresh unique id. Structural checks are
the validator's job (``flowform.graph.validation``).
"""

from __future__ import annotations

import uuid
from typing import Any

from flowform.models.flow import (
    EdgeCondition,
    EndNodeData,
    FlowEdge,
    FlowNode,
    NodeType,
    Position,
    QuestionNodeData,
    QuestionOption,
    QuestionType,
    StartNodeData,
)

DEFAULT_QUESTION_TEXT = "Your question here"
TEXT_PLACEHOLDER = "Enter your answer..."


def _token() -> str:
    return uuid.uuid4().hex[:12]


def generate_node_id(node_type: NodeType) -> str:
    """Return a unique node id prefixed with the node type."""
    return f"{node_type}-{_token()}"


def generate_option_id() -> str:
    """Return a unique option id."""
    return f"opt-{_token()}"


def generate_edge_id(source: str, target: str) -> str:
    """Return a unique edge id naming both endpoints."""
    return f"edge-{source}-{target}-{_token()}"


def _as_position(position: Position | tuple[float, float] | None) -> Position:
    if position is None:
        return Position()
    if isinstance(position, Position):
        return position
    x, y = position
    return Position(x=x, y=y)


def make_options(*texts: str) -> list[QuestionOption]:
    """Build options with fresh ids from option texts."""
    return [QuestionOption(id=generate_option_id(), text=text) for text in texts]


def default_question_data(question_type: QuestionType) -> QuestionNodeData:
    """Type-specific defaults for a new question.

    Option-bearing types always start with at least two placeholder options.
    """
    fields: dict[str, Any] = {
        "question_type": question_type,
        "question_text": DEFAULT_QUESTION_TEXT,
        "required": True,
    }

    if question_type in ("multiple_choice_single", "multiple_choice_multi"):
        fields["options"] = make_options("Option 1", "Option 2")
    elif question_type == "yes_no":
        fields["options"] = make_options("Yes", "No")
        fields["enable_branching"] = True
    elif question_type == "dropdown":
        fields["options"] = make_options("Option 1", "Option 2", "Option 3")
    elif question_type == "rating":
        fields.update(min_value=1, max_value=5, min_label="Poor", max_label="Excellent")
    elif question_type == "nps":
        fields.update(min_value=0, max_value=10, min_label="Not likely", max_label="Very likely")
    elif question_type == "short_text":
        fields.update(placeholder=TEXT_PLACEHOLDER, max_length=100)
    elif question_type == "long_text":
        fields.update(placeholder=TEXT_PLACEHOLDER, max_length=1000)
    elif question_type == "number":
        fields["placeholder"] = "Enter a number..."
    elif question_type == "email":
        fields["placeholder"] = "you@example.com"
    elif question_type == "date":
        fields["placeholder"] = "Select a date..."

    return QuestionNodeData(**fields)


def create_start_node(position: Position | tuple[float, float] | None = None) -> FlowNode:
    """Create the intro screen."""
    return FlowNode(
        id=generate_node_id("start"),
        type="start",
        position=_as_position(position),
        data=StartNodeData(
            title="Welcome",
            description="Thank you for taking this assessment.",
            button_text="Start",
        ),
    )


def create_question_node(
    position: Position | tuple[float, float] | None = None,
    question_type: QuestionType = "multiple_choice_single",
) -> FlowNode:
    """Create a question screen with defaults for ``question_type``."""
    return FlowNode(
        id=generate_node_id("question"),
        type="question",
        position=_as_position(position),
        data=default_question_data(question_type),
    )


def create_end_node(position: Position | tuple[float, float] | None = None) -> FlowNode:
    """Create an outro screen."""
    return FlowNode(
        id=generate_node_id("end"),
        type="end",
        position=_as_position(position),
        data=EndNodeData(
            title="Thank You!",
            description="Your response has been recorded.",
            show_score=False,
            redirect_url=None,
        ),
    )


def create_edge(
    source: str,
    target: str,
    condition: EdgeCondition | None = None,
    source_handle: str | None = None,
) -> FlowEdge:
    """Create an edge; with no handle and no condition it is a default edge."""
    return FlowEdge(
        id=generate_edge_id(source, target),
        source=source,
        target=target,
        source_handle=source_handle,
        condition=condition,
    )
