"""Runtime routing: pick the next screen from the current answer.

The router is a pure step function. It never raises on malformed graphs and
never mutates anything; respondent state is passed in on every call.

Precedence for the outgoing edges of the current node:

1. Per-option edge: the answer names an option that has a handle edge.
2. Conditioned edges, in array order; the first that holds wins.
3. The default edge (no handle, no condition).
4. :attr:`RouteEnd.DEAD_END`.

End nodes, unknown nodes and nodes without outgoing edges route to
:attr:`RouteEnd.TERMINAL`. Edges whose target node is missing are skipped.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from flowform.models.flow import (
    ChoiceAnswer,
    NumberAnswer,
    TextAnswer,
    coerce_answer,
    format_number,
)
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flowform.models.flow import EdgeCondition, FlowEdge, FlowNode

log = get_logger(__name__)

AnswerValue = TextAnswer | ChoiceAnswer | NumberAnswer


class RouteEnd(Enum):
    """Sentinels returned instead of a node id."""

    TERMINAL = "terminal"
    """The current node ends the flow."""

    DEAD_END = "dead_end"
    """No outgoing edge matched; the caller treats the node as terminal."""


def is_route_end(result: str | RouteEnd) -> bool:
    """True if ``result`` is a sentinel rather than a node id."""
    return isinstance(result, RouteEnd)


# ---------------------------------------------------------------------------
# Answer coercion
# ---------------------------------------------------------------------------


def _as_answer(raw: Any) -> AnswerValue | None:
    try:
        return coerce_answer(raw)
    except (TypeError, ValidationError):
        log.warning("route_unsupported_answer", answer_type=type(raw).__name__)
        return None


def _stringify(value: str | int | float) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return format_number(value)
    return value


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _answer_number(answer: AnswerValue) -> float | None:
    if isinstance(answer, NumberAnswer):
        return answer.value
    if isinstance(answer, TextAnswer):
        return _to_number(answer.value)
    return None


def _answer_string(answer: AnswerValue) -> str:
    if isinstance(answer, NumberAnswer):
        return format_number(answer.value)
    if isinstance(answer, TextAnswer):
        return answer.value
    return ", ".join(answer.values)


# ---------------------------------------------------------------------------
# Condition evaluation
# ---------------------------------------------------------------------------


def _equals(expected: str | int | float, answer: AnswerValue) -> bool:
    target = _stringify(expected)
    if isinstance(answer, ChoiceAnswer):
        return target in answer.values
    return _answer_string(answer) == target


def _contains(expected: str | int | float, answer: AnswerValue) -> bool:
    target = _stringify(expected)
    if isinstance(answer, ChoiceAnswer):
        return target in answer.values
    return target.lower() in _answer_string(answer).lower()


def _compare(expected: str | int | float, answer: AnswerValue, *, greater: bool) -> bool:
    left = _answer_number(answer)
    right = _to_number(expected)
    if left is None or right is None:
        return False
    return left > right if greater else left < right


def evaluate_condition(condition: EdgeCondition, answer: Any) -> bool:
    """Decide whether ``answer`` satisfies ``condition``.

    A list-valued condition holds if it holds for any listed value;
    ``not_equals`` holds only if the answer equals none of them. A missing
    answer behaves like empty text.

    Args:
        condition: The edge condition.
        answer: An answer model, a raw answer value, or None.

    Returns:
        True if the condition holds. Non-numeric operands make
        ``greater_than``/``less_than`` false instead of raising.
    """
    value = _as_answer(answer)
    if value is None:
        value = TextAnswer(value="")

    expected = condition.value if isinstance(condition.value, list) else [condition.value]

    if condition.type == "equals":
        return any(_equals(v, value) for v in expected)
    if condition.type == "not_equals":
        return not any(_equals(v, value) for v in expected)
    if condition.type == "contains":
        return any(_contains(v, value) for v in expected)
    if condition.type == "greater_than":
        return any(_compare(v, value, greater=True) for v in expected)
    if condition.type == "less_than":
        return any(_compare(v, value, greater=False) for v in expected)
    return False


def chosen_option_ids(node: FlowNode, answer: Any) -> list[str]:
    """Map an answer to the option ids it selects on ``node``.

    Text and numbers match an option by id or by option text. Choice lists
    select every matching option. Ids are returned in the node's option
    order, never duplicated.
    """
    question = node.question
    if question is None or not question.options:
        return []
    value = _as_answer(answer)
    if value is None:
        return []

    selected = set(value.values) if isinstance(value, ChoiceAnswer) else {_answer_string(value)}
    return [option.id for option in question.options if option.id in selected or option.text in selected]


# ---------------------------------------------------------------------------
# Step function
# ---------------------------------------------------------------------------


def next_node(
    current_node_id: str,
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    answer: Any,
) -> str | RouteEnd:
    """Choose the screen that follows ``current_node_id``.

    Args:
        current_node_id: The screen the respondent just answered.
        nodes: All nodes of the flow.
        edges: All edges of the flow.
        answer: The answer given on the current screen (None on start).

    Returns:
        The next node id, :attr:`RouteEnd.TERMINAL` when the current node
        ends the flow, or :attr:`RouteEnd.DEAD_END` when nothing matched.
    """
    by_id = {node.id: node for node in nodes}
    current = by_id.get(current_node_id)
    if current is None or current.type == "end":
        return RouteEnd.TERMINAL

    outgoing = [edge for edge in edges if edge.source == current_node_id]
    if not outgoing:
        return RouteEnd.TERMINAL

    live = [edge for edge in outgoing if edge.target in by_id]

    if current.is_option_bearing:
        for option_id in chosen_option_ids(current, answer):
            for edge in live:
                if edge.source_handle == option_id:
                    return edge.target

    unhandled = [edge for edge in live if edge.source_handle is None]
    for edge in unhandled:
        if edge.condition is not None and evaluate_condition(edge.condition, answer):
            return edge.target

    for edge in unhandled:
        if edge.condition is None:
            return edge.target

    log.debug("route_dead_end", node_id=current_node_id, outgoing=len(outgoing))
    return RouteEnd.DEAD_END
