"""Flow graph entities.

A flow is a directed graph of screens: exactly one ``start`` node, any
number of ``question`` nodes and one or more ``end`` nodes, joined by edges
that are optionally gated by a per-option handle or a condition.

All models are frozen. The persisted JSON uses camelCase keys
(``sourceHandle``, ``questionType``, ...); Python code uses snake_case
attributes. Dump with ``by_alias=True`` to get the persisted shape back.

Terminology:
- default edge: an edge with neither ``source_handle`` nor ``condition``
- option-bearing question: a question whose answer is picked from ``options``
- answer: one of :class:`TextAnswer`, :class:`ChoiceAnswer`, :class:`NumberAnswer`
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

NodeType = Literal["start", "question", "end"]

QuestionType = Literal[
    "multiple_choice_single",
    "multiple_choice_multi",
    "short_text",
    "long_text",
    "rating",
    "yes_no",
    "number",
    "email",
    "dropdown",
    "date",
    "nps",
]

ConditionType = Literal["equals", "not_equals", "contains", "greater_than", "less_than"]

OPTION_QUESTION_TYPES: frozenset[str] = frozenset(
    {"multiple_choice_single", "multiple_choice_multi", "dropdown", "yes_no"}
)
MULTI_SELECT_QUESTION_TYPES: frozenset[str] = frozenset({"multiple_choice_multi"})
SCALED_QUESTION_TYPES: frozenset[str] = frozenset({"rating", "nps"})
MIN_OPTIONS = 2


class FlowModel(BaseModel):
    """Base for all flow entities: frozen, camelCase aliases, name or alias input."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the persisted camelCase JSON shape."""
        return self.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Position(FlowModel):
    """Top-left corner of a node on the editor canvas."""

    x: float = 0.0
    y: float = 0.0


class QuestionOption(FlowModel):
    """A selectable option on an option-bearing question.

    Attributes:
        id: Stable option id; edges reference it through ``source_handle``.
        text: Label shown to the respondent; also the stored answer value.
        points: Score awarded when the option is chosen.
    """

    id: str = Field(min_length=1)
    text: str
    points: float | None = None


class StartNodeData(FlowModel):
    """Intro screen copy."""

    title: str = "Welcome"
    description: str = ""
    button_text: str = "Start"


class QuestionNodeData(FlowModel):
    """A question screen.

    Only the fields relevant to ``question_type`` are populated; the rest stay
    at their defaults.
    """

    question_type: QuestionType = "multiple_choice_single"
    question_text: str = ""
    description: str | None = None
    required: bool = True

    # Option-bearing types
    options: list[QuestionOption] | None = None
    enable_branching: bool = False

    # Scaled types (and optional bounds for number)
    min_value: float | None = None
    max_value: float | None = None
    min_label: str | None = None
    max_label: str | None = None

    # Text types
    placeholder: str | None = None
    max_length: int | None = None

    # Multi-select constraints
    min_selections: int | None = None
    max_selections: int | None = None

    # Scoring
    points: float | None = None
    correct_answer: str | list[str] | None = None

    @property
    def is_option_bearing(self) -> bool:
        """True if answers to this question are picked from ``options``."""
        return self.question_type in OPTION_QUESTION_TYPES

    @property
    def option_ids(self) -> list[str]:
        """Ids of the current options, in display order."""
        return [option.id for option in self.options or []]


class EndNodeData(FlowModel):
    """Outro screen copy and behaviour."""

    title: str = "Thank You!"
    description: str = ""
    show_score: bool = False
    redirect_url: str | None = None


NodeData = StartNodeData | QuestionNodeData | EndNodeData

_DATA_MODELS: dict[str, type[FlowModel]] = {
    "start": StartNodeData,
    "question": QuestionNodeData,
    "end": EndNodeData,
}


class FlowNode(FlowModel):
    """A screen in the flow graph.

    The node ``type`` selects the ``data`` model; a start node always carries
    :class:`StartNodeData`, and so on.
    """

    id: str = Field(min_length=1)
    type: NodeType
    position: Position = Field(default_factory=Position)
    data: NodeData

    @model_validator(mode="before")
    @classmethod
    def _select_data_model(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        node_type = values.get("type")
        data_model = _DATA_MODELS.get(node_type) if isinstance(node_type, str) else None
        if data_model is None:
            return values
        data = values.get("data")
        if data is None:
            data = {}
        if isinstance(data, BaseModel) and not isinstance(data, data_model):
            msg = f"Node type {node_type!r} cannot carry {type(data).__name__}"
            raise ValueError(msg)
        if isinstance(data, dict):
            data = data_model.model_validate(data)
        return {**values, "data": data}

    @property
    def question(self) -> QuestionNodeData | None:
        """The question data, or None for start/end nodes."""
        return self.data if isinstance(self.data, QuestionNodeData) else None

    @property
    def is_option_bearing(self) -> bool:
        """True for question nodes whose answers come from an option list."""
        question = self.question
        return question is not None and question.is_option_bearing


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

ConditionScalar = str | int | float


class EdgeCondition(FlowModel):
    """Predicate gating an edge.

    A list ``value`` means OR matching: the condition holds if it holds for
    any of the listed values.
    """

    type: ConditionType
    value: ConditionScalar | list[ConditionScalar]


class FlowEdge(FlowModel):
    """A directed transition between two nodes."""

    id: str = Field(min_length=1)
    source: str
    target: str
    source_handle: str | None = None
    condition: EdgeCondition | None = None

    @property
    def is_default(self) -> bool:
        """True if the edge has neither a handle nor a condition."""
        return self.source_handle is None and self.condition is None


class FlowDocument(FlowModel):
    """A whole-graph snapshot as persisted by the caller."""

    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------


class TextAnswer(FlowModel):
    """A single text answer (text questions, single-choice, yes/no, date...)."""

    kind: Literal["text"] = "text"
    value: str


class ChoiceAnswer(FlowModel):
    """The selected option texts of a multi-select question."""

    kind: Literal["choices"] = "choices"
    values: list[str] = Field(default_factory=list)


class NumberAnswer(FlowModel):
    """A numeric answer (number, rating, NPS)."""

    kind: Literal["number"] = "number"
    value: float


Answer = Annotated[TextAnswer | ChoiceAnswer | NumberAnswer, Field(discriminator="kind")]

_answer_adapter: TypeAdapter[TextAnswer | ChoiceAnswer | NumberAnswer] = TypeAdapter(Answer)


def format_number(value: float) -> str:
    """Stringify a number the way respondents typed it (``7`` not ``7.0``)."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def coerce_answer(raw: Any) -> TextAnswer | ChoiceAnswer | NumberAnswer | None:
    """Turn a raw stored answer into the answer union.

    Args:
        raw: An answer model, a string, a list of strings/numbers, a number,
            a ``{"kind": ...}`` dict, or None.

    Returns:
        The matching answer model, or None when ``raw`` is None.

    Raises:
        TypeError: If ``raw`` has none of the supported shapes.
    """
    if raw is None:
        return None
    if isinstance(raw, TextAnswer | ChoiceAnswer | NumberAnswer):
        return raw
    if isinstance(raw, bool):
        return TextAnswer(value="true" if raw else "false")
    if isinstance(raw, str):
        return TextAnswer(value=raw)
    if isinstance(raw, int | float):
        return NumberAnswer(value=float(raw))
    if isinstance(raw, list | tuple):
        return ChoiceAnswer(
            values=[format_number(v) if isinstance(v, int | float) else str(v) for v in raw]
        )
    if isinstance(raw, dict) and "kind" in raw:
        return _answer_adapter.validate_python(raw)
    msg = f"Unsupported answer value: {raw!r}"
    raise TypeError(msg)


def answer_text(answer: TextAnswer | ChoiceAnswer | NumberAnswer) -> str:
    """Render an answer as display text (choices join with ``", "``)."""
    if isinstance(answer, ChoiceAnswer):
        return ", ".join(answer.values)
    if isinstance(answer, NumberAnswer):
        return format_number(answer.value)
    return answer.value
