"""Schema for generated (candidate) assessments.

This is the simple intermediate shape a natural-language generator returns:
a linear list of questions plus branch hints. ``flowform.graph.builder``
deterministically converts it into a flow graph, which must then pass the
validator like any hand-authored graph.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from flowform.models.flow import ConditionType, QuestionType  # noqa: TC001 - pydantic needs runtime types


class GeneratedStart(BaseModel):
    """Intro screen copy."""

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    button_text: str = Field(default="Start", min_length=1, max_length=50, alias="buttonText")

    model_config = ConfigDict(populate_by_name=True)


class GeneratedEnd(BaseModel):
    """Outro screen copy."""

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    show_score: bool = Field(default=False, alias="showScore")

    model_config = ConfigDict(populate_by_name=True)


class GeneratedQuestion(BaseModel):
    """A single generated question.

    ``id`` is generator-local; the builder maps it to a real node id.
    """

    id: str = Field(min_length=1)
    type: QuestionType
    text: str = Field(min_length=1, max_length=500)
    description: str | None = None
    required: bool = True
    options: list[str] | None = Field(
        default=None,
        description="Option texts for option-bearing types",
    )
    min: float | None = None
    max: float | None = None
    min_label: str | None = Field(default=None, alias="minLabel")
    max_label: str | None = Field(default=None, alias="maxLabel")

    model_config = ConfigDict(populate_by_name=True)


class GeneratedBranch(BaseModel):
    """A branch hint: when ``from`` satisfies the condition, go to ``goto``.

    ``goto`` is another generated question id or the literal ``"end"``.
    """

    from_id: str = Field(min_length=1, alias="from")
    condition: ConditionType
    value: str | int | float
    goto: str = Field(min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class GeneratedAssessment(BaseModel):
    """A complete generated assessment."""

    title: str = Field(min_length=1, max_length=100)
    description: str | None = None
    start_node: GeneratedStart = Field(alias="startNode")
    end_node: GeneratedEnd = Field(alias="endNode")
    questions: list[GeneratedQuestion] = Field(min_length=1, max_length=20)
    branching: list[GeneratedBranch] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
