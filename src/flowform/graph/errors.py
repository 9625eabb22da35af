"""Error types raised at the edges of the flow engine.

Structural problems found by the validator are normally returned as data.
They are only raised, wrapped in :class:`FlowBuildError`, when a flow is
built automatically and must be usable as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flowform.graph.validation_types import Issue  # noqa: TC001 - dataclass field type


@dataclass
class FlowBuildError(Exception):
    """Raised when a built flow fails validation with blocking errors.

    Attributes:
        issues: Every issue found, warnings included.
        title: Title of the assessment being built.
    """

    issues: list[Issue] = field(default_factory=list)
    title: str = ""

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    @property
    def errors(self) -> list[Issue]:
        """The blocking issues."""
        return [i for i in self.issues if i.is_blocking]

    def _format_message(self) -> str:
        errors = self.errors
        subject = f"'{self.title}'" if self.title else "flow"
        msg = f"Built {subject} has {len(errors)} blocking error{'s' if len(errors) != 1 else ''}"
        if errors:
            msg += ": " + "; ".join(e.message for e in errors[:3])
            if len(errors) > 3:
                msg += f" (and {len(errors) - 3} more)"
        return msg
