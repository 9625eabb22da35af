"""Validation result types shared by the validator, the builder and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class Issue:
    """A single structural finding.

    Attributes:
        severity: "error" blocks publishing; "warning" is informational.
        message: Human-readable description for the author.
        code: Stable identifier of the check that produced the issue.
        node_id: Node the issue is about, if any.
        edge_id: Edge the issue is about, if any.
    """

    severity: Severity
    message: str
    code: str = ""
    node_id: str | None = None
    edge_id: str | None = None

    @property
    def is_blocking(self) -> bool:
        """True if this issue prevents publishing."""
        return self.severity == "error"


@dataclass
class ValidationReport:
    """Aggregated validation issues for one flow snapshot.

    Attributes:
        issues: Every issue found, in check order.
    """

    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        """Blocking issues."""
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        """Non-blocking issues."""
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        """True if any issue has severity 'error'."""
        return any(i.severity == "error" for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        """True if any issue has severity 'warning'."""
        return any(i.severity == "warning" for i in self.issues)

    @property
    def is_publishable(self) -> bool:
        """True if nothing blocks publishing (warnings are allowed)."""
        return not self.has_errors

    @property
    def summary(self) -> str:
        """Human-readable summary of all issues."""
        errors = len(self.errors)
        warnings = len(self.warnings)
        if not errors and not warnings:
            return "no issues"

        parts: list[str] = []
        if errors:
            parts.append(f"{errors} error{'s' if errors != 1 else ''}")
        if warnings:
            parts.append(f"{warnings} warning{'s' if warnings != 1 else ''}")
        return ", ".join(parts)
