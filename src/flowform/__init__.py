"""FlowForm: branching questionnaire flow graph engine."""

__version__ = "0.1.0"
