"""Flow graph engine.

Pure functions over ``(nodes, edges)`` snapshots: construction, structural
validation, traversal, runtime routing, answer piping, layout, scoring and
editor operations. Nothing here holds state between calls.
"""

from flowform.graph.builder import BuildResult, build_flow
from flowform.graph.editing import (
    can_disable_branching,
    connect,
    delete_node,
    remove_option,
    set_edge_condition,
    toggle_branching,
)
from flowform.graph.errors import FlowBuildError
from flowform.graph.factory import (
    create_edge,
    create_end_node,
    create_question_node,
    create_start_node,
    generate_edge_id,
    generate_node_id,
    generate_option_id,
)
from flowform.graph.io import FlowFileError, load_flow, load_generated, save_flow
from flowform.graph.layout import LayoutOptions, TidyOptions, layout_full, layout_tidy
from flowform.graph.piping import (
    build_pipe_token,
    display_text,
    find_broken_references,
    has_pipe_references,
    pipe_label,
    pipe_references,
    resolve_pipes,
)
from flowform.graph.routing import RouteEnd, chosen_option_ids, evaluate_condition, is_route_end, next_node
from flowform.graph.scoring import max_score, score_for_answer
from flowform.graph.traversal import (
    Branch,
    ancestor_question_nodes,
    connected_branch,
    downstream,
    find_cycle_entries,
    find_reachable_cycles,
    reachable_from,
    upstream,
)
from flowform.graph.validation import run_all_checks, validate_flow
from flowform.graph.validation_types import Issue, ValidationReport
from flowform.graph.walk import WalkResult, WalkState, advance, go_back, screen_text, simulate, start_walk

__all__ = [
    "Branch",
    "BuildResult",
    "FlowBuildError",
    "FlowFileError",
    "Issue",
    "LayoutOptions",
    "RouteEnd",
    "TidyOptions",
    "ValidationReport",
    "WalkResult",
    "WalkState",
    "advance",
    "ancestor_question_nodes",
    "build_flow",
    "build_pipe_token",
    "can_disable_branching",
    "chosen_option_ids",
    "connect",
    "connected_branch",
    "create_edge",
    "create_end_node",
    "create_question_node",
    "create_start_node",
    "delete_node",
    "display_text",
    "downstream",
    "evaluate_condition",
    "find_broken_references",
    "find_cycle_entries",
    "find_reachable_cycles",
    "generate_edge_id",
    "generate_node_id",
    "generate_option_id",
    "go_back",
    "has_pipe_references",
    "is_route_end",
    "layout_full",
    "layout_tidy",
    "load_flow",
    "load_generated",
    "max_score",
    "next_node",
    "pipe_label",
    "pipe_references",
    "reachable_from",
    "remove_option",
    "resolve_pipes",
    "run_all_checks",
    "save_flow",
    "score_for_answer",
    "screen_text",
    "set_edge_condition",
    "simulate",
    "start_walk",
    "toggle_branching",
    "upstream",
    "validate_flow",
]
