"""Comparison utilities for graph snapshots."""

from specgraph.analysis.version_diff import (
    added_transition_identities,
    diff_snapshots,
    diff_steps,
    diff_transitions,
    step_highlights,
)
from specgraph.analysis.compare_snapshots import (
    format_delta,
    load_snapshot,
)

__all__ = [
    # version_diff exports
    "added_transition_identities",
    "diff_snapshots",
    "diff_steps",
    "diff_transitions",
    "step_highlights",
    # compare_snapshots exports
    "format_delta",
    "load_snapshot",
]
