#!/usr/bin/env python3
"""CLI script to compare two graph snapshot files.

Usage:
    specgraph-diff <from_snapshot.json> <to_snapshot.json>

    # or with JSON output
    specgraph-diff <from_snapshot.json> <to_snapshot.json> --json
"""

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from specgraph.analysis.version_diff import diff_snapshots
from specgraph.models.graph_snapshot import GraphSnapshot
from specgraph.models.structural_delta import StructuralDelta


def load_snapshot(snapshot_file: Path) -> GraphSnapshot:
    """Load a graph snapshot from a JSON file.

    Args:
        snapshot_file: path to a file holding ``{"steps": [...], "transitions": [...]}``

    Returns:
        the validated GraphSnapshot
    """
    return GraphSnapshot.model_validate_json(snapshot_file.read_text(encoding="utf-8"))


def format_delta(delta: StructuralDelta) -> str:
    """Format a structural delta for human-readable output."""
    lines = []
    lines.append("=" * 60)
    lines.append("STRUCTURAL DELTA")
    lines.append("=" * 60)
    lines.append("")

    if delta.is_empty:
        lines.append("✓ No differences")
        lines.append("")
        return "\n".join(lines)

    if delta.steps.added:
        lines.append("-" * 40)
        lines.append("STEPS ADDED")
        lines.append("-" * 40)
        for step in delta.steps.added:
            lines.append(f"  + [{step.step_key}] {step.title} ({step.type.value})")
        lines.append("")

    if delta.steps.removed:
        lines.append("-" * 40)
        lines.append("STEPS REMOVED")
        lines.append("-" * 40)
        for step in delta.steps.removed:
            lines.append(f"  - [{step.step_key}] {step.title} ({step.type.value})")
        lines.append("")

    if delta.steps.changed:
        lines.append("-" * 40)
        lines.append("STEPS CHANGED")
        lines.append("-" * 40)
        for change in delta.steps.changed:
            lines.append(f"  ~ [{change.step_key}]")
            if change.before.title != change.after.title:
                lines.append(f"    title: {change.before.title!r} → {change.after.title!r}")
            if (change.before.description or "") != (change.after.description or ""):
                lines.append("    description changed")
            if change.before.type != change.after.type:
                lines.append(f"    type: {change.before.type.value} → {change.after.type.value}")
        lines.append("")

    if delta.transitions.added or delta.transitions.removed:
        lines.append("-" * 40)
        lines.append("TRANSITIONS")
        lines.append("-" * 40)
        for ref in delta.transitions.added:
            label = f" [{ref.label}]" if ref.label else ""
            lines.append(f"  + {ref.from_key} → {ref.to_key}{label}")
        for ref in delta.transitions.removed:
            label = f" [{ref.label}]" if ref.label else ""
            lines.append(f"  - {ref.from_key} → {ref.to_key}{label}")
        lines.append("")

    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compare two graph snapshot files and report the structural delta."
    )
    parser.add_argument("from_file", type=Path, help="path to the older snapshot JSON")
    parser.add_argument("to_file", type=Path, help="path to the newer snapshot JSON")
    parser.add_argument(
        "--json",
        action="store_true",
        help="output the delta as JSON instead of human-readable format",
    )

    args = parser.parse_args(argv)

    for path in (args.from_file, args.to_file):
        if not path.exists():
            print(f"Error: snapshot file not found: {path}", file=sys.stderr)
            return 1

    try:
        delta = diff_snapshots(load_snapshot(args.from_file), load_snapshot(args.to_file))
    except ValidationError as exc:
        print(f"Error: invalid snapshot: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(delta.model_dump_json(indent=2))
    else:
        print(format_delta(delta))
    return 0


if __name__ == "__main__":
    sys.exit(main())
