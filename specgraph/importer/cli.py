#!/usr/bin/env python3
"""CLI script to import a scenario workbook into a graph snapshot.

Usage:
    specgraph-import <scenario.xlsx>

    # or with the snapshot as JSON (loadable by specgraph-diff)
    specgraph-import <scenario.xlsx> --json
"""

import argparse
import logging
import sys
from pathlib import Path

from specgraph.importer.scenario_table import ScenarioImportError, import_scenario
from specgraph.importer.workbook import read_scenario_table
from specgraph.models.graph_snapshot import GraphSnapshot


def format_snapshot(snapshot: GraphSnapshot) -> str:
    """Format an imported snapshot for human-readable output."""
    lines = []
    lines.append("=" * 60)
    lines.append("SCENARIO GRAPH")
    lines.append("=" * 60)
    lines.append("")

    lines.append("-" * 40)
    lines.append(f"STEPS ({len(snapshot.steps)})")
    lines.append("-" * 40)
    for step in snapshot.steps:
        lines.append(f"  [{step.key}] {step.title} ({step.type.value})")
    lines.append("")

    lines.append("-" * 40)
    lines.append(f"TRANSITIONS ({len(snapshot.transitions)})")
    lines.append("-" * 40)
    for transition in snapshot.transitions:
        label = f" [{transition.label}]" if transition.label else ""
        lines.append(f"  {transition.from_key} → {transition.to_key}{label}")
    if not snapshot.transitions:
        lines.append("  (no transitions)")
    lines.append("")

    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Import a scenario table (.xlsx or .csv) and print its step graph."
    )
    parser.add_argument("workbook", type=Path, help="path to the scenario workbook")
    parser.add_argument(
        "--json",
        action="store_true",
        help="output the graph snapshot as JSON instead of human-readable format",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log import details")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.workbook.exists():
        print(f"Error: workbook not found: {args.workbook}", file=sys.stderr)
        return 1

    try:
        snapshot = import_scenario(read_scenario_table(args.workbook))
    except ScenarioImportError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    if args.json:
        print(snapshot.model_dump_json(indent=2))
    else:
        print(format_snapshot(snapshot))
    return 0


if __name__ == "__main__":
    sys.exit(main())
