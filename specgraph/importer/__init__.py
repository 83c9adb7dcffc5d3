"""Spreadsheet import of scenario tables."""

from specgraph.importer.patterns import DEFAULT_PATTERNS, ScenarioPatterns
from specgraph.importer.scenario_table import (
    ImportFailure,
    ScenarioColumns,
    ScenarioImportError,
    ScenarioRow,
    extract_rows,
    import_scenario,
    infer_step_type,
    locate_header_row,
    order_rows,
    resolve_columns,
    synthesize_transitions,
)
from specgraph.importer.transitions import TransitionCandidate, extract_transitions
from specgraph.importer.workbook import read_scenario_table, select_sheet

__all__ = [
    # patterns
    "DEFAULT_PATTERNS",
    "ScenarioPatterns",
    # scenario_table
    "ImportFailure",
    "ScenarioColumns",
    "ScenarioImportError",
    "ScenarioRow",
    "extract_rows",
    "import_scenario",
    "infer_step_type",
    "locate_header_row",
    "order_rows",
    "resolve_columns",
    "synthesize_transitions",
    # transitions
    "TransitionCandidate",
    "extract_transitions",
    # workbook
    "read_scenario_table",
    "select_sheet",
]
