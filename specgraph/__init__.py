"""Spec graphs: versioned scenario flowcharts, their diff and spreadsheet import."""

from specgraph.models.graph_snapshot import (
    GraphSnapshot,
    Position,
    Step,
    StepType,
    Transition,
)
from specgraph.models.spec_version import (
    Spec,
    SpecVersion,
    User,
    VersionStatus,
)
from specgraph.models.structural_delta import StructuralDelta
from specgraph.analysis.version_diff import diff_snapshots
from specgraph.importer.scenario_table import (
    ImportFailure,
    ScenarioImportError,
    import_scenario,
)

__all__ = [
    # Graph snapshot
    "GraphSnapshot",
    "Position",
    "Step",
    "StepType",
    "Transition",
    # Specs and versions
    "Spec",
    "SpecVersion",
    "User",
    "VersionStatus",
    # Diff
    "StructuralDelta",
    "diff_snapshots",
    # Import
    "ImportFailure",
    "ScenarioImportError",
    "import_scenario",
]
