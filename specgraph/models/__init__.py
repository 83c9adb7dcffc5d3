"""Core data models for spec graphs."""

from specgraph.models.graph_snapshot import (
    GraphSnapshot,
    Position,
    Step,
    StepType,
    Transition,
)
from specgraph.models.spec_version import (
    Spec,
    SpecCreate,
    SpecListItem,
    SpecVersion,
    SpecWithVersion,
    User,
    UserCreate,
    VersionStatus,
)
from specgraph.models.structural_delta import (
    StepChange,
    StepDelta,
    StepFields,
    StepSummary,
    StructuralDelta,
    TransitionDelta,
    TransitionRef,
    VersionComparison,
    VersionRef,
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
    "SpecCreate",
    "SpecListItem",
    "SpecVersion",
    "SpecWithVersion",
    "User",
    "UserCreate",
    "VersionStatus",
    # Structural delta
    "StepChange",
    "StepDelta",
    "StepFields",
    "StepSummary",
    "StructuralDelta",
    "TransitionDelta",
    "TransitionRef",
    "VersionComparison",
    "VersionRef",
]
