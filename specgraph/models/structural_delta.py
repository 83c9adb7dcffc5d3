"""Structural delta between two graph snapshots.

Produced by the version-diff engine and consumed by the rendering layer to
highlight added and changed steps and added transitions.
"""

from pydantic import BaseModel, Field

from specgraph.models.graph_snapshot import StepType
from specgraph.models.spec_version import VersionStatus


class StepSummary(BaseModel):
    """an added or removed step."""

    step_key: str
    title: str
    description: str | None = None
    type: StepType


class StepFields(BaseModel):
    """the compared fields of a step."""

    title: str
    description: str | None = None
    type: StepType


class StepChange(BaseModel):
    """a step present in both snapshots whose compared fields differ."""

    step_key: str
    before: StepFields
    after: StepFields


class TransitionRef(BaseModel):
    """an added or removed transition, by identity."""

    from_key: str
    to_key: str
    label: str = ""


class StepDelta(BaseModel):
    added: list[StepSummary] = []
    removed: list[StepSummary] = []
    changed: list[StepChange] = []


class TransitionDelta(BaseModel):
    # no "changed" category: a relabeled transition is a removal plus an addition
    added: list[TransitionRef] = []
    removed: list[TransitionRef] = []


class StructuralDelta(BaseModel):
    """added/removed/changed report between two snapshots."""

    steps: StepDelta = Field(default_factory=StepDelta)
    transitions: TransitionDelta = Field(default_factory=TransitionDelta)

    @property
    def is_empty(self) -> bool:
        return not (
            self.steps.added
            or self.steps.removed
            or self.steps.changed
            or self.transitions.added
            or self.transitions.removed
        )


class VersionRef(BaseModel):
    """identifies one side of a comparison."""

    id: int
    version_number: int
    status: VersionStatus


class VersionComparison(StructuralDelta):
    """delta between two versions of the same spec, with version info."""

    spec_id: int
    from_version: VersionRef
    to_version: VersionRef
