"""Tests for graph snapshot models and their invariants."""

import pytest
from pydantic import ValidationError

from specgraph.models.graph_snapshot import (
    GraphSnapshot,
    Position,
    Step,
    StepType,
    Transition,
)
from specgraph.models.structural_delta import StructuralDelta, StepSummary


class TestGraphSnapshotInvariants:
    """A snapshot rejects duplicate keys and dangling transitions."""

    def test_accepts_well_formed_graph(self):
        snapshot = GraphSnapshot(
            steps=[
                Step(key="1", type=StepType.start, title="Старт"),
                Step(key="2", type=StepType.end, title="Конец"),
            ],
            transitions=[Transition(from_key="1", to_key="2")],
        )
        assert len(snapshot.steps) == 2
        assert snapshot.steps_by_key()["2"].title == "Конец"

    def test_rejects_duplicate_step_keys(self):
        with pytest.raises(ValidationError) as exc_info:
            GraphSnapshot(steps=[Step(key="1", title="A"), Step(key="1", title="B")])
        assert "duplicate step key" in str(exc_info.value)

    def test_rejects_transition_to_unknown_step(self):
        with pytest.raises(ValidationError) as exc_info:
            GraphSnapshot(
                steps=[Step(key="1", title="A")],
                transitions=[Transition(from_key="1", to_key="7")],
            )
        assert "'7'" in str(exc_info.value)

    def test_empty_snapshot(self):
        snapshot = GraphSnapshot.empty()
        assert snapshot.steps == ()
        assert snapshot.transitions == ()

    def test_snapshot_is_immutable(self):
        snapshot = GraphSnapshot(steps=[Step(key="1", title="A")])
        with pytest.raises(ValidationError):
            snapshot.steps = ()
        with pytest.raises(ValidationError):
            snapshot.steps[0].title = "B"


class TestStepAndTransition:
    """Defaults and identity rules."""

    def test_step_defaults(self):
        step = Step(key="5")
        assert step.type == StepType.action
        assert step.title == ""
        assert step.description is None
        assert step.position == Position(x=0, y=0)
        assert step.metadata is None

    def test_transition_identity_normalizes_absent_label(self):
        assert Transition(from_key="1", to_key="2").identity == ("1", "2", "")
        assert Transition(from_key="1", to_key="2", label="").identity == ("1", "2", "")
        assert Transition(from_key="1", to_key="2", label="Да").identity == ("1", "2", "Да")

    def test_metadata_is_carried_through(self):
        step = Step(key="1", metadata={"color": "red", "nested": {"a": [1, 2]}})
        restored = Step.model_validate_json(step.model_dump_json())
        assert restored.metadata == {"color": "red", "nested": {"a": [1, 2]}}

    def test_unknown_step_type_rejected(self):
        with pytest.raises(ValidationError):
            Step(key="1", type="block")


class TestStructuralDelta:
    def test_default_delta_is_empty(self):
        assert StructuralDelta().is_empty

    def test_delta_with_added_step_is_not_empty(self):
        delta = StructuralDelta()
        delta.steps.added.append(StepSummary(step_key="1", title="A", type=StepType.action))
        assert not delta.is_empty
        # defaults are not shared between instances
        assert StructuralDelta().is_empty
