"""Graph snapshot models: the step/transition graph of one spec version.

A snapshot is an immutable value. Steps are identified by their
author-assigned ``key`` (not by a storage row id), so two snapshots of
different versions can be compared key by key.
"""

from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, model_validator


class StepType(str, Enum):
    """Kinds of blocks on the scenario flowchart."""

    start = "start"
    action = "action"
    condition = "condition"
    end = "end"


class Position(BaseModel):
    """Canvas coordinates of a step. Presentation only."""

    model_config = {"frozen": True}

    x: float = 0
    y: float = 0


class Step(BaseModel):
    """A node of the scenario graph."""

    model_config = {"frozen": True}

    key: str  # stable author-assigned identifier, unique within a snapshot
    type: StepType = StepType.action
    title: str = ""
    description: str | None = None
    position: Position = Position()
    metadata: dict[str, Any] | None = None  # opaque, carried through unchanged


class Transition(BaseModel):
    """A directed, optionally labeled edge between two steps."""

    model_config = {"frozen": True}

    from_key: str
    to_key: str
    label: str | None = None
    condition: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def identity(self) -> tuple[str, str, str]:
        """Comparison identity; an absent label equals the empty label."""
        return (self.from_key, self.to_key, self.label or "")


class GraphSnapshot(BaseModel):
    """The full step/transition graph belonging to one version."""

    model_config = {"frozen": True}

    steps: tuple[Step, ...] = ()
    transitions: tuple[Transition, ...] = ()

    @model_validator(mode="after")
    def validate_graph_invariants(self) -> Self:
        """Step keys are unique and every transition endpoint exists."""
        keys: set[str] = set()
        for step in self.steps:
            if step.key in keys:
                raise ValueError(f"duplicate step key: {step.key!r}")
            keys.add(step.key)

        for transition in self.transitions:
            for endpoint in (transition.from_key, transition.to_key):
                if endpoint not in keys:
                    raise ValueError(
                        f"transition {transition.from_key!r} -> {transition.to_key!r} "
                        f"references unknown step {endpoint!r}"
                    )
        return self

    @classmethod
    def empty(cls) -> "GraphSnapshot":
        return cls()

    def steps_by_key(self) -> dict[str, Step]:
        return {step.key: step for step in self.steps}
