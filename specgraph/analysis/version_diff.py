"""Structural diff between two graph snapshots.

Steps are matched by their author-assigned key; transitions by the tuple
``(from_key, to_key, label)``. The engine is pure: it never validates or
mutates its inputs.

Note: transitions have no "changed" category. Relabeling a transition is
reported as one removal plus one addition.
"""

from specgraph.models.graph_snapshot import GraphSnapshot, Step
from specgraph.models.structural_delta import (
    StepChange,
    StepDelta,
    StepFields,
    StepSummary,
    StructuralDelta,
    TransitionDelta,
    TransitionRef,
)
from specgraph.utils.step_keys import natural_sort_key

ADDED = "added"
CHANGED = "changed"


def _summary(step: Step) -> StepSummary:
    return StepSummary(
        step_key=step.key,
        title=step.title,
        description=step.description,
        type=step.type,
    )


def _fields(step: Step) -> StepFields:
    return StepFields(title=step.title, description=step.description, type=step.type)


def _compared_fields(step: Step) -> tuple:
    """Fields that make two steps with the same key differ.

    Position and metadata are presentation data and never compared. An
    absent description equals the empty one.
    """
    return (step.title, step.description or "", step.type)


def _transition_index(snapshot: GraphSnapshot) -> dict[tuple[str, str, str], TransitionRef]:
    """Index transitions by identity; duplicate identities collapse."""
    index: dict[tuple[str, str, str], TransitionRef] = {}
    for transition in snapshot.transitions:
        from_key, to_key, label = transition.identity
        index[transition.identity] = TransitionRef(from_key=from_key, to_key=to_key, label=label)
    return index


def _transition_sort_key(identity: tuple[str, str, str]) -> tuple:
    from_key, to_key, label = identity
    return (natural_sort_key(from_key), natural_sort_key(to_key), label)


def diff_steps(from_snapshot: GraphSnapshot, to_snapshot: GraphSnapshot) -> StepDelta:
    """Compare the steps of two snapshots by key."""
    from_steps = from_snapshot.steps_by_key()
    to_steps = to_snapshot.steps_by_key()
    delta = StepDelta()

    for key in sorted(to_steps, key=natural_sort_key):
        to_step = to_steps[key]
        from_step = from_steps.get(key)
        if from_step is None:
            delta.added.append(_summary(to_step))
        elif _compared_fields(from_step) != _compared_fields(to_step):
            delta.changed.append(
                StepChange(step_key=key, before=_fields(from_step), after=_fields(to_step))
            )

    for key in sorted(from_steps, key=natural_sort_key):
        if key not in to_steps:
            delta.removed.append(_summary(from_steps[key]))

    return delta


def diff_transitions(from_snapshot: GraphSnapshot, to_snapshot: GraphSnapshot) -> TransitionDelta:
    """Compare the transitions of two snapshots by identity."""
    from_index = _transition_index(from_snapshot)
    to_index = _transition_index(to_snapshot)

    added = [
        to_index[identity]
        for identity in sorted(to_index.keys() - from_index.keys(), key=_transition_sort_key)
    ]
    removed = [
        from_index[identity]
        for identity in sorted(from_index.keys() - to_index.keys(), key=_transition_sort_key)
    ]
    return TransitionDelta(added=added, removed=removed)


def diff_snapshots(from_snapshot: GraphSnapshot, to_snapshot: GraphSnapshot) -> StructuralDelta:
    """Compute the structural delta going from ``from_snapshot`` to ``to_snapshot``.

    Total over any two well-formed snapshots, including empty ones. Each
    category is ordered by key so identical inputs give identical output.
    """
    return StructuralDelta(
        steps=diff_steps(from_snapshot, to_snapshot),
        transitions=diff_transitions(from_snapshot, to_snapshot),
    )


def step_highlights(delta: StructuralDelta) -> dict[str, str]:
    """Map step keys of the newer snapshot to their highlight status.

    Added steps map to ``"added"``, changed steps to ``"changed"``; steps
    without an entry are unchanged. Removed steps are absent from the newer
    graph and therefore not highlighted.
    """
    highlights = {change.step_key: CHANGED for change in delta.steps.changed}
    highlights.update({step.step_key: ADDED for step in delta.steps.added})
    return highlights


def added_transition_identities(delta: StructuralDelta) -> set[tuple[str, str, str]]:
    """Identities of transitions to stroke as added in the newer graph."""
    return {(ref.from_key, ref.to_key, ref.label) for ref in delta.transitions.added}
