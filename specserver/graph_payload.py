"""Mapping between graph snapshots and the canvas node/edge payload.

The drawing canvas (React Flow) exchanges ``{nodes, edges}`` lists: a node
``id`` is the step key, edge ``source``/``target`` are step keys. Saving is
lenient: an edge whose endpoint is not among the nodes is logged and
dropped instead of failing the save.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

from specgraph.models.graph_snapshot import GraphSnapshot, Position, Step, StepType, Transition
from specgraph.models.spec_version import SpecVersion

logger = logging.getLogger(__name__)


class FlowPosition(BaseModel):
    x: float = 0
    y: float = 0


class FlowNodeData(BaseModel):
    """node payload; unknown canvas keys are accepted and ignored."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    title: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None
    # the canvas renders every step as a generic "block" node and keeps the step type here
    real_type: StepType | None = Field(default=None, alias="realType")
    diff_status: str | None = Field(default=None, alias="diffStatus")  # "added" | "changed"


class FlowNode(BaseModel):
    """a canvas node; ``id`` is the step key."""

    model_config = {"extra": "ignore"}

    id: str
    type: str | None = None
    position: FlowPosition = Field(default_factory=FlowPosition)
    data: FlowNodeData = Field(default_factory=FlowNodeData)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class FlowEdgeData(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    condition: str | None = None
    metadata: dict[str, Any] | None = None
    diff_status: str | None = Field(default=None, alias="diffStatus")  # "added"


class FlowEdge(BaseModel):
    """a canvas edge between two step keys."""

    model_config = {"extra": "ignore"}

    id: str | None = None
    source: str
    target: str
    label: str | None = None
    data: FlowEdgeData = Field(default_factory=FlowEdgeData)

    @field_validator("id", "source", "target", mode="before")
    @classmethod
    def coerce_keys(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class FlowGraph(BaseModel):
    """the canvas representation of a snapshot."""

    nodes: list[FlowNode] = []
    edges: list[FlowEdge] = []


class SaveGraphRequest(FlowGraph):
    """request body for replacing a version's graph."""

    plain_text: str | None = None
    comment: str | None = None


class SaveGraphResponse(BaseModel):
    success: bool = True
    version: SpecVersion
    dropped_edges: int = 0


class ImportedGraph(FlowGraph):
    """an imported scenario, and the version it was saved into, if any."""

    version: SpecVersion | None = None


def snapshot_to_flow(
    snapshot: GraphSnapshot,
    edge_ids: list[Any] | None = None,
    highlights: dict[str, str] | None = None,
    added_edges: set[tuple[str, str, str]] | None = None,
) -> FlowGraph:
    """Render a snapshot as canvas nodes and edges.

    Args:
        snapshot: the graph to render
        edge_ids: stored transition ids, parallel to ``snapshot.transitions``
        highlights: optional step key -> diff status ("added"/"changed")
        added_edges: optional transition identities to mark as added
    """
    highlights = highlights or {}
    added_edges = added_edges or set()
    nodes = [
        FlowNode(
            id=step.key,
            type=step.type.value,
            position=FlowPosition(x=step.position.x, y=step.position.y),
            data=FlowNodeData(
                title=step.title,
                description=step.description,
                metadata=step.metadata,
                real_type=step.type,
                diff_status=highlights.get(step.key),
            ),
        )
        for step in snapshot.steps
    ]

    edges = []
    for index, transition in enumerate(snapshot.transitions):
        edge_id = (
            str(edge_ids[index])
            if edge_ids is not None
            else f"{transition.from_key}->{transition.to_key}-{index}"
        )
        edges.append(
            FlowEdge(
                id=edge_id,
                source=transition.from_key,
                target=transition.to_key,
                label=transition.label or "",
                data=FlowEdgeData(
                    condition=transition.condition,
                    metadata=transition.metadata,
                    diff_status="added" if transition.identity in added_edges else None,
                ),
            )
        )
    return FlowGraph(nodes=nodes, edges=edges)


def _step_type(node: FlowNode) -> StepType:
    try:
        return StepType(node.type)
    except ValueError:
        return node.data.real_type or StepType.action


def flow_to_snapshot(graph: FlowGraph) -> tuple[GraphSnapshot, int]:
    """Build a snapshot from canvas nodes and edges.

    Nodes without a type become actions. A repeated node id keeps its first
    node. Edges referencing unknown nodes are dropped.

    Returns:
        the snapshot and the number of dropped edges
    """
    steps: dict[str, Step] = {}
    for node in graph.nodes:
        if node.id in steps:
            logger.warning("dropping node with duplicate id %r", node.id)
            continue
        steps[node.id] = Step(
            key=node.id,
            type=_step_type(node),
            title=node.data.title or "",
            description=node.data.description or None,
            position=Position(x=node.position.x, y=node.position.y),
            metadata=node.data.metadata,
        )

    transitions = []
    dropped = 0
    for edge in graph.edges:
        if edge.source not in steps or edge.target not in steps:
            logger.warning(
                "dropping edge %s: %r -> %r references a missing node",
                edge.id,
                edge.source,
                edge.target,
            )
            dropped += 1
            continue
        transitions.append(
            Transition(
                from_key=edge.source,
                to_key=edge.target,
                label=edge.label or None,
                condition=edge.data.condition or None,
                metadata=edge.data.metadata,
            )
        )

    return GraphSnapshot(steps=list(steps.values()), transitions=transitions), dropped
