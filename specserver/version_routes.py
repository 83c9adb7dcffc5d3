"""API routes for a single version: info, graph and status."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from specgraph.analysis.version_diff import (
    added_transition_identities,
    diff_snapshots,
    step_highlights,
)
from specgraph.models.spec_version import Spec, SpecVersion, VersionStatus
from specserver.graph_payload import (
    FlowGraph,
    SaveGraphRequest,
    SaveGraphResponse,
    flow_to_snapshot,
    snapshot_to_flow,
)
from specserver.spec_store import NotFoundError, SpecStore, get_store

router = APIRouter()


class VersionWithSpec(SpecVersion):
    """a version together with its spec card."""

    spec: Spec


class StatusRequest(BaseModel):
    """request body for changing a version's status."""

    status: VersionStatus


@router.get("/versions/{version_id}")
def get_version(version_id: int, store: SpecStore = Depends(get_store)) -> VersionWithSpec:
    """get a version and its spec."""
    try:
        version = store.get_version(version_id)
        spec = store.get_spec(version.spec_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return VersionWithSpec(**version.model_dump(), spec=spec)


@router.get("/versions/{version_id}/graph")
def get_graph(
    version_id: int,
    compare_to: int | None = Query(default=None),
    store: SpecStore = Depends(get_store),
) -> FlowGraph:
    """get the canvas graph of a version.

    With ``compare_to`` (an older version id) the nodes and edges that are
    new or changed relative to it carry a ``diffStatus``.
    """
    try:
        snapshot, edge_ids = store.load_snapshot_with_ids(version_id)
        baseline = store.load_snapshot(compare_to) if compare_to is not None else None
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    if baseline is None:
        return snapshot_to_flow(snapshot, edge_ids)

    delta = diff_snapshots(baseline, snapshot)
    return snapshot_to_flow(
        snapshot,
        edge_ids,
        highlights=step_highlights(delta),
        added_edges=added_transition_identities(delta),
    )


@router.put("/versions/{version_id}/graph")
def save_graph(
    version_id: int,
    request: SaveGraphRequest,
    store: SpecStore = Depends(get_store),
) -> SaveGraphResponse:
    """replace the graph of a version.

    Edges pointing at missing nodes are dropped, not rejected; the response
    reports how many were dropped.
    """
    snapshot, dropped = flow_to_snapshot(request)
    try:
        version = store.save_snapshot(
            version_id,
            snapshot,
            plain_text=request.plain_text,
            comment=request.comment,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return SaveGraphResponse(version=version, dropped_edges=dropped)


@router.post("/versions/{version_id}/status")
def set_status(
    version_id: int,
    request: StatusRequest,
    store: SpecStore = Depends(get_store),
) -> SpecVersion:
    """change the status of a version; ``published`` makes it current."""
    try:
        return store.set_status(version_id, request.status)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
