"""API routes for specs, their versions and version comparison."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from specgraph.analysis.version_diff import diff_snapshots
from specgraph.models.spec_version import (
    SpecCreate,
    SpecListItem,
    SpecVersion,
    SpecWithVersion,
)
from specgraph.models.structural_delta import VersionComparison, VersionRef
from specserver.spec_store import NotFoundError, SpecStore, get_store

router = APIRouter()


class ForkVersionRequest(BaseModel):
    """request body for forking a version."""

    created_by_id: int | None = None
    comment: str | None = None


def _version_ref(version: SpecVersion) -> VersionRef:
    return VersionRef(
        id=version.id,
        version_number=version.version_number,
        status=version.status,
    )


@router.post("/specs", status_code=201)
def create_spec(request: SpecCreate, store: SpecStore = Depends(get_store)) -> SpecWithVersion:
    """create a spec with its first draft version."""
    if not request.title.strip():
        raise HTTPException(status_code=400, detail="title is required")
    try:
        return store.create_spec(request)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/specs")
def list_specs(store: SpecStore = Depends(get_store)) -> list[SpecListItem]:
    """list specs with their current version."""
    return store.list_specs()


@router.get("/specs/{spec_id}/versions")
def list_versions(spec_id: int, store: SpecStore = Depends(get_store)) -> list[SpecVersion]:
    """list the versions of a spec, oldest first."""
    try:
        return store.list_versions(spec_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/specs/{spec_id}/versions/compare")
def compare_versions(
    spec_id: int,
    from_version_id: int = Query(alias="from"),
    to_version_id: int = Query(alias="to"),
    store: SpecStore = Depends(get_store),
) -> VersionComparison:
    """compare two versions of the same spec.

    The delta goes from ``from`` to ``to``: steps only in ``to`` are added.
    """
    try:
        from_version = store.get_version(from_version_id)
        to_version = store.get_version(to_version_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    if from_version.spec_id != spec_id or to_version.spec_id != spec_id:
        raise HTTPException(
            status_code=400,
            detail=f"Versions do not belong to spec {spec_id}",
        )

    delta = diff_snapshots(
        store.load_snapshot(from_version_id),
        store.load_snapshot(to_version_id),
    )
    return VersionComparison(
        spec_id=spec_id,
        from_version=_version_ref(from_version),
        to_version=_version_ref(to_version),
        steps=delta.steps,
        transitions=delta.transitions,
    )


@router.post("/specs/{spec_id}/versions/{version_number}/fork", status_code=201)
def fork_version(
    spec_id: int,
    version_number: int,
    request: ForkVersionRequest | None = None,
    store: SpecStore = Depends(get_store),
) -> SpecVersion:
    """create a new draft version from an existing one."""
    request = request or ForkVersionRequest()
    try:
        return store.fork_version(
            spec_id,
            version_number,
            created_by_id=request.created_by_id,
            comment=request.comment,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
