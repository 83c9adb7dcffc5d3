"""API routes for importing scenario workbooks."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from specgraph.importer.scenario_table import ScenarioImportError, import_scenario
from specgraph.importer.workbook import read_scenario_table
from specserver.graph_payload import ImportedGraph, snapshot_to_flow
from specserver.spec_store import NotFoundError, SpecStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/import/scenario")
async def import_scenario_workbook(
    file: UploadFile = File(...),
    version_id: int | None = Query(default=None),
    store: SpecStore = Depends(get_store),
) -> ImportedGraph:
    """build a graph from an uploaded scenario table (.xlsx or .csv).

    Without ``version_id`` the graph is only returned, for review on the
    canvas. With it, the graph also replaces that version's graph.
    """
    content = await file.read()
    try:
        rows = read_scenario_table(content, filename=file.filename)
        snapshot = import_scenario(rows)
    except ScenarioImportError as exc:
        logger.info("import of %s rejected: %s", file.filename, exc.reason.value)
        raise HTTPException(
            status_code=422,
            detail={"reason": exc.reason.value, "message": exc.message},
        )

    flow = snapshot_to_flow(snapshot)
    if version_id is None:
        return ImportedGraph(nodes=flow.nodes, edges=flow.edges)

    try:
        version = store.save_snapshot(version_id, snapshot)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return ImportedGraph(nodes=flow.nodes, edges=flow.edges, version=version)
