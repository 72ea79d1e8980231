"""
Correspondence graph endpoint.

GET /api/graph/{doc_ref} builds the reference graph around a letter and
optionally narrows it to the letters before or after it.
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from backoffice.routes.context import get_search_context
from backoffice.schemas.graph import GraphResponse
from backoffice.services.correspondence_filter import FILTERS
from backoffice.services.errors import DocumentSearchError, GraphBuildError
from backoffice.services.graph_service import DEFAULT_MAX_DEPTH, build_document_graph
from backoffice.services.search_service import SearchContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/graph", tags=["graph"])


@router.get(
    "/{doc_ref}",
    response_model=GraphResponse,
    summary="Reference graph for a letter",
    description="""
    `doc_ref` is an internal number, a letter number or a numeric document id.

    Modes:
    - raw: the graph as built
    - all: every connected letter, sorted by date
    - previous: letters dated on or before the selected one
    - next: letters dated on or after the selected one
    """
)
async def get_document_graph(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
    doc_ref: str = Path(..., min_length=1, description="Root letter reference"),
    max_depth: int = Query(DEFAULT_MAX_DEPTH, ge=0, le=10, description="Maximum reference hops"),
    mode: Literal["raw", "all", "previous", "next"] = Query("raw"),
) -> GraphResponse:
    try:
        graph = await build_document_graph(ctx.supabase_client, doc_ref, max_depth=max_depth)
    except GraphBuildError as e:
        logger.info(f"Graph not built: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "not_found",
                "details": f"No document found for reference '{doc_ref}'"
            }
        )
    except DocumentSearchError as e:
        logger.error(f"Graph lookup failed for {doc_ref!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "graph_error", "details": "Document archive lookup failed"}
        )

    root = graph.nodes[0].id

    if mode != "raw":
        graph = FILTERS[mode](graph)

    return GraphResponse(nodes=graph.nodes, edges=graph.edges, mode=mode, root=root)
