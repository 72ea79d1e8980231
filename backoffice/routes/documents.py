"""
Document search endpoints (correspondence archive in Supabase).

Every endpoint runs against the signed-in user's Supabase project and
API keys, taken from their UserConfig.

- POST /api/documents/search           - text, or AI hybrid with fallbacks
- POST /api/documents/search/vector    - similarity only (needs OpenAI)
- POST /api/documents/search/advanced  - PostgreSQL full-text RPC
- POST /api/documents/search/ai        - DeepSeek-routed search + analysis
- GET  /api/documents/facets           - filter values
- GET  /api/documents/stats            - archive statistics
- GET  /api/documents/connections      - backend connection states
- GET  /api/documents/relations        - letter_no -> references map
- GET  /api/documents/{id}/similar     - nearest documents
- GET  /api/documents/{id}/network     - similar documents as a network
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from backoffice.db.client import SupabaseConfigError, get_supabase_client
from backoffice.routes.context import get_current_user_config, get_search_context
from backoffice.schemas.documents import (
    AdvancedSearchRequest,
    AISearchRequest,
    AISearchResponse,
    ConnectionStatusResponse,
    DocumentListResponse,
    FacetsResponse,
    NetworkResponse,
    RelationsResponse,
    SearchRequest,
    SearchResponse,
    SearchStats,
    VectorSearchRequest,
)
from backoffice.schemas.user_config import UserConfig
from backoffice.services import document_service, search_service
from backoffice.services.errors import (
    DocumentSearchError,
    EmbeddingError,
    ServiceNotConfiguredError,
)
from backoffice.services.search_service import SearchContext
from backoffice.utils.constants import SEARCH_DEFAULTS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _search_failed(e: Exception) -> HTTPException:
    """Map service exceptions to HTTP errors."""
    if isinstance(e, ValueError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(e)}
        )
    if isinstance(e, ServiceNotConfiguredError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "service_not_configured", "details": str(e)}
        )
    if isinstance(e, EmbeddingError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "embedding_error", "details": "Could not generate the query embedding"}
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "search_error", "details": "Document search failed"}
    )


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search documents",
    description="""
    With AI disabled this is a keyword (ILIKE) search. With AI enabled the
    query is enhanced and embedded, then searched with hybrid scoring;
    failures fall back to vector search and then to keyword search.

    `enable_ai` defaults to the user's search settings.
    """
)
async def search_documents(
    request: SearchRequest,
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> SearchResponse:
    logger.info(f"Document search: ai={request.enable_ai}, query_length={len(request.query)}")

    try:
        result = await search_service.search(ctx, request.query, request.filters, request.enable_ai)
    except (ValueError, DocumentSearchError) as e:
        raise _search_failed(e)

    return SearchResponse(**result)


@router.post(
    "/search/vector",
    response_model=DocumentListResponse,
    summary="Similarity search",
)
async def vector_search(
    request: VectorSearchRequest,
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> DocumentListResponse:
    try:
        results = await search_service.vector_only_search(
            ctx,
            request.query,
            filters=request.filters,
            threshold=request.threshold,
            max_results=request.max_results,
        )
    except (ServiceNotConfiguredError, EmbeddingError) as e:
        raise _search_failed(e)

    return DocumentListResponse(results=results, total=len(results))


@router.post(
    "/search/advanced",
    response_model=DocumentListResponse,
    summary="Full-text search",
)
async def advanced_search(
    request: AdvancedSearchRequest,
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> DocumentListResponse:
    try:
        results = await document_service.advanced_search(
            ctx.supabase_client,
            request.query,
            search_type=request.search_type,
            language=request.language,
            similarity_threshold=request.similarity_threshold,
        )
    except DocumentSearchError as e:
        raise _search_failed(e)

    return DocumentListResponse(results=results, total=len(results))


@router.post(
    "/search/ai",
    response_model=AISearchResponse,
    summary="AI-routed search",
    description="""
    DeepSeek decides how to search and may rewrite the query; the search
    then runs and DeepSeek reviews the results. Without a DeepSeek key
    keyword heuristics stand in for the model.
    """
)
async def ai_search(
    request: AISearchRequest,
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> AISearchResponse:
    try:
        result = await search_service.ai_search(ctx, request.query, request.filters)
    except (ValueError, DocumentSearchError) as e:
        raise _search_failed(e)

    return AISearchResponse(
        decision=result["decision"],
        search=SearchResponse(**result["search"]),
        analysis=result["analysis"],
    )


@router.get("/facets", response_model=FacetsResponse, summary="Filter values")
async def get_facets(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> FacetsResponse:
    return FacetsResponse(**await search_service.get_facets(ctx))


@router.get("/stats", response_model=SearchStats, summary="Archive statistics")
async def get_stats(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> SearchStats:
    return SearchStats(**await document_service.get_search_stats(ctx.supabase_client))


@router.get(
    "/connections",
    response_model=ConnectionStatusResponse,
    summary="Backend connection states",
    description="""
    Check Supabase, OpenAI and DeepSeek with the user's credentials.
    A missing Supabase configuration is reported as `disconnected`
    rather than an error.
    """
)
async def get_connections(
    config: Annotated[UserConfig, Depends(get_current_user_config)],
) -> ConnectionStatusResponse:
    try:
        supabase_client = get_supabase_client(config.supabase.url, config.supabase.anon_key)
    except SupabaseConfigError:
        supabase_client = None

    states = await search_service.test_connections(SearchContext(
        supabase_client=supabase_client,
        openai_api_key=config.apis.openai,
        deepseek_api_key=config.apis.deepseek,
        search_settings=config.search,
    ))

    return ConnectionStatusResponse(
        **states,
        any_connected=any(state == "connected" for state in states.values()),
    )


@router.get(
    "/relations",
    response_model=RelationsResponse,
    summary="Reference map",
    description="Every letter number in the archive with the letters it references.",
)
async def get_relations(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
) -> RelationsResponse:
    try:
        relations = await search_service.get_relations_map(ctx)
    except DocumentSearchError as e:
        raise _search_failed(e)
    return RelationsResponse(relations=relations, total=len(relations))


@router.get(
    "/{document_id}/similar",
    response_model=DocumentListResponse,
    summary="Similar documents",
)
async def get_similar_documents(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
    document_id: int = Path(..., description="Document id"),
    limit: int = Query(SEARCH_DEFAULTS["SIMILAR_DOCUMENTS_LIMIT"], ge=1, le=100),
) -> DocumentListResponse:
    results = await document_service.find_similar_documents(ctx.supabase_client, document_id, limit)
    return DocumentListResponse(results=results, total=len(results))


@router.get(
    "/{document_id}/network",
    response_model=NetworkResponse,
    summary="Similar documents as a network",
)
async def get_document_network(
    ctx: Annotated[SearchContext, Depends(get_search_context)],
    document_id: int = Path(..., description="Document id"),
) -> NetworkResponse:
    return NetworkResponse(**await search_service.get_document_network(ctx, document_id))
