"""
Document search orchestration.

Chooses the search path and its fallbacks:

    AI off:  text search
    AI on:   [query enhancement] -> embedding -> hybrid search
             hybrid fails  -> vector search
             vector fails  -> text search
             text fails    -> error propagates

Every call runs against a SearchContext built from the signed-in user's
UserConfig: their Supabase project, their API keys and their tuning.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client

from backoffice.schemas.documents import QueryEnhancement, SearchFilters
from backoffice.schemas.user_config import SearchSettings
from backoffice.services import deepseek_service, document_service, embedding_service, graph_service
from backoffice.services.errors import (
    DocumentSearchError,
    EmbeddingError,
    ServiceNotConfiguredError,
)
from backoffice.utils.constants import SEARCH_DEFAULTS

logger = logging.getLogger(__name__)

# Columns sent to DeepSeek when it reviews results (no bodies or embeddings)
_ANALYSIS_FIELDS = ("id", "letter_no", "letter_date", "type_of_corr", "short_desc", "similarity")


@dataclass
class SearchContext:
    """Per-request search dependencies."""
    supabase_client: Optional[Client]
    openai_api_key: str = ""
    deepseek_api_key: str = ""
    search_settings: SearchSettings = field(default_factory=SearchSettings)


async def _embedding_for(ctx: SearchContext, query: str) -> Tuple[Optional[QueryEnhancement], List[float]]:
    enhancement: Optional[QueryEnhancement] = None
    text = query
    if ctx.openai_api_key:
        enhancement = await embedding_service.enhance_query(query, api_key=ctx.openai_api_key)
        text = enhancement.enhanced_query or query
    embedding = await embedding_service.generate_embedding(text, api_key=ctx.openai_api_key)
    return enhancement, embedding


async def _text_search(ctx: SearchContext, query: str, filters: SearchFilters) -> List[Dict[str, Any]]:
    rows, _ = await document_service.search_documents(ctx.supabase_client, query, filters)
    return [
        {**row, "similarity": SEARCH_DEFAULTS["TEXT_RESULT_SIMILARITY"], "search_type": "text"}
        for row in rows
    ]


async def search(
    ctx: SearchContext,
    query: str,
    filters: Optional[SearchFilters] = None,
    enable_ai: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Run a document search.

    Args:
        ctx: User-specific clients and tuning
        query: Free-text query (must not be blank)
        filters: Structured filters
        enable_ai: Overrides ctx.search_settings.enable_ai when given

    Returns:
        {"results", "search_method", "query_enhancement", "total"}

    Raises:
        ValueError: If the query is blank.
        DocumentSearchError: If even the text search fails.
    """
    if not query or not query.strip():
        raise ValueError("Search query must not be empty")

    filters = filters or SearchFilters()
    tuning = ctx.search_settings
    use_ai = tuning.enable_ai if enable_ai is None else enable_ai

    enhancement: Optional[QueryEnhancement] = None

    if not use_ai:
        results = await _text_search(ctx, query, filters)
        return {
            "results": results,
            "search_method": "text",
            "query_enhancement": None,
            "total": len(results),
        }

    try:
        enhancement, embedding = await _embedding_for(ctx, query)
        results = await document_service.hybrid_search(
            ctx.supabase_client,
            query,
            embedding,
            vector_threshold=tuning.vector_threshold,
            vector_weight=tuning.vector_weight,
            text_weight=tuning.text_weight,
            max_results=SEARCH_DEFAULTS["MAX_RESULTS"],
            filters=filters,
            text_score_method=tuning.text_score_method,
        )
        method = "hybrid"
    except (ServiceNotConfiguredError, EmbeddingError, DocumentSearchError) as hybrid_error:
        logger.warning(f"Hybrid search failed, trying vector search: {hybrid_error}")
        try:
            enhancement, embedding = await _embedding_for(ctx, query)
            results = await document_service.vector_search(
                ctx.supabase_client,
                embedding,
                max_results=SEARCH_DEFAULTS["MAX_RESULTS"],
                filters=filters,
            )
            method = "vector"
        except (ServiceNotConfiguredError, EmbeddingError, DocumentSearchError) as vector_error:
            logger.warning(f"Vector search failed, falling back to text search: {vector_error}")
            results = await _text_search(ctx, query, filters)
            method = "text"

    logger.info(f"Search finished: method={method}, {len(results)} results")
    return {
        "results": results,
        "search_method": method,
        "query_enhancement": enhancement,
        "total": len(results),
    }


async def vector_only_search(
    ctx: SearchContext,
    query: str,
    filters: Optional[SearchFilters] = None,
    threshold: Optional[float] = None,
    max_results: int = SEARCH_DEFAULTS["MAX_RESULTS"],
) -> List[Dict[str, Any]]:
    """
    Pure similarity search.

    Raises:
        ServiceNotConfiguredError: If the user has no OpenAI key.
        EmbeddingError: If the embedding cannot be generated.
    """
    if not ctx.openai_api_key:
        raise ServiceNotConfiguredError("An OpenAI connection is required for vector search")

    embedding = await embedding_service.generate_embedding(query, api_key=ctx.openai_api_key)
    return await document_service.vector_search(
        ctx.supabase_client,
        embedding,
        threshold=threshold if threshold is not None else ctx.search_settings.vector_threshold,
        max_results=max_results,
        filters=filters,
    )


async def get_facets(ctx: SearchContext) -> Dict[str, List[str]]:
    return {
        "correspondence_types": await document_service.get_correspondence_types(ctx.supabase_client),
        "severity_rates": await document_service.get_severity_rates(ctx.supabase_client),
        "keywords": await document_service.get_keywords(ctx.supabase_client),
    }


async def get_document_network(ctx: SearchContext, document_id: int) -> Dict[str, Any]:
    """Similar documents presented as a flat network (no relationships)."""
    similar = await document_service.find_similar_documents(ctx.supabase_client, document_id)
    return {
        "nodes": [{"id": doc["id"], "label": doc.get("short_desc") or "Untitled"} for doc in similar],
        "relationships": [],
    }


async def get_relations_map(ctx: SearchContext) -> Dict[str, List[str]]:
    """
    Parsed references per letter number for the whole archive.

    Documents without a letter number are skipped; a letter number that
    appears twice keeps the union of its references.
    """
    relations: Dict[str, List[str]] = {}
    for row in await document_service.get_all_document_relations(ctx.supabase_client):
        letter_no = (row.get("letter_no") or "").strip()
        if not letter_no:
            continue
        refs = relations.setdefault(letter_no, [])
        for ref in graph_service.parse_ref_letters(row.get("ref_letters")):
            if ref not in refs:
                refs.append(ref)
    return relations


def _analysis_sample(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{k: row.get(k) for k in _ANALYSIS_FIELDS if k in row} for row in rows]


async def ai_search(
    ctx: SearchContext,
    query: str,
    filters: Optional[SearchFilters] = None,
) -> Dict[str, Any]:
    """
    DeepSeek-routed search.

    DeepSeek picks a backend; the document search always runs (the graph
    side needs a selected letter, so it contributes no rows here), then
    DeepSeek reviews the results.
    """
    facets = await get_facets(ctx)
    decision = await deepseek_service.determine_search_strategy(
        query,
        categories=facets["correspondence_types"],
        tags=facets["keywords"][:50],
        api_key=ctx.deepseek_api_key,
    )

    search_query = query
    if decision.query_optimization and decision.query_optimization.optimized_query.strip():
        search_query = decision.query_optimization.optimized_query
    elif ctx.deepseek_api_key:
        optimized = await deepseek_service.optimize_search_query(
            query, "supabase", api_key=ctx.deepseek_api_key
        )
        search_query = optimized.optimized_query.strip() or query

    result = await search(ctx, search_query, filters)

    analysis = await deepseek_service.analyze_search_results(
        query,
        graph_results=[],
        supabase_results=_analysis_sample(result["results"]),
        decision=decision,
        api_key=ctx.deepseek_api_key,
    )

    return {"decision": decision, "search": result, "analysis": analysis}


async def test_connections(ctx: SearchContext) -> Dict[str, str]:
    """
    Connection state per backend.

    `disconnected` means no credentials; `error` means the check failed.
    """
    if ctx.supabase_client is None:
        supabase_state = "disconnected"
    else:
        ok = await document_service.test_connection(ctx.supabase_client)
        supabase_state = "connected" if ok else "error"

    openai_key = ctx.openai_api_key
    deepseek_key = ctx.deepseek_api_key

    if openai_key:
        openai_state = "connected" if await embedding_service.test_connection(openai_key) else "error"
    else:
        openai_state = "disconnected"

    if deepseek_key:
        deepseek_state = "connected" if await deepseek_service.test_connection(deepseek_key) else "error"
    else:
        deepseek_state = "disconnected"

    return {"supabase": supabase_state, "openai": openai_state, "deepseek": deepseek_state}
