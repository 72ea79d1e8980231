"""
Tests for search orchestration (fallback chain, AI routing, connections).

The document, embedding and DeepSeek services are patched with AsyncMocks.
"""

from unittest.mock import AsyncMock, patch

import pytest

from backoffice.schemas.documents import (
    OptimizedQuery,
    QueryEnhancement,
    QueryOptimization,
    ResultAnalysis,
    SearchDecision,
    SearchFilters,
)
from backoffice.schemas.user_config import SearchSettings
from backoffice.services import deepseek_service, document_service, embedding_service, search_service
from backoffice.services.errors import DocumentSearchError, EmbeddingError
from backoffice.services.search_service import SearchContext


@pytest.fixture
def ctx(supabase_client):
    return SearchContext(
        supabase_client=supabase_client,
        openai_api_key="sk-user",
        deepseek_api_key="ds-user",
        search_settings=SearchSettings(vector_threshold=0.4, vector_weight=0.2, text_weight=0.8),
    )


@pytest.fixture
def enhancement():
    return QueryEnhancement(
        original_query="beton",
        enhanced_query="beton concrete",
        search_keywords=["beton"],
        search_strategy="hybrid",
        confidence=0.8,
    )


@pytest.fixture
def ai_services(enhancement):
    """Enhancement and embedding succeed; document calls are configured per test."""
    with patch.object(embedding_service, "enhance_query", AsyncMock(return_value=enhancement)) as enhance, \
            patch.object(embedding_service, "generate_embedding", AsyncMock(return_value=[0.1, 0.2])) as embed, \
            patch.object(document_service, "hybrid_search", AsyncMock()) as hybrid, \
            patch.object(document_service, "vector_search", AsyncMock()) as vector, \
            patch.object(document_service, "search_documents", AsyncMock()) as text:
        yield {
            "enhance_query": enhance,
            "generate_embedding": embed,
            "hybrid_search": hybrid,
            "vector_search": vector,
            "search_documents": text,
        }


class TestSearch:

    @pytest.mark.asyncio
    async def test_blank_query_raises_value_error(self, ctx):
        with pytest.raises(ValueError):
            await search_service.search(ctx, "   ")

    @pytest.mark.asyncio
    async def test_ai_disabled_runs_text_search(self, ctx, ai_services):
        ai_services["search_documents"].return_value = ([{"id": 1}], 1)

        result = await search_service.search(ctx, "beton", enable_ai=False)

        assert result["search_method"] == "text"
        assert result["results"] == [{"id": 1, "similarity": 0.5, "search_type": "text"}]
        assert result["query_enhancement"] is None
        assert result["total"] == 1
        ai_services["generate_embedding"].assert_not_called()

    @pytest.mark.asyncio
    async def test_user_setting_decides_when_enable_ai_not_given(self, ctx, ai_services):
        ctx.search_settings = SearchSettings(enable_ai=False)
        ai_services["search_documents"].return_value = ([], 0)

        result = await search_service.search(ctx, "beton")

        assert result["search_method"] == "text"

    @pytest.mark.asyncio
    async def test_hybrid_uses_enhanced_query_and_user_tuning(self, ctx, ai_services, enhancement):
        ai_services["hybrid_search"].return_value = [{"id": 1, "similarity": 0.9, "search_type": "hybrid"}]
        filters = SearchFilters(type_of_corr="Letter")

        result = await search_service.search(ctx, "beton", filters, enable_ai=True)

        assert result["search_method"] == "hybrid"
        assert result["query_enhancement"] == enhancement
        ai_services["generate_embedding"].assert_awaited_with("beton concrete", api_key="sk-user")
        kwargs = ai_services["hybrid_search"].call_args.kwargs
        assert kwargs["vector_threshold"] == 0.4
        assert kwargs["vector_weight"] == 0.2
        assert kwargs["text_weight"] == 0.8
        assert kwargs["max_results"] == 500
        assert kwargs["filters"] == filters

    @pytest.mark.asyncio
    async def test_hybrid_failure_falls_back_to_vector(self, ctx, ai_services):
        ai_services["hybrid_search"].side_effect = DocumentSearchError("text search failed twice")
        ai_services["vector_search"].return_value = [{"id": 2, "similarity": 0.7, "search_type": "vector"}]

        result = await search_service.search(ctx, "beton", enable_ai=True)

        assert result["search_method"] == "vector"
        assert result["results"][0]["id"] == 2

    @pytest.mark.asyncio
    async def test_embedding_failure_falls_back_to_text(self, ctx, ai_services):
        ai_services["generate_embedding"].side_effect = EmbeddingError("rate limited")
        ai_services["search_documents"].return_value = ([{"id": 3}], 1)

        result = await search_service.search(ctx, "beton", enable_ai=True)

        assert result["search_method"] == "text"
        assert result["results"][0]["search_type"] == "text"

    @pytest.mark.asyncio
    async def test_without_openai_key_enhancement_is_skipped(self, ctx, ai_services):
        ctx.openai_api_key = ""
        ai_services["hybrid_search"].return_value = []

        result = await search_service.search(ctx, "beton", enable_ai=True)

        ai_services["enhance_query"].assert_not_called()
        ai_services["generate_embedding"].assert_awaited_with("beton", api_key="")
        assert result["query_enhancement"] is None

    @pytest.mark.asyncio
    async def test_text_failure_after_all_fallbacks_propagates(self, ctx, ai_services):
        ai_services["generate_embedding"].side_effect = EmbeddingError("down")
        ai_services["search_documents"].side_effect = DocumentSearchError("db down")

        with pytest.raises(DocumentSearchError):
            await search_service.search(ctx, "beton", enable_ai=True)


class TestVectorOnly:

    @pytest.mark.asyncio
    async def test_requires_openai_key(self, ctx):
        from backoffice.services.errors import ServiceNotConfiguredError

        ctx.openai_api_key = ""
        with pytest.raises(ServiceNotConfiguredError):
            await search_service.vector_only_search(ctx, "beton")

    @pytest.mark.asyncio
    async def test_uses_user_threshold_by_default(self, ctx, ai_services):
        ai_services["vector_search"].return_value = []

        await search_service.vector_only_search(ctx, "beton")

        assert ai_services["vector_search"].call_args.kwargs["threshold"] == 0.4


class TestAISearch:

    @pytest.mark.asyncio
    async def test_routes_searches_and_analyzes(self, ctx):
        decision = SearchDecision(
            search_type="supabase",
            reasoning="content search",
            confidence=0.9,
            query_optimization=QueryOptimization(
                original_query="beton nerede", optimized_query="beton", keywords=["beton"]
            ),
        )
        analysis = ResultAnalysis(relevance_scores={"supabase": 0.9})
        search_result = {
            "results": [{"id": 1, "short_desc": "beton", "content": "long body", "similarity": 0.8}],
            "search_method": "hybrid",
            "query_enhancement": None,
            "total": 1,
        }

        with patch.object(search_service, "get_facets", AsyncMock(return_value={
                    "correspondence_types": ["Letter"], "severity_rates": [], "keywords": ["beton"]})), \
                patch.object(deepseek_service, "determine_search_strategy", AsyncMock(return_value=decision)) as route, \
                patch.object(search_service, "search", AsyncMock(return_value=search_result)) as run_search, \
                patch.object(deepseek_service, "analyze_search_results", AsyncMock(return_value=analysis)) as analyze:
            result = await search_service.ai_search(ctx, "beton nerede")

        assert result == {"decision": decision, "search": search_result, "analysis": analysis}
        assert route.call_args.kwargs["categories"] == ["Letter"]
        assert run_search.call_args[0][1] == "beton"
        sample = analyze.call_args.kwargs["supabase_results"]
        assert sample == [{"id": 1, "short_desc": "beton", "similarity": 0.8}]
        assert analyze.call_args.kwargs["graph_results"] == []

    @pytest.mark.asyncio
    async def test_optimizes_query_when_decision_has_none(self, ctx):
        decision = SearchDecision(search_type="both", reasoning="", confidence=0.5)

        with patch.object(search_service, "get_facets", AsyncMock(return_value={
                    "correspondence_types": [], "severity_rates": [], "keywords": []})), \
                patch.object(deepseek_service, "determine_search_strategy", AsyncMock(return_value=decision)), \
                patch.object(deepseek_service, "optimize_search_query",
                             AsyncMock(return_value=OptimizedQuery(optimized_query="kalıp iskele"))) as optimize, \
                patch.object(search_service, "search", AsyncMock(return_value={
                    "results": [], "search_method": "text", "query_enhancement": None, "total": 0})) as run_search, \
                patch.object(deepseek_service, "analyze_search_results", AsyncMock(return_value=ResultAnalysis())):
            await search_service.ai_search(ctx, "kalıp ve iskele")

        optimize.assert_awaited_once()
        assert run_search.call_args[0][1] == "kalıp iskele"


class TestConnections:

    @pytest.mark.asyncio
    async def test_states_per_backend(self, ctx):
        ctx.deepseek_api_key = ""
        with patch.object(document_service, "test_connection", AsyncMock(return_value=True)), \
                patch.object(embedding_service, "test_connection", AsyncMock(return_value=False)):
            states = await search_service.test_connections(ctx)

        assert states == {"supabase": "connected", "openai": "error", "deepseek": "disconnected"}

    @pytest.mark.asyncio
    async def test_missing_supabase_is_disconnected(self):
        states = await search_service.test_connections(SearchContext(supabase_client=None))

        assert states == {"supabase": "disconnected", "openai": "disconnected", "deepseek": "disconnected"}


class TestNetwork:

    @pytest.mark.asyncio
    async def test_similar_documents_become_nodes(self, ctx):
        with patch.object(document_service, "find_similar_documents", AsyncMock(return_value=[
            {"id": 4, "short_desc": "Beton raporu"},
            {"id": 5, "short_desc": None},
        ])):
            network = await search_service.get_document_network(ctx, 1)

        assert network == {
            "nodes": [{"id": 4, "label": "Beton raporu"}, {"id": 5, "label": "Untitled"}],
            "relationships": [],
        }


class TestRelationsMap:

    @pytest.mark.asyncio
    async def test_references_are_parsed_per_letter(self, ctx):
        with patch.object(document_service, "get_all_document_relations", AsyncMock(return_value=[
            {"letter_no": "IC-HD-12", "ref_letters": "IC-HD-3, IC-HD-7"},
            {"letter_no": "IC-HD-12", "ref_letters": "IC-HD-7, IC-HD-9"},
            {"letter_no": "IC-HD-20", "ref_letters": None},
            {"letter_no": "  ", "ref_letters": "IC-HD-1"},
            {"letter_no": None, "ref_letters": "IC-HD-2"},
        ])):
            relations = await search_service.get_relations_map(ctx)

        assert relations == {
            "IC-HD-12": ["IC-HD-3", "IC-HD-7", "IC-HD-9"],
            "IC-HD-20": [],
        }

    @pytest.mark.asyncio
    async def test_archive_failure_propagates(self, ctx):
        with patch.object(document_service, "get_all_document_relations",
                          AsyncMock(side_effect=DocumentSearchError("db down"))):
            with pytest.raises(DocumentSearchError):
                await search_service.get_relations_map(ctx)
