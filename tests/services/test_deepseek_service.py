"""
Tests for the DeepSeek search assistant.

Covers model replies and the keyword heuristics used when DeepSeek is
unavailable or replies with something unusable.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from backoffice.schemas.documents import SearchDecision
from backoffice.services import deepseek_service


def chat_reply(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


@pytest.fixture
def deepseek_client():
    client = MagicMock()
    with patch("backoffice.services.deepseek_service.get_openai_client", return_value=client):
        yield client


@pytest.fixture
def no_deepseek_client():
    with patch("backoffice.services.deepseek_service.get_openai_client", return_value=None):
        yield


class TestFallbackDecision:

    @pytest.mark.parametrize("query,expected_type,expected_confidence", [
        ("IC-HD-12 ile ilişki", "graph", 0.7),
        ("show the reference network", "graph", 0.7),
        ("beton rapor listesi", "supabase", 0.7),
        ("beton dökümü", "both", 0.5),
        ("ilişki raporu", "both", 0.5),
    ])
    def test_keyword_heuristic(self, query, expected_type, expected_confidence):
        decision = deepseek_service.fallback_decision(query)

        assert decision.search_type == expected_type
        assert decision.confidence == expected_confidence
        assert decision.query_optimization.optimized_query == query

    def test_fallback_keywords_skip_short_words(self):
        decision = deepseek_service.fallback_decision("ab beton ve kalıp")

        assert decision.query_optimization.keywords == ["beton", "kalıp"]


class TestDetermineSearchStrategy:

    @pytest.mark.asyncio
    async def test_parses_model_decision(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply(json.dumps({
            "searchType": "graph",
            "reasoning": "Reference chain requested",
            "confidence": 0.85,
            "suggestedFilters": {"dateRange": {"from": "2024-01-01", "to": "2024-12-31"}},
            "queryOptimization": {
                "originalQuery": "IC-HD-12 zinciri",
                "optimizedQuery": "IC-HD-12",
                "keywords": ["IC-HD-12"],
            },
        }))

        decision = await deepseek_service.determine_search_strategy(
            "IC-HD-12 zinciri", categories=["Letter"], tags=["beton"], api_key="ds-key"
        )

        assert decision.search_type == "graph"
        assert decision.confidence == 0.85
        assert decision.suggested_filters.date_range.from_ == "2024-01-01"
        assert decision.query_optimization.optimized_query == "IC-HD-12"

        kwargs = deepseek_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2000
        assert "Letter" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply(
            '{"searchType": "supabase", "reasoning": "", "confidence": 7}'
        )

        decision = await deepseek_service.determine_search_strategy("beton", api_key="ds-key")

        assert decision.confidence == 1.0

    @pytest.mark.asyncio
    async def test_unknown_search_type_uses_heuristic(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply(
            '{"searchType": "neo4j", "confidence": 0.9}'
        )

        decision = await deepseek_service.determine_search_strategy("beton rapor", api_key="ds-key")

        assert decision.search_type == "supabase"
        assert decision.confidence == 0.7

    @pytest.mark.asyncio
    async def test_invalid_json_uses_heuristic(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply("I think graph search is best.")

        decision = await deepseek_service.determine_search_strategy("beton", api_key="ds-key")

        assert decision.search_type == "both"

    @pytest.mark.asyncio
    async def test_missing_key_uses_heuristic(self, no_deepseek_client):
        decision = await deepseek_service.determine_search_strategy("bağlantı ağı")

        assert decision.search_type == "graph"


class TestOptimizeAndAnalyze:

    @pytest.mark.asyncio
    async def test_optimize_parses_reply(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply(
            '{"optimizedQuery": "beton döküm", "keywords": ["beton"], "synonyms": ["concrete"]}'
        )

        optimized = await deepseek_service.optimize_search_query("beton dökümü nerede", "supabase", api_key="ds-key")

        assert optimized.optimized_query == "beton döküm"
        assert optimized.synonyms == ["concrete"]

    @pytest.mark.asyncio
    async def test_optimize_fallback_returns_query(self, no_deepseek_client):
        optimized = await deepseek_service.optimize_search_query("ab beton dökümü", "graph")

        assert optimized.optimized_query == "ab beton dökümü"
        assert optimized.keywords == ["beton", "dökümü"]
        assert optimized.synonyms == []

    @pytest.mark.asyncio
    async def test_analysis_parses_reply(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply(json.dumps({
            "relevanceScores": {"graph": 0.2, "supabase": 0.9},
            "recommendations": ["Use the document table"],
            "suggestedActions": ["Filter by type"],
        }))
        decision = SearchDecision(search_type="supabase", reasoning="", confidence=0.8)

        analysis = await deepseek_service.analyze_search_results(
            "beton", [], [{"id": 1, "short_desc": "beton"}], decision, api_key="ds-key"
        )

        assert analysis.relevance_scores == {"graph": 0.2, "supabase": 0.9}
        assert analysis.suggested_actions == ["Filter by type"]

    @pytest.mark.asyncio
    async def test_analysis_fallback(self, no_deepseek_client):
        decision = SearchDecision(search_type="both", reasoning="", confidence=0.5)

        analysis = await deepseek_service.analyze_search_results("beton", [], [], decision)

        assert analysis.relevance_scores == {"graph": 0.5, "supabase": 0.5}
        assert analysis.recommendations
        assert analysis.suggested_actions

    @pytest.mark.asyncio
    async def test_connection_checks(self, deepseek_client):
        deepseek_client.chat.completions.create.return_value = chat_reply("OK")
        assert await deepseek_service.test_connection("ds-key") is True

        deepseek_client.chat.completions.create.return_value = MagicMock(choices=[])
        assert await deepseek_service.test_connection("ds-key") is False
